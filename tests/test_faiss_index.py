import numpy as np
import pytest
from conftest import FakeEmbedder, metadata

from backend.app.faiss_index import FaissIndex, similarity_to_score
from backend.app.search import SemanticFallbackClient


VECTORS = {
    "a": [1.0, 0.0, 0.0],
    "b": [0.8, 0.6, 0.0],
    "c": [0.0, 0.0, 1.0],
    "sea": [1.0, 0.0, 0.0],
}


@pytest.fixture
def index(tmp_path):
    embedder = FakeEmbedder(VECTORS)
    idx = FaissIndex(
        dim=3,
        embedder=embedder,
        index_path=str(tmp_path / "faiss.index"),
        meta_path=str(tmp_path / "meta.pkl"),
    )
    idx.add(embedder.embed_texts(["a", "b", "c"]), [metadata("a"), metadata("b"), metadata("c")])
    return idx


def test_similarity_to_score():
    assert similarity_to_score(1.0) == 1.0
    assert similarity_to_score(0.0) == 0.5
    assert similarity_to_score(-1.0) == 0.0
    assert similarity_to_score(1.2) == 1.0


def test_query_returns_scored_metadata_in_descending_order(index):
    hits = index.query("sea", top_k=3)
    assert [h["id"] for h in hits] == ["a", "b", "c"]
    assert [h["score"] for h in hits] == pytest.approx([1.0, 0.9, 0.5], abs=1e-5)
    assert hits[0]["metadata"]["imageId"] == "https://img.example/a.jpg"


def test_top_k_is_capped_by_index_size(index):
    assert len(index.query("sea", top_k=10)) == 3
    assert index.query("sea", top_k=0) == []


def test_search_skips_metadata_out_of_range(index):
    index.meta = index.meta[:1]
    rows = index.search(np.asarray([1.0, 0.0, 0.0]), k=3)
    assert [r["meta"]["id"] for r in rows[0]] == ["a"]


def test_empty_index_returns_empty_rows(tmp_path):
    idx = FaissIndex(dim=3, embedder=FakeEmbedder(VECTORS), index_path=str(tmp_path / "i"), meta_path=str(tmp_path / "m"))
    assert idx.query("sea", top_k=3) == []


def test_save_and_from_disk(index, tmp_path):
    index.save()
    loaded = FaissIndex.from_disk(
        FakeEmbedder(VECTORS),
        index_path=str(tmp_path / "faiss.index"),
        meta_path=str(tmp_path / "meta.pkl"),
    )
    assert loaded is not None
    assert loaded.size == 3 and loaded.dim == 3
    assert [h["id"] for h in loaded.query("sea", top_k=1)] == ["a"]


def test_from_disk_missing_files(tmp_path):
    assert FaissIndex.from_disk(FakeEmbedder(VECTORS), index_path=str(tmp_path / "x"), meta_path=str(tmp_path / "y")) is None


def test_add_requires_matching_lengths(index):
    with pytest.raises(ValueError):
        index.add(np.zeros((2, 3), dtype="float32"), [metadata("d")])


def test_feeds_semantic_fallback_client(index):
    candidates = SemanticFallbackClient(index).query("sea", 3)
    assert [c.item.id for c in candidates] == ["a", "b", "c"]
    assert candidates[1].score == pytest.approx(0.9, abs=1e-5)
