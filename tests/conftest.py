from typing import Dict, List, Optional

import numpy as np
import pytest

from backend.app.models import Item, ScoredCandidate


def make_item(i, name=None, description=None, price=1000.0) -> Item:
    return Item(
        id=str(i),
        name=name or f"Apartment {i}",
        price=price,
        description=description,
        image_id=f"https://img.example/{i}.jpg",
    )


def candidate(item_id, score) -> ScoredCandidate:
    return ScoredCandidate(item=make_item(item_id), score=score)


def metadata(item_id, **overrides) -> Dict:
    meta = {
        "id": str(item_id),
        "name": f"Apartment {item_id}",
        "price": 1200.0,
        "description": "Sunny flat",
        "imageId": f"https://img.example/{item_id}.jpg",
    }
    meta.update(overrides)
    return meta


class FakeStore:
    """LexicalStore en memoria: filtra por substring y registra las llamadas."""

    def __init__(self, items: List[Item]):
        self.items = list(items)
        self.calls = []

    def search(self, text: Optional[str], limit: int, offset: int):
        self.calls.append((text, limit, offset))
        matching = [
            it for it in self.items
            if text is None or text.lower() in (it.name + " " + (it.description or "")).lower()
        ]
        return matching[offset: offset + limit], len(matching)


class FakeVectorIndex:
    def __init__(self, results: List[Dict]):
        self.results = results
        self.calls = []

    def query(self, text: str, top_k: int):
        self.calls.append((text, top_k))
        return self.results[:top_k]


class FakeEmbedder:
    """Embeddings deterministas: texto -> vector fijo (normalizado)."""

    def __init__(self, vectors: Dict[str, List[float]]):
        self.vectors = vectors

    def embed_texts(self, texts):
        emb = np.asarray([self.vectors[t] for t in texts], dtype="float32")
        return emb / np.linalg.norm(emb, axis=1, keepdims=True)


@pytest.fixture
def catalog() -> List[Item]:
    return [
        make_item(1, "Modern loft", "Loft in the city center with exposed brick"),
        make_item(2, "Cozy studio", "Studio near public transport"),
        make_item(3, "Family flat", "Two-bedroom apartment with balcony near a park"),
        make_item(4, "Historic flat", "Hardwood floors, recently renovated"),
        make_item(5, "Penthouse", "Luxury penthouse with skyline views"),
        make_item(6, "Industrial loft", "Floor-to-ceiling windows and exposed beams"),
        make_item(7, "Seaside flat", "Ocean views and a balcony"),
    ]
