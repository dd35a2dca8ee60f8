"""Tests del endpoint /search y /health con colaboradores falsos."""
import pytest
from conftest import FakeStore, FakeVectorIndex, metadata
from fastapi.testclient import TestClient

from backend.app.main import app, get_engine
from backend.app.search import HybridSearchEngine, LexicalSearchClient, SemanticFallbackClient


@pytest.fixture
def vector_index():
    return FakeVectorIndex([
        {"id": "50", "score": 0.95, "metadata": metadata(50)},
        {"id": "51", "score": 0.2, "metadata": metadata(51)},
    ])


@pytest.fixture
def client(catalog, vector_index):
    engine = HybridSearchEngine(
        LexicalSearchClient(FakeStore(catalog)),
        SemanticFallbackClient(vector_index),
        page_size=3,
    )
    app.state.engine = engine
    app.state.catalog_size = len(catalog)
    yield TestClient(app)
    app.state.engine = None
    app.state.catalog_size = 0


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "catalog_size": 7, "semantic": True}


def test_browse_without_query(client):
    data = client.get("/search").json()
    assert data["query"] is None
    assert data["page"] == 1
    assert data["pageSize"] == 3
    assert [it["id"] for it in data["items"]] == ["1", "2", "3"]
    assert data["items"][0]["imageId"] == "https://img.example/1.jpg"
    assert data["hasNext"] is True
    assert data["total"] == 7
    assert data["links"] == {"prev": None, "current": "/", "next": "/?page=2"}


def test_last_page(client):
    data = client.get("/search", params={"page": "3"}).json()
    assert [it["id"] for it in data["items"]] == ["7"]
    assert data["hasNext"] is False
    assert data["links"]["prev"] == "/?page=2"
    assert data["links"]["next"] is None


def test_invalid_params_are_normalised(client):
    data = client.get("/search?page=-4&semanticSearch=true&query=%20%20").json()
    assert data["page"] == 1
    assert data["semanticSearch"] is False
    assert data["query"] is None


def test_repeated_query_key_uses_first_value(client):
    data = client.get("/search?query=penthouse&query=loft").json()
    assert data["query"] == "penthouse"
    assert [it["id"] for it in data["items"]] == ["5"]


def test_semantic_fallback_fills_the_page(client, vector_index):
    data = client.get("/search", params={"query": "loft", "semanticSearch": "1"}).json()
    assert [it["id"] for it in data["items"]] == ["1", "6", "50"]
    assert data["total"] == 3
    assert data["hasNext"] is False
    assert data["links"]["current"] == "/?query=loft&semanticSearch=1"
    assert vector_index.calls == [("loft", 3)]


def test_semantic_toggle_off_is_lexical_only(client, vector_index):
    data = client.get("/search", params={"query": "loft"}).json()
    assert [it["id"] for it in data["items"]] == ["1", "6"]
    assert data["total"] == 2
    assert vector_index.calls == []


def test_collaborator_failure_is_500(client, vector_index):
    def boom(text, top_k):
        raise ConnectionError("index unreachable")

    vector_index.query = boom
    response = client.get("/search", params={"query": "loft", "semanticSearch": "1"})
    assert response.status_code == 500
    assert response.json()["detail"] == "Search backend failure"


def test_catalog_not_loaded_is_503():
    app.state.engine = None
    response = TestClient(app).get("/search")
    assert response.status_code == 503
    assert response.json()["detail"] == "Catalog not loaded"


def test_engine_dependency_can_be_overridden(catalog):
    engine = HybridSearchEngine(LexicalSearchClient(FakeStore(catalog[:1])), None, page_size=3)
    app.dependency_overrides[get_engine] = lambda: engine
    try:
        data = TestClient(app).get("/search").json()
    finally:
        app.dependency_overrides.clear()
    assert [it["id"] for it in data["items"]] == ["1"]
    assert data["total"] == 1


def test_huge_page_number_on_sqlite_catalog(tmp_path, catalog):
    from backend.app.catalog_store import SqliteCatalogStore

    store = SqliteCatalogStore(tmp_path / "catalog.sqlite")
    store.upsert_items(catalog)
    app.state.engine = HybridSearchEngine(LexicalSearchClient(store), None, page_size=3)
    try:
        response = TestClient(app).get("/search", params={"page": "99999999999999999999"})
    finally:
        app.state.engine = None
        store.close()
    assert response.status_code == 200
    data = response.json()
    assert data["page"] == 99999999999999999999
    assert data["items"] == []
    assert data["total"] == 7
    assert data["hasNext"] is False
    assert data["links"]["prev"] == "/?page=99999999999999999998"
