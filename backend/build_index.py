"""
Script para construir el catálogo SQLite, el índice FAISS y el JSON del
catálogo que usa el backend BM25.
Uso:
    python -m backend.build_index
"""
import json
import logging
import os

from backend.app import config
from backend.app.catalog_store import SqliteCatalogStore
from backend.app.embeddings import EmbeddingModel
from backend.app.faiss_index import FaissIndex
from backend.app.search import validate_item_metadata

logger = logging.getLogger("backend.build_index")

DATA_PATH = os.environ.get("PRODUCTS_PATH", "data/apartments.json")


def load_catalog(path):
    """Lee el JSON del catálogo y descarta las filas que no tienen forma de Item."""
    with open(path, "r", encoding="utf-8") as f:
        raw = json.load(f)
    items = []
    for i, p in enumerate(raw):
        item = validate_item_metadata(p)
        if item is None:
            logger.warning("Fila %d inválida en %s, se omite: %r", i, path, p)
            continue
        items.append(item)
    return items


def main():
    logging.basicConfig(level=config.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    if not os.path.exists(DATA_PATH):
        raise SystemExit(f"No existe {DATA_PATH}. Define PRODUCTS_PATH con el catálogo en JSON.")

    items = load_catalog(DATA_PATH)
    metas = [it.model_dump(by_alias=True) for it in items]

    store = SqliteCatalogStore(config.CATALOG_DB_PATH)
    inserted = store.upsert_items(items)
    logger.info("Catálogo SQLite: %d nuevos, %d en total (%s)", inserted, store.count(), config.CATALOG_DB_PATH)
    store.close()

    texts = [it.name + " . " + (it.description or "") for it in items]
    emb_model = EmbeddingModel(config.EMBEDDING_MODEL)
    emb = emb_model.embed_texts(texts)
    idx = FaissIndex(dim=emb.shape[1], index_path=config.FAISS_INDEX_PATH, meta_path=config.FAISS_META_PATH)
    idx.add(emb, metas)
    idx.save()
    logger.info("Índice FAISS construido con %d vectores (%s)", idx.size, config.FAISS_INDEX_PATH)

    os.makedirs(os.path.dirname(config.CATALOG_JSON_PATH) or ".", exist_ok=True)
    with open(config.CATALOG_JSON_PATH, "w", encoding="utf-8") as f:
        json.dump(metas, f, ensure_ascii=False, indent=2)
    logger.info("Catálogo JSON guardado en %s", config.CATALOG_JSON_PATH)


if __name__ == "__main__":
    main()
