"""
backend/app/main.py
API de búsqueda sobre el catálogo:
 - búsqueda léxica (SQLite o BM25 en memoria) siempre primaria
 - fallback semántico (FAISS + sentence-transformers) opcional, solo si la
   página léxica viene incompleta y el usuario lo activa (semanticSearch=1)
 - paginación con enlaces estables (prev / current / next)

Los colaboradores se construyen una sola vez en el arranque y se inyectan en
el motor; las peticiones no comparten estado mutable.
"""

import logging
import os
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware

from backend.app import config
from backend.app.bm25_index import BM25CatalogStore
from backend.app.catalog_store import SqliteCatalogStore
from backend.app.embeddings import EmbeddingModel
from backend.app.faiss_index import FaissIndex
from backend.app.models import SearchResponse
from backend.app.params import build_links, parse_params, raw_params_from_query
from backend.app.search import HybridSearchEngine, LexicalSearchClient, SemanticFallbackClient

logger = logging.getLogger("backend.app.main")
logging.basicConfig(level=config.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

# -----------------------------------------------------------------------------
# FastAPI app + CORS middleware
# -----------------------------------------------------------------------------
app = FastAPI(title="Catalog Hybrid Search - Backend")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["*"],
)

app.state.engine = None
app.state.catalog_size = 0


# -----------------------------------------------------------------------------
# Carga de assets: catálogo léxico + índice vectorial (si está)
# -----------------------------------------------------------------------------
def load_lexical_store():
    if config.LEXICAL_BACKEND == "bm25":
        if not os.path.exists(config.CATALOG_JSON_PATH):
            logger.warning("Catálogo JSON no encontrado en %s. Ejecuta backend/build_index.py", config.CATALOG_JSON_PATH)
            return None
        return BM25CatalogStore.from_json(config.CATALOG_JSON_PATH, stem_language=config.STEM_LANGUAGE or None)

    if config.LEXICAL_BACKEND != "sqlite":
        logger.warning("LEXICAL_BACKEND desconocido (%s); usando sqlite.", config.LEXICAL_BACKEND)
    if not os.path.exists(config.CATALOG_DB_PATH):
        logger.warning("Catálogo SQLite no encontrado en %s. Ejecuta backend/build_index.py", config.CATALOG_DB_PATH)
        return None
    return SqliteCatalogStore(config.CATALOG_DB_PATH)


def load_vector_index() -> Optional[FaissIndex]:
    if not config.SEMANTIC_ENABLED:
        logger.info("SEMANTIC_ENABLED=0 -> fallback semántico desactivado.")
        return None
    try:
        idx = FaissIndex.from_disk(
            EmbeddingModel(config.EMBEDDING_MODEL),
            index_path=config.FAISS_INDEX_PATH,
            meta_path=config.FAISS_META_PATH,
        )
    except Exception as e:
        logger.exception("No se pudo leer FAISS index: %s", e)
        return None
    if idx is None:
        logger.warning("FAISS index no encontrado en %s; fallback semántico desactivado.", config.FAISS_INDEX_PATH)
    return idx


def load_assets() -> None:
    store = load_lexical_store()
    if store is None:
        app.state.engine = None
        app.state.catalog_size = 0
        return

    index = load_vector_index()
    app.state.engine = HybridSearchEngine(
        lexical=LexicalSearchClient(store),
        semantic=SemanticFallbackClient(index) if index is not None else None,
        page_size=config.PAGE_SIZE,
    )
    app.state.catalog_size = store.count()
    logger.info(
        "Motor listo: backend=%s items=%d semántico=%s page_size=%d",
        config.LEXICAL_BACKEND, app.state.catalog_size, index is not None, config.PAGE_SIZE,
    )


@app.on_event("startup")
def _startup() -> None:
    load_assets()


def get_engine(request: Request) -> HybridSearchEngine:
    engine = request.app.state.engine
    if engine is None:
        raise HTTPException(status_code=503, detail="Catalog not loaded")
    return engine


# -----------------------------------------------------------------------------
# Health endpoint
# -----------------------------------------------------------------------------
@app.get("/health")
def health(request: Request):
    engine = request.app.state.engine
    return {
        "status": "ok" if engine is not None else "degraded",
        "catalog_size": request.app.state.catalog_size,
        "semantic": bool(engine is not None and engine.semantic is not None),
    }


# -----------------------------------------------------------------------------
# Search endpoint
# -----------------------------------------------------------------------------
@app.get("/search", response_model=SearchResponse)
def search(request: Request, engine: HybridSearchEngine = Depends(get_engine)) -> SearchResponse:
    descriptor = parse_params(raw_params_from_query(request.query_params))

    try:
        result = engine.search(descriptor)
    except Exception as e:
        logger.exception("Error en búsqueda q=%r page=%d: %s", descriptor.text, descriptor.page, e)
        raise HTTPException(status_code=500, detail="Search backend failure")

    return SearchResponse(
        query=descriptor.text,
        page=descriptor.page,
        semantic_search=descriptor.semantic_enabled,
        items=result.items,
        has_next=result.has_next,
        total=result.total,
        page_size=engine.page_size,
        links=build_links(descriptor, result.has_next),
    )


# -----------------------------------------------------------------------------
# run dev
# -----------------------------------------------------------------------------
if __name__ == "__main__":
    import uvicorn
    uvicorn.run("backend.app.main:app", host="0.0.0.0", port=config.PORT, reload=True)
