"""
backend/app/config.py
Parámetros afinables desde ENV. Todo se lee una sola vez al importar.
"""

import os


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default) in ("1", "true", "True")


# -----------------------------------------------------------------------------
# Rutas de assets (ver backend/build_index.py)
# -----------------------------------------------------------------------------
CATALOG_DB_PATH = os.getenv("CATALOG_DB_PATH", "backend/data/catalog.sqlite")
CATALOG_JSON_PATH = os.getenv("CATALOG_JSON_PATH", "backend/data/products_meta.json")
FAISS_INDEX_PATH = os.getenv("FAISS_INDEX_PATH", "backend/data/faiss.index")
FAISS_META_PATH = os.getenv("FAISS_META_PATH", "backend/data/meta.pkl")

EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "sentence-transformers/all-MiniLM-L6-v2")

# "sqlite" (catálogo relacional) o "bm25" (en memoria, rank_bm25)
LEXICAL_BACKEND = os.getenv("LEXICAL_BACKEND", "sqlite")
# idioma Snowball para el backend bm25; vacío = sin stemming
STEM_LANGUAGE = os.getenv("STEM_LANGUAGE", "")

# -----------------------------------------------------------------------------
# Paginación y umbrales del fallback semántico
# -----------------------------------------------------------------------------
PAGE_SIZE = int(os.getenv("PAGE_SIZE", "3"))

ABSOLUTE_MIN = float(os.getenv("ABSOLUTE_MIN", "0.5"))
SCORE_DROP_TOLERANCE = float(os.getenv("SCORE_DROP_TOLERANCE", "0.15"))
RANK_INCREMENT = float(os.getenv("RANK_INCREMENT", "0.1"))

SEMANTIC_ENABLED = _env_flag("SEMANTIC_ENABLED", "1")

# -----------------------------------------------------------------------------
# Servidor
# -----------------------------------------------------------------------------
CORS_ORIGINS = [
    o.strip()
    for o in os.getenv(
        "CORS_ORIGINS",
        "http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000,http://127.0.0.1:3000",
    ).split(",")
    if o.strip()
]
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
PORT = int(os.getenv("PORT", "8000"))
