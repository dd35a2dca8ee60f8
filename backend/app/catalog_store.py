"""
Catálogo relacional (SQLite) con búsqueda full-text sencilla.

Cada fila guarda `search_text`: los tokens en minúsculas de
"name description" separados por espacios y con un espacio en cada extremo,
de forma que un token de la query se busca como palabra completa con
`LIKE '% token %'`. Todos los tokens deben aparecer (AND).
Los valores del usuario van siempre como parámetros, nunca interpolados.
"""

import logging
import re
import sqlite3
import threading
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from backend.app.models import Item

logger = logging.getLogger(__name__)

TOKEN_RE = re.compile(r"\w+", flags=re.UNICODE)

SCHEMA = """
CREATE TABLE IF NOT EXISTS item (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    image_id TEXT,
    price REAL NOT NULL,
    description TEXT,
    search_text TEXT NOT NULL
)
"""


def tokenize(text: Optional[str]) -> List[str]:
    if not text:
        return []
    return TOKEN_RE.findall(str(text).lower())


def search_text_for(item: Item) -> str:
    toks = tokenize(item.name + " " + (item.description or ""))
    return " " + " ".join(toks) + " "


def _like_escape(token: str) -> str:
    return token.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _row_to_item(row: sqlite3.Row) -> Item:
    return Item(
        id=row["id"],
        name=row["name"],
        price=row["price"],
        description=row["description"],
        image_id=row["image_id"],
    )


class SqliteCatalogStore:
    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.Lock()

    def _connect(self) -> sqlite3.Connection:
        if self._conn is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
            conn.row_factory = sqlite3.Row
            conn.execute(SCHEMA)
            conn.commit()
            self._conn = conn
        return self._conn

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def upsert_items(self, items: Iterable[Item]) -> int:
        """Inserta items; los ids ya existentes se ignoran. Devuelve cuántos entraron."""
        rows = [
            (it.id, it.name, it.image_id, it.price, it.description, search_text_for(it))
            for it in items
        ]
        with self._lock:
            conn = self._connect()
            before = conn.total_changes
            conn.executemany(
                "INSERT OR IGNORE INTO item (id, name, image_id, price, description, search_text) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                rows,
            )
            conn.commit()
            return conn.total_changes - before

    def count(self) -> int:
        with self._lock:
            return int(self._connect().execute("SELECT COUNT(*) FROM item").fetchone()[0])

    def search(self, text: Optional[str], limit: int, offset: int) -> Tuple[List[Item], int]:
        """
        Devuelve (filas de la página, total de filas que cumplen el filtro).
        Sin texto el predicado es siempre verdadero; el orden es el de inserción.
        """
        where = ""
        params: List[str] = []
        if text is not None:
            tokens = tokenize(text)
            if not tokens:
                # texto sin ningún token (p.ej. solo puntuación): no hay coincidencias
                return [], 0
            where = " WHERE " + " AND ".join(["search_text LIKE ? ESCAPE '\\'"] * len(tokens))
            params = [f"% {_like_escape(t)} %" for t in tokens]

        with self._lock:
            conn = self._connect()
            total = int(conn.execute(f"SELECT COUNT(*) FROM item{where}", params).fetchone()[0])
            # offset fuera de rango: no hay filas (y evita desbordar el INTEGER de SQLite)
            if offset >= total:
                return [], total
            rows = conn.execute(
                f"SELECT id, name, image_id, price, description FROM item{where} "
                "ORDER BY rowid LIMIT ? OFFSET ?",
                [*params, limit, offset],
            ).fetchall()

        return [_row_to_item(r) for r in rows], int(total)
