import json
import logging
import os
from typing import List, Optional, Sequence, Tuple

from nltk.stem.snowball import SnowballStemmer
from rank_bm25 import BM25Okapi

from backend.app.catalog_store import tokenize
from backend.app.models import Item

logger = logging.getLogger(__name__)


class BM25CatalogStore:
    """
    Catálogo en memoria. Mismo predicado AND que el catálogo SQLite pero las
    coincidencias se ordenan por score BM25 (empates: orden del catálogo).
    """

    def __init__(self, items: Sequence[Item], stem_language: Optional[str] = None):
        self.items: List[Item] = list(items)
        self.stemmer = SnowballStemmer(stem_language) if stem_language else None
        self.corpus_tokens = [
            self._analyze(it.name + " " + (it.description or "")) for it in self.items
        ]
        self.token_sets = [set(toks) for toks in self.corpus_tokens]
        # BM25Okapi no acepta un corpus vacío
        self.bm25 = BM25Okapi(self.corpus_tokens) if self.corpus_tokens else None

    @classmethod
    def from_json(cls, path: str, stem_language: Optional[str] = None) -> "BM25CatalogStore":
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
        items = [Item.model_validate(p) for p in raw]
        logger.info("BM25CatalogStore cargado desde %s (items=%d)", os.path.basename(path), len(items))
        return cls(items, stem_language=stem_language)

    def _analyze(self, text: str) -> List[str]:
        toks = tokenize(text)
        if self.stemmer is None:
            return toks
        return [self.stemmer.stem(t) for t in toks]

    def count(self) -> int:
        return len(self.items)

    def search(self, text: Optional[str], limit: int, offset: int) -> Tuple[List[Item], int]:
        if text is None:
            return self.items[offset: offset + limit], len(self.items)

        q_tokens = self._analyze(text)
        if not q_tokens or self.bm25 is None:
            return [], 0

        needed = set(q_tokens)
        matching = [i for i, toks in enumerate(self.token_sets) if needed <= toks]
        scores = self.bm25.get_scores(q_tokens)
        matching.sort(key=lambda i: (-float(scores[i]), i))

        page = matching[offset: offset + limit]
        return [self.items[i] for i in page], len(matching)
