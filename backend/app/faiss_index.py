import faiss
import logging
import numpy as np
import os
import pickle
from typing import Any, Dict, List, Optional

from backend.app.config import FAISS_INDEX_PATH, FAISS_META_PATH

logger = logging.getLogger(__name__)


def similarity_to_score(ip: float) -> float:
    """Producto interno (coseno en [-1, 1]) -> score de relevancia en [0, 1]."""
    return float(min(1.0, max(0.0, (1.0 + ip) / 2.0)))


class FaissIndex:
    def __init__(self, dim, embedder=None, index_path=FAISS_INDEX_PATH, meta_path=FAISS_META_PATH):
        self.dim = dim
        self.embedder = embedder
        self.index_path = index_path
        self.meta_path = meta_path
        self.index = faiss.IndexFlatIP(dim)  # inner product (usamos vectores normalizados)
        self.meta: List[Any] = []

    def add(self, vectors: np.ndarray, metas: list):
        if vectors.dtype != np.float32:
            vectors = vectors.astype('float32')
        if len(vectors) != len(metas):
            raise ValueError("vectors and metas must have the same length")
        self.index.add(vectors)
        self.meta.extend(metas)

    def save(self):
        os.makedirs(os.path.dirname(self.index_path) or ".", exist_ok=True)
        faiss.write_index(self.index, self.index_path)
        with open(self.meta_path, "wb") as f:
            pickle.dump(self.meta, f)

    def load(self) -> bool:
        if os.path.exists(self.index_path) and os.path.exists(self.meta_path):
            self.index = faiss.read_index(self.index_path)
            self.dim = self.index.d
            with open(self.meta_path, "rb") as f:
                self.meta = pickle.load(f)
            return True
        return False

    @classmethod
    def from_disk(cls, embedder, index_path=FAISS_INDEX_PATH, meta_path=FAISS_META_PATH) -> Optional["FaissIndex"]:
        idx = cls(dim=1, embedder=embedder, index_path=index_path, meta_path=meta_path)
        if not idx.load():
            return None
        logger.info("FAISS index cargado desde %s (vectores=%d)", index_path, idx.index.ntotal)
        return idx

    @property
    def size(self) -> int:
        return int(self.index.ntotal)

    def search(self, vector: np.ndarray, k=5):
        """
        Busca los k vecinos más cercanos para cada vector en `vector`.
        Devuelve una lista de filas; cada fila es una lista de {"score", "meta"}.
        Ignora índices inválidos que pudieran producirse.
        """
        # reshape defensivo: si es 1D, convertir a (1, d)
        vector = np.ascontiguousarray(np.asarray(vector, dtype="float32"))
        if vector.ndim == 1:
            vector = vector.reshape(1, -1)

        if self.index.ntotal == 0:
            return [[] for _ in range(vector.shape[0])]

        # k no puede exceder el número de vectores en el índice
        k_eff = min(int(k), max(1, self.index.ntotal))
        D, I = self.index.search(vector, k_eff)

        results = []
        for distances, indices in zip(D, I):
            row = []
            for dist, idx in zip(distances, indices):
                # faiss devuelve -1 si falta vecino
                if int(idx) < 0 or int(idx) >= len(self.meta):
                    continue
                row.append({"score": float(dist), "meta": self.meta[int(idx)]})
            results.append(row)
        return results

    def query(self, text: str, top_k: int) -> List[Dict[str, Any]]:
        """
        Consulta por texto. La metadata se devuelve tal cual se guardó (no
        tipada); quien la consuma debe validarla.
        """
        if self.embedder is None:
            raise RuntimeError("FaissIndex.query requires an embedder")
        q_vec = self.embedder.embed_texts([text])
        hits = self.search(q_vec, k=top_k)[0] if top_k > 0 else []
        out = []
        for h in hits:
            meta = h["meta"]
            out.append({
                "id": meta.get("id") if isinstance(meta, dict) else None,
                "score": similarity_to_score(h["score"]),
                "metadata": meta,
            })
        return out
