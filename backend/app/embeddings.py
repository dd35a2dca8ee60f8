from sentence_transformers import SentenceTransformer
from typing import List, Optional
import threading
import numpy as np

from backend.app.config import EMBEDDING_MODEL


class EmbeddingModel:
    def __init__(self, model_name: str = EMBEDDING_MODEL):
        self.model_name = model_name
        self._model: Optional[SentenceTransformer] = None
        self._lock = threading.Lock()

    @property
    def model(self) -> SentenceTransformer:
        # carga perezosa: el modelo solo se descarga si de verdad se consulta.
        # El lock evita que varias peticiones concurrentes lo carguen a la vez.
        if self._model is None:
            with self._lock:
                if self._model is None:
                    self._model = SentenceTransformer(self.model_name)
        return self._model

    def embed_texts(self, texts: List[str]) -> np.ndarray:
        """
        texts: list[str]
        returns: np.ndarray float32 normalizado (len(texts), dim)
        """
        emb = self.model.encode(texts, convert_to_numpy=True, show_progress_bar=False)
        emb = np.asarray(emb, dtype="float32")
        if emb.ndim == 1:
            emb = emb.reshape(1, -1)
        # normalizar (IndexFlatIP sobre vectores normalizados == coseno)
        norm = np.linalg.norm(emb, axis=1, keepdims=True)
        norm[norm == 0] = 1e-9
        return emb / norm
