"""
backend/app/search.py
Motor de búsqueda híbrida:
 - búsqueda léxica (full-text) contra el catálogo, siempre primaria
 - fallback semántico (vectores) solo para rellenar huecos de la página actual
 - filtro de confianza posicional sobre los candidatos semánticos
 - merge + cálculo de hasNext / total

El motor no guarda estado entre peticiones; los colaboradores (store, índice)
se inyectan en el constructor y pueden compartirse entre peticiones.
Los errores de los colaboradores NO se capturan aquí: se propagan tal cual.
"""

import logging
from typing import Any, Dict, List, Optional, Protocol, Sequence, Set, Tuple

from pydantic import ValidationError

from backend.app import config
from backend.app.models import (
    Item,
    LexicalPage,
    QueryDescriptor,
    ResultPage,
    ScoredCandidate,
)

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Interfaces de los colaboradores externos
# -----------------------------------------------------------------------------
class LexicalStore(Protocol):
    def search(self, text: Optional[str], limit: int, offset: int) -> Tuple[List[Item], int]:
        ...


class VectorIndex(Protocol):
    def query(self, text: str, top_k: int) -> List[Dict[str, Any]]:
        ...


# -----------------------------------------------------------------------------
# Guardas de forma para metadata no tipada
# -----------------------------------------------------------------------------
def validate_item_metadata(value: Any) -> Optional[Item]:
    """Devuelve el Item si `value` tiene forma de Item, None si no."""
    if not isinstance(value, dict):
        return None
    try:
        # strict: "12" no es un precio, 1 no es un id
        return Item.model_validate(value, strict=True)
    except ValidationError:
        return None


def _valid_score(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    score = float(value)
    # NaN no pasa ninguna comparación, así que también queda fuera
    if not (0.0 <= score <= 1.0):
        return None
    return score


# -----------------------------------------------------------------------------
# Clientes finos sobre los colaboradores
# -----------------------------------------------------------------------------
class LexicalSearchClient:
    def __init__(self, store: LexicalStore):
        self.store = store

    def search(self, text: Optional[str], page: int, page_size: int) -> LexicalPage:
        # una fila de más para detectar si existe página siguiente
        rows, total = self.store.search(text, limit=page_size + 1, offset=(page - 1) * page_size)
        return LexicalPage(rows=rows, total_matching=total)


class SemanticFallbackClient:
    def __init__(self, index: VectorIndex):
        self.index = index

    def query(self, text: str, k: int) -> List[ScoredCandidate]:
        """
        Consulta el índice vectorial y valida cada resultado.
        Los candidatos con metadata o score inválidos se descartan en silencio
        (se mantiene el orden de llegada de los válidos).
        """
        out: List[ScoredCandidate] = []
        for raw in self.index.query(text, top_k=k):
            if not isinstance(raw, dict):
                continue
            item = validate_item_metadata(raw.get("metadata"))
            score = _valid_score(raw.get("score"))
            if item is None or score is None:
                logger.debug("Descartado candidato semántico con forma inválida: id=%s", raw.get("id"))
                continue
            out.append(ScoredCandidate(item=item, score=score))
        return out


# -----------------------------------------------------------------------------
# Filtro de ranking del fallback
# -----------------------------------------------------------------------------
def rank_fallback(
    candidates: Sequence[ScoredCandidate],
    exclude_ids: Set[str],
    limit: Optional[int] = None,
    absolute_min: float = config.ABSOLUTE_MIN,
    score_drop_tolerance: float = config.SCORE_DROP_TOLERANCE,
    rank_increment: float = config.RANK_INCREMENT,
) -> List[Item]:
    """
    Umbral relativo al mejor candidato que se endurece con la posición:

        base_min = max(absolute_min, best - score_drop_tolerance)
        umbral(i) = min(1, base_min + i * rank_increment)

    `i` es la posición de llegada tras quitar los ids ya vistos; no se
    reordena por score. Nunca se admite nada por debajo de `absolute_min`.
    """
    remaining = [c for c in candidates if c.item.id not in exclude_ids]
    if not remaining:
        return []

    best = remaining[0].score
    base_min = max(absolute_min, best - score_drop_tolerance)

    kept = [
        c.item
        for i, c in enumerate(remaining)
        if c.score >= min(1.0, base_min + i * rank_increment)
    ]
    if limit is not None:
        kept = kept[: max(0, limit)]
    return kept


# -----------------------------------------------------------------------------
# Orquestador
# -----------------------------------------------------------------------------
class HybridSearchEngine:
    def __init__(
        self,
        lexical: LexicalSearchClient,
        semantic: Optional[SemanticFallbackClient] = None,
        page_size: int = config.PAGE_SIZE,
    ):
        if page_size < 1:
            raise ValueError("page_size must be >= 1")
        self.lexical = lexical
        self.semantic = semantic
        self.page_size = page_size

    def should_fallback(self, descriptor: QueryDescriptor, lexical_page: LexicalPage) -> bool:
        # semántico = solo rellenar huecos; una página léxica llena nunca lo activa
        return (
            self.semantic is not None
            and descriptor.semantic_enabled
            and descriptor.text is not None
            and len(lexical_page.rows) < self.page_size
        )

    def search(self, descriptor: QueryDescriptor) -> ResultPage:
        lexical_page = self.lexical.search(descriptor.text, descriptor.page, self.page_size)
        rows = list(lexical_page.rows)

        extras: List[Item] = []
        if self.should_fallback(descriptor, lexical_page):
            candidates = self.semantic.query(descriptor.text, self.page_size)
            shortfall = self.page_size - len(rows)
            # shortfall + 1: un extra de más (look-ahead) para que hasNext lo
            # detecte, igual que la fila extra de la búsqueda léxica
            extras = rank_fallback(candidates, {r.id for r in rows}, limit=shortfall + 1)
            logger.debug(
                "Fallback semántico q=%r page=%d: léxicos=%d candidatos=%d admitidos=%d",
                descriptor.text, descriptor.page, len(rows), len(candidates), len(extras),
            )

        merged = rows + extras
        items = merged[: self.page_size]
        extras_on_page = max(0, len(items) - len(rows))

        return ResultPage(
            items=items,
            has_next=len(merged) > self.page_size,
            # aproximación: solo cuentan los extras que entran en esta página
            total=lexical_page.total_matching + extras_on_page,
        )
