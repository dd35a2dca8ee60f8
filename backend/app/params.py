"""
Normalización de parámetros crudos de la URL y construcción de enlaces de
paginación. Ambas piezas comparten la misma codificación:

    query=<texto>  semanticSearch=1  page=<n>   (page se omite si es 1)

Cualquier entrada inválida se normaliza a un valor seguro; nunca se lanza
excepción por culpa del usuario.
"""

import re
from typing import Any, Dict, List, Mapping, Optional, Union
from urllib.parse import urlencode

from backend.app.models import PageLinks, QueryDescriptor

RawValue = Union[str, List[str], None]

# solo dígitos ASCII (no aceptamos "+3", "3.0", "-1" ni dígitos unicode)
PAGE_RE = re.compile(r"[0-9]+")

SEMANTIC_ON = "1"


def raw_params_from_query(query_params: Any) -> Dict[str, RawValue]:
    """
    Convierte un multi-dict (p.ej. starlette QueryParams) en el "bag" crudo:
    una clave repetida se convierte en lista, una clave única en str.
    """
    out: Dict[str, RawValue] = {}
    for key in query_params.keys():
        values = query_params.getlist(key)
        out[key] = values[0] if len(values) == 1 else list(values)
    return out


def _first_text(value: Any) -> str:
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (list, tuple)):
        first = value[0] if value else ""
        return first.strip() if isinstance(first, str) else ""
    return ""


def _parse_page(value: Any) -> int:
    if not isinstance(value, str) or not PAGE_RE.fullmatch(value):
        return 1
    page = int(value)
    return page if page >= 1 else 1


def parse_params(raw: Mapping[str, Any]) -> QueryDescriptor:
    text = _first_text(raw.get("query"))
    return QueryDescriptor(
        text=text or None,
        page=_parse_page(raw.get("page")),
        semantic_enabled=raw.get("semanticSearch") == SEMANTIC_ON,
    )


def build_href(page: int, text: Optional[str], semantic_enabled: bool) -> str:
    """Enlace estable que preserva el estado de búsqueda actual."""
    params = []
    if text:
        params.append(("query", text))
    if semantic_enabled:
        params.append(("semanticSearch", SEMANTIC_ON))
    if page > 1:
        params.append(("page", str(page)))
    qs = urlencode(params)
    return f"/?{qs}" if qs else "/"


def build_links(descriptor: QueryDescriptor, has_next: bool) -> PageLinks:
    def href(p: int) -> str:
        return build_href(p, descriptor.text, descriptor.semantic_enabled)

    return PageLinks(
        prev=href(descriptor.page - 1) if descriptor.page > 1 else None,
        current=href(descriptor.page),
        next=href(descriptor.page + 1) if has_next else None,
    )
