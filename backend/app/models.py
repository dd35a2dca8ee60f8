from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional


class Item(BaseModel):
    """Entrada del catálogo. La identidad es solo `id`."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    name: str
    price: float = Field(ge=0)
    description: Optional[str] = None
    image_id: Optional[str] = Field(default=None, alias="imageId")


class QueryDescriptor(BaseModel):
    """Estado canónico de la petición, ya validado (ver params.parse_params)."""

    model_config = ConfigDict(frozen=True)

    text: Optional[str] = None
    page: int = Field(default=1, ge=1)
    semantic_enabled: bool = False


class ScoredCandidate(BaseModel):
    model_config = ConfigDict(frozen=True)

    item: Item
    score: float = Field(ge=0, le=1)


class LexicalPage(BaseModel):
    model_config = ConfigDict(frozen=True)

    rows: List[Item]
    # todas las filas que cumplen el filtro, no solo las de esta página
    total_matching: int


class ResultPage(BaseModel):
    model_config = ConfigDict(frozen=True)

    items: List[Item]
    has_next: bool
    total: int


class PageLinks(BaseModel):
    prev: Optional[str] = None
    current: str
    next: Optional[str] = None


class SearchResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    query: Optional[str] = None
    page: int
    semantic_search: bool = Field(alias="semanticSearch")
    items: List[Item]
    has_next: bool = Field(alias="hasNext")
    total: int
    page_size: int = Field(alias="pageSize")
    links: PageLinks
