from pydantic import BaseModel, Field
from typing import Any, Dict, List, Literal

MatchType = Literal["exact", "partial", "starts_with", "ends_with"]
CombineLogic = Literal["and", "or"]
Dir = Literal["asc", "desc"]

class SortDirective(BaseModel):
    field: str = "id"
    direction: Dir = "asc"

class SearchOptions(BaseModel):
    term: str = ""
    fields: List[str] = []
    match_type: MatchType = "partial"
    case_sensitive: bool = False
    word_matching: bool = False
    combine_logic: CombineLogic = "or"
    sort_field: str = "id"
    sort_direction: Dir = "asc"

    @property
    def sort(self) -> SortDirective:
        return SortDirective(field=self.sort_field or "id", direction=self.sort_direction)

class ListParams(BaseModel):
    """Normalized list/search parameters handed over by the request layer."""
    filters: Dict[str, Any] = {}
    search: SearchOptions = SearchOptions()
    columns: List[str] = []
    with_ids: List[Any] = []

class BulkDeletePayload(BaseModel):
    ids: List[Any] = Field(default_factory=list)

class BulkUpdatePayload(BaseModel):
    items: List[Dict[str, Any]] = Field(default_factory=list)
