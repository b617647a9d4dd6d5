"""Request options and the backend-agnostic filter predicate.

``SearchFilters`` binds the caller's ``filters`` object (date range, metadata
equality, id allow-list, plus fusion/rerank knobs). ``translate`` turns it
into a ``FilterPredicate``: one conjunctive predicate that both retrieval
adapters pass to their index unchanged. Each backend performs the final step
into its native syntax (see ``backends.opensearch.build_filter_clauses``).
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from ..common.errors import ValidationError


class SearchFilters(BaseModel):
    """Filters and options accepted by a search call.

    Accepts both snake_case names and the camelCase names used on the wire
    (``createdAfter``, ``preRerankK``, ...).
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    created_after: Optional[datetime] = Field(None, alias="createdAfter")
    created_before: Optional[datetime] = Field(None, alias="createdBefore")
    meta: Optional[Dict[str, Any]] = Field(None, description="Equality constraints on meta.<key>")
    ids: Optional[List[str]] = Field(None, description="Identifier allow-list")
    fusion: Literal["rrf", "weighted"] = Field("rrf", description="Fusion strategy")
    rerank: bool = Field(False, description="Run the cross-encoder pass")
    pre_rerank_k: Optional[int] = Field(None, alias="preRerankK", ge=1, le=100)
    max_doc_chars: Optional[int] = Field(None, alias="maxDocChars", ge=1)
    model: Optional[str] = Field(None, description="Rerank model override")

    @field_validator("ids", mode="before")
    @classmethod
    def _ids_as_strings(cls, value: Any) -> Any:
        # ids are opaque; integer ids match the string ids read from the index
        if isinstance(value, (list, tuple)):
            return [
                str(item) if isinstance(item, int) and not isinstance(item, bool) else item
                for item in value
            ]
        return value

    @classmethod
    def from_request(cls, filters: Any) -> "SearchFilters":
        """Coerce ``None``, a mapping, or an instance into ``SearchFilters``.

        Raises ``ValidationError`` on malformed input.
        """
        if filters is None:
            return cls()
        if isinstance(filters, cls):
            return filters
        if not isinstance(filters, dict):
            raise ValidationError(f"filters must be an object, got {type(filters).__name__}")
        try:
            return cls.model_validate(filters)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid filters: {e}") from e


@dataclass
class FilterPredicate:
    """Conjunction of every constraint; empty fields are simply absent."""
    exists: List[str] = field(default_factory=list)
    created_after: Optional[datetime] = None
    created_before: Optional[datetime] = None
    meta_equals: Dict[str, Any] = field(default_factory=dict)
    ids: List[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (
            self.exists
            or self.created_after
            or self.created_before
            or self.meta_equals
            or self.ids
        )


def translate(
    filters: Optional[SearchFilters],
    required_field: Optional[str] = "title",
) -> FilterPredicate:
    """Translate request filters into a ``FilterPredicate``.

    Pure function. ``meta`` entries become ``meta.<key>`` equality
    constraints; an empty ``ids`` list adds no constraint.
    """
    predicate = FilterPredicate()
    if required_field:
        predicate.exists.append(required_field)

    if filters is None:
        return predicate

    predicate.created_after = filters.created_after
    predicate.created_before = filters.created_before

    if filters.meta:
        for key, value in filters.meta.items():
            predicate.meta_equals[f"meta.{key}"] = value

    if filters.ids:
        predicate.ids = [str(i) for i in filters.ids]

    return predicate
