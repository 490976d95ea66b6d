# src/async_docstore/base/query.py
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import (
    TYPE_CHECKING,
    Any,
    Dict,
    List,
    Mapping,
    Optional,
    Sequence,
    Union,
)

from .utils import compact, is_falsy

if TYPE_CHECKING:
    from .interfaces import DocumentSnapshot

# --- Setup Logging ---
log = logging.getLogger(__name__)

ARRAY_TYPES = (list, tuple, set)


# --- Filter Operator Enum ---
class FilterOperator(Enum):
    """Enumeration of valid where-clause operators."""

    # Comparison
    EQ = "=="
    NE = "!="
    LT = "<"
    LTE = "<="
    GT = ">"
    GTE = ">="
    # Membership
    IN = "in"
    NOT_IN = "not-in"
    # Array fields
    ARRAY_CONTAINS = "array-contains"
    ARRAY_CONTAINS_ANY = "array-contains-any"

    @classmethod
    def coerce(cls, operator: Union[str, "FilterOperator"]) -> "FilterOperator":
        """Accept either an operator enum member or its string form."""
        if isinstance(operator, cls):
            return operator
        try:
            return cls(operator)
        except ValueError:
            valid = ", ".join(repr(op.value) for op in cls)
            raise ValueError(
                f"Unsupported filter operator {operator!r}. Expected one of: {valid}"
            ) from None


# Operators whose value must be a list of candidates
LIST_OPERATORS = frozenset(
    {FilterOperator.IN, FilterOperator.NOT_IN, FilterOperator.ARRAY_CONTAINS_ANY}
)


@dataclass(frozen=True)
class WhereFilter:
    """A single where-clause: field <operator> value."""

    field: str
    operator: FilterOperator
    value: Any

    def __post_init__(self):
        object.__setattr__(self, "operator", FilterOperator.coerce(self.operator))

    @property
    def is_array_valued(self) -> bool:
        return isinstance(self.value, ARRAY_TYPES)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "WhereFilter":
        """
        Build a filter from the loose dict form
        ``{"field": ..., "condition": ..., "value": ...}``.
        ``operator`` is accepted as an alias of ``condition``.
        """
        operator = data.get("condition", data.get("operator"))
        if "field" not in data or operator is None:
            raise ValueError(
                f"Filter mapping requires 'field' and 'condition' keys, got {dict(data)!r}"
            )
        return cls(field=data["field"], operator=operator, value=data.get("value"))


FilterInput = Union[WhereFilter, Mapping[str, Any], None]


def normalize_filters(filters: Optional[Sequence[FilterInput]]) -> List[WhereFilter]:
    """
    Drop filters that must never reach the backing store.

    - None entries are discarded.
    - Array values are compacted (falsy elements removed); the filter is
      dropped when nothing is left. Stores reject empty membership lists.
    - Scalar values that are falsy (None, False, 0, "", NaN) drop the
      filter. Filtering on a falsy scalar is therefore not possible.

    Surviving filters keep their input order and are not deduplicated.
    Anything other than a list or tuple of filters is ignored.
    """
    if not filters:
        return []
    if not isinstance(filters, (list, tuple)):
        log.debug(f"Ignoring filters of type {type(filters).__name__}: expected a list")
        return []

    normalized: List[WhereFilter] = []
    for raw in filters:
        if raw is None:
            continue
        where = raw if isinstance(raw, WhereFilter) else WhereFilter.from_mapping(raw)

        if where.is_array_valued:
            cleaned = compact(where.value)
            if not cleaned:
                log.debug(f"Dropping filter on '{where.field}': empty list value")
                continue
            normalized.append(WhereFilter(where.field, where.operator, cleaned))
        elif is_falsy(where.value):
            log.debug(
                f"Dropping filter on '{where.field}': falsy value {where.value!r}"
            )
        else:
            normalized.append(where)

    return normalized


@dataclass
class QuerySpec:
    """Declarative description of a filtered, sorted, paginated read."""

    table: str
    filters: Sequence[FilterInput] = field(default_factory=list)
    sorting_field: Optional[str] = None
    limit: Optional[int] = None
    cursor: Optional["DocumentSnapshot"] = None

    def __post_init__(self):
        if not self.table:
            raise ValueError("QuerySpec requires a table name.")
        if self.limit is not None and (
            not isinstance(self.limit, int) or self.limit < 0
        ):
            raise ValueError("Limit must be a non-negative integer.")

    def __repr__(self) -> str:
        parts = [f"table={self.table!r}", f"filters={list(self.filters)!r}"]
        if self.sorting_field:
            parts.append(f"sorting_field={self.sorting_field!r}")
        if self.limit:
            parts.append(f"limit={self.limit!r}")
        if self.cursor is not None:
            parts.append(f"cursor=<after {self.cursor.id!r}>")
        return f"QuerySpec({', '.join(parts)})"


@dataclass
class PageResult:
    """One page of query results and the cursor to resume after it."""

    data: List[Dict[str, Any]] = field(default_factory=list)
    cursor: Optional["DocumentSnapshot"] = None
