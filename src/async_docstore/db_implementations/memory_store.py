# src/async_docstore/db_implementations/memory_store.py

import asyncio
import copy
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from async_docstore.base.exceptions import ObjectNotFoundException
from async_docstore.base.interfaces import DocumentSnapshot, DocumentStore, Query
from async_docstore.base.query import LIST_OPERATORS, FilterOperator, WhereFilter
from async_docstore.base.utils import MISSING, get_nested_value, set_nested_value

base_logger = logging.getLogger("async_docstore.db_implementations.memory_store")

# Hosted document stores cap disjunctive filters at this many values
MAX_DISJUNCTION_VALUES = 30


def _type_rank(value: Any) -> int:
    """Cross-type ordering: null < bool < number < timestamp < string < bytes < array < map."""
    if value is None:
        return 0
    if isinstance(value, bool):
        return 1
    if isinstance(value, (int, float)):
        return 2
    if isinstance(value, datetime):
        return 3
    if isinstance(value, str):
        return 4
    if isinstance(value, bytes):
        return 5
    if isinstance(value, (list, tuple)):
        return 8
    if isinstance(value, dict):
        return 9
    raise TypeError(f"Unsupported value type for ordering: {type(value).__name__}")


def _check_storable(value: Any, path: str) -> None:
    """Raise TypeError for values the store cannot order or compare."""
    if isinstance(value, dict):
        for key, item in value.items():
            _check_storable(item, f"{path}.{key}" if path else str(key))
    elif isinstance(value, (list, tuple)):
        for item in value:
            _check_storable(item, path)
    else:
        try:
            _type_rank(value)
        except TypeError:
            raise TypeError(
                f"Cannot store value of type {type(value).__name__} at '{path}'."
            ) from None


def _sort_key(value: Any) -> Tuple:
    rank = _type_rank(value)
    if rank == 0:
        return (rank,)
    if rank == 8:
        return (rank, tuple(_sort_key(v) for v in value))
    if rank == 9:
        return (rank, tuple((k, _sort_key(v)) for k, v in sorted(value.items())))
    return (rank, value)


def _same_value(left: Any, right: Any) -> bool:
    # Keys compare type class too, so True never equals 1
    return _sort_key(left) == _sort_key(right)


def _matches(document: Dict[str, Any], where: WhereFilter) -> bool:
    actual = get_nested_value(document, where.field)
    if actual is MISSING:
        return False

    op = where.operator
    expected = where.value

    if op == FilterOperator.EQ:
        return _same_value(actual, expected)
    if op == FilterOperator.NE:
        return not _same_value(actual, expected)
    if op in (FilterOperator.LT, FilterOperator.LTE, FilterOperator.GT, FilterOperator.GTE):
        if _type_rank(actual) != _type_rank(expected):
            return False
        a, b = _sort_key(actual), _sort_key(expected)
        if op == FilterOperator.LT:
            return a < b
        if op == FilterOperator.LTE:
            return a <= b
        if op == FilterOperator.GT:
            return a > b
        return a >= b
    if op == FilterOperator.IN:
        return any(_same_value(actual, candidate) for candidate in expected)
    if op == FilterOperator.NOT_IN:
        return not any(_same_value(actual, candidate) for candidate in expected)
    if op == FilterOperator.ARRAY_CONTAINS:
        return isinstance(actual, list) and any(_same_value(item, expected) for item in actual)
    if op == FilterOperator.ARRAY_CONTAINS_ANY:
        return isinstance(actual, list) and any(
            _same_value(item, candidate) for item in actual for candidate in expected
        )
    raise ValueError(f"Unsupported filter operator: {op!r}")


def _validate_filter(where: WhereFilter) -> None:
    if where.operator not in LIST_OPERATORS:
        return
    if not isinstance(where.value, (list, tuple, set)):
        raise ValueError(
            f"Operator '{where.operator.value}' on field '{where.field}' requires a list value."
        )
    if not where.value:
        raise ValueError(
            f"Operator '{where.operator.value}' on field '{where.field}' requires a non-empty list."
        )
    if len(where.value) > MAX_DISJUNCTION_VALUES:
        raise ValueError(
            f"Operator '{where.operator.value}' supports at most "
            f"{MAX_DISJUNCTION_VALUES} values, got {len(where.value)}."
        )


class MemoryDocumentStore(DocumentStore):
    """
    Dictionary-backed document store with the same query semantics as the
    hosted backends. Data is deep-copied on the way in and out.
    """

    def __init__(self, project_id: Optional[str] = None):
        self._project_id = project_id or "memory"
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        base_logger.info(f"In-memory document store created for '{self._project_id}'.")

    @classmethod
    def from_config(cls, config) -> "MemoryDocumentStore":
        return cls(project_id=config.project_id)

    def _table(self, collection_name: str) -> Dict[str, Dict[str, Any]]:
        return self._collections.setdefault(collection_name, {})

    async def get_document(self, collection_name: str, doc_id: str) -> DocumentSnapshot:
        await asyncio.sleep(0)
        stored = self._table(collection_name).get(doc_id)
        if stored is None:
            return DocumentSnapshot(id=doc_id, data=None, exists=False)
        return DocumentSnapshot(id=doc_id, data=copy.deepcopy(stored))

    async def set_document(
        self, collection_name: str, doc_id: str, data: Dict[str, Any]
    ) -> None:
        await asyncio.sleep(0)
        _check_storable(data, "")
        self._table(collection_name)[doc_id] = copy.deepcopy(dict(data))
        base_logger.debug(f"Set {collection_name}/{doc_id}")

    async def update_document(
        self, collection_name: str, doc_id: str, data: Dict[str, Any]
    ) -> None:
        await asyncio.sleep(0)
        _check_storable(data, "")
        stored = self._table(collection_name).get(doc_id)
        if stored is None:
            raise ObjectNotFoundException(
                f"Document '{collection_name}/{doc_id}' not found for update."
            )
        for key, value in data.items():
            set_nested_value(stored, key, copy.deepcopy(value))
        base_logger.debug(f"Updated {collection_name}/{doc_id} fields: {list(data)}")

    async def run_query(self, query: Query) -> List[DocumentSnapshot]:
        await asyncio.sleep(0)
        for where in query.filters:
            _validate_filter(where)
        base_logger.debug(f"Running {query!r}")

        rows = [
            (doc_id, document)
            for doc_id, document in self._table(query.collection_name).items()
            if all(_matches(document, where) for where in query.filters)
            and all(get_nested_value(document, f) is not MISSING for f in query.orders)
        ]

        def position(doc_id: str, values: List[Any]) -> Tuple:
            return tuple(_sort_key(v) for v in values) + ((4, doc_id),)

        rows.sort(
            key=lambda row: position(
                row[0], [get_nested_value(row[1], f) for f in query.orders]
            )
        )

        if query.cursor is not None:
            after = position(
                query.cursor.id, [query.cursor.get(f) for f in query.orders]
            )
            rows = [
                row
                for row in rows
                if position(row[0], [get_nested_value(row[1], f) for f in query.orders])
                > after
            ]

        if query.limit_count:
            rows = rows[: query.limit_count]

        return [
            DocumentSnapshot(id=doc_id, data=copy.deepcopy(document))
            for doc_id, document in rows
        ]
