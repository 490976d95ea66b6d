# src/async_docstore/base/interfaces.py

import copy
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Tuple, Union

from async_docstore.base.exceptions import ObjectNotFoundException
from async_docstore.base.query import FilterOperator, WhereFilter
from async_docstore.base.results import FailureReason
from async_docstore.base.utils import MISSING, get_nested_value, split_document_path

base_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DocumentSnapshot:
    """
    A point-in-time read of one document.

    A snapshot also serves as a pagination cursor: pass the last snapshot of
    a page to `Query.start_after` to resume after it.
    """

    id: str
    data: Optional[Dict[str, Any]] = None
    exists: bool = True

    def to_dict(self) -> Optional[Dict[str, Any]]:
        """A copy of the stored fields, or None if the document does not exist."""
        if not self.exists or self.data is None:
            return None
        return copy.deepcopy(self.data)

    def get(self, field_path: str, default: Any = None) -> Any:
        """Read a (dotted) field path from the snapshot."""
        if not self.data:
            return default
        value = get_nested_value(self.data, field_path)
        return default if value is MISSING else value


@dataclass(frozen=True)
class Query:
    """
    An immutable, chainable description of a read against one collection.

    Every builder method returns a new Query; nothing touches the backing
    store until `get()` is awaited.
    """

    store: "DocumentStore"
    collection_name: str
    filters: Tuple[WhereFilter, ...] = ()
    orders: Tuple[str, ...] = ()
    limit_count: Optional[int] = None
    cursor: Optional[DocumentSnapshot] = None

    def where(
        self, field: str, operator: Union[str, FilterOperator], value: Any
    ) -> "Query":
        return replace(self, filters=self.filters + (WhereFilter(field, operator, value),))

    def order_by(self, field: str) -> "Query":
        """Order results ascending by `field`. Documents lacking it are excluded."""
        return replace(self, orders=self.orders + (field,))

    def limit(self, count: int) -> "Query":
        if not isinstance(count, int) or count < 0:
            raise ValueError("Limit must be a non-negative integer.")
        return replace(self, limit_count=count)

    def start_after(self, snapshot: DocumentSnapshot) -> "Query":
        """Resume strictly after the document the snapshot refers to."""
        if not isinstance(snapshot, DocumentSnapshot):
            raise TypeError("start_after requires a DocumentSnapshot cursor")
        return replace(self, cursor=snapshot)

    async def get(self) -> List[DocumentSnapshot]:
        return await self.store.run_query(self)

    def __repr__(self) -> str:
        parts = [repr(self.collection_name)]
        parts.extend(
            f"where({f.field!r} {f.operator.value} {f.value!r})" for f in self.filters
        )
        parts.extend(f"order_by({o!r})" for o in self.orders)
        if self.limit_count:
            parts.append(f"limit({self.limit_count})")
        if self.cursor is not None:
            parts.append(f"start_after({self.cursor.id!r})")
        return f"Query({'.'.join(parts)})"


@dataclass(frozen=True, repr=False)
class CollectionRef(Query):
    """A query over a whole collection that can also address single documents."""

    def document(self, doc_id: str) -> "DocumentRef":
        return DocumentRef(self.store, self.collection_name, doc_id)


@dataclass(frozen=True)
class DocumentRef:
    """Handle on a single document addressed by collection and id."""

    store: "DocumentStore"
    collection_name: str
    id: str

    @property
    def path(self) -> str:
        return f"{self.collection_name}/{self.id}"

    async def get(self) -> DocumentSnapshot:
        return await self.store.get_document(self.collection_name, self.id)

    async def set(self, data: Dict[str, Any]) -> None:
        """Create the document, or fully overwrite it if it exists."""
        await self.store.set_document(self.collection_name, self.id, data)

    async def update(self, data: Dict[str, Any]) -> None:
        """
        Merge `data` into the existing document. Dotted keys address nested
        fields.

        Raises:
            ValueError: If `data` is empty.
            ObjectNotFoundException: If the document does not exist.
        """
        if not data:
            raise ValueError("Update requires at least one field.")
        await self.store.update_document(self.collection_name, self.id, data)


class DocumentStore(ABC):
    """
    Base interface of a backing document store.

    Concrete stores implement point reads and writes on single documents and
    the execution of a composed `Query`. Shared execution semantics:

    - results are ordered by the `order_by` fields, then by document id;
    - `order_by(field)` excludes documents that lack the field;
    - `start_after(snapshot)` resumes after the snapshot's position in that
      ordering;
    - `limit` is applied last;
    - `==`, `in` and range filters compare whole values: a scalar filter
      value never matches an array field (use the array-contains
      operators for that). The in-memory store enforces this. MongoDB
      applies its own array semantics to these operators and also matches
      arrays that contain the value.
    """

    def collection(self, name: str) -> CollectionRef:
        if not name:
            raise ValueError("Collection name must not be empty.")
        return CollectionRef(self, name)

    def document(self, path_or_collection: str, doc_id: Optional[str] = None) -> DocumentRef:
        """Address a document as ('table', 'id') or as a 'table/id' path."""
        if doc_id is None:
            path_or_collection, doc_id = split_document_path(path_or_collection)
        return self.collection(path_or_collection).document(doc_id)

    @abstractmethod
    async def get_document(self, collection_name: str, doc_id: str) -> DocumentSnapshot:
        """
        Read one document.

        Returns:
            A snapshot; `exists` is False when there is no such document.
        """
        pass

    @abstractmethod
    async def set_document(
        self, collection_name: str, doc_id: str, data: Dict[str, Any]
    ) -> None:
        pass

    @abstractmethod
    async def update_document(
        self, collection_name: str, doc_id: str, data: Dict[str, Any]
    ) -> None:
        """
        Raises:
            ObjectNotFoundException: If the document does not exist.
        """
        pass

    @abstractmethod
    async def run_query(self, query: Query) -> List[DocumentSnapshot]:
        pass

    def classify_error(self, error: BaseException) -> FailureReason:
        """Map a backend exception to a FailureReason. Stores extend this."""
        if isinstance(error, ObjectNotFoundException):
            return FailureReason.NOT_FOUND
        if isinstance(error, (ValueError, TypeError)):
            return FailureReason.INVALID_ARGUMENT
        return FailureReason.UNKNOWN

    def close(self) -> None:
        """Release client resources. The default store holds none."""
        base_logger.debug(f"Closing {type(self).__name__}")
