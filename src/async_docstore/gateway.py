# src/async_docstore/gateway.py

import logging
from logging import LoggerAdapter
from typing import Any, Callable, Dict, List, Optional, Union

from async_docstore.base.exceptions import StoreNotInitializedException
from async_docstore.base.interfaces import DocumentSnapshot, DocumentStore
from async_docstore.base.query import (FilterOperator, PageResult, QuerySpec,
                                       normalize_filters)
from async_docstore.base.results import WriteResult
from async_docstore.base.utils import prepare_for_storage
from async_docstore.config import StoreConfig
from async_docstore.db_implementations.mongodb_store import MongoDBDocumentStore

base_logger = logging.getLogger(__name__)

# Table holding pre-aggregated counters, one document per counted collection
COUNTER_TABLE = "counter"
COUNTER_FIELD = "count"
LEGACY_ID_FIELD = "id"

# Handles are longer than this; shorter request ids are legacy integers
_LEGACY_ID_MAX_LENGTH = 5

Identifier = Union[str, int]
StoreFactory = Callable[[StoreConfig], DocumentStore]

_default_gateway: Optional["StoreGateway"] = None


def parse_id(value: Any) -> Identifier:
    """
    Convert an id received as a request string to the type used for lookups.

    Store handles are strings longer than five characters and stay strings.
    Shorter strings are legacy numeric ids and are parsed to int.
    """
    if isinstance(value, str):
        return value if len(value) > _LEGACY_ID_MAX_LENGTH else int(value, 10)
    return value


def _to_document(snapshot: DocumentSnapshot) -> Dict[str, Any]:
    # Stored fields win over the handle, including a legacy `id` field
    return {"id": snapshot.id, **(snapshot.to_dict() or {})}


class StoreGateway:
    """
    Convenience operations over a DocumentStore: reads and writes by id,
    counter lookups and the filter/sort/limit/paginate query composer.

    Writes return a WriteResult and never raise. Reads and queries let
    backend errors propagate.
    """

    def __init__(self, store: DocumentStore, logger: Optional[LoggerAdapter] = None):
        self._store = store
        self._logger = logger or LoggerAdapter(base_logger, {})

    @property
    def store(self) -> DocumentStore:
        return self._store

    # --- Single-document operations ---

    async def read_by_id(
        self, table: str, doc_id: Identifier, raw: bool = False
    ) -> Union[Dict[str, Any], DocumentSnapshot, None]:
        """
        Fetch a document by store handle (str) or by legacy numeric id.

        A handle performs a point lookup and the result carries the handle
        under `doc_id`, separate from any legacy `id` field. Any other id is
        matched against the `id` field.

        Args:
            table: The collection to read from.
            doc_id: Store handle or legacy numeric id.
            raw: If True, return the DocumentSnapshot instead of a dict.

        Returns:
            The document, or None when nothing matches.
        """
        if doc_id is None or isinstance(doc_id, bool) or not isinstance(doc_id, (str, int)):
            return None
        if isinstance(doc_id, str):
            self._logger.debug(f"Reading {table}/{doc_id} by handle")
            snapshot = await self._store.document(table, doc_id).get()
            if not snapshot.exists:
                return None
            if raw:
                return snapshot
            data = snapshot.to_dict()
            return {**data, "id": data.get("id") or doc_id, "doc_id": doc_id}

        self._logger.debug(f"Reading {table} by legacy {LEGACY_ID_FIELD}={doc_id!r}")
        if raw:
            snapshots = await (
                self._store.collection(table)
                .where(LEGACY_ID_FIELD, FilterOperator.EQ, doc_id)
                .get()
            )
            existing = [s for s in snapshots if s.exists]
            return existing[0] if existing else None
        return await self.read_where(table, LEGACY_ID_FIELD, doc_id, single=True)

    async def read_where(
        self,
        table: str,
        field: str,
        value: Any,
        return_field: Optional[str] = None,
        single: bool = False,
    ) -> Any:
        """
        Fetch documents whose `field` equals `value`.

        Each match becomes `{"doc_id": handle, **fields}`, or the value of
        `return_field` if one is given. With `single`, only the first match
        (or None) is returned.
        """
        snapshots = await (
            self._store.collection(table).where(field, FilterOperator.EQ, value).get()
        )
        results = [
            snap.get(return_field) if return_field else {"doc_id": snap.id, **snap.to_dict()}
            for snap in snapshots
            if snap.exists
        ]
        if single:
            return results[0] if results else None
        return results

    async def write(self, table: str, doc_id: str, fields: Any) -> WriteResult:
        """Create the document or fully overwrite it. Never raises."""
        try:
            await self._store.document(table, doc_id).set(prepare_for_storage(fields))
        except Exception as e:
            self._logger.error(f"Failed to write {table}/{doc_id}: {e}", exc_info=True)
            return WriteResult.failed(self._store.classify_error(e), e)
        self._logger.info(f"{doc_id} created")
        return WriteResult.ok()

    async def update(self, table: str, doc_id: str, fields: Any) -> WriteResult:
        """Merge `fields` into an existing document. Never raises."""
        try:
            await self._store.document(table, doc_id).update(prepare_for_storage(fields))
        except Exception as e:
            self._logger.error(f"Failed to update {table}/{doc_id}: {e}", exc_info=True)
            return WriteResult.failed(self._store.classify_error(e), e)
        self._logger.info(f"{doc_id} updated")
        return WriteResult.ok()

    async def read_count(
        self, table: str = COUNTER_TABLE, document_id: Optional[str] = None
    ) -> int:
        """
        Read the externally maintained `count` field of `table/document_id`.
        Returns 0 when the document or the field is absent.
        """
        if not document_id:
            raise ValueError("read_count requires a document_id.")
        snapshot = await self._store.document(table, document_id).get()
        return snapshot.get(COUNTER_FIELD) or 0

    # --- Collection reads ---

    async def read_many_by_id(self, table: str, id_list: Any) -> List[Dict[str, Any]]:
        """Fetch documents whose legacy `id` is in `id_list`."""
        if not isinstance(id_list, (list, tuple)) or not id_list:
            return []
        snapshots = await (
            self._store.collection(table)
            .where(LEGACY_ID_FIELD, FilterOperator.IN, list(id_list))
            .get()
        )
        return [_to_document(snap) for snap in snapshots if snap.exists]

    async def read_all(self, table: str) -> List[Dict[str, Any]]:
        """Fetch every document of `table`. Only meant for small tables."""
        snapshots = await self._store.collection(table).get()
        return [_to_document(snap) for snap in snapshots if snap.exists]

    async def query(self, spec: QuerySpec) -> PageResult:
        """
        Run a filtered, sorted, paginated read described by `spec`.

        Empty or falsy filter values are dropped before the query is built,
        so a filter on 0, False or "" never reaches the store. The returned
        cursor is the last raw snapshot; pass it back as `spec.cursor` with
        the same table, filters and sorting field to read the next page.
        """
        q = self._store.collection(spec.table)

        if spec.limit:
            q = q.limit(spec.limit)

        for where in normalize_filters(spec.filters):
            q = q.where(where.field, where.operator, where.value)

        if spec.sorting_field:
            q = q.order_by(spec.sorting_field)

        if spec.cursor is not None:
            q = q.start_after(spec.cursor)

        self._logger.debug(f"Composed {q!r} from {spec!r}")
        snapshots = await q.get()

        data = [_to_document(snap) for snap in snapshots if snap.exists]
        cursor = snapshots[-1] if snapshots else None
        return PageResult(data=data, cursor=cursor)

    def close(self) -> None:
        self._store.close()


# --- Process-wide gateway ---


def initialize(
    config: Union[StoreConfig, Dict[str, Any]],
    store_factory: Optional[StoreFactory] = None,
    logger: Optional[LoggerAdapter] = None,
) -> StoreGateway:
    """
    Initialize the process-wide gateway once.

    Later calls return the existing gateway and ignore their arguments.

    Args:
        config: A StoreConfig or a camelCase client-credentials mapping.
        store_factory: Builds the backend from the config. Defaults to MongoDB.
        logger: Logger adapter for the gateway and the initialization message.
    """
    global _default_gateway
    if _default_gateway is not None:
        return _default_gateway

    if not isinstance(config, StoreConfig):
        config = StoreConfig.from_client_credentials(config)
    factory = store_factory or MongoDBDocumentStore.from_config
    adapter = logger or LoggerAdapter(base_logger, {})

    _default_gateway = StoreGateway(factory(config), logger=adapter)
    adapter.info("Document store was successfully initialized.")
    return _default_gateway


def get_gateway() -> StoreGateway:
    """Return the process-wide gateway created by initialize()."""
    if _default_gateway is None:
        raise StoreNotInitializedException()
    return _default_gateway
