# src/async_docstore/db_implementations/mongodb_store.py

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, List, Tuple

# --- Motor Driver Import ---
from bson.errors import InvalidDocument
from motor.motor_asyncio import (AsyncIOMotorClient, AsyncIOMotorCollection,
                                 AsyncIOMotorDatabase)
from pymongo import ASCENDING
from pymongo.errors import ConnectionFailure, OperationFailure

# --- Framework Imports ---
from async_docstore.base.exceptions import ObjectNotFoundException
from async_docstore.base.interfaces import DocumentSnapshot, DocumentStore, Query
from async_docstore.base.query import FilterOperator, WhereFilter
from async_docstore.base.results import FailureReason

# --- Type Variables ---
DB_RECORD_TYPE = Dict[str, Any]
DB_ID_FIELD = "_id"

# MongoDB server error codes that mean the caller lacks rights
PERMISSION_ERROR_CODES = frozenset({13, 18})

_COMPARISON_OPS = {
    FilterOperator.EQ: "$eq",
    FilterOperator.LT: "$lt",
    FilterOperator.LTE: "$lte",
    FilterOperator.GT: "$gt",
    FilterOperator.GTE: "$gte",
    FilterOperator.IN: "$in",
}


def translate_filter(where: WhereFilter) -> Dict[str, Any]:
    """Translate one where-clause into a MongoDB filter document."""
    field, op, val = where.field, where.operator, where.value
    if isinstance(val, (tuple, set)):
        val = list(val)

    if op in _COMPARISON_OPS:
        return {field: {_COMPARISON_OPS[op]: val}}
    # Inequality filters only match documents that have the field
    if op == FilterOperator.NE:
        return {field: {"$exists": True, "$ne": val}}
    if op == FilterOperator.NOT_IN:
        return {field: {"$exists": True, "$nin": val}}
    if op == FilterOperator.ARRAY_CONTAINS:
        return {field: {"$elemMatch": {"$eq": val}}}
    if op == FilterOperator.ARRAY_CONTAINS_ANY:
        return {field: {"$elemMatch": {"$in": val}}}
    raise ValueError(f"Unsupported query operator for MongoDB: {op!r}")


def translate_cursor(orders: Tuple[str, ...], cursor: DocumentSnapshot) -> Dict[str, Any]:
    """
    Build the filter selecting documents strictly after `cursor` in the
    ordering (orders..., _id).
    """
    keys = list(orders) + [DB_ID_FIELD]
    values = [cursor.get(f) for f in orders] + [cursor.id]
    branches = []
    for i, key in enumerate(keys):
        branch = {keys[j]: values[j] for j in range(i)}
        branch[key] = {"$gt": values[i]}
        branches.append(branch)
    return branches[0] if len(branches) == 1 else {"$or": branches}


def translate_query(query: Query) -> Tuple[Dict[str, Any], List[Tuple[str, int]]]:
    """
    Translate a composed Query into a (filter, sort) pair for `find()`.
    Clauses are combined with $and so repeated fields never collide.
    """
    clauses = [translate_filter(where) for where in query.filters]
    clauses.extend({field: {"$exists": True}} for field in query.orders)
    if query.cursor is not None:
        clauses.append(translate_cursor(query.orders, query.cursor))

    if not clauses:
        query_filter: Dict[str, Any] = {}
    elif len(clauses) == 1:
        query_filter = clauses[0]
    else:
        query_filter = {"$and": clauses}

    sort = [(field, ASCENDING) for field in query.orders] + [(DB_ID_FIELD, ASCENDING)]
    return query_filter, sort


class MongoDBDocumentStore(DocumentStore):
    """
    MongoDB document store using Motor.

    Collections map to MongoDB collections of one database; the document
    handle is stored as the string `_id`.
    """

    def __init__(self, client: AsyncIOMotorClient, database_name: str):
        """
        Args:
            client: An instance of AsyncIOMotorClient.
            database_name: The name of the MongoDB database.
        """
        if not isinstance(client, AsyncIOMotorClient):
            raise TypeError("client must be an instance of AsyncIOMotorClient")

        self._client = client
        self._database_name = database_name
        self._db: AsyncIOMotorDatabase = client[database_name]

        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self._logger.info(f"Document store created for database '{database_name}'.")

    @classmethod
    def from_config(cls, config) -> "MongoDBDocumentStore":
        """
        Build a store from a StoreConfig: `database_url` is the connection
        URI, `project_id` the database name and `app_id` the driver appname.
        """
        if not config.database_url:
            raise ValueError("MongoDB store requires 'database_url' in the configuration.")
        if not config.project_id:
            raise ValueError("MongoDB store requires 'project_id' in the configuration.")
        client_kwargs: Dict[str, Any] = {}
        if config.app_id:
            client_kwargs["appname"] = config.app_id
        client = AsyncIOMotorClient(config.database_url, **client_kwargs)
        return cls(client, config.project_id)

    @asynccontextmanager
    async def _get_collection(
        self, collection_name: str
    ) -> AsyncGenerator[AsyncIOMotorCollection, None]:
        """
        Provides the collection object directly. Lets operational exceptions
        propagate to the caller.
        """
        yield self._db[collection_name]

    async def get_document(self, collection_name: str, doc_id: str) -> DocumentSnapshot:
        self._logger.debug(f"Getting {collection_name}/{doc_id}")
        async with self._get_collection(collection_name) as collection:
            record = await collection.find_one({DB_ID_FIELD: doc_id})
        if record is None:
            return DocumentSnapshot(id=doc_id, data=None, exists=False)
        return self._to_snapshot(record)

    async def set_document(
        self, collection_name: str, doc_id: str, data: Dict[str, Any]
    ) -> None:
        record = {k: v for k, v in data.items() if k != DB_ID_FIELD}
        record[DB_ID_FIELD] = doc_id
        async with self._get_collection(collection_name) as collection:
            await collection.replace_one({DB_ID_FIELD: doc_id}, record, upsert=True)
        self._logger.debug(f"Set {collection_name}/{doc_id}")

    async def update_document(
        self, collection_name: str, doc_id: str, data: Dict[str, Any]
    ) -> None:
        update_doc = {"$set": {k: v for k, v in data.items() if k != DB_ID_FIELD}}
        self._logger.debug(f"MongoDB update {collection_name}/{doc_id}: {update_doc}")
        async with self._get_collection(collection_name) as collection:
            result = await collection.update_one({DB_ID_FIELD: doc_id}, update_doc)
        if result.matched_count == 0:
            raise ObjectNotFoundException(
                f"Document '{collection_name}/{doc_id}' not found for update."
            )

    async def run_query(self, query: Query) -> List[DocumentSnapshot]:
        query_filter, sort = translate_query(query)
        self._logger.debug(
            f"MongoDB find on '{query.collection_name}' filter: {query_filter}, sort: {sort}"
        )
        async with self._get_collection(query.collection_name) as collection:
            mongo_cursor = collection.find(query_filter).sort(sort)
            if query.limit_count:
                mongo_cursor = mongo_cursor.limit(query.limit_count)
            return [self._to_snapshot(record) async for record in mongo_cursor]

    def classify_error(self, error: BaseException) -> FailureReason:
        if isinstance(error, ConnectionFailure):
            return FailureReason.UNAVAILABLE
        if isinstance(error, OperationFailure) and error.code in PERMISSION_ERROR_CODES:
            return FailureReason.PERMISSION_DENIED
        if isinstance(error, InvalidDocument):
            return FailureReason.INVALID_ARGUMENT
        return super().classify_error(error)

    def close(self) -> None:
        self._client.close()
        self._logger.info(f"MongoDB client for '{self._database_name}' closed.")

    @staticmethod
    def _to_snapshot(record: DB_RECORD_TYPE) -> DocumentSnapshot:
        data = dict(record)
        doc_id = data.pop(DB_ID_FIELD)
        return DocumentSnapshot(id=str(doc_id), data=data)
