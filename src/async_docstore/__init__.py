# src/async_docstore/__init__.py

"""
Async Document Store Library Initialization.

Convenience operations over a document database: process-wide
initialization, reads and writes by id, counter lookups and a
filter/sort/limit/paginate query composer, with MongoDB and in-memory
backends.

It initializes a logger with a NullHandler and makes the gateway, query
types, results, exceptions and backend implementations available at the
top level.
"""

import logging

# --------------------------------------------------------------------------
# Logging Setup
# --------------------------------------------------------------------------
# Library logs are discarded unless the consuming application configures
# logging for the "async_docstore" logger.
logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())
logger.propagate = False

# --------------------------------------------------------------------------
# Core Interface and Exception Exports
# --------------------------------------------------------------------------
from .base.interfaces import (CollectionRef, DocumentRef, DocumentSnapshot,
                              DocumentStore, Query)
from .base.exceptions import ObjectNotFoundException, StoreNotInitializedException
from .base.results import FailureReason, WriteResult

# --------------------------------------------------------------------------
# Query Composition Exports
# --------------------------------------------------------------------------
from .base.query import (FilterOperator, PageResult, QuerySpec, WhereFilter,
                         normalize_filters)

# --------------------------------------------------------------------------
# Configuration and Gateway Exports
# --------------------------------------------------------------------------
from .config import StoreConfig
from .gateway import (COUNTER_TABLE, StoreGateway, get_gateway, initialize,
                      parse_id)

# --------------------------------------------------------------------------
# Store Implementation Exports
# --------------------------------------------------------------------------
from .db_implementations.memory_store import MemoryDocumentStore
from .db_implementations.mongodb_store import MongoDBDocumentStore

__all__ = [
    # Core
    "DocumentStore",
    "CollectionRef",
    "DocumentRef",
    "DocumentSnapshot",
    "Query",
    # Results and exceptions
    "WriteResult",
    "FailureReason",
    "ObjectNotFoundException",
    "StoreNotInitializedException",
    # Query composition
    "FilterOperator",
    "WhereFilter",
    "QuerySpec",
    "PageResult",
    "normalize_filters",
    # Configuration and gateway
    "StoreConfig",
    "StoreGateway",
    "COUNTER_TABLE",
    "initialize",
    "get_gateway",
    "parse_id",
    # Implementations
    "MemoryDocumentStore",
    "MongoDBDocumentStore",
    # Logging
    "logger",
]

__version__ = "0.1.0"
