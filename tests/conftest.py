# tests/conftest.py
import logging
import os
import uuid

import pytest
import pytest_asyncio
import motor.motor_asyncio
from pymongo import MongoClient
from pymongo.errors import ConnectionFailure

from async_docstore import gateway as gateway_module
from async_docstore.base.interfaces import DocumentStore
from async_docstore.db_implementations.memory_store import MemoryDocumentStore
from async_docstore.db_implementations.mongodb_store import MongoDBDocumentStore
from async_docstore.gateway import StoreGateway

# Silence verbose loggers
logging.getLogger("pymongo").setLevel(logging.ERROR)
logging.getLogger("motor").setLevel(logging.ERROR)


# --- Constants ---
MONGO_URI = os.getenv("TEST_MONGO_URI", "mongodb://localhost:27017")


# --- Availability Checks ---
def is_mongodb_available():
    """Check if MongoDB is available (basic check)."""
    client = MongoClient(MONGO_URI, serverSelectionTimeoutMS=1000)
    try:
        client.admin.command("ping")
        logging.info(f"MongoDB found and responsive at {MONGO_URI}")
        return True
    except ConnectionFailure:
        logging.warning(
            f"MongoDB not found or not responsive at {MONGO_URI}. "
            "Skipping MongoDB tests."
        )
        return False
    except Exception as e:
        logging.warning(
            f"Error checking MongoDB connection at {MONGO_URI}: {e}. "
            "Skipping MongoDB tests."
        )
        return False
    finally:
        client.close()


AVAILABLE_IMPLEMENTATIONS = ["memory"]
if is_mongodb_available():
    AVAILABLE_IMPLEMENTATIONS.append("mongodb")


# --- Fixtures ---


@pytest.fixture(autouse=True)
def reset_default_gateway(monkeypatch):
    """Every test starts without a process-wide gateway."""
    monkeypatch.setattr(gateway_module, "_default_gateway", None)
    yield


@pytest.fixture
def memory_store() -> MemoryDocumentStore:
    return MemoryDocumentStore(project_id="pytest")


@pytest_asyncio.fixture
async def mongodb_store():
    """A MongoDB store on a throwaway database, dropped after the test."""
    if "mongodb" not in AVAILABLE_IMPLEMENTATIONS:
        pytest.skip("MongoDB not available or connection failed.")

    database_name = f"pytest_docstore_{uuid.uuid4().hex[:12]}"
    client = motor.motor_asyncio.AsyncIOMotorClient(MONGO_URI)
    store = MongoDBDocumentStore(client, database_name)
    try:
        yield store
    finally:
        await client.drop_database(database_name)
        store.close()


@pytest.fixture(params=AVAILABLE_IMPLEMENTATIONS)
def document_store(request) -> DocumentStore:
    """Parametrized fixture yielding each available store implementation."""
    impl_key = request.param
    if impl_key == "memory":
        return request.getfixturevalue("memory_store")
    elif impl_key == "mongodb":
        return request.getfixturevalue("mongodb_store")
    raise ValueError(f"Unknown store implementation key: {impl_key}")


@pytest.fixture
def gateway(document_store, logger) -> StoreGateway:
    return StoreGateway(document_store, logger=logger)


@pytest_asyncio.fixture
async def seeded_gateway(gateway) -> StoreGateway:
    """Gateway whose 'items' table holds ten documents with seq 1..10."""
    for seq in range(1, 11):
        await gateway.write(
            "items",
            f"item-{seq:02d}",
            {
                "id": seq,
                "seq": seq,
                "name": f"Item {seq}",
                "active": seq % 2 == 0,
                "tags": ["even" if seq % 2 == 0 else "odd", f"t{seq % 3}"],
            },
        )
    return gateway


# --- Logger Fixture ---


@pytest.fixture(scope="session")
def logger():
    """Create a test logger."""
    _logger = logging.getLogger("test_docstore_logger")
    if not _logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
        handler.setFormatter(formatter)
        handler.setLevel(logging.DEBUG)
        _logger.addHandler(handler)
        _logger.setLevel(logging.DEBUG)
        _logger.propagate = False
    return logging.LoggerAdapter(_logger, {})
