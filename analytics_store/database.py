"""
MongoDB access for the analytics store.

One MongoClient per process. The retention engine only receives a Database
handle; it never opens or closes the connection itself.
"""

import logging

from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError

from analytics_store.config import Settings, get_settings
from analytics_store.errors import StoreUnavailableError

logger = logging.getLogger(__name__)

_client: MongoClient | None = None


def get_client(settings: Settings | None = None) -> MongoClient:
    """Get the process-wide MongoClient, creating it on first use."""
    global _client
    if _client is not None:
        return _client

    settings = settings or get_settings()
    _client = MongoClient(
        settings.MONGODB_URI,
        serverSelectionTimeoutMS=settings.MONGODB_TIMEOUT_MS,
        socketTimeoutMS=settings.MONGODB_TIMEOUT_MS,
        connectTimeoutMS=settings.MONGODB_TIMEOUT_MS,
        appname="analytics-store-retention",
    )
    return _client


def get_database(settings: Settings | None = None) -> Database:
    """Get the analytics database handle."""
    settings = settings or get_settings()
    return get_client(settings)[settings.MONGODB_DB_NAME]


def check_connection(db: Database) -> None:
    """Ping the store. Raises StoreUnavailableError if it cannot be reached."""
    try:
        db.command("ping")
    except PyMongoError as e:
        raise StoreUnavailableError("ping", str(e)) from e


def close_client() -> None:
    """Close the process-wide client if one was created."""
    global _client
    if _client is None:
        return
    _client.close()
    _client = None
    logger.debug("MongoDB client closed")


def get_db():
    """
    FastAPI dependency that gives you the analytics database handle.
    """
    yield get_database()
