"""
Database connections - MongoDB async (Motor).

The client is created on first use so the library can be imported (and
tested) without a running MongoDB.
"""

import os

from motor.motor_asyncio import AsyncIOMotorClient

from gradescan.errors import ConfigurationError

_client = None
_db = None


def get_client() -> AsyncIOMotorClient:
    global _client
    if _client is None:
        mongo_url = os.environ.get('MONGO_URL')
        if not mongo_url:
            raise ConfigurationError("MONGO_URL is not set")
        _client = AsyncIOMotorClient(mongo_url)
    return _client


def get_db():
    """Return the application database handle."""
    global _db
    if _db is None:
        db_name = os.environ.get('DB_NAME')
        if not db_name:
            raise ConfigurationError("DB_NAME is not set")
        _db = get_client()[db_name]
    return _db


def close_client():
    global _client, _db
    if _client is not None:
        _client.close()
    _client = None
    _db = None
