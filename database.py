"""
MongoDB connection and generic document helpers.

The connection is opened once at startup with ``connect()``; a store that
cannot be reached aborts startup instead of serving requests.
"""

import functools
import logging
import os
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel
from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import ConnectionFailure, PyMongoError

logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "Catalogue")
DATABASE_TIMEOUT_MS = int(os.getenv("DATABASE_TIMEOUT_MS", "5000"))


class CatalogueError(Exception):
    pass


class StoreError(CatalogueError):
    """A document store operation failed."""


class StoreUnavailable(StoreError):
    """The document store cannot be reached."""


def connect(
    url: str = DATABASE_URL,
    name: str = DATABASE_NAME,
    timeout_ms: int = DATABASE_TIMEOUT_MS,
) -> Database:
    client = MongoClient(url, serverSelectionTimeoutMS=timeout_ms, tz_aware=True)
    try:
        client.admin.command("ping")
    except PyMongoError as e:
        client.close()
        raise StoreUnavailable(f"Failed to connect to the database at {url}: {e}") from e
    logger.info("Connected to MongoDB at %s (database %s)", url, name)
    return client[name]


def disconnect(db: Database) -> None:
    db.client.close()
    logger.info("Closed MongoDB connection")


def guarded(func):
    """Report driver errors as StoreError, a lost connection as StoreUnavailable."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except ConnectionFailure as e:
            raise StoreUnavailable(f"Database connection lost: {e}") from e
        except PyMongoError as e:
            raise StoreError(f"Database operation failed: {e}") from e
    return wrapper


def to_obj_id(id_str: Any) -> Optional[ObjectId]:
    # ObjectId(None) would generate a fresh id
    if id_str is None:
        return None
    try:
        return ObjectId(id_str)
    except (InvalidId, TypeError):
        return None


def serialize(doc: Optional[dict]) -> Optional[dict]:
    if not doc:
        return doc
    doc["id"] = str(doc.pop("_id"))
    return doc


def create_document(db: Database, collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> str:
    payload = data.model_dump() if isinstance(data, BaseModel) else dict(data)
    result = db[collection_name].insert_one(payload)
    return str(result.inserted_id)


def get_documents(
    db: Database,
    collection_name: str,
    filter_dict: Optional[Dict[str, Any]] = None,
    limit: Optional[int] = None,
    sort: Optional[Sequence[Tuple[str, int]]] = None,
) -> List[dict]:
    cursor = db[collection_name].find(filter_dict or {})
    if sort:
        cursor = cursor.sort(list(sort))
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)
