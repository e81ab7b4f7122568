"""
MongoDB access for the internship portal.

One MongoClient is shared by the whole process. It is created lazily on first
use (or injected through init_database, which the tests do with mongomock) and
closed explicitly with close_database.
"""

import threading
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database

from config import settings
from logging_config import get_logger

logger = get_logger("database")

_client: Optional[MongoClient] = None
_lock = threading.Lock()

# (collection, field, unique)
INDEXES: List[Tuple[str, str, bool]] = [
    ("department", "cnic", True),
    ("department", "email", True),
    ("department", "focalPersonCnic", True),
    ("department", "focalPersonEmail", True),
    ("department", "CoordinatorCnic", True),
    ("department", "CoordinatorEmail", True),
    ("department", "university", False),
    ("batch", "departmentId", False),
    ("program", "departmentId", False),
    ("faculty", "cnic", True),
    ("faculty", "email", True),
    ("faculty", "departmentId", False),
    ("student", "email", True),
    ("student", "university", False),
    ("industry", "contactEmail", False),
    ("industry", "name", False),
    ("internship", "universityId", False),
    ("task", "internshipId", False),
    ("submission", "taskId", False),
]


def ensure_indexes(database: Database) -> None:
    for collection, field, unique in INDEXES:
        database[collection].create_index(
            [(field, ASCENDING)], unique=unique, sparse=unique
        )


def init_database(client: Optional[MongoClient] = None) -> MongoClient:
    """Initialize the shared client once; later calls return the same client.

    Passing ``client`` installs it instead of connecting to DATABASE_URL,
    unless a client is already installed.
    """
    global _client
    if _client is not None:
        return _client
    with _lock:
        if _client is None:
            if client is None:
                logger.info("Connecting to MongoDB database %s", settings.DATABASE_NAME)
                client = MongoClient(
                    settings.DATABASE_URL,
                    serverSelectionTimeoutMS=settings.MONGO_SERVER_SELECTION_TIMEOUT_MS,
                )
            ensure_indexes(client[settings.DATABASE_NAME])
            _client = client
    return _client


def get_client() -> MongoClient:
    return init_database()


def get_db() -> Database:
    return get_client()[settings.DATABASE_NAME]


def close_database() -> None:
    global _client
    with _lock:
        if _client is not None:
            _client.close()
            _client = None
            logger.info("MongoDB connection closed")


def create_document(collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> str:
    """Insert a document stamped with created_at/updated_at; returns the new id"""
    if isinstance(data, BaseModel):
        doc = data.model_dump(exclude_none=True)
    else:
        doc = {k: v for k, v in data.items() if v is not None}
    now = datetime.now(timezone.utc)
    doc["created_at"] = now
    doc["updated_at"] = now
    result = get_db()[collection_name].insert_one(doc)
    return str(result.inserted_id)


def get_documents(
    collection_name: str,
    filter_dict: Optional[Dict[str, Any]] = None,
    sort: Optional[List[Tuple[str, int]]] = None,
) -> List[Dict[str, Any]]:
    cursor = get_db()[collection_name].find(filter_dict or {})
    if sort:
        cursor = cursor.sort(sort)
    return list(cursor)
