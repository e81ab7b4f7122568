"""
Per-collection accessors.

Each Repository wraps one MongoDB collection and speaks in public documents
(``_id`` replaced by a string ``id``). Driver errors are translated into the
portal's error types here so callers never see pymongo exceptions.
"""

from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from bson import ObjectId
from pydantic import BaseModel
from pymongo import ReturnDocument
from pymongo.collection import Collection
from pymongo.errors import BulkWriteError, DuplicateKeyError, PyMongoError

from database import create_document, get_db, get_documents
from errors import ConflictError, NotFound, StoreError, ValidationError
from logging_config import get_logger

logger = get_logger("repositories")


def to_public(doc):
    if not doc:
        return doc
    doc["id"] = str(doc.pop("_id"))
    return doc


def _duplicate_message(error: Union[DuplicateKeyError, BulkWriteError]) -> str:
    details = error.details or {}
    if isinstance(error, BulkWriteError):
        write_errors = details.get("writeErrors") or [{}]
        details = write_errors[0]
    key_value = details.get("keyValue") or {}
    if key_value:
        return f"{', '.join(key_value)} already exists"
    return "A record with the same unique value already exists"


@contextmanager
def store_errors(action: str):
    """Translate pymongo failures raised inside the block"""
    try:
        yield
    except (DuplicateKeyError, BulkWriteError) as e:
        if isinstance(e, BulkWriteError) and not any(
            err.get("code") == 11000 for err in (e.details or {}).get("writeErrors", [])
        ):
            logger.exception("Bulk write failed during %s", action)
            raise StoreError() from e
        raise ConflictError(_duplicate_message(e)) from e
    except PyMongoError as e:
        logger.exception("Database error during %s", action)
        raise StoreError() from e


class Repository:
    def __init__(self, collection_name: str, label: str):
        self.collection_name = collection_name
        self.label = label

    @property
    def collection(self) -> Collection:
        return get_db()[self.collection_name]

    def object_id(self, id: Any) -> ObjectId:
        if isinstance(id, ObjectId):
            return id
        if not id or not ObjectId.is_valid(str(id)):
            raise ValidationError(f"Invalid {self.label} ID: {id}")
        return ObjectId(str(id))

    def not_found(self) -> NotFound:
        return NotFound(f"{self.label.capitalize()} not found")

    # ---------- reads ----------
    def find_by_id(self, id: Any) -> Dict[str, Any]:
        oid = self.object_id(id)
        with store_errors(f"find {self.label}"):
            doc = self.collection.find_one({"_id": oid})
        if not doc:
            raise self.not_found()
        return to_public(doc)

    def find_one(self, filter_dict: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        with store_errors(f"find {self.label}"):
            return to_public(self.collection.find_one(filter_dict))

    def find_many(
        self,
        filter_dict: Optional[Dict[str, Any]] = None,
        sort: Optional[List[Tuple[str, int]]] = None,
    ) -> List[Dict[str, Any]]:
        with store_errors(f"list {self.label}"):
            docs = get_documents(self.collection_name, filter_dict, sort=sort)
        return [to_public(d) for d in docs]

    def find_by_ids(self, ids: Iterable[Any]) -> List[Dict[str, Any]]:
        oids = [self.object_id(i) for i in ids]
        if not oids:
            return []
        return self.find_many({"_id": {"$in": oids}})

    def exists(self, id: Any) -> bool:
        oid = self.object_id(id)
        with store_errors(f"check {self.label}"):
            return self.collection.count_documents({"_id": oid}, limit=1) > 0

    # ---------- writes ----------
    def create(self, data: BaseModel) -> Dict[str, Any]:
        with store_errors(f"create {self.label}"):
            inserted_id = create_document(self.collection_name, data)
            doc = self.collection.find_one({"_id": ObjectId(inserted_id)})
        logger.info("Created %s %s", self.label, inserted_id)
        return to_public(doc)

    def insert_many(self, models: List[BaseModel]) -> List[str]:
        if not models:
            return []
        now = datetime.now(timezone.utc)
        docs = []
        for model in models:
            doc = model.model_dump(exclude_none=True)
            doc["created_at"] = now
            doc["updated_at"] = now
            docs.append(doc)
        with store_errors(f"bulk insert {self.label}"):
            result = self.collection.insert_many(docs, ordered=False)
        return [str(i) for i in result.inserted_ids]

    def update(self, id: Any, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Partial update with $set; returns the updated document"""
        if not fields:
            raise ValidationError("No fields to update")
        fields = dict(fields, updated_at=datetime.now(timezone.utc))
        return self.find_one_and_update(id, {"$set": fields})

    def find_one_and_update(self, id: Any, update: Dict[str, Any]) -> Dict[str, Any]:
        """Apply an update document to one record atomically and return it afterwards"""
        oid = self.object_id(id)
        with store_errors(f"update {self.label}"):
            doc = self.collection.find_one_and_update(
                {"_id": oid}, update, return_document=ReturnDocument.AFTER
            )
        if not doc:
            raise self.not_found()
        return to_public(doc)

    def update_many(self, filter_dict: Dict[str, Any], update: Dict[str, Any]) -> int:
        with store_errors(f"bulk update {self.label}"):
            result = self.collection.update_many(filter_dict, update)
        return result.modified_count

    def delete(self, id: Any) -> Dict[str, Any]:
        oid = self.object_id(id)
        with store_errors(f"delete {self.label}"):
            doc = self.collection.find_one_and_delete({"_id": oid})
        if not doc:
            raise self.not_found()
        logger.info("Deleted %s %s", self.label, id)
        return to_public(doc)


universities = Repository("university", "university")
departments = Repository("department", "department")
faculty = Repository("faculty", "faculty member")
students = Repository("student", "student")
internships = Repository("internship", "internship")
tasks = Repository("task", "task")
submissions = Repository("submission", "submission")
batches = Repository("batch", "batch")
programs = Repository("program", "program")
industries = Repository("industry", "industry")
