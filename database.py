"""
Record Store

Every entity lives in its own collection of documents keyed by a generated
string id. Two interchangeable stores implement the same helper functions:

- MongoStore: MongoDB via pymongo, used when DATABASE_URL and DATABASE_NAME are set
- MemoryStore: process-local dictionaries, used for tests and local development

Single-record compare-and-set (update_document with ``expected``) and atomic
counters (next_sequence) are the only coordination primitives the services rely on.
"""

import copy
import logging
import threading
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple, Union

from bson import ObjectId
from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient, ReturnDocument

logger = logging.getLogger(__name__)

Document = Dict[str, Any]
SortSpec = List[Tuple[str, int]]

# ------------- Utilities -------------

def new_id() -> str:
    return str(ObjectId())


def serialize_doc(doc: Optional[Document]) -> Optional[Document]:
    if not doc:
        return doc
    if "_id" in doc:
        doc["id"] = str(doc.pop("_id"))
    return doc


def _prepare(data: Union[BaseModel, dict]) -> Document:
    # Convert Pydantic model to dict if needed
    if isinstance(data, BaseModel):
        data_dict = data.model_dump(mode="json", exclude_none=False)
    else:
        data_dict = copy.deepcopy(dict(data))

    now = datetime.now(timezone.utc)
    data_dict["_id"] = str(data_dict.pop("id", None) or new_id())
    data_dict.setdefault("created_at", now)
    data_dict["updated_at"] = now
    return data_dict


class RecordStore:
    """Capability set shared by all stores: get, list, create, update."""

    name = "abstract"

    def create_document(self, collection_name: str, data: Union[BaseModel, dict]) -> Document:
        raise NotImplementedError

    def get_documents(
        self,
        collection_name: str,
        filter_dict: Optional[dict] = None,
        limit: Optional[int] = None,
        sort: Optional[SortSpec] = None,
    ) -> List[Document]:
        raise NotImplementedError

    def get_document_by_id(self, collection_name: str, id_str: str) -> Optional[Document]:
        raise NotImplementedError

    def find_document(self, collection_name: str, filter_dict: dict) -> Optional[Document]:
        docs = self.get_documents(collection_name, filter_dict, limit=1)
        return docs[0] if docs else None

    def update_document(
        self,
        collection_name: str,
        id_str: str,
        update_data: dict,
        expected: Optional[dict] = None,
    ) -> Optional[Document]:
        """Apply ``update_data`` atomically and return the updated document.

        When ``expected`` is given the update only happens if every expected
        field still holds the expected value. Returns None when the record is
        missing or the expectation did not hold.
        """
        raise NotImplementedError

    def delete_document(self, collection_name: str, id_str: str) -> bool:
        raise NotImplementedError

    def count_documents(self, collection_name: str, filter_dict: Optional[dict] = None) -> int:
        return len(self.get_documents(collection_name, filter_dict))

    def next_sequence(self, name: str) -> int:
        raise NotImplementedError

    def list_collection_names(self) -> List[str]:
        raise NotImplementedError

    def close(self) -> None:
        pass


# ------------- MongoDB -------------

class MongoStore(RecordStore):
    name = "mongodb"

    def __init__(self, database_url: str, database_name: str, client: Optional[MongoClient] = None):
        self._client = client or MongoClient(database_url, tz_aware=True)
        self.db = self._client[database_name]
        self._ensure_indexes()

    def _ensure_indexes(self) -> None:
        self.db["coupon"].create_index([("code", ASCENDING)], unique=True)
        self.db["order"].create_index([("bill_number", ASCENDING)], unique=True)
        self.db["order"].create_index([("user_id", ASCENDING), ("created_at", ASCENDING)])

    def create_document(self, collection_name, data):
        data_dict = _prepare(data)
        self.db[collection_name].insert_one(data_dict)
        return serialize_doc(data_dict)

    def get_documents(self, collection_name, filter_dict=None, limit=None, sort=None):
        cursor = self.db[collection_name].find(filter_dict or {})
        if sort:
            cursor = cursor.sort(sort)
        if limit:
            cursor = cursor.limit(limit)
        return [serialize_doc(d) for d in list(cursor)]

    def get_document_by_id(self, collection_name, id_str):
        doc = self.db[collection_name].find_one({"_id": id_str})
        return serialize_doc(doc) if doc else None

    def update_document(self, collection_name, id_str, update_data, expected=None):
        update_data = dict(update_data)
        update_data["updated_at"] = datetime.now(timezone.utc)
        query = {"_id": id_str}
        query.update(expected or {})
        doc = self.db[collection_name].find_one_and_update(
            query, {"$set": update_data}, return_document=ReturnDocument.AFTER
        )
        return serialize_doc(doc) if doc else None

    def delete_document(self, collection_name, id_str):
        result = self.db[collection_name].delete_one({"_id": id_str})
        return result.deleted_count > 0

    def count_documents(self, collection_name, filter_dict=None):
        return self.db[collection_name].count_documents(filter_dict or {})

    def next_sequence(self, name):
        doc = self.db["counters"].find_one_and_update(
            {"_id": name},
            {"$inc": {"seq": 1}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return int(doc["seq"])

    def list_collection_names(self):
        return self.db.list_collection_names()

    def close(self):
        self._client.close()


# ------------- In-memory -------------

def _sort_key(field: str):
    def key(doc: Document):
        value = doc.get(field)
        return (value is not None, value)
    return key


def _matches(doc: Document, filter_dict: Optional[dict]) -> bool:
    return all(doc.get(k) == v for k, v in (filter_dict or {}).items())


class MemoryStore(RecordStore):
    name = "memory"

    def __init__(self):
        self._collections: Dict[str, "OrderedDict[str, Document]"] = {}
        self._counters: Dict[str, int] = {}
        self._lock = threading.Lock()

    def _collection(self, collection_name: str) -> "OrderedDict[str, Document]":
        return self._collections.setdefault(collection_name, OrderedDict())

    def create_document(self, collection_name, data):
        data_dict = _prepare(data)
        with self._lock:
            coll = self._collection(collection_name)
            if data_dict["_id"] in coll:
                raise KeyError(f"duplicate id {data_dict['_id']} in {collection_name}")
            coll[data_dict["_id"]] = data_dict
            return serialize_doc(copy.deepcopy(data_dict))

    def get_documents(self, collection_name, filter_dict=None, limit=None, sort=None):
        with self._lock:
            docs = [
                copy.deepcopy(d)
                for d in self._collection(collection_name).values()
                if _matches(d, filter_dict)
            ]
        if sort:
            for field, direction in reversed(sort):
                docs.sort(key=_sort_key(field), reverse=direction < 0)
        if limit:
            docs = docs[:limit]
        return [serialize_doc(d) for d in docs]

    def get_document_by_id(self, collection_name, id_str):
        with self._lock:
            doc = self._collection(collection_name).get(id_str)
            return serialize_doc(copy.deepcopy(doc)) if doc else None

    def update_document(self, collection_name, id_str, update_data, expected=None):
        with self._lock:
            doc = self._collection(collection_name).get(id_str)
            if doc is None or not _matches(doc, expected):
                return None
            doc.update(copy.deepcopy(update_data))
            doc["updated_at"] = datetime.now(timezone.utc)
            return serialize_doc(copy.deepcopy(doc))

    def delete_document(self, collection_name, id_str):
        with self._lock:
            return self._collection(collection_name).pop(id_str, None) is not None

    def next_sequence(self, name):
        with self._lock:
            self._counters[name] = self._counters.get(name, 0) + 1
            return self._counters[name]

    def list_collection_names(self):
        with self._lock:
            return sorted(name for name, coll in self._collections.items() if coll)


def connect(database_url: Optional[str], database_name: Optional[str]) -> RecordStore:
    if database_url and database_name:
        logger.info("Using MongoDB database %s", database_name)
        return MongoStore(database_url, database_name)
    logger.info("DATABASE_URL/DATABASE_NAME not set, using in-memory store")
    return MemoryStore()
