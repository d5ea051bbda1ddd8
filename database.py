"""
Database

Async MongoDB access for the API. A single MongoStore is created at startup,
connected in the application lifespan and handed to the services; nothing
here is module-global.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from pydantic import BaseModel
from pymongo import DESCENDING, AsyncMongoClient, ReturnDocument
from pymongo.errors import PyMongoError

from errors import InternalError
from schemas import User

logger = logging.getLogger(__name__)

Document = Dict[str, Any]


def collection_name(model: type) -> str:
    """User -> "user", Pizza -> "pizza"."""
    return model.__name__.lower()


def to_str_id(doc: Optional[Document]) -> Optional[Document]:
    """Expose ``_id`` as a hex string ``id``."""
    if doc and "_id" in doc:
        doc["id"] = str(doc.pop("_id"))
    return doc


def as_object_id(doc_id: Union[str, ObjectId]) -> Optional[ObjectId]:
    if isinstance(doc_id, ObjectId):
        return doc_id
    if isinstance(doc_id, str) and ObjectId.is_valid(doc_id):
        return ObjectId(doc_id)
    return None


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MongoStore:
    """Document store backed by a MongoDB database."""

    def __init__(self, url: str, name: str, timeout_ms: int = 5000):
        self.url = url
        self.name = name
        self.timeout_ms = timeout_ms
        self.client: Optional[AsyncMongoClient] = None
        self._db = None

    @property
    def db(self):
        if self._db is None:
            raise InternalError("Database is not connected")
        return self._db

    async def connect(self) -> None:
        self.client = AsyncMongoClient(
            self.url, tz_aware=True, serverSelectionTimeoutMS=self.timeout_ms
        )
        self._db = self.client[self.name]
        await self.client.admin.command("ping")
        users = self.db[collection_name(User)]
        await users.create_index("email", unique=True)
        await users.create_index("reset_token", sparse=True)
        logger.info(f"Connected to database {self.name}")

    async def close(self) -> None:
        if self.client is not None:
            await self.client.close()
            logger.info(f"Closed connection to database {self.name}")
        self.client = None
        self._db = None

    async def ping(self) -> bool:
        if self.client is None:
            return False
        try:
            await self.client.admin.command("ping")
        except PyMongoError as e:
            logger.warning(f"Database ping failed: {e}")
            return False
        return True

    async def create_document(self, collection: str, data: Union[BaseModel, Document]) -> Document:
        doc = data.model_dump(mode="json") if isinstance(data, BaseModel) else dict(data)
        now = utcnow()
        doc["created_at"] = now
        doc["updated_at"] = now
        result = await self.db[collection].insert_one(doc)
        doc["_id"] = result.inserted_id
        return to_str_id(doc)

    async def get_documents(
        self,
        collection: str,
        filter_dict: Optional[Document] = None,
        projection: Optional[Document] = None,
    ) -> List[Document]:
        cursor = self.db[collection].find(filter_dict or {}, projection).sort("created_at", DESCENDING)
        return [to_str_id(d) for d in await cursor.to_list()]

    async def get_document(
        self, collection: str, doc_id: str, projection: Optional[Document] = None
    ) -> Optional[Document]:
        oid = as_object_id(doc_id)
        if oid is None:
            return None
        return await self.find_document(collection, {"_id": oid}, projection)

    async def find_document(
        self, collection: str, filter_dict: Document, projection: Optional[Document] = None
    ) -> Optional[Document]:
        return to_str_id(await self.db[collection].find_one(filter_dict, projection))

    async def update_document(
        self,
        collection: str,
        doc_id: str,
        fields: Document,
        projection: Optional[Document] = None,
    ) -> Optional[Document]:
        """``$set`` the given fields; returns the updated document."""
        oid = as_object_id(doc_id)
        if oid is None:
            return None
        update = dict(fields)
        update["updated_at"] = utcnow()
        doc = await self.db[collection].find_one_and_update(
            {"_id": oid},
            {"$set": update},
            projection=projection,
            return_document=ReturnDocument.AFTER,
        )
        return to_str_id(doc)

    async def set_array_item_field(
        self, collection: str, doc_id: str, array: str, index: int, field: str, value: Any
    ) -> Optional[Document]:
        """Atomically set ``<array>.<index>.<field>`` on one document.

        Only matches when slot ``index`` exists, so an out-of-range index
        never creates a new array element.
        """
        oid = as_object_id(doc_id)
        if oid is None:
            return None
        slot = f"{array}.{index}"
        doc = await self.db[collection].find_one_and_update(
            {"_id": oid, slot: {"$exists": True}},
            {"$set": {f"{slot}.{field}": value, "updated_at": utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        return to_str_id(doc)

    async def delete_document(self, collection: str, doc_id: str) -> Optional[Document]:
        oid = as_object_id(doc_id)
        if oid is None:
            return None
        return to_str_id(await self.db[collection].find_one_and_delete({"_id": oid}))
