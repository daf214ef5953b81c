import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from config import DATABASE_NAME, DATABASE_URL

logger = logging.getLogger(__name__)

APPLICANTS = "applicants"
AGENTS = "agents"
REFERENCES = "references"

_client: Optional[AsyncIOMotorClient] = None
_db: Optional[AsyncIOMotorDatabase] = None


def get_db() -> AsyncIOMotorDatabase:
    global _client, _db
    if _db is None:
        _client = AsyncIOMotorClient(DATABASE_URL, tz_aware=True)
        _db = _client[DATABASE_NAME]
    return _db


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


async def ensure_indexes(db: AsyncIOMotorDatabase) -> None:
    """Unique email/phone on applicants closes the check-then-insert race."""
    applicants = db[APPLICANTS]
    await applicants.create_index([("email", ASCENDING)], unique=True, name="uniq_email")
    await applicants.create_index([("phone", ASCENDING)], unique=True, name="uniq_phone")
    await applicants.create_index([("reference", ASCENDING), ("submittedAt", DESCENDING)], name="by_reference")
    await db[AGENTS].create_index([("uid", ASCENDING)], unique=True, name="uniq_uid")
    logger.info("Indexes ensured on %s", db.name)


async def create_document(collection: AsyncIOMotorCollection, data: Dict[str, Any]) -> Dict[str, Any]:
    payload = dict(data)
    result = await collection.insert_one(payload)
    payload["_id"] = result.inserted_id
    return payload


async def get_documents(
    collection: AsyncIOMotorCollection,
    filter_dict: Optional[Dict[str, Any]] = None,
    sort_field: str = "submittedAt",
    limit: int = 0,
):
    filter_dict = filter_dict or {}
    cursor = collection.find(filter_dict).sort(sort_field, DESCENDING).limit(limit)
    return [doc async for doc in cursor]


def parse_object_id(value: str) -> Optional[ObjectId]:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def to_str_id(doc: Dict[str, Any]) -> Dict[str, Any]:
    d = dict(doc)
    if isinstance(d.get("_id"), ObjectId):
        d["id"] = str(d.pop("_id"))
    return d
