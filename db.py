# db.py

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from errors import DuplicateKey, NotFound, StorageFailure

logger = logging.getLogger(__name__)

EMAIL_INDEX = "email_unique"


# ================= DATABASE CLIENT ====================

def get_db_client(uri: str) -> AsyncIOMotorClient:
    """
    Creates MongoDB client
    """
    return AsyncIOMotorClient(uri)


async def ensure_indexes(db_collection) -> None:
    """
    Email is the natural key of a profile
    """
    try:
        await db_collection.create_index("email", unique=True, name=EMAIL_INDEX)
    except PyMongoError as e:
        logger.error("Could not create email index: %s", e)
        raise StorageFailure("Database unavailable") from e


# ================= PROFILE RECORDS ====================

async def create_profile(db_collection, fields: Dict[str, Any]) -> Dict[str, Any]:
    """
    Inserts a new profile. A duplicate email fails before anything is written.
    """
    now = datetime.now(timezone.utc)
    body = {**fields, "createdAt": now, "updatedAt": now}

    try:
        result = await db_collection.insert_one(body)
    except DuplicateKeyError as e:
        raise DuplicateKey("Email already exists") from e
    except PyMongoError as e:
        logger.error("Insert failed for %s: %s", fields.get("email"), e)
        raise StorageFailure("Database unavailable") from e

    body["_id"] = result.inserted_id
    return body


async def get_profile(db_collection, oid: ObjectId) -> Dict[str, Any]:
    try:
        doc = await db_collection.find_one({"_id": oid})
    except PyMongoError as e:
        logger.error("[%s] Lookup failed: %s", oid, e)
        raise StorageFailure("Database unavailable") from e

    if not doc:
        raise NotFound("Employee not found")
    return doc


async def list_profiles(db_collection) -> List[Dict[str, Any]]:
    """
    All profiles, newest first
    """
    try:
        cursor = db_collection.find({}).sort("createdAt", -1)
        return await cursor.to_list(length=None)
    except PyMongoError as e:
        logger.error("Listing profiles failed: %s", e)
        raise StorageFailure("Database unavailable") from e


async def update_profile(db_collection, oid: ObjectId, changes: Dict[str, Any]) -> Dict[str, Any]:
    """
    Sets only the supplied fields and returns the record as stored afterwards
    """
    update = {"$set": {**changes, "updatedAt": datetime.now(timezone.utc)}}

    try:
        doc = await db_collection.find_one_and_update(
            {"_id": oid}, update, return_document=ReturnDocument.AFTER
        )
    except DuplicateKeyError as e:
        raise DuplicateKey("Email already exists") from e
    except PyMongoError as e:
        logger.error("[%s] Update failed: %s", oid, e)
        raise StorageFailure("Database unavailable") from e

    if not doc:
        raise NotFound("Employee not found")
    return doc


async def delete_profile(db_collection, oid: ObjectId) -> Dict[str, Any]:
    """
    Removes the record and hands it back so its attachments can be cleaned up
    """
    try:
        doc = await db_collection.find_one_and_delete({"_id": oid})
    except PyMongoError as e:
        logger.error("[%s] Delete failed: %s", oid, e)
        raise StorageFailure("Database unavailable") from e

    if not doc:
        raise NotFound("Employee not found")
    return doc
