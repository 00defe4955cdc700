"""
MongoDB access for the blog backend.

The connection is configured from the environment (DATABASE_URL and
DATABASE_NAME, optionally loaded from a .env file). When either is missing
``db`` stays ``None`` and routes that need the store answer with a 500.
"""
import logging
import os
from datetime import datetime, timezone
from typing import Optional, Union

from bson import ObjectId
from bson.errors import InvalidId
from dotenv import load_dotenv
from pydantic import BaseModel
from pymongo import ASCENDING, DESCENDING, MongoClient

from errors import ApiError, ValidationError

load_dotenv()

logger = logging.getLogger(__name__)

_client = None
db = None

database_url = os.getenv("DATABASE_URL")
database_name = os.getenv("DATABASE_NAME")

if database_url and database_name:
    _client = MongoClient(database_url, tz_aware=True)
    db = _client[database_name]
    logger.info("MongoDB client created for database %s", database_name)


def get_db():
    """FastAPI dependency returning the active database handle."""
    if db is None:
        raise ApiError("Database not available", status_code=500)
    return db


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    # Drivers without tz_aware hand back naive UTC datetimes.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def oid(id_str: str) -> ObjectId:
    try:
        return ObjectId(id_str)
    except (InvalidId, TypeError):
        raise ValidationError("Invalid ID format")


def create_document(database, collection_name: str, data: Union[BaseModel, dict]) -> dict:
    """Insert a document, stamping createdAt/updatedAt, and return it with its _id."""
    if isinstance(data, BaseModel):
        data_dict = data.model_dump()
    else:
        data_dict = dict(data)

    now = utcnow()
    data_dict.setdefault("createdAt", now)
    data_dict["updatedAt"] = now

    result = database[collection_name].insert_one(data_dict)
    data_dict["_id"] = result.inserted_id
    return data_dict


def get_documents(database, collection_name: str, filter_dict: Optional[dict] = None,
                  sort=None, skip: int = 0, limit: Optional[int] = None, projection: Optional[dict] = None):
    cursor = database[collection_name].find(filter_dict or {}, projection)
    if sort:
        cursor = cursor.sort(sort)
    if skip:
        cursor = cursor.skip(skip)
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def ensure_indexes(database) -> None:
    database["user"].create_index([("email", ASCENDING)], unique=True)
    database["user"].create_index([("username", ASCENDING)], unique=True)
    database["session"].create_index([("token", ASCENDING)], unique=True)
    database["post"].create_index([("createdAt", DESCENDING)])
    database["post"].create_index([("status", ASCENDING), ("createdAt", DESCENDING)])
    database["post"].create_index([("author", ASCENDING)])
    database["post"].create_index([("tags", ASCENDING)])


def serialize(value):
    """Turn a document (or anything nested in it) into JSON-ready data."""
    if isinstance(value, dict):
        d = {}
        for k, v in value.items():
            if k == "_id":
                d["id"] = serialize(v)
            else:
                d[k] = serialize(v)
        return d
    if isinstance(value, list):
        return [serialize(v) for v in value]
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return as_utc(value).isoformat()
    return value
