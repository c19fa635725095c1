import os
import re
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

import pydantic
from bson import ObjectId
from bson.errors import InvalidId

from errors import InvalidIdentifier

# ----------------------------- DB Utilities -----------------------------
def to_object_id(id_str: str) -> ObjectId:
    try:
        return ObjectId(id_str)
    except (InvalidId, TypeError):
        raise InvalidIdentifier("Invalid employee ID")

def date_to_datetime(d: date) -> datetime:
    """BSON has no plain date type, so dates are stored as UTC midnight."""
    return datetime(d.year, d.month, d.day, tzinfo=timezone.utc)

def serialize_doc(doc: Optional[dict]) -> Optional[dict]:
    if not doc:
        return doc
    doc["_id"] = str(doc["_id"])
    if isinstance(doc.get("dob"), datetime):
        doc["dob"] = doc["dob"].date().isoformat()
    # Mongo hands back naive UTC datetimes, freshly written ones are aware
    for key in ("createdAt", "updatedAt"):
        value = doc.get(key)
        if isinstance(value, datetime) and value.tzinfo is None:
            doc[key] = value.replace(tzinfo=timezone.utc)
    return doc

def serialize_docs(docs: List[dict]) -> List[dict]:
    """Serializes a list of documents, converting ObjectId to string."""
    return [serialize_doc(doc) for doc in docs]

# ----------------------------- Validation Utilities -----------------------------
def field_errors(exc: pydantic.ValidationError) -> Dict[str, str]:
    """Flattens pydantic errors into {field: message}, first message per field wins."""
    errors: Dict[str, str] = {}
    for err in exc.errors():
        field = str(err["loc"][0]) if err.get("loc") else "__root__"
        msg = err.get("msg", "Invalid value")
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        errors.setdefault(field, msg)
    return errors

def drop_none(data: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in data.items() if v is not None}

# ----------------------------- File & Directory Utilities -----------------------------
def safe_extension(filename: Optional[str]) -> str:
    """Lower-cased extension of the client filename, or '' if it looks unsafe."""
    ext = os.path.splitext(filename or "")[1].lower()
    if re.fullmatch(r"\.[a-z0-9]{1,10}", ext):
        return ext
    return ""

def ensure_dir(path: str):
    os.makedirs(path, exist_ok=True)
