from __future__ import annotations

import asyncio
import copy
import io
import os
import tempfile

# main.py mounts the uploads root at import time
os.environ.setdefault("UPLOAD_BASE_DIR", tempfile.mkdtemp(prefix="profile-uploads-"))

import pytest
from bson import ObjectId
from pymongo.errors import DuplicateKeyError, ServerSelectionTimeoutError
from starlette.datastructures import Headers, UploadFile

from attachments import AttachmentStore
from config import AttachmentPolicy
from db import ensure_indexes
from service import ProfileService

PDF_BYTES = b"%PDF-1.4\n%fake resume\n%%EOF"
PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-image"


class FakeInsertResult:
    def __init__(self, inserted_id):
        self.inserted_id = inserted_id


class FakeCursor:
    def __init__(self, docs):
        self._docs = docs

    def sort(self, key, direction):
        self._docs.sort(key=lambda d: d.get(key), reverse=direction < 0)
        return self

    async def to_list(self, length=None):
        docs = [copy.deepcopy(d) for d in self._docs]
        return docs if length is None else docs[:length]


class FakeCollection:
    """Just enough of a Motor collection for the profile store, with unique indexes."""

    def __init__(self):
        self.docs: dict = {}
        self.unique: set[str] = set()
        self.fail_on: set[str] = set()

    def _maybe_fail(self, op):
        if op in self.fail_on:
            raise ServerSelectionTimeoutError("fake: database unreachable")

    def _check_unique(self, doc, skip_id=None):
        for field in self.unique:
            for other in self.docs.values():
                if other["_id"] != skip_id and other.get(field) == doc.get(field):
                    raise DuplicateKeyError(f"E11000 duplicate key error dup key: {{ {field}: {doc.get(field)!r} }}", 11000)

    async def create_index(self, keys, unique=False, name=None):
        self._maybe_fail("create_index")
        if unique:
            self.unique.add(keys)
        return name

    async def insert_one(self, doc):
        self._maybe_fail("insert_one")
        self._check_unique(doc)
        oid = doc.setdefault("_id", ObjectId())
        self.docs[oid] = copy.deepcopy(doc)
        return FakeInsertResult(oid)

    async def find_one(self, flt):
        self._maybe_fail("find_one")
        doc = self.docs.get(flt["_id"])
        return copy.deepcopy(doc) if doc else None

    def find(self, flt=None):
        self._maybe_fail("find")
        return FakeCursor(list(self.docs.values()))

    async def find_one_and_update(self, flt, update, return_document=None):
        self._maybe_fail("find_one_and_update")
        doc = self.docs.get(flt["_id"])
        if not doc:
            return None
        new = {**doc, **copy.deepcopy(update["$set"])}
        self._check_unique(new, skip_id=doc["_id"])
        self.docs[doc["_id"]] = new
        return copy.deepcopy(new)

    async def find_one_and_delete(self, flt):
        self._maybe_fail("find_one_and_delete")
        return self.docs.pop(flt["_id"], None)


def make_upload(filename, content, content_type, declare_size=True):
    return UploadFile(
        file=io.BytesIO(content),
        filename=filename,
        size=len(content) if declare_size else None,
        headers=Headers({"content-type": content_type}),
    )


def pdf(name="resume.pdf", content=PDF_BYTES):
    return make_upload(name, content, "application/pdf")


def png(name="photo.png", content=PNG_BYTES):
    return make_upload(name, content, "image/png")


def valid_form(**overrides):
    form = {
        "fullName": "Ada Lovelace",
        "email": "ada@example.com",
        "phone": "9876543210",
        "dob": "1990-12-10",
        "gender": "Female",
        "skills": ["Go", "SQL"],
        "department": "Engineering",
        "address": "12 Analytical Way",
        "isActive": "true",
    }
    form.update(overrides)
    return form


@pytest.fixture
def upload_dir(tmp_path):
    return tmp_path / "uploads"


@pytest.fixture
def policies():
    return {
        "resume": AttachmentPolicy(("application/pdf",), 1024),
        "profileImage": AttachmentPolicy(("image/*",), 1024),
        "galleryImage": AttachmentPolicy(("image/*",), 1024),
    }


@pytest.fixture
def store(upload_dir, policies):
    return AttachmentStore(str(upload_dir), policies)


@pytest.fixture
def collection():
    coll = FakeCollection()
    asyncio.run(ensure_indexes(coll))
    return coll


@pytest.fixture
def service(collection, store):
    return ProfileService(collection, store, gallery_max_files=3)
