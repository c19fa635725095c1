# attachments.py

import logging
import os
import uuid
from typing import Dict, Optional

from config import AttachmentPolicy
from errors import StorageFailure, ValidationError
from utils import ensure_dir, safe_extension

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024

# Form field each category arrives under, used for field-level error messages
CATEGORY_FIELDS = {
    "resume": "resume",
    "profileImage": "profileImage",
    "galleryImage": "galleryImages",
}


def format_size(num_bytes: int) -> str:
    if num_bytes >= 1024 * 1024:
        return f"{num_bytes / (1024 * 1024):g} MB"
    if num_bytes >= 1024:
        return f"{num_bytes / 1024:g} KB"
    return f"{num_bytes} bytes"


def has_file(upload) -> bool:
    """Browsers send an empty part for an untouched file input."""
    return upload is not None and bool(getattr(upload, "filename", None))


class AttachmentStore:
    """
    Flat directory of uploaded files. A reference is `<url_prefix>/<filename>`,
    which is both the public URL path and enough to locate the file for deletion.
    """

    def __init__(self, root: str, policies: Dict[str, AttachmentPolicy], url_prefix: str = "uploads"):
        self.root = root
        self.policies = policies
        self.url_prefix = url_prefix.strip("/")
        ensure_dir(self.root)

    # ----------------------------- Policy -----------------------------
    def _policy(self, category: str) -> AttachmentPolicy:
        try:
            return self.policies[category]
        except KeyError:
            raise ValueError(f"Unknown attachment category: {category}")

    def check(self, category: str, upload) -> None:
        """Rejects an upload by content type or declared size without reading it."""
        policy = self._policy(category)
        field = CATEGORY_FIELDS.get(category, category)
        if not policy.accepts(upload.content_type):
            allowed = ", ".join(policy.content_types)
            raise ValidationError(
                f"{upload.filename}: unsupported file type",
                {field: f"Only {allowed} files are accepted"},
            )
        size = getattr(upload, "size", None)
        if size is not None and size > policy.max_bytes:
            raise ValidationError(
                f"{upload.filename}: file too large",
                {field: f"File must be at most {format_size(policy.max_bytes)}"},
            )

    # ----------------------------- Paths -----------------------------
    def path_for(self, reference: str) -> str:
        # only the basename is trusted, references never point outside the root
        return os.path.join(self.root, os.path.basename(reference.replace("\\", "/")))

    def reference_for(self, filename: str) -> str:
        return f"{self.url_prefix}/{filename}" if self.url_prefix else filename

    def exists(self, reference: str) -> bool:
        """Lookup helper for callers checking whether a reference still resolves to a file."""
        return bool(reference) and os.path.isfile(self.path_for(reference))

    # ----------------------------- Store / Delete -----------------------------
    async def store(self, category: str, upload) -> str:
        """Writes the upload under a fresh `{category}-{token}{ext}` name and returns its reference."""
        self.check(category, upload)
        policy = self._policy(category)
        ext = safe_extension(upload.filename)

        while True:
            filename = f"{category}-{uuid.uuid4().hex}{ext}"
            path = os.path.join(self.root, filename)
            try:
                # "x" never overwrites an existing file
                fh = open(path, "xb")
            except FileExistsError:
                continue
            except OSError as e:
                logger.error("Could not create %s: %s", path, e)
                raise StorageFailure("Could not store file") from e
            break

        written = 0
        try:
            with fh:
                while True:
                    chunk = await upload.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    written += len(chunk)
                    if written > policy.max_bytes:
                        raise ValidationError(
                            f"{upload.filename}: file too large",
                            {CATEGORY_FIELDS.get(category, category):
                                f"File must be at most {format_size(policy.max_bytes)}"},
                        )
                    fh.write(chunk)
        except ValidationError:
            self._discard(path)
            raise
        except OSError as e:
            self._discard(path)
            logger.error("Could not write %s: %s", path, e)
            raise StorageFailure("Could not store file") from e

        reference = self.reference_for(filename)
        logger.info("Stored %s (%s, %d bytes) as %s", upload.filename, category, written, reference)
        return reference

    def delete(self, reference: Optional[str]) -> bool:
        """
        Removes the file behind a reference. Returns False when it is already gone;
        deleting twice is not an error.
        """
        if not reference:
            return False
        path = self.path_for(reference)
        try:
            os.remove(path)
        except FileNotFoundError:
            logger.info("Attachment %s already absent", reference)
            return False
        except OSError as e:
            logger.error("Could not delete %s: %s", path, e)
            raise StorageFailure("Could not delete file") from e
        logger.info("Deleted attachment %s", reference)
        return True

    def _discard(self, path: str) -> None:
        try:
            os.remove(path)
        except OSError as e:
            logger.warning("Could not remove partial file %s: %s", path, e)
