# config.py

import logging
import os
from dataclasses import dataclass
from typing import Dict, Tuple

from dotenv import load_dotenv

load_dotenv()

# ----------------------------- Database -----------------------------
MONGODB_URI = os.getenv("MONGODB_URI", "mongodb://localhost:27017")
MONGODB_DB = os.getenv("MONGODB_DB", "employee_directory")
MONGODB_COLLECTION = os.getenv("MONGODB_COLLECTION", "employees")

# ----------------------------- Uploads -----------------------------
# Files live flat under UPLOAD_BASE_DIR and are served read-only under /<UPLOAD_URL_PREFIX>
UPLOAD_BASE_DIR = os.getenv("UPLOAD_BASE_DIR", "./uploads")
UPLOAD_URL_PREFIX = os.getenv("UPLOAD_URL_PREFIX", "uploads").strip("/")

RESUME_MAX_BYTES = int(os.getenv("RESUME_MAX_BYTES", str(2 * 1024 * 1024)))
PROFILE_IMAGE_MAX_BYTES = int(os.getenv("PROFILE_IMAGE_MAX_BYTES", str(10 * 1024 * 1024)))
GALLERY_IMAGE_MAX_BYTES = int(os.getenv("GALLERY_IMAGE_MAX_BYTES", str(10 * 1024 * 1024)))
GALLERY_MAX_FILES = int(os.getenv("GALLERY_MAX_FILES", "10"))

# ----------------------------- HTTP -----------------------------
CORS_ALLOW_ORIGINS = [o.strip() for o in os.getenv("CORS_ALLOW_ORIGINS", "*").split(",") if o.strip()]

# ----------------------------- Logging -----------------------------
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


@dataclass(frozen=True)
class AttachmentPolicy:
    """Accepted content types (exact, or 'type/*') and the size ceiling for one category."""
    content_types: Tuple[str, ...]
    max_bytes: int

    def accepts(self, content_type: str) -> bool:
        content_type = (content_type or "").split(";")[0].strip().lower()
        if not content_type:
            return False
        for allowed in self.content_types:
            if allowed.endswith("/*"):
                if content_type.startswith(allowed[:-1]):
                    return True
            elif content_type == allowed:
                return True
        return False


ATTACHMENT_POLICIES: Dict[str, AttachmentPolicy] = {
    "resume": AttachmentPolicy(("application/pdf",), RESUME_MAX_BYTES),
    "profileImage": AttachmentPolicy(("image/*",), PROFILE_IMAGE_MAX_BYTES),
    "galleryImage": AttachmentPolicy(("image/*",), GALLERY_IMAGE_MAX_BYTES),
}


def configure_logging(level: str = LOG_LEVEL) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
