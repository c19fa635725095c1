# errors.py

from typing import Dict, Optional


class ProfileError(Exception):
    """Base class for failures reported to API callers."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ProfileError):
    """Missing or malformed input. `errors` maps field name to a readable message."""

    status_code = 400

    def __init__(self, message: str, errors: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.errors = errors or {}


class DuplicateKey(ProfileError):
    status_code = 400


class InvalidIdentifier(ProfileError):
    status_code = 400


class NotFound(ProfileError):
    status_code = 404


class StorageFailure(ProfileError):
    """Disk or database unavailable. Clients only ever see a generic message."""

    status_code = 500
