class StoreError(Exception):
    """Base class for every error the store raises on purpose."""

    kind = "store"


class ValidationError(StoreError, ValueError):
    kind = "validation"


class NotFoundError(StoreError, LookupError):
    kind = "not_found"


class PhotoFileError(StoreError, OSError):
    """The photo file itself is missing or could not be copied."""

    kind = "file"


class InvalidPhotoError(PhotoFileError, ValidationError):
    """The photo file exists but is the wrong type or too large."""

    kind = "file"
