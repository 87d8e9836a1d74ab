import logging

from .constants import APP_NAME, SCHEMA_VERSION
from .db import SundaySchoolStore
from .errors import InvalidPhotoError, NotFoundError, PhotoFileError, StoreError, ValidationError
from .utils import normalize_millis

VERSION = "1.0.0"

logger = logging.getLogger("SundaySchool")
logger.info("%s store %s (schema v%d)", APP_NAME, VERSION, SCHEMA_VERSION)

__all__ = [
    "SundaySchoolStore",
    "StoreError",
    "ValidationError",
    "NotFoundError",
    "PhotoFileError",
    "InvalidPhotoError",
    "normalize_millis",
    "VERSION",
]
