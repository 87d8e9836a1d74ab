import hashlib
import math
import numbers
import time
from datetime import datetime, timezone

from .constants import MAX_TIMESTAMP_MS, SECONDS_EPOCH_CEILING
from .errors import ValidationError


def now_ms():
    return int(time.time() * 1000)


def backup_stamp():
    # ISO-8601 UTC with ':' and '.' made filename-safe, e.g. 2026-01-17T10-29-30-123Z
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H-%M-%S-") + f"{now.microsecond // 1000:03d}Z"


def normalize_millis(value, field_name="timestamp"):
    """Coerce a second- or millisecond-granularity timestamp to milliseconds.

    ``None`` passes through. Values below ``1e12`` are taken as seconds, the
    rest as milliseconds; both are rounded half-up to an ``int``. Results
    that do not fit a SQLite INTEGER are rejected.
    """
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise ValidationError(f"{field_name} must be a valid number")
    try:
        value = float(value)
    except OverflowError:
        raise ValidationError(f"{field_name} is out of range") from None
    if math.isnan(value) or math.isinf(value):
        raise ValidationError(f"{field_name} must be a valid number")
    if value < 0:
        raise ValidationError(f"{field_name} cannot be negative")
    if value < SECONDS_EPOCH_CEILING:
        value = value * 1000
    millis = int(math.floor(value + 0.5))
    if millis > MAX_TIMESTAMP_MS:
        raise ValidationError(f"{field_name} is out of range")
    return millis


def escape_like(term):
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def like_pattern(term):
    return f"%{escape_like(term)}%"


def file_sha256(path, chunk_size=1024 * 1024):
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            digest.update(chunk)
    return digest.hexdigest()


def page_clause(limit, offset):
    """Return the ``LIMIT ? OFFSET ?`` suffix and its params, or nothing when unpaged."""
    if isinstance(limit, bool) or not isinstance(limit, numbers.Real) or not limit > 0:
        return "", []
    try:
        offset = max(0, int(offset or 0))
    except (TypeError, ValueError):
        offset = 0
    return " LIMIT ? OFFSET ?", [int(limit), offset]
