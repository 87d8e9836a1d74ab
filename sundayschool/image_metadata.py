from datetime import datetime
from pathlib import Path

from PIL import Image, UnidentifiedImageError

EXIF_IFD_POINTER = 0x8769
EXIF_DATETIME = 0x0132
EXIF_DATETIME_ORIGINAL = 0x9003
EXIF_DATETIME_DIGITIZED = 0x9004

EXIF_DATETIME_FORMAT = "%Y:%m:%d %H:%M:%S"

# Formats Pillow reports under a name of their own but that are JPEG files on disk.
MIME_ALIASES = {
    "MPO": "image/jpeg",
}


def detect_mime_type(image_path):
    """Return the MIME type Pillow sniffs from the file header.

    Raises ``UnidentifiedImageError`` (or ``OSError``) when Pillow cannot
    recognise the file at all; returns ``None`` for a recognised format
    without a registered MIME type.
    """
    with Image.open(image_path) as img:
        fmt = (img.format or "").upper()
        return MIME_ALIASES.get(fmt) or Image.MIME.get(fmt)


def _parse_exif_datetime(value):
    if isinstance(value, bytes):
        value = value.decode("ascii", errors="ignore")
    if not isinstance(value, str):
        return None
    value = value.strip().rstrip("\x00")
    try:
        return datetime.strptime(value, EXIF_DATETIME_FORMAT)
    except ValueError:
        return None


def read_captured_at(image_path):
    """Capture time from EXIF as Unix seconds, or ``None`` when there is none.

    EXIF date-times carry no zone, so they are read as local time.
    """
    image_path = Path(image_path)
    if not image_path.exists():
        raise FileNotFoundError(image_path)

    try:
        with Image.open(image_path) as img:
            exif = img.getexif()
            if not exif:
                return None
            sub_ifd = exif.get_ifd(EXIF_IFD_POINTER)
            candidates = (
                sub_ifd.get(EXIF_DATETIME_ORIGINAL),
                sub_ifd.get(EXIF_DATETIME_DIGITIZED),
                exif.get(EXIF_DATETIME),
            )
    except (UnidentifiedImageError, OSError):
        return None

    for raw in candidates:
        parsed = _parse_exif_datetime(raw)
        if parsed is not None:
            return parsed.timestamp()
    return None
