import logging
import os
import shutil
import uuid

from PIL import UnidentifiedImageError

from .constants import ALLOWED_PHOTO_EXTENSIONS, ALLOWED_PHOTO_MIME_TYPES, MAX_PHOTO_BYTES
from .errors import InvalidPhotoError, NotFoundError, PhotoFileError, ValidationError
from .image_metadata import detect_mime_type, read_captured_at
from .paths import is_within
from .repository import Repository
from .utils import file_sha256, like_pattern, normalize_millis, now_ms, page_clause

logger = logging.getLogger("SundaySchool")

SEARCH_FIELDS = ("file_name", "file_path")


def row_to_photo(row):
    photo = dict(row)
    photo["captured_at"] = normalize_millis(photo.get("captured_at"), "captured_at")
    return photo


def _remove_file(path):
    try:
        os.remove(path)
    except OSError:
        logger.warning("Failed to delete photo file: %s", path, exc_info=True)
        return False
    return True


def validate_photo_file(file_path):
    """Check extension, sniffed MIME type and size of a photo about to be imported.

    A file Pillow does not recognise as an image is rejected like any other
    disallowed MIME type. Only when sniffing itself breaks (an I/O or
    decoder error) does the extension check stand alone.
    """
    ext = os.path.splitext(file_path)[1].lower()
    if ext not in ALLOWED_PHOTO_EXTENSIONS:
        raise InvalidPhotoError(f"Invalid file type. Allowed types: {', '.join(ALLOWED_PHOTO_EXTENSIONS)}")

    try:
        mime_type = detect_mime_type(file_path)
    except UnidentifiedImageError:
        raise InvalidPhotoError("Invalid MIME type. Detected: unknown") from None
    except Exception as exc:
        logger.warning("MIME type check failed for %s, falling back to extension check: %s", file_path, exc)
    else:
        if mime_type not in ALLOWED_PHOTO_MIME_TYPES:
            raise InvalidPhotoError(f"Invalid MIME type. Detected: {mime_type or 'unknown'}")

    size = os.path.getsize(file_path)
    if size > MAX_PHOTO_BYTES:
        raise InvalidPhotoError(
            f"File size exceeds maximum allowed size of {MAX_PHOTO_BYTES // (1024 * 1024)}MB"
        )


class PhotoRepository(Repository):
    def add(self, payload):
        """Import a photo into managed storage and record it.

        Files outside the photos directory are copied in under a
        ``<ms>_<hex6>_<name>`` file name. Importing the same source file
        again (same path, same contents) resolves to the existing copy, and
        an existing row for the final path is returned instead of inserting
        a duplicate. Returns the photo id.
        """
        payload = payload or {}
        file_path = payload.get("file_path")
        file_name = payload.get("file_name") or ""
        captured_at = normalize_millis(payload.get("captured_at"), "captured_at")

        conn = self._connect()
        photos_dir = self.store.photos_dir
        os.makedirs(photos_dir, exist_ok=True)

        if not file_path or not os.path.isfile(file_path):
            raise PhotoFileError("Source photo file not found")
        file_path = os.path.abspath(file_path)
        validate_photo_file(file_path)

        content_hash = file_sha256(file_path)
        source_path = None
        final_path = file_path
        copied = False
        if not is_within(file_path, photos_dir):
            source_path = file_path
            final_path = self._find_managed_copy(conn, source_path, content_hash)
            if final_path is None:
                final_path = self._copy_into_storage(file_path, photos_dir)
                copied = True
            if not file_name:
                file_name = os.path.basename(file_path)

        existing = conn.execute("SELECT id FROM photos WHERE file_path = ?", (final_path,)).fetchone()
        if existing:
            return existing["id"]

        if captured_at is None and self.store.get_preferences()["exif_captured_at"]:
            captured_at = self._exif_captured_at(final_path)

        try:
            with conn:
                cur = conn.execute(
                    """
                    INSERT INTO photos(file_path,file_name,captured_at,source_path,content_hash,created_at)
                    VALUES(?,?,?,?,?,?)
                    """,
                    (final_path, file_name, captured_at, source_path, content_hash, now_ms()),
                )
        except Exception:
            if copied:
                _remove_file(final_path)
            raise
        logger.debug("photo imported id=%d path=%s", cur.lastrowid, final_path)
        return cur.lastrowid

    @staticmethod
    def _find_managed_copy(conn, source_path, content_hash):
        rows = conn.execute(
            "SELECT file_path FROM photos WHERE source_path = ? AND content_hash = ? ORDER BY id DESC",
            (source_path, content_hash),
        ).fetchall()
        for row in rows:
            if os.path.isfile(row["file_path"]):
                return row["file_path"]
        return None

    @staticmethod
    def _copy_into_storage(file_path, photos_dir):
        base, ext = os.path.splitext(os.path.basename(file_path))
        new_path = os.path.join(photos_dir, f"{now_ms()}_{uuid.uuid4().hex[:6]}_{base}{ext}")
        try:
            shutil.copy2(file_path, new_path)
        except OSError as exc:
            logger.error("Failed to copy photo file %s: %s", file_path, exc)
            if os.path.exists(new_path):
                _remove_file(new_path)
            raise PhotoFileError(f"Failed to import photo: {exc}") from exc
        return new_path

    @staticmethod
    def _exif_captured_at(path):
        try:
            return normalize_millis(read_captured_at(path), "captured_at")
        except (OSError, ValidationError) as exc:
            logger.warning("Ignoring EXIF capture time of %s: %s", path, exc)
            return None

    def list(self, limit=None, offset=0):
        page_sql, page_params = page_clause(limit, offset)
        rows = self._connect().execute(
            "SELECT * FROM photos ORDER BY created_at DESC, id DESC" + page_sql,
            page_params,
        ).fetchall()
        return [row_to_photo(r) for r in rows]

    def count(self):
        row = self._connect().execute("SELECT COUNT(*) AS total FROM photos").fetchone()
        return int(row["total"])

    def search(self, query, limit=None, offset=0):
        q = "" if query is None else str(query).strip()
        if not q:
            return self.list(limit=limit, offset=offset)

        pattern = like_pattern(q)
        where = " OR ".join(f"{field} LIKE ? ESCAPE '\\'" for field in SEARCH_FIELDS)
        page_sql, page_params = page_clause(limit, offset)
        rows = self._connect().execute(
            f"SELECT * FROM photos WHERE {where} ORDER BY created_at DESC, id DESC" + page_sql,
            [pattern] * len(SEARCH_FIELDS) + page_params,
        ).fetchall()
        return [row_to_photo(r) for r in rows]

    def get_by_id(self, photo_id):
        row = self._connect().execute("SELECT * FROM photos WHERE id = ?", (photo_id,)).fetchone()
        return row_to_photo(row) if row else None

    def update(self, photo_id, payload):
        payload = payload or {}
        current = self.get_by_id(photo_id)
        if current is None:
            raise NotFoundError("Photo not found")

        file_name = current["file_name"]
        if "file_name" in payload:
            file_name = payload["file_name"] or ""
        captured_at = current["captured_at"]
        if "captured_at" in payload:
            captured_at = normalize_millis(payload["captured_at"], "captured_at")

        conn = self._connect()
        with conn:
            cur = conn.execute(
                "UPDATE photos SET file_name=?, captured_at=? WHERE id=?",
                (file_name, captured_at, photo_id),
            )
        return cur.rowcount

    def delete(self, photo_id):
        """Delete the row, then the file; a file that will not go away is only logged."""
        current = self.get_by_id(photo_id)
        if current is None:
            raise NotFoundError("Photo not found")

        conn = self._connect()
        with conn:
            cur = conn.execute("DELETE FROM photos WHERE id = ?", (photo_id,))

        file_path = current["file_path"]
        if file_path and os.path.exists(file_path):
            _remove_file(file_path)
        return cur.rowcount
