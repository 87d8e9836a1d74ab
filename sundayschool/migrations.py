import logging

from .constants import SCHEMA_VERSION

logger = logging.getLogger("SundaySchool")


def _columns(conn, table):
    return {row["name"] for row in conn.execute(f"PRAGMA table_info({table})").fetchall()}


def _add_student_contact_columns(conn):
    cols = _columns(conn, "students")
    for name in ("guardian_name", "phone", "wechat", "whatsapp"):
        if name not in cols:
            conn.execute(f"ALTER TABLE students ADD COLUMN {name} TEXT")


def _add_photo_source_columns(conn):
    cols = _columns(conn, "photos")
    if "source_path" not in cols:
        conn.execute("ALTER TABLE photos ADD COLUMN source_path TEXT")
    if "content_hash" not in cols:
        conn.execute("ALTER TABLE photos ADD COLUMN content_hash TEXT")
    conn.execute("CREATE INDEX IF NOT EXISTS idx_photos_source_path ON photos(source_path)")


# Keyed by the version a step upgrades *from*.
MIGRATIONS = {
    0: _add_student_contact_columns,
    1: _add_photo_source_columns,
}


def get_schema_version(conn):
    row = conn.execute("SELECT value FROM meta WHERE key = 'schema_version'").fetchone()
    if not row:
        return 0
    try:
        return int(row["value"])
    except (TypeError, ValueError):
        return 0


def set_schema_version(conn, version):
    conn.execute(
        "INSERT OR REPLACE INTO meta(key, value) VALUES('schema_version', ?)",
        (str(int(version)),),
    )


def run_migrations(conn, target=SCHEMA_VERSION):
    current = get_schema_version(conn)
    if current > target:
        logger.warning("Database schema v%d is newer than supported v%d", current, target)
        return current

    for version in range(current, target):
        step = MIGRATIONS.get(version)
        with conn:
            if step is not None:
                step(conn)
            set_schema_version(conn, version + 1)
        logger.info("Schema migrated v%d -> v%d", version, version + 1)
    return max(current, target)
