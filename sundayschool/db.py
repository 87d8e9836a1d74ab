import json
import logging
import os
import shutil
import sqlite3

logger = logging.getLogger("SundaySchool")

from .constants import (
    BACKUP_KEEP,
    BACKUP_PREFIX,
    BACKUP_SUFFIX,
    BACKUPS_DIRNAME,
    DB_FILENAME,
    PHOTOS_DIRNAME,
)
from .links import LinkRepository
from .messages import MessageRecordRepository
from .migrations import run_migrations
from .paths import get_data_dir
from .photos import PhotoRepository
from .preferences import DEFAULT_PREFERENCES, normalize_preferences, validate_preference
from .schema import CONNECTION_PRAGMAS, SCHEMA_SQL
from .students import StudentRepository
from .utils import backup_stamp


class SundaySchoolStore:
    """Owns the one SQLite connection, the data directory and the repositories.

    Construct one per process and hand it to whatever needs data access.
    Every operation opens the connection lazily through ``initialize()``.
    """

    def __init__(self, data_dir=None):
        self._requested_data_dir = data_dir
        self.data_dir = None
        self.conn = None

        self.students = StudentRepository(self)
        self.photos = PhotoRepository(self)
        self.links = LinkRepository(self)
        self.messages = MessageRecordRepository(self)

    def _ensure_data_dir(self):
        if self.data_dir is None:
            self.data_dir = get_data_dir(self._requested_data_dir)
        else:
            os.makedirs(self.data_dir, exist_ok=True)
        return self.data_dir

    def get_storage_path(self):
        return os.path.join(self._ensure_data_dir(), DB_FILENAME)

    @property
    def photos_dir(self):
        return os.path.join(self._ensure_data_dir(), PHOTOS_DIRNAME)

    @property
    def backups_dir(self):
        return os.path.join(self._ensure_data_dir(), BACKUPS_DIRNAME)

    def initialize(self):
        if self.conn is not None:
            return self.conn

        db_path = self.get_storage_path()
        conn = sqlite3.connect(db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        try:
            for pragma in CONNECTION_PRAGMAS:
                conn.execute(pragma)
            conn.executescript(SCHEMA_SQL)
        except sqlite3.Error:
            conn.close()
            logger.exception("Failed to create database schema at %s", db_path)
            raise

        try:
            run_migrations(conn)
        except Exception:
            # The base schema is usable on its own; keep the app starting.
            logger.exception("Database migration failed")

        self.conn = conn
        logger.info("Database opened: %s", db_path)
        return conn

    def close(self):
        if self.conn is not None:
            self.conn.close()
            self.conn = None

    # ── Backup ──

    def backup(self):
        conn = self.initialize()
        db_path = self.get_storage_path()
        backup_dir = self.backups_dir
        os.makedirs(backup_dir, exist_ok=True)
        backup_path = self._next_backup_path(backup_dir)

        try:
            conn.execute("PRAGMA wal_checkpoint(FULL)").fetchone()
            shutil.copyfile(db_path, backup_path)
        except Exception:
            logger.exception("Database backup failed")
            raise
        logger.info("Database backup created: %s", backup_path)

        self._prune_backups(backup_dir)
        return backup_path

    @staticmethod
    def _next_backup_path(backup_dir):
        stamp = backup_stamp()
        path = os.path.join(backup_dir, f"{BACKUP_PREFIX}{stamp}{BACKUP_SUFFIX}")
        n = 1
        while os.path.exists(path):
            path = os.path.join(backup_dir, f"{BACKUP_PREFIX}{stamp}_{n:03d}{BACKUP_SUFFIX}")
            n += 1
        return path

    @staticmethod
    def _prune_backups(backup_dir, keep=BACKUP_KEEP):
        backups = []
        for name in os.listdir(backup_dir):
            if not (name.startswith(BACKUP_PREFIX) and name.endswith(BACKUP_SUFFIX)):
                continue
            path = os.path.join(backup_dir, name)
            try:
                mtime = os.stat(path).st_mtime_ns
            except OSError:
                continue
            backups.append((mtime, name, path))

        # Newest first; same-tick copies fall back to the timestamped name.
        backups.sort(reverse=True)
        for _mtime, name, path in backups[keep:]:
            try:
                os.remove(path)
                logger.info("Old backup removed: %s", name)
            except OSError:
                logger.warning("Failed to remove old backup %s", path, exc_info=True)

    # ── Preferences ──

    def get_preferences(self):
        row = self.initialize().execute("SELECT value FROM meta WHERE key = 'preferences'").fetchone()
        stored = {}
        if row:
            try:
                stored = json.loads(row["value"])
            except (json.JSONDecodeError, TypeError):
                logger.warning("Stored preferences are not valid JSON, using defaults")
        return normalize_preferences(stored)

    def set_preference(self, key, value):
        value = validate_preference(key, value)
        prefs = self.get_preferences()
        prefs[key] = value
        conn = self.initialize()
        with conn:
            conn.execute(
                "INSERT OR REPLACE INTO meta(key, value) VALUES('preferences', ?)",
                (json.dumps(prefs, ensure_ascii=False),),
            )
        logger.info("Preference set: %s = %r", key, value)
        return prefs

    def reset_preferences(self):
        conn = self.initialize()
        with conn:
            conn.execute("DELETE FROM meta WHERE key = 'preferences'")
        logger.info("Preferences reset")
        return dict(DEFAULT_PREFERENCES)
