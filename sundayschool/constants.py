APP_NAME = "SundaySchoolTime"

SCHEMA_VERSION = 2

DB_FILENAME = "sunday-school-time.db"
PHOTOS_DIRNAME = "photos"
BACKUPS_DIRNAME = "backups"

DATA_DIR_ENV = "SUNDAYSCHOOL_DATA_DIR"

ALLOWED_PHOTO_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp", ".bmp")
ALLOWED_PHOTO_MIME_TYPES = ("image/jpeg", "image/png", "image/gif", "image/webp", "image/bmp")
MAX_PHOTO_BYTES = 10 * 1024 * 1024

BACKUP_PREFIX = "backup-"
BACKUP_SUFFIX = ".db"
BACKUP_KEEP = 5

# Anything below this is treated as a Unix timestamp in seconds.
SECONDS_EPOCH_CEILING = 1e12

# Largest value a SQLite INTEGER column can hold.
MAX_TIMESTAMP_MS = 2**63 - 1
