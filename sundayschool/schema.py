SCHEMA_SQL = r"""
CREATE TABLE IF NOT EXISTS meta (
  key TEXT PRIMARY KEY,
  value TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS students (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  name TEXT NOT NULL,
  class_name TEXT,
  tags TEXT,
  guardian_name TEXT,
  phone TEXT,
  wechat TEXT,
  whatsapp TEXT,
  created_at INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS photos (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  file_path TEXT NOT NULL UNIQUE,
  file_name TEXT,
  captured_at INTEGER,
  source_path TEXT,
  content_hash TEXT,
  created_at INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS student_photos (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  student_id INTEGER NOT NULL,
  photo_id INTEGER NOT NULL,
  linked_at INTEGER NOT NULL,
  UNIQUE (student_id, photo_id),
  FOREIGN KEY (student_id) REFERENCES students(id) ON DELETE CASCADE,
  FOREIGN KEY (photo_id) REFERENCES photos(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS message_records (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  student_id INTEGER NOT NULL,
  template_text TEXT NOT NULL,
  personalized_text TEXT,
  final_text TEXT NOT NULL,
  channel TEXT,
  created_at INTEGER NOT NULL,
  FOREIGN KEY (student_id) REFERENCES students(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_students_name ON students(name);
CREATE INDEX IF NOT EXISTS idx_photos_captured_at ON photos(captured_at);
CREATE INDEX IF NOT EXISTS idx_student_photos_student_id ON student_photos(student_id);
CREATE INDEX IF NOT EXISTS idx_student_photos_photo_id ON student_photos(photo_id);
CREATE INDEX IF NOT EXISTS idx_message_records_student_id ON message_records(student_id);
CREATE INDEX IF NOT EXISTS idx_message_records_created_at ON message_records(created_at);
"""

# Applied to every new connection, before the schema script runs.
CONNECTION_PRAGMAS = (
    "PRAGMA journal_mode = WAL",
    "PRAGMA synchronous = NORMAL",
    "PRAGMA foreign_keys = ON",
    "PRAGMA busy_timeout = 5000",
)
