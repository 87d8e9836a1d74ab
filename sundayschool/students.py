import logging

from .errors import NotFoundError, ValidationError
from .repository import Repository
from .utils import like_pattern, now_ms, page_clause

logger = logging.getLogger("SundaySchool")

STUDENT_FIELDS = ("name", "class_name", "tags", "guardian_name", "phone", "wechat", "whatsapp")
OPTIONAL_FIELDS = STUDENT_FIELDS[1:]


def _require_name(value):
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("Student name is required")
    return value.strip()


def _text(value):
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


class StudentRepository(Repository):
    def add(self, payload):
        payload = payload or {}
        name = _require_name(payload.get("name"))
        values = [name] + [_text(payload.get(field)) for field in OPTIONAL_FIELDS]

        conn = self._connect()
        with conn:
            cur = conn.execute(
                """
                INSERT INTO students(
                  name,class_name,tags,guardian_name,phone,wechat,whatsapp,created_at
                ) VALUES(?,?,?,?,?,?,?,?)
                """,
                (*values, now_ms()),
            )
        return cur.lastrowid

    def list(self, limit=None, offset=0):
        page_sql, page_params = page_clause(limit, offset)
        rows = self._connect().execute(
            "SELECT * FROM students ORDER BY created_at DESC, id DESC" + page_sql,
            page_params,
        ).fetchall()
        return [dict(r) for r in rows]

    def count(self):
        row = self._connect().execute("SELECT COUNT(*) AS total FROM students").fetchone()
        return int(row["total"])

    def search(self, query, limit=None, offset=0):
        q = "" if query is None else str(query).strip()
        if not q:
            return self.list(limit=limit, offset=offset)

        pattern = like_pattern(q)
        where = " OR ".join(f"{field} LIKE ? ESCAPE '\\'" for field in STUDENT_FIELDS)
        page_sql, page_params = page_clause(limit, offset)
        rows = self._connect().execute(
            f"SELECT * FROM students WHERE {where} ORDER BY created_at DESC, id DESC" + page_sql,
            [pattern] * len(STUDENT_FIELDS) + page_params,
        ).fetchall()
        logger.debug("student search %r rows=%d", q, len(rows))
        return [dict(r) for r in rows]

    def get_by_id(self, student_id):
        row = self._connect().execute("SELECT * FROM students WHERE id = ?", (student_id,)).fetchone()
        return dict(row) if row else None

    def update(self, student_id, payload):
        payload = payload or {}
        current = self.get_by_id(student_id)
        if current is None:
            raise NotFoundError("Student not found")

        name = _require_name(payload["name"] if "name" in payload else current["name"])
        values = [name]
        for field in OPTIONAL_FIELDS:
            values.append(_text(payload[field]) if field in payload else current.get(field))

        conn = self._connect()
        with conn:
            cur = conn.execute(
                """
                UPDATE students SET
                  name=?,
                  class_name=?,
                  tags=?,
                  guardian_name=?,
                  phone=?,
                  wechat=?,
                  whatsapp=?
                WHERE id=?
                """,
                (*values, student_id),
            )
        return cur.rowcount

    def delete(self, student_id):
        # Links and message records go with it through ON DELETE CASCADE.
        conn = self._connect()
        with conn:
            cur = conn.execute("DELETE FROM students WHERE id = ?", (student_id,))
        return cur.rowcount
