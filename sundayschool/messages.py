import sqlite3

from .errors import NotFoundError, ValidationError
from .repository import Repository
from .utils import normalize_millis, now_ms


def _require_text(value, field_name):
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value


class MessageRecordRepository(Repository):
    """Messages that were actually sent to a student's guardian."""

    def add(self, payload):
        payload = payload or {}
        student_id = payload.get("student_id")
        if student_id is None:
            raise ValidationError("student_id is required")
        template_text = _require_text(payload.get("template_text"), "template_text")
        final_text = _require_text(payload.get("final_text"), "final_text")
        personalized_text = payload.get("personalized_text") or ""
        channel = payload.get("channel") or ""

        conn = self._connect()
        try:
            with conn:
                cur = conn.execute(
                    """
                    INSERT INTO message_records(
                      student_id,template_text,personalized_text,final_text,channel,created_at
                    ) VALUES(?,?,?,?,?,?)
                    """,
                    (student_id, template_text, personalized_text, final_text, channel, now_ms()),
                )
        except sqlite3.IntegrityError as exc:
            raise NotFoundError("Student not found") from exc
        return cur.lastrowid

    def get_by_id(self, record_id):
        row = self._connect().execute("SELECT * FROM message_records WHERE id = ?", (record_id,)).fetchone()
        return dict(row) if row else None

    def list(self, student_id=None, created_from=None, created_to=None):
        where = []
        params = []
        if student_id is not None:
            where.append("student_id = ?")
            params.append(student_id)
        created_from = normalize_millis(created_from, "created_from")
        if created_from is not None:
            where.append("created_at >= ?")
            params.append(created_from)
        created_to = normalize_millis(created_to, "created_to")
        if created_to is not None:
            where.append("created_at <= ?")
            params.append(created_to)

        sql = "SELECT * FROM message_records"
        if where:
            sql += f" WHERE {' AND '.join(where)}"
        sql += " ORDER BY created_at DESC, id DESC"
        return [dict(r) for r in self._connect().execute(sql, params).fetchall()]
