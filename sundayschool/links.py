from .errors import NotFoundError, ValidationError
from .photos import row_to_photo
from .repository import Repository
from .utils import now_ms


class LinkRepository(Repository):
    def link(self, student_id, photo_id):
        """Attach a photo to a student; returns 1 for a new link, 0 if it already existed."""
        if self.store.students.get_by_id(student_id) is None:
            raise NotFoundError("Student not found")
        if self.store.photos.get_by_id(photo_id) is None:
            raise NotFoundError("Photo not found")

        conn = self._connect()
        with conn:
            cur = conn.execute(
                "INSERT OR IGNORE INTO student_photos(student_id,photo_id,linked_at) VALUES(?,?,?)",
                (student_id, photo_id, now_ms()),
            )
        return cur.rowcount

    def unlink(self, student_id, photo_id):
        if student_id is None or photo_id is None:
            raise ValidationError("student_id and photo_id are required")

        conn = self._connect()
        with conn:
            cur = conn.execute(
                "DELETE FROM student_photos WHERE student_id = ? AND photo_id = ?",
                (student_id, photo_id),
            )
        return cur.rowcount

    def list_photos_for_student(self, student_id):
        rows = self._connect().execute(
            """
            SELECT p.* FROM photos p
            JOIN student_photos sp ON sp.photo_id = p.id
            WHERE sp.student_id = ?
            ORDER BY sp.linked_at DESC, sp.id DESC
            """,
            (student_id,),
        ).fetchall()
        return [row_to_photo(r) for r in rows]

    def list_students_for_photo(self, photo_id):
        rows = self._connect().execute(
            """
            SELECT s.* FROM students s
            JOIN student_photos sp ON sp.student_id = s.id
            WHERE sp.photo_id = ?
            ORDER BY sp.linked_at DESC, sp.id DESC
            """,
            (photo_id,),
        ).fetchall()
        return [dict(r) for r in rows]
