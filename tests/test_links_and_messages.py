import tempfile
import unittest
from pathlib import Path
from unittest import mock

from PIL import Image

from sundayschool.db import SundaySchoolStore
from sundayschool.errors import NotFoundError, ValidationError


def _make_jpeg(path, size=(8, 8)):
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGB", size, (20, 120, 220)).save(path, format="JPEG")
    return str(path)


class LinkRepositoryTests(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.addCleanup(self.temp_dir.cleanup)
        self.root = Path(self.temp_dir.name)
        self.store = SundaySchoolStore(data_dir=str(self.root / "data"))

    def tearDown(self):
        self.store.close()

    def _photo(self, name, size=(8, 8)):
        return self.store.photos.add({"file_path": _make_jpeg(self.root / "import" / name, size=size)})

    def _link_rows(self):
        row = self.store.initialize().execute("SELECT COUNT(*) AS total FROM student_photos").fetchone()
        return row["total"]

    def test_link_unlink_scenario(self):
        student_id = self.store.students.add({"name": "Alice"})
        photo_id = self._photo("alice.jpg")
        self.assertEqual(student_id, 1)
        self.assertEqual(photo_id, 1)

        self.assertEqual(self.store.links.link(1, 1), 1)
        self.assertEqual(self.store.links.link(1, 1), 0)
        self.assertEqual(self._link_rows(), 1)

        photos = self.store.links.list_photos_for_student(1)
        self.assertEqual([p["id"] for p in photos], [1])

        self.store.students.delete(1)
        self.assertEqual(self.store.links.list_photos_for_student(1), [])
        self.assertEqual(self._link_rows(), 0)

    def test_link_requires_existing_student_and_photo(self):
        student_id = self.store.students.add({"name": "Alice"})
        photo_id = self._photo("a.jpg")

        with self.assertRaises(NotFoundError):
            self.store.links.link(999, photo_id)
        with self.assertRaises(NotFoundError):
            self.store.links.link(student_id, 999)
        self.assertEqual(self._link_rows(), 0)

    def test_unlink(self):
        student_id = self.store.students.add({"name": "Alice"})
        photo_id = self._photo("a.jpg")
        self.store.links.link(student_id, photo_id)

        self.assertEqual(self.store.links.unlink(student_id, photo_id), 1)
        self.assertEqual(self.store.links.unlink(student_id, photo_id), 0)
        self.assertEqual(self.store.links.list_photos_for_student(student_id), [])

    def test_unlink_requires_both_ids(self):
        with self.assertRaises(ValidationError):
            self.store.links.unlink(None, 1)
        with self.assertRaises(ValidationError):
            self.store.links.unlink(1, None)

    def test_listings_are_newest_link_first(self):
        alice = self.store.students.add({"name": "Alice"})
        bob = self.store.students.add({"name": "Bob"})
        first = self._photo("first.jpg")
        second = self._photo("second.jpg", size=(9, 9))

        with mock.patch("sundayschool.links.now_ms", side_effect=[1000, 2000, 3000]):
            self.store.links.link(alice, first)
            self.store.links.link(alice, second)
            self.store.links.link(bob, first)

        self.assertEqual([p["id"] for p in self.store.links.list_photos_for_student(alice)], [second, first])
        self.assertEqual([s["id"] for s in self.store.links.list_students_for_photo(first)], [bob, alice])

    def test_photo_side_is_normalized(self):
        student_id = self.store.students.add({"name": "Alice"})
        photo_id = self.store.photos.add(
            {"file_path": _make_jpeg(self.root / "import" / "t.jpg"), "captured_at": 1700000000}
        )
        self.store.links.link(student_id, photo_id)

        photo = self.store.links.list_photos_for_student(student_id)[0]

        self.assertEqual(photo["captured_at"], 1700000000000)

    def test_deleting_photo_cascades_links(self):
        student_id = self.store.students.add({"name": "Alice"})
        photo_id = self._photo("gone.jpg")
        self.store.links.link(student_id, photo_id)

        self.store.photos.delete(photo_id)

        self.assertEqual(self.store.links.list_photos_for_student(student_id), [])
        self.assertEqual(self.store.links.list_students_for_photo(photo_id), [])


class MessageRecordRepositoryTests(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.addCleanup(self.temp_dir.cleanup)
        self.store = SundaySchoolStore(data_dir=str(Path(self.temp_dir.name) / "data"))
        self.messages = self.store.messages
        self.student_id = self.store.students.add({"name": "Alice", "guardian_name": "Carol"})

    def tearDown(self):
        self.store.close()

    def _add(self, **overrides):
        payload = {
            "student_id": self.student_id,
            "template_text": "Hello {guardian}",
            "final_text": "Hello Carol",
        }
        payload.update(overrides)
        return self.messages.add(payload)

    def test_add_and_get_by_id(self):
        record_id = self._add(personalized_text="Alice sang today", channel="wechat")

        record = self.messages.get_by_id(record_id)

        self.assertEqual(record["student_id"], self.student_id)
        self.assertEqual(record["template_text"], "Hello {guardian}")
        self.assertEqual(record["personalized_text"], "Alice sang today")
        self.assertEqual(record["final_text"], "Hello Carol")
        self.assertEqual(record["channel"], "wechat")
        self.assertIsInstance(record["created_at"], int)

    def test_optional_fields_default_to_empty(self):
        record = self.messages.get_by_id(self._add())

        self.assertEqual(record["personalized_text"], "")
        self.assertEqual(record["channel"], "")

    def test_get_by_id_missing_returns_none(self):
        self.assertIsNone(self.messages.get_by_id(77))

    def test_add_validation(self):
        with self.assertRaises(ValidationError):
            self._add(student_id=None)
        for field in ("template_text", "final_text"):
            for value in ("", "   ", None):
                with self.subTest(field=field, value=value):
                    with self.assertRaises(ValidationError):
                        self._add(**{field: value})

        self.assertEqual(self.messages.list(), [])

    def test_add_for_unknown_student(self):
        with self.assertRaises(NotFoundError):
            self._add(student_id=999)

    def test_list_filters_and_ordering(self):
        other_id = self.store.students.add({"name": "Bob"})
        with mock.patch(
            "sundayschool.messages.now_ms",
            side_effect=[1700000000000, 1700000001000, 1700000002000, 1700000003000],
        ):
            first = self._add()
            second = self._add()
            third = self._add(student_id=other_id)
            fourth = self._add()

        self.assertEqual([r["id"] for r in self.messages.list()], [fourth, third, second, first])
        self.assertEqual(
            [r["id"] for r in self.messages.list(student_id=self.student_id)],
            [fourth, second, first],
        )
        self.assertEqual(
            [r["id"] for r in self.messages.list(created_from=1700000001000, created_to=1700000002000)],
            [third, second],
        )
        self.assertEqual(
            [r["id"] for r in self.messages.list(student_id=self.student_id, created_from=1700000001)],
            [fourth, second],
        )
        self.assertEqual(self.messages.list(created_to=1600000000000), [])

    def test_list_rejects_negative_bounds(self):
        with self.assertRaises(ValidationError):
            self.messages.list(created_from=-1)

    def test_list_rejects_bounds_too_large_to_store(self):
        with self.assertRaises(ValidationError):
            self.messages.list(created_to=1e20)
        with self.assertRaises(ValidationError):
            self.messages.list(created_from=10**400)

    def test_deleting_student_cascades_messages(self):
        self._add()
        self._add()

        self.store.students.delete(self.student_id)

        self.assertEqual(self.messages.list(), [])
        self.assertEqual(self.messages.list(student_id=self.student_id), [])


if __name__ == "__main__":
    unittest.main()
