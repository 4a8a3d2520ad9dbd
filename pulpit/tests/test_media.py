import unittest

from pulpit.db import IN_MEMORY_URL, Database, MediaFileRow
from pulpit.errors import ConflictError, NotFoundError, ValidationFailed
from pulpit.services.audit import AuditService
from pulpit.services.media import MediaService, safe_filename, validate_upload
from pulpit.shared.types import AdminRole, UserRole
from pulpit.shared.utils import now_ts
from pulpit.storage import InMemoryStorageClient
from pulpit.tests.support import ApiTestCase, auth_headers, make_user

MB = 1024 * 1024


class FailingStorageClient(InMemoryStorageClient):
    failing_paths: set = frozenset()

    def delete_object(self, path: str) -> None:
        if path in self.failing_paths:
            raise RuntimeError(f"storage unavailable for {path}")
        super().delete_object(path)


class UploadValidationTests(unittest.TestCase):
    def test_limits_by_category(self):
        validate_upload("image/png", 10 * MB)
        validate_upload("audio/mpeg", 150 * MB)
        validate_upload("application/pdf", MB)
        with self.assertRaises(ValidationFailed):
            validate_upload("image/jpeg", 10 * MB + 1)
        with self.assertRaises(ValidationFailed):
            validate_upload("application/zip", MB)
        with self.assertRaises(ValidationFailed):
            validate_upload("text/plain", 10)
        with self.assertRaises(ValidationFailed):
            validate_upload("image/png", 0)

    def test_safe_filename(self):
        self.assertEqual(safe_filename("../../etc/passwd"), "passwd")
        self.assertEqual(safe_filename("Easter Sunday (1).jpg"), "Easter-Sunday-1-.jpg")
        self.assertEqual(safe_filename(""), "file")


class MediaServiceTests(unittest.TestCase):
    def setUp(self):
        self.db = Database(IN_MEMORY_URL)
        self.storage = InMemoryStorageClient()
        self.audit = AuditService(self.db)
        self.media = MediaService(self.db, self.storage, self.audit)

    def _upload(self, name="cover.png", mime_type="image/png", size=2048):
        row, _ = self.media.request_upload(name, mime_type, size, uploaded_by="u1")
        return row

    def _age(self, row, days):
        with self.db.Session() as session:
            session.get(MediaFileRow, row.id).uploaded_at = now_ts() - days * 86400
            session.commit()

    def test_request_upload_registers_file(self):
        row, upload_url = self.media.request_upload("cover.png", "image/png", 2048, uploaded_by="u1")
        self.assertRegex(row.storage_path, r"^images/\d{4}/\d{2}/[0-9a-f]+-cover\.png$")
        self.assertEqual(row.url, f"https://example.test/storage/{row.storage_path}")
        self.assertIn("op=put", upload_url)
        self.assertFalse(row.is_used)

        sermon_audio = self._upload("talk.mp3", "audio/mpeg")
        self.assertTrue(sermon_audio.storage_path.startswith("audio/"))

    def test_used_files_cannot_be_deleted(self):
        row = self._upload()
        self.assertEqual(self.media.mark_used([row.url, None, "https://elsewhere.test/x.png"]), 1)
        self.assertEqual(self.media.get(row.id).usage_count, 1)
        with self.assertRaises(ConflictError):
            self.media.delete(row.id)

        unused = self._upload("other.png")
        self.storage.stored_objects[unused.storage_path] = b"png"
        self.media.delete(unused.id, actor_id="admin")
        self.assertNotIn(unused.storage_path, self.storage.stored_objects)
        with self.assertRaises(NotFoundError):
            self.media.get(unused.id)
        self.assertEqual(self.audit.recent(1)[0].details["fileId"], unused.id)

    def test_bulk_delete_is_all_or_nothing(self):
        used = self._upload("a.png")
        spare = self._upload("b.png")
        self.media.mark_used([used.url])
        with self.assertRaises(ConflictError):
            self.media.bulk_delete([used.id, spare.id])
        self.assertEqual(self.media.get(spare.id).id, spare.id)

        result = self.media.bulk_delete([spare.id, "missing"])
        self.assertEqual(
            result,
            {"deleted": [spare.id], "failed": {"missing": "Media file not found"}, "storage_errors": []},
        )

    def test_cleanup_dry_run_then_apply(self):
        old = self._upload("old.png", size=100)
        fresh = self._upload("fresh.png", size=50)
        kept = self._upload("kept.png", size=70)
        self._age(old, 40)
        self._age(kept, 40)
        self.media.mark_used([kept.url])

        preview = self.media.cleanup(30)
        self.assertTrue(preview["dry_run"])
        self.assertEqual([row.id for row in preview["files"]], [old.id])
        self.assertEqual(preview["total_size"], 100)
        self.assertEqual(preview["deleted"], 0)

        applied = self.media.cleanup(30, dry_run=False)
        self.assertEqual(applied["deleted"], 1)
        self.assertEqual(self.media.list_files().total, 2)
        self.assertEqual(self.media.get(fresh.id).id, fresh.id)

    def test_storage_failure_after_rows_are_removed(self):
        self.media.storage = FailingStorageClient()
        first = self._upload("first.png", size=10)
        second = self._upload("second.png", size=20)
        self._age(first, 40)
        self._age(second, 40)
        self.media.storage.failing_paths = {first.storage_path}

        result = self.media.cleanup(30, dry_run=False)
        self.assertEqual(result["deleted"], 2)
        self.assertEqual(result["storage_errors"], [first.storage_path])
        self.assertEqual(self.media.list_files().total, 0)

        third = self._upload("third.png")
        self.media.storage.failing_paths = {third.storage_path}
        bulk = self.media.bulk_delete([third.id])
        self.assertEqual((bulk["deleted"], bulk["storage_errors"]), ([third.id], [third.storage_path]))

        fourth = self._upload("fourth.png")
        self.media.storage.failing_paths = {fourth.storage_path}
        self.media.delete(fourth.id)
        with self.assertRaises(NotFoundError):
            self.media.get(fourth.id)

    def test_release_drops_one_reference(self):
        row = self._upload()
        self.media.mark_used([row.url])
        self.media.mark_used([row.url])
        self.assertEqual(self.media.release([row.url, None]), 1)
        self.assertEqual((self.media.get(row.id).usage_count, self.media.get(row.id).is_used), (1, True))

        self.media.release([row.url])
        self.assertEqual((self.media.get(row.id).usage_count, self.media.get(row.id).is_used), (0, False))
        self.assertEqual(self.media.release([row.url]), 0)
        self.assertEqual(self.media.get(row.id).usage_count, 0)

    def test_list_filters_and_stats(self):
        self._upload("a.png")
        self._upload("notes.pdf", "application/pdf", 300)
        used = self._upload("talk.mp3", "audio/mpeg", 1000)
        self.media.mark_used([used.url])

        self.assertEqual(self.media.list_files(file_type="document").total, 1)
        self.assertEqual(self.media.list_files(is_used=True).items[0].id, used.id)
        self.assertEqual(self.media.list_files(search="NOTES").total, 1)

        stats = self.media.usage_stats()
        self.assertEqual(stats["total_files"], 3)
        self.assertEqual(stats["used_size"], 1000)
        self.assertEqual(stats["by_type"], {"image": 1, "application": 1, "audio": 1})
        self.assertEqual(stats["usage_rate"], 33.33)

    def test_update_metadata(self):
        row = self._upload()
        updated = self.media.update_metadata(row.id, original_name="Cover art.png", details={"alt": "Cross"})
        self.assertEqual(updated.original_name, "Cover art.png")
        self.assertEqual(updated.details, {"alt": "Cross"})


class MediaApiTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.manager = make_user(
            self.db, email="cm@example.com", role=UserRole.ADMIN, admin_role=AdminRole.CONTENT_MANAGER
        )
        self.headers = auth_headers(self.manager)

    def test_upload_then_use_in_sermon(self):
        ticket = self.client.post(
            "/api/media/uploads",
            json={"filename": "sunday.mp3", "mime_type": "audio/mpeg", "size": 5 * MB},
            headers=self.headers,
        )
        self.assertEqual(ticket.status_code, 201)
        media_file = ticket.json()["file"]
        self.assertEqual(ticket.json()["expires_in"], 3600)

        sermon = self.client.post(
            "/api/sermons",
            json={
                "title": "Sunday Service",
                "preacher": "Pastor James",
                "date": "2025-02-02",
                "audio_url": media_file["url"],
            },
            headers=self.headers,
        )
        self.assertEqual(sermon.status_code, 201)

        deleted = self.client.delete(f"/api/media/{media_file['id']}", headers=self.headers)
        self.assertEqual(deleted.status_code, 409)
        self.assertEqual(deleted.json(), {"detail": "Cannot delete file that is currently being used"})

    def test_oversized_upload_rejected(self):
        response = self.client.post(
            "/api/media/uploads",
            json={"filename": "huge.png", "mime_type": "image/png", "size": 11 * MB},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 422)

    def test_members_cannot_upload(self):
        member = make_user(self.db)
        response = self.client.post(
            "/api/media/uploads",
            json={"filename": "a.png", "mime_type": "image/png", "size": 10},
            headers=auth_headers(member),
        )
        self.assertEqual(response.status_code, 403)


if __name__ == "__main__":
    unittest.main()
