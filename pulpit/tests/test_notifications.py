import unittest

from sqlalchemy import select

from pulpit.db import IN_MEMORY_URL, Database, NotificationRow, UserRow
from pulpit.deep_links import DeepLinks
from pulpit.dependencies import get_queue_client
from pulpit.errors import ValidationFailed
from pulpit.queue import InMemoryJobQueue
from pulpit.schemas import NotificationMessage, PreferencesUpdate
from pulpit.services.notifications import NotificationService, truncate_text
from pulpit.services.users import UserService
from pulpit.shared.types import AdminRole, UserRole
from pulpit.tests.support import ApiTestCase, auth_headers, make_user


class NotificationServiceTests(unittest.TestCase):
    def setUp(self):
        self.db = Database(IN_MEMORY_URL)
        self.queue = InMemoryJobQueue()
        self.notifications = NotificationService(self.db, self.queue, DeepLinks())
        self.alice = make_user(self.db, email="alice@example.com")
        self.bob = make_user(self.db, email="bob@example.com")

    def test_send_queues_one_row_per_recipient(self):
        result = self.notifications.send_to_users(
            [self.alice.id, self.bob.id, self.alice.id, "unknown"],
            NotificationMessage(title="Welcome", body="Glad you are here"),
        )
        self.assertEqual(result.queued, 2)
        self.assertEqual(result.skipped, 1)
        with self.db.Session() as session:
            ids = set(session.scalars(select(NotificationRow.id)).all())
        self.assertEqual(set(self.queue.items), ids)

    def test_same_title_within_window_is_dropped(self):
        message = NotificationMessage(title="Service moved", body="We meet at 10am")
        self.assertEqual(self.notifications.send_to_user(self.alice.id, message).queued, 1)
        repeat = self.notifications.send_to_user(self.alice.id, message)
        self.assertEqual(repeat.queued, 0)
        self.assertEqual(repeat.skipped, 1)

    def test_inactive_users_are_skipped(self):
        with self.db.Session() as session:
            session.get(UserRow, self.bob.id).is_active = False
            session.commit()
        result = self.notifications.send_to_all(NotificationMessage(title="Hello", body="All"))
        self.assertEqual(result.queued, 1)

    def test_preference_filter_uses_defaults(self):
        users = UserService(self.db)
        users.update_preferences(self.bob.id, PreferencesUpdate(notify_marketing=True))
        result = self.notifications.send_to_all(NotificationMessage(title="Retreat", body="Sign up"), "marketing")
        # Alice has no preferences row and marketing is opt-in.
        self.assertEqual(result.queued, 1)

        users.update_preferences(self.bob.id, PreferencesUpdate(notify_updates=False))
        result = self.notifications.notify_announcement("Picnic", "Bring a dish")
        self.assertEqual(result.queued, 1)

        with self.assertRaises(ValidationFailed):
            self.notifications.send_to_all(NotificationMessage(title="X", body="Y"), "sports")

    def test_send_by_role(self):
        make_user(self.db, email="mod@example.com", role=UserRole.MODERATOR)
        result = self.notifications.send_by_role("moderator", NotificationMessage(title="Staff", body="Meeting"))
        self.assertEqual(result.queued, 1)

    def test_register_token_reuses_device_row(self):
        first = self.notifications.register_token(self.alice.id, "ExponentPushToken[a]", "ios", "device-1")
        second = self.notifications.register_token(self.alice.id, "ExponentPushToken[b]", "ios", "device-1")
        self.assertEqual(first.id, second.id)
        self.assertEqual(self.notifications.active_token(self.alice.id).token, "ExponentPushToken[b]")

        self.assertEqual(self.notifications.unregister_token(self.alice.id, "ExponentPushToken[b]"), 1)
        self.assertIsNone(self.notifications.active_token(self.alice.id))

    def test_history_and_read_state(self):
        self.notifications.send_to_user(self.alice.id, NotificationMessage(title="One", body="1"))
        self.notifications.send_to_user(self.alice.id, NotificationMessage(title="Two", body="2"))
        page = self.notifications.list_history(self.alice.id)
        self.assertEqual(page.total, 2)
        self.assertEqual(self.notifications.unread_count(self.alice.id), 2)

        first_id = page.items[0].id
        self.assertEqual(self.notifications.mark_read(self.alice.id, [first_id]), 1)
        self.assertEqual(self.notifications.unread_count(self.alice.id), 1)
        # Another user's ids are ignored.
        self.assertEqual(self.notifications.mark_read(self.bob.id, [first_id]), 0)

        self.notifications.set_archived(self.alice.id, [first_id])
        self.assertEqual(self.notifications.list_history(self.alice.id).total, 1)
        self.assertEqual(self.notifications.list_history(self.alice.id, archived=True).total, 1)

        stats = self.notifications.stats(self.alice.id)
        self.assertEqual(stats["total"], 2)
        self.assertEqual(stats["archived"], 1)
        self.assertEqual(stats["by_type"], {"announcement": 2})

    def test_truncate_text(self):
        self.assertEqual(truncate_text("short", 10), "short")
        self.assertEqual(truncate_text("a" * 12, 10), "a" * 10 + "...")
        self.assertEqual(truncate_text(None, 10), "")


class NotificationApiTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.member = make_user(self.db)
        self.moderator = make_user(
            self.db, email="mod@example.com", role=UserRole.MODERATOR, admin_role=AdminRole.MODERATOR
        )

    def test_send_requires_permission(self):
        payload = {"message": {"title": "Hi", "body": "There"}}
        response = self.client.post("/api/notifications/send", json=payload, headers=auth_headers(self.member))
        self.assertEqual(response.status_code, 403)

        response = self.client.post(
            "/api/notifications/send", json=payload, headers=auth_headers(self.moderator)
        )
        self.assertEqual(response.status_code, 202)
        self.assertEqual(response.json(), {"queued": 2, "skipped": 0})
        self.assertEqual(len(get_queue_client()), 2)

    def test_send_rejects_ambiguous_audience(self):
        response = self.client.post(
            "/api/notifications/send",
            json={"message": {"title": "Hi", "body": "There"}, "user_ids": [self.member.id], "role": "member"},
            headers=auth_headers(self.moderator),
        )
        self.assertEqual(response.status_code, 400)

    def test_history_endpoints(self):
        self.client.post(
            "/api/notifications/send",
            json={"message": {"title": "Hi", "body": "There"}, "user_ids": [self.member.id]},
            headers=auth_headers(self.moderator),
        )
        headers = auth_headers(self.member)
        page = self.client.get("/api/notifications", headers=headers).json()
        self.assertEqual(page["total"], 1)
        notification_id = page["items"][0]["id"]

        self.assertEqual(self.client.get("/api/notifications/unread-count", headers=headers).json(), {"count": 1})
        self.client.post("/api/notifications/read", json={"ids": [notification_id]}, headers=headers)
        self.assertEqual(self.client.get("/api/notifications/unread-count", headers=headers).json(), {"count": 0})

        other = auth_headers(self.moderator)
        self.assertEqual(self.client.get(f"/api/notifications/{notification_id}", headers=other).status_code, 404)
        self.assertEqual(
            self.client.delete(f"/api/notifications/{notification_id}", headers=headers).json(), {"count": 1}
        )

    def test_register_push_token(self):
        response = self.client.post(
            "/api/notifications/tokens",
            json={"token": "ExponentPushToken[x]", "platform": "android"},
            headers=auth_headers(self.member),
        )
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["is_active"])


if __name__ == "__main__":
    unittest.main()
