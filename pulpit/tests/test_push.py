import unittest
from unittest.mock import MagicMock, patch

import requests

from pulpit.push import ExpoPushClient, PushMessage


def _response(payload):
    response = MagicMock()
    response.json.return_value = payload
    response.raise_for_status.return_value = None
    return response


class ExpoPushClientTests(unittest.TestCase):
    def setUp(self):
        self.client = ExpoPushClient(access_token="secret")
        self.message = PushMessage(
            to="ExponentPushToken[abc]", title="Hello", body="World", data={"a": 1}, category_id="general"
        )

    def test_sends_payload(self):
        with patch.object(self.client.session, "post", return_value=_response({"data": {"status": "ok"}})) as post:
            result = self.client.send(self.message)
        self.assertTrue(result.ok)
        payload = post.call_args.kwargs["json"]
        self.assertEqual(payload["to"], "ExponentPushToken[abc]")
        self.assertEqual(payload["categoryId"], "general")
        self.assertEqual(payload["sound"], "default")
        self.assertEqual(self.client.session.headers["Authorization"], "Bearer secret")

    def test_device_not_registered(self):
        ticket = {
            "data": [
                {
                    "status": "error",
                    "message": "not a registered push notification recipient",
                    "details": {"error": "DeviceNotRegistered"},
                }
            ]
        }
        with patch.object(self.client.session, "post", return_value=_response(ticket)):
            result = self.client.send(self.message)
        self.assertFalse(result.ok)
        self.assertTrue(result.device_not_registered)
        self.assertEqual(result.error, "not a registered push notification recipient")

    def test_transport_error(self):
        with patch.object(self.client.session, "post", side_effect=requests.ConnectionError("down")):
            result = self.client.send(self.message)
        self.assertFalse(result.ok)
        self.assertFalse(result.device_not_registered)
        self.assertEqual(result.error, "down")

    def test_payload_without_category(self):
        payload = PushMessage(to="t", title="a", body="b").to_payload()
        self.assertNotIn("categoryId", payload)
        self.assertEqual(payload["badge"], 1)


if __name__ == "__main__":
    unittest.main()
