"""
Push delivery through the Expo push HTTP API, plus an in-memory double.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Protocol

import requests

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 15


@dataclass
class PushMessage:
    to: str
    title: str
    body: str
    data: dict = field(default_factory=dict)
    sound: str = "default"
    badge: int = 1
    category_id: Optional[str] = None

    def to_payload(self) -> dict:
        payload = {
            "to": self.to,
            "title": self.title,
            "body": self.body,
            "data": self.data,
            "sound": self.sound,
            "badge": self.badge,
        }
        if self.category_id:
            payload["categoryId"] = self.category_id
        return payload


@dataclass
class PushResult:
    ok: bool
    error: Optional[str] = None
    device_not_registered: bool = False


class PushClient(Protocol):
    def send(self, message: PushMessage) -> PushResult:
        ...


@dataclass
class InMemoryPushClient:
    """Records messages instead of sending them. Tokens in `unregistered` fail."""

    sent: list[PushMessage] = field(default_factory=list)
    unregistered: set[str] = field(default_factory=set)

    def send(self, message: PushMessage) -> PushResult:
        if message.to in self.unregistered:
            return PushResult(
                ok=False,
                error=f"{message.to} is not a registered push notification recipient",
                device_not_registered=True,
            )
        self.sent.append(message)
        return PushResult(ok=True)


@dataclass
class ExpoPushClient:
    url: str = "https://exp.host/--/api/v2/push/send"
    access_token: Optional[str] = None

    def __post_init__(self):
        self.session = requests.Session()
        self.session.headers.update(
            {
                "Accept": "application/json",
                "Accept-Encoding": "gzip, deflate",
                "Content-Type": "application/json",
            }
        )
        if self.access_token:
            self.session.headers["Authorization"] = f"Bearer {self.access_token}"

    def send(self, message: PushMessage) -> PushResult:
        try:
            response = self.session.post(
                self.url, json=message.to_payload(), timeout=REQUEST_TIMEOUT
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            logger.warning("Expo push request failed: %s", exc)
            return PushResult(ok=False, error=str(exc))

        ticket = response.json().get("data") or {}
        if isinstance(ticket, list):
            ticket = ticket[0] if ticket else {}
        if ticket.get("status") == "ok":
            return PushResult(ok=True)

        details = ticket.get("details") or {}
        error_code = details.get("error")
        return PushResult(
            ok=False,
            error=ticket.get("message") or error_code or "Unknown push error",
            device_not_registered=error_code == "DeviceNotRegistered",
        )
