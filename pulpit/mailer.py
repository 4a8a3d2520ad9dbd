"""
Outgoing account e-mail. Only a logging implementation ships; deployments
plug a real sender in behind the same protocol.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol

logger = logging.getLogger(__name__)


class Mailer(Protocol):
    def send_verification(self, email: str, token: str) -> None:
        ...

    def send_password_reset(self, email: str, token: str) -> None:
        ...


@dataclass
class LoggingMailer:
    """Logs messages and keeps the last few for inspection in tests."""

    outbox: list[tuple[str, str, str]] = field(default_factory=list)

    def send_verification(self, email: str, token: str) -> None:
        logger.info("Sending verification e-mail to %s", email)
        self.outbox.append(("email_verification", email, token))

    def send_password_reset(self, email: str, token: str) -> None:
        logger.info("Sending password reset e-mail to %s", email)
        self.outbox.append(("password_reset", email, token))
