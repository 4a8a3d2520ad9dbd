"""
Queue abstraction for notification delivery.

Supports an in-memory fallback for tests/local runs and a Redis-backed
implementation for production. Items are notification ids; the worker
looks the rest up in the database.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Protocol

import redis
from redis import exceptions as redis_exceptions


class JobQueue(Protocol):
    """Minimal queue interface for handing notification ids to workers."""

    def enqueue(self, item_id: str) -> None:
        ...

    def dequeue(self, *, block: bool = True, timeout: int | None = None) -> Optional[str]:
        ...


@dataclass
class InMemoryJobQueue:
    """Simple FIFO queue for testing/dev."""

    items: list[str] = field(default_factory=list)

    def enqueue(self, item_id: str) -> None:
        self.items.append(item_id)

    def dequeue(self, *, block: bool = True, timeout: int | None = None) -> Optional[str]:
        if not self.items:
            return None
        return self.items.pop(0)

    def __len__(self) -> int:
        return len(self.items)


@dataclass
class RedisJobQueue:
    """Redis-backed queue using list push/pop operations."""

    url: str
    queue_key: str = "pulpit:notifications"

    def __post_init__(self):
        self.client = redis.Redis.from_url(self.url)

    def enqueue(self, item_id: str) -> None:
        self.client.rpush(self.queue_key, item_id)

    def dequeue(self, *, block: bool = True, timeout: int | None = None) -> Optional[str]:
        try:
            if block:
                result = self.client.blpop(self.queue_key, timeout=timeout or 0)
                if result is None:
                    return None
                _, item_id = result
            else:
                item_id = self.client.lpop(self.queue_key)
                if item_id is None:
                    return None
            return item_id.decode("utf-8")
        except redis_exceptions.ConnectionError:
            # Managed Redis drops idle connections. Report an empty queue and
            # let the worker loop try again on a fresh client.
            self.client = redis.Redis.from_url(self.url)
            return None
