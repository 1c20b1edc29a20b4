from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
import logging
import threading
from typing import Callable

from complaintdesk.domain.records import utc_now


logger = logging.getLogger(__name__)

COLLECTION_ORGANIZATIONS = "organizations"
COLLECTION_USERS = "users"
COLLECTION_COMPLAINTS = "complaints"
COLLECTION_AUDIT_LOGS = "auditLogs"
COLLECTIONS = (
    COLLECTION_ORGANIZATIONS,
    COLLECTION_USERS,
    COLLECTION_COMPLAINTS,
    COLLECTION_AUDIT_LOGS,
)


@dataclass(frozen=True)
class ChangeEvent:
    collection: str
    record_id: str | None
    occurred_at: datetime = field(default_factory=utc_now)


ChangeListener = Callable[[ChangeEvent], None]


class Subscription:
    # Handle returned by subscribe(); views call unsubscribe() on teardown.
    def __init__(self, feed: ChangeFeed, collection: str, listener: ChangeListener) -> None:
        self._feed = feed
        self.collection = collection
        self._listener = listener
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        if not self._active:
            return
        self._active = False
        self._feed._remove(self.collection, self._listener)


class ChangeFeed:
    """In-process change notifications for the persisted collections.

    Listeners run synchronously inside ``publish`` and are expected to recompute
    their derived state (insights, scorecards, stats) by pulling fresh data.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[ChangeListener]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, collection: str, on_change: ChangeListener) -> Subscription:
        if collection not in COLLECTIONS:
            raise ValueError(f"Unknown collection: {collection}")
        with self._lock:
            self._listeners[collection].append(on_change)
        return Subscription(self, collection, on_change)

    def _remove(self, collection: str, listener: ChangeListener) -> None:
        with self._lock:
            listeners = self._listeners.get(collection, [])
            if listener in listeners:
                listeners.remove(listener)

    def listener_count(self, collection: str) -> int:
        with self._lock:
            return len(self._listeners.get(collection, []))

    def publish(self, collection: str, record_id: str | None = None) -> ChangeEvent:
        event = ChangeEvent(collection=collection, record_id=record_id)
        with self._lock:
            # Snapshot so listeners may unsubscribe while being notified.
            listeners = list(self._listeners.get(collection, []))
        for listener in listeners:
            try:
                listener(event)
            except Exception as exc:  # noqa: BLE001 - one broken view must not starve the others
                logger.warning(
                    "change_listener_failed collection=%s record_id=%s",
                    collection,
                    record_id,
                    exc_info=exc,
                )
        return event


change_feed = ChangeFeed()
