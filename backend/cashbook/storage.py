# Overview: Collection store adapter; whole-collection reads/writes with per-key change notification.

from __future__ import annotations

import json
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from .extensions import db
from .models import StoredCollection
from .time_utils import utcnow

logger = logging.getLogger(__name__)

PRODUCTS_KEY = "inventory_products"
TRANSACTIONS_KEY = "cashier_transactions"
BILLS_KEY = "app_bills"
DEBTS_KEY = "debts"

ALL_KEYS = (PRODUCTS_KEY, TRANSACTIONS_KEY, BILLS_KEY, DEBTS_KEY)


@dataclass(frozen=True)
class ChangeEvent:
    """Advisory signal that the collection under key was rewritten."""
    key: str
    new_value: Optional[str] = None


ChangeHandler = Callable[[ChangeEvent], None]
Unsubscribe = Callable[[], None]


class _Subscription:
    __slots__ = ("key", "handler")

    def __init__(self, key: str, handler: ChangeHandler):
        self.key = key
        self.handler = handler


class ChangeNotifier:
    """
    Per-key publish/subscribe port.

    - Handlers only hear events for the key they subscribed to.
    - Handlers run synchronously, in subscription order, on the publishing call.
    - The returned unsubscribe callable is idempotent.
    - A failing handler is logged and does not stop delivery to the others;
      the write that triggered the event has already been persisted.
    """

    def __init__(self) -> None:
        self._subscriptions: dict[str, list[_Subscription]] = {}

    def subscribe(self, key: str, handler: ChangeHandler) -> Unsubscribe:
        sub = _Subscription(key, handler)
        self._subscriptions.setdefault(key, []).append(sub)

        def unsubscribe() -> None:
            subs = self._subscriptions.get(key, [])
            if sub in subs:
                subs.remove(sub)

        return unsubscribe

    def subscriber_count(self, key: str) -> int:
        return len(self._subscriptions.get(key, []))

    def publish(self, event: ChangeEvent) -> None:
        # Copy so handlers may unsubscribe while being notified
        for sub in list(self._subscriptions.get(event.key, [])):
            try:
                sub.handler(event)
            except Exception:
                logger.exception("Change handler failed for key=%s", event.key)


class CollectionStore(ABC):
    """
    Durable key -> collection storage.

    get(key) returns a fresh list of plain dicts (empty when nothing was stored);
    put(key, records) persists the whole list and then publishes a ChangeEvent.
    """

    def __init__(self, notifier: ChangeNotifier | None = None):
        self.notifier = notifier or ChangeNotifier()

    def get(self, key: str) -> list[dict]:
        payload = self._read(key)
        if not payload:
            return []
        return json.loads(payload)

    def put(self, key: str, records: list[dict]) -> None:
        payload = json.dumps(records, ensure_ascii=False, separators=(",", ":"))
        self._write(key, payload)
        logger.debug("Stored %d record(s) under key=%s", len(records), key)
        self.notifier.publish(ChangeEvent(key=key, new_value=payload))

    def on_change(self, key: str, handler: ChangeHandler) -> Unsubscribe:
        return self.notifier.subscribe(key, handler)

    @abstractmethod
    def _read(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    def _write(self, key: str, payload: str) -> None:
        ...


class MemoryCollectionStore(CollectionStore):
    """Process-local store; keeps serialized text so every read is an independent copy."""

    def __init__(self, notifier: ChangeNotifier | None = None):
        super().__init__(notifier)
        self._payloads: dict[str, str] = {}

    def _read(self, key: str) -> Optional[str]:
        return self._payloads.get(key)

    def _write(self, key: str, payload: str) -> None:
        self._payloads[key] = payload

    def keys(self) -> list[str]:
        return sorted(self._payloads)


class DatabaseCollectionStore(CollectionStore):
    """
    Flask-SQLAlchemy backed store: one StoredCollection row per key.

    Requires an application context. Each put commits on its own; there is no
    transaction spanning two keys. Change events are delivered in-process only.
    """

    def __init__(
        self,
        notifier: ChangeNotifier | None = None,
        *,
        attempts: int = 3,
        backoff_base: float = 0.1,
    ):
        super().__init__(notifier)
        self.attempts = attempts
        self.backoff_base = backoff_base

    def _read(self, key: str) -> Optional[str]:
        row = db.session.get(StoredCollection, key)
        return row.payload if row is not None else None

    def _write(self, key: str, payload: str) -> None:
        def _op():
            row = db.session.get(StoredCollection, key)
            if row is None:
                row = StoredCollection(key=key, payload=payload)
                db.session.add(row)
            else:
                row.payload = payload
                row.updated_at = utcnow()
            db.session.commit()

        self._run_with_retry(_op)

    def _run_with_retry(self, func):
        """
        Retry on OperationalError (locked database) and StaleDataError
        (another writer bumped version_id). The retried write re-reads the row,
        so the newest full-collection write wins.
        """
        for attempt in range(self.attempts):
            try:
                return func()
            except (OperationalError, StaleDataError):
                db.session.rollback()
                if attempt >= self.attempts - 1:
                    raise
                logger.warning("Retrying collection write (attempt %d)", attempt + 2)
                time.sleep(self.backoff_base * (2 ** attempt))
