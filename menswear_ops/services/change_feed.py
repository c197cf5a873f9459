from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class ChangeType(str, Enum):
    INSERT = 'insert'
    UPDATE = 'update'
    DELETE = 'delete'


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    event: ChangeType
    row_id: int
    new: dict[str, Any] | None = None
    old: dict[str, Any] | None = None


ChangeCallback = Callable[[ChangeEvent], None]


@dataclass
class Subscription:
    feed: ChangeFeed
    table: str
    callback: ChangeCallback
    events: frozenset[ChangeType]
    active: bool = True

    def unsubscribe(self) -> None:
        if self.active:
            self.feed._remove(self)
            self.active = False


class ChangeFeed:
    """In-process fan-out of typed row diffs, keyed by table name."""

    def __init__(self) -> None:
        self._subscriptions: dict[str, list[Subscription]] = {}

    def subscribe(
        self,
        table: str,
        callback: ChangeCallback,
        events: Iterable[ChangeType | str] | None = None,
    ) -> Subscription:
        wanted = frozenset(ChangeType(event) for event in events) if events else frozenset(ChangeType)
        subscription = Subscription(feed=self, table=table, callback=callback, events=wanted)
        self._subscriptions.setdefault(table, []).append(subscription)
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        subscribers = self._subscriptions.get(subscription.table, [])
        if subscription in subscribers:
            subscribers.remove(subscription)

    def publish(self, event: ChangeEvent) -> None:
        for subscription in list(self._subscriptions.get(event.table, [])):
            if event.event not in subscription.events:
                continue
            try:
                subscription.callback(event)
            except Exception:
                # One broken consumer must not starve the others.
                logger.exception('Change feed subscriber failed for %s %s', event.table, event.event.value)

    def publish_all(self, events: Iterable[ChangeEvent]) -> None:
        for event in events:
            self.publish(event)


@dataclass
class LiveTable:
    """Rows of one table kept current by applying diffs instead of refetching."""

    table: str
    rows: dict[int, dict[str, Any]] = field(default_factory=dict)
    applied: int = 0

    def load(self, rows: Iterable[dict[str, Any]]) -> None:
        self.rows = {int(row['id']): dict(row) for row in rows}

    def apply(self, event: ChangeEvent) -> None:
        if event.table != self.table:
            return
        if event.event == ChangeType.DELETE:
            self.rows.pop(event.row_id, None)
        else:
            current = self.rows.get(event.row_id, {})
            current.update(event.new or {})
            current['id'] = event.row_id
            self.rows[event.row_id] = current
        self.applied += 1

    def values(self) -> list[dict[str, Any]]:
        return list(self.rows.values())
