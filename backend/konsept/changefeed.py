"""In-process change notifications for the store tables.

Services publish a ``ChangeEvent`` after every committed write to
``participants``, ``rounds`` or ``scores``; game views subscribe to the
tables they render, optionally scoped to one game id.
"""

import threading
from typing import Callable, List, NamedTuple, Optional

from flask import current_app


class ChangeEvent(NamedTuple):
    table: str
    game_id: Optional[int]
    op: str = 'update'


Callback = Callable[[ChangeEvent], None]


class Subscription:
    def __init__(self, feed: 'ChangeFeed', table: str, callback: Callback, game_id: Optional[int]):
        self.table = table
        self.game_id = game_id
        self.callback = callback
        self._feed = feed
        self.closed = False

    def matches(self, event: ChangeEvent) -> bool:
        if self.closed or event.table != self.table:
            return False
        return self.game_id is None or self.game_id == event.game_id

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._feed._remove(self)


class ChangeFeed:
    """Fan-out of change events to subscribers.

    Registered like the other extensions; ``init_app`` starts every app
    with an empty subscriber list.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._subscriptions: List[Subscription] = []

    def init_app(self, app) -> None:
        with self._lock:
            self._subscriptions = []
        app.extensions['konsept_changes'] = self

    def subscribe(self, table: str, callback: Callback, game_id: Optional[int] = None) -> Subscription:
        sub = Subscription(self, table, callback, game_id)
        with self._lock:
            self._subscriptions.append(sub)
        return sub

    def publish(self, event: ChangeEvent) -> int:
        """Deliver *event* to every matching subscriber; returns the delivery count."""
        with self._lock:
            targets = [s for s in self._subscriptions if s.matches(event)]
        delivered = 0
        for sub in targets:
            try:
                sub.callback(event)
                delivered += 1
            except Exception:
                current_app.logger.exception(
                    f"[feed-callback-failed] table={event.table} game={event.game_id} op={event.op}"
                )
        return delivered

    def subscriber_count(self, table: Optional[str] = None) -> int:
        with self._lock:
            return sum(1 for s in self._subscriptions if table is None or s.table == table)

    def _remove(self, sub: Subscription) -> None:
        with self._lock:
            if sub in self._subscriptions:
                self._subscriptions.remove(sub)


def publish_change(table: str, game_id: Optional[int], op: str = 'update') -> int:
    feed = current_app.extensions['konsept_changes']
    return feed.publish(ChangeEvent(table, game_id, op))
