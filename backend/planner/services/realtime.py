"""In-process change feed for row-level insert/update/delete notifications.

Services publish a ``ChangeEvent`` after every committed write. Subscribers
open a named channel, bind callbacks per table and event type (optionally
filtered by ``column=eq.value``), and receive events synchronously in the
publisher's thread, in publish order.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional

logger = logging.getLogger(__name__)

EVENT_TYPES = ("INSERT", "UPDATE", "DELETE")


@dataclass
class ChangeEvent:
    table: str
    event_type: str  # INSERT | UPDATE | DELETE
    new: Optional[dict] = None
    old: Optional[dict] = None
    # Class the changed row belongs to; lets child tables (attachments,
    # completions) be scoped by class without carrying a class_id column.
    class_id: Optional[str] = None
    commit_timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def row(self) -> dict:
        return self.new or self.old or {}


def parse_filter(expr: Optional[str]) -> Optional[tuple[str, str]]:
    """Parse ``column=eq.value`` into ``(column, value)``."""
    if not expr:
        return None
    column, sep, rest = expr.partition("=")
    if not sep or not rest.startswith("eq."):
        raise ValueError(f"Unsupported filter: {expr!r}")
    return column, rest[3:]


@dataclass
class _Binding:
    table: str
    event: str
    callback: Callable[[ChangeEvent], None]
    filter: Optional[tuple[str, str]] = None

    def matches(self, ev: ChangeEvent) -> bool:
        if ev.table != self.table:
            return False
        if self.event != "*" and ev.event_type != self.event:
            return False
        if self.filter:
            column, value = self.filter
            actual = ev.row().get(column)
            if actual is None and column == "class_id":
                actual = ev.class_id
            if str(actual) != value:
                return False
        return True


class Channel:
    def __init__(self, feed: "ChangeFeed", name: str):
        self.feed = feed
        self.name = name
        self.subscribed = False
        self._bindings: list[_Binding] = []

    def on(
        self,
        table: str,
        callback: Callable[[ChangeEvent], None],
        event: str = "*",
        filter: Optional[str] = None,
    ) -> "Channel":
        event = event.upper()
        if event != "*" and event not in EVENT_TYPES:
            raise ValueError(f"Unknown event type: {event}")
        self._bindings.append(_Binding(table, event, callback, parse_filter(filter)))
        return self

    def subscribe(self) -> "Channel":
        self.feed._attach(self)
        self.subscribed = True
        return self

    def unsubscribe(self) -> None:
        self.feed._detach(self)
        self.subscribed = False

    def _dispatch(self, ev: ChangeEvent) -> None:
        for binding in self._bindings:
            if not binding.matches(ev):
                continue
            try:
                binding.callback(ev)
            except Exception:
                logger.exception("Change callback failed on channel %s", self.name)


class ChangeFeed:
    def __init__(self):
        self._channels: list[Channel] = []
        self._lock = threading.Lock()

    def channel(self, name: str) -> Channel:
        return Channel(self, name)

    def publish(self, ev: ChangeEvent) -> None:
        with self._lock:
            channels = list(self._channels)
        logger.debug("publish %s %s to %d channel(s)", ev.table, ev.event_type, len(channels))
        for ch in channels:
            ch._dispatch(ev)

    def emit(
        self,
        table: str,
        event_type: str,
        new: Optional[dict] = None,
        old: Optional[dict] = None,
        class_id: Optional[str] = None,
    ) -> ChangeEvent:
        ev = ChangeEvent(table=table, event_type=event_type, new=new, old=old, class_id=class_id)
        self.publish(ev)
        return ev

    @property
    def channel_count(self) -> int:
        with self._lock:
            return len(self._channels)

    def _attach(self, ch: Channel) -> None:
        with self._lock:
            if ch not in self._channels:
                self._channels.append(ch)

    def _detach(self, ch: Channel) -> None:
        with self._lock:
            if ch not in self._channels:
                raise ValueError(f"Channel {ch.name} is not subscribed")
            self._channels.remove(ch)


feed = ChangeFeed()
