"""Realtime homework synchronisation for one class.

``HomeworkSync`` keeps a list of homework items consistent with the store:
one bulk read on start, then three change-feed channels (homework,
attachments, completion) merged into local state as events arrive.
Homework events are merged without touching the database. Attachment and
completion events are merged into their parent item when it is known
locally; otherwise the whole list is re-fetched.
"""

import logging
import threading
from typing import Callable, Optional

from planner.errors import NotAuthenticated
from planner.schemas.homework import AttachmentRecord, CompletionRecord, HomeworkWithRelations
from planner.services import homework_service
from planner.services.realtime import Channel, ChangeEvent, ChangeFeed

logger = logging.getLogger(__name__)

Listener = Callable[[str, "HomeworkSync"], None]


def normalize_row(raw: dict) -> HomeworkWithRelations:
    """Map a raw joined row to a ``HomeworkWithRelations`` record.

    ``homework_attachments`` and ``homework_completion`` become
    ``attachments`` and ``completion`` (empty when absent), a non-mapping
    ``creator`` becomes None, and every other field is carried over as is.
    """
    if not isinstance(raw, dict) or not raw.get("id"):
        raise ValueError("Homework row without an id")

    data = dict(raw)
    attachments = data.pop("homework_attachments", None)
    completion = data.pop("homework_completion", None)
    creator = data.pop("creator", None)

    data["attachments"] = attachments or data.get("attachments") or []
    data["completion"] = completion or data.get("completion") or []
    data["creator"] = (
        {"display_name": creator.get("display_name"), "avatar_url": creator.get("avatar_url")}
        if isinstance(creator, dict)
        else None
    )
    return HomeworkWithRelations.model_validate(data)


def _has_relations(raw: Optional[dict]) -> bool:
    return bool(raw) and ("homework_attachments" in raw or "homework_completion" in raw)


class HomeworkSync:
    def __init__(self, session_factory, feed: ChangeFeed, class_id: str):
        self.session_factory = session_factory
        self.feed = feed
        self.class_id = class_id

        self.homework: list[HomeworkWithRelations] = []
        self.loading = True
        self.error: Optional[Exception] = None

        self._channels: list[Channel] = []
        self._listeners: list[Listener] = []
        self._lock = threading.RLock()

    # ── Lifecycle ────────────────────────────────────────────────────────────

    def start(self) -> "HomeworkSync":
        """Subscribe to the class's channels, then load the list."""
        if not self.class_id:
            return self

        scope = f"class_id=eq.{self.class_id}"
        self._channels = [
            self.feed.channel(f"homework-{self.class_id}")
            .on("homework", self._on_homework, filter=scope)
            .subscribe(),
            self.feed.channel(f"attachments-{self.class_id}")
            .on("homework_attachments", lambda ev: self._on_relation(ev, "attachments"), filter=scope)
            .subscribe(),
            self.feed.channel(f"completion-{self.class_id}")
            .on("homework_completion", lambda ev: self._on_relation(ev, "completion"), filter=scope)
            .subscribe(),
        ]
        self.refetch()
        return self

    def stop(self) -> None:
        for channel in self._channels:
            try:
                channel.unsubscribe()
            except Exception as e:
                logger.debug("Ignoring unsubscribe failure on %s: %s", channel.name, e)
        self._channels = []
        self._listeners = []

    def add_listener(self, callback: Listener) -> None:
        self._listeners.append(callback)

    # ── Reads ────────────────────────────────────────────────────────────────

    def refetch(self) -> None:
        with self._lock:
            self.loading = True
            self.error = None
        try:
            db = self.session_factory()
            try:
                rows = homework_service.fetch_homework_rows(db, self.class_id)
            finally:
                db.close()
            items = [normalize_row(r) for r in rows]
            with self._lock:
                self.homework = items
        except Exception as e:
            logger.error("Failed to load homework for class %s: %s", self.class_id, e)
            with self._lock:
                self.error = e
        finally:
            with self._lock:
                self.loading = False
        self._notify("refetch")

    def find(self, homework_id: str) -> Optional[HomeworkWithRelations]:
        with self._lock:
            return next((hw for hw in self.homework if hw.id == homework_id), None)

    def snapshot(self) -> list[dict]:
        with self._lock:
            return [hw.model_dump(mode="json") for hw in self.homework]

    # ── Mutations ────────────────────────────────────────────────────────────

    def toggle_completion(self, homework_id: str, user_id: Optional[str], done: bool) -> None:
        """Set the user's done flag for ``homework_id`` and reload the list."""
        try:
            if not user_id:
                raise NotAuthenticated()
            db = self.session_factory()
            try:
                homework_service.set_completion(db, homework_id, self.class_id, user_id, done)
            finally:
                db.close()
        except Exception as e:
            logger.error("Error toggling completion for %s: %s", homework_id, e)
            with self._lock:
                self.error = e
            raise
        self.refetch()

    # ── Change handlers ──────────────────────────────────────────────────────

    def _on_homework(self, ev: ChangeEvent) -> None:
        new_row = normalize_row(ev.new) if ev.new else None
        old_row = normalize_row(ev.old) if ev.old else None

        with self._lock:
            if ev.event_type == "INSERT" and new_row:
                if not any(hw.id == new_row.id for hw in self.homework):
                    self.homework = [*self.homework, new_row]
            elif ev.event_type == "UPDATE" and new_row:
                merged = []
                for hw in self.homework:
                    if hw.id != new_row.id:
                        merged.append(hw)
                        continue
                    if not _has_relations(ev.new):
                        new_row = new_row.model_copy(
                            update={
                                "attachments": hw.attachments,
                                "completion": hw.completion,
                                "creator": hw.creator,
                            }
                        )
                    merged.append(new_row)
                self.homework = merged
            elif ev.event_type == "DELETE" and old_row:
                self.homework = [hw for hw in self.homework if hw.id != old_row.id]
            else:
                return
        self._notify("homework")

    def _on_relation(self, ev: ChangeEvent, attr: str) -> None:
        row = ev.row()
        parent_id = row.get("homework_id")
        with self._lock:
            known = self.find(parent_id) is not None
            if known:
                # Merge into whatever is in the list now; a homework event may
                # have replaced the parent since it was looked up.
                self.homework = [
                    self._merge_relation(hw, ev, attr) if hw.id == parent_id else hw
                    for hw in self.homework
                ]
        if not known:
            self.refetch()
            return
        self._notify(attr)

    @staticmethod
    def _merge_relation(parent: HomeworkWithRelations, ev: ChangeEvent, attr: str) -> HomeworkWithRelations:
        row = ev.row()
        records = getattr(parent, attr)
        current = [r for r in records if r.id != row.get("id")]
        if ev.event_type in ("INSERT", "UPDATE") and ev.new:
            record_type = AttachmentRecord if attr == "attachments" else CompletionRecord
            record = record_type.model_validate(ev.new)
            if any(r.id == record.id for r in records):
                current = [record if r.id == record.id else r for r in records]
            else:
                current.append(record)
        return parent.model_copy(update={attr: current})

    def _notify(self, reason: str) -> None:
        for callback in list(self._listeners):
            try:
                callback(reason, self)
            except Exception:
                logger.exception("Homework sync listener failed")
