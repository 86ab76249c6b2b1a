"""Realtime router — Server-Sent Events stream of a class's homework state.

Accepts the auth token via ?token= because EventSource cannot set
Authorization headers. Each connection owns a ``HomeworkSync``; its
listener and the notification channel run in publisher threads and hand
messages to the event loop through ``call_soon_threadsafe``.
"""

import asyncio
import json
import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse
from starlette.concurrency import run_in_threadpool

from planner.config import settings
from planner.database import SessionLocal
from planner.middleware.auth import get_user_from_query_token
from planner.models.user import User
from planner.services.homework_sync import HomeworkSync
from planner.services.notification_service import browser_notification
from planner.services.realtime import ChangeEvent, feed

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/realtime", tags=["realtime"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def _state_message(event: str, reason: str, sync: HomeworkSync) -> dict:
    return {
        "event": event,
        "data": {
            "reason": reason,
            "homework": sync.snapshot(),
            "loading": sync.loading,
            "error": str(sync.error) if sync.error else None,
        },
    }


@router.get("/homework")
async def stream_homework(current_user: User = Depends(get_user_from_query_token)):
    """SSE stream: one ``snapshot`` event, then ``homework`` and ``notification`` events."""
    profile = current_user.profile
    if not profile:
        raise HTTPException(status_code=403, detail="Join a class before continuing")
    class_id, user_id = profile.class_id, profile.id

    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    def push(msg: dict) -> None:
        loop.call_soon_threadsafe(queue.put_nowait, msg)

    sync = HomeworkSync(SessionLocal, feed, class_id)
    sent_snapshot = False

    def on_state(reason: str, state: HomeworkSync) -> None:
        nonlocal sent_snapshot
        event = "homework" if sent_snapshot else "snapshot"
        sent_snapshot = True
        push(_state_message(event, reason, state))

    def on_notification(ev: ChangeEvent) -> None:
        row = ev.new or {}
        if row.get("user_id") not in (None, user_id):
            return
        push({"event": "notification", "data": {"notification": row, "display": browser_notification(row)}})

    sync.add_listener(on_state)
    notifications = (
        feed.channel(f"notifications-{user_id}-{uuid.uuid4().hex[:8]}")
        .on("notifications", on_notification, event="INSERT", filter=f"class_id=eq.{class_id}")
        .subscribe()
    )
    await run_in_threadpool(sync.start)

    async def event_stream():
        try:
            while True:
                try:
                    msg = await asyncio.wait_for(queue.get(), timeout=settings.SSE_KEEPALIVE_SECONDS)
                except asyncio.TimeoutError:
                    yield ": keepalive\n\n"
                    continue
                yield f"data: {json.dumps(msg)}\n\n"
        finally:
            sync.stop()
            try:
                notifications.unsubscribe()
            except ValueError as e:
                logger.debug("Notification channel already closed: %s", e)

    return StreamingResponse(event_stream(), media_type="text/event-stream", headers=SSE_HEADERS)
