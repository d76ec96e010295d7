"""
Best-effort notification fan-out.

Workflows call ``Notifier.emit`` after their write has committed. ``emit``
only puts the event on a bounded queue and returns; a background dispatcher
task drains the queue and pushes each event to every WebSocket session the
recipient has open. Delivery is at-most-once: a full queue or a failed socket
drops the event and logs it.
"""
import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Set
from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder
from settings.config import settings
from utils.logger import get_logger

logger = get_logger("Notification_Service")

@dataclass
class Notification:
    recipient_id: str
    event: str
    payload: Dict[str, Any]
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_message(self) -> dict:
        return jsonable_encoder({
            "event": self.event,
            "data": self.payload,
            "created_at": self.created_at,
        })

class ConnectionManager:
    """Open WebSocket sessions grouped by user id."""

    def __init__(self, send_timeout: Optional[float] = None):
        self._sessions: Dict[str, Set[WebSocket]] = {}
        self.send_timeout = send_timeout or settings.NOTIFICATION_SEND_TIMEOUT

    async def connect(self, user_id: str, websocket: WebSocket):
        await websocket.accept()
        self._sessions.setdefault(user_id, set()).add(websocket)
        logger.info(f"User connected: {user_id} ({len(self._sessions[user_id])} session(s))")

    def disconnect(self, user_id: str, websocket: WebSocket):
        sessions = self._sessions.get(user_id)
        if not sessions:
            return
        sessions.discard(websocket)
        if not sessions:
            del self._sessions[user_id]
        logger.info(f"User disconnected: {user_id}")

    def session_count(self, user_id: str) -> int:
        return len(self._sessions.get(user_id, ()))

    async def send_to_user(self, user_id: str, message: dict) -> int:
        delivered = 0
        for websocket in list(self._sessions.get(user_id, ())):
            try:
                # a stalled client must not hold up the dispatcher
                await asyncio.wait_for(websocket.send_json(message), timeout=self.send_timeout)
                delivered += 1
            except asyncio.TimeoutError:
                logger.warning(f"Send to {user_id} timed out after {self.send_timeout}s, dropping session")
                self.disconnect(user_id, websocket)
            except Exception as e:
                # a dead socket must not stop delivery to the others
                logger.warning(f"Dropping session for {user_id}: {e}")
                self.disconnect(user_id, websocket)
        return delivered

class Notifier:
    def __init__(self, manager: Optional[ConnectionManager] = None, maxsize: Optional[int] = None):
        self.manager = manager or ConnectionManager()
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize or settings.NOTIFICATION_QUEUE_SIZE)
        self._task: Optional[asyncio.Task] = None

    def emit(self, recipient_id: Optional[str], event: str, payload: dict) -> bool:
        """Queue an event for a user. Never raises; returns False if dropped."""
        if not recipient_id:
            logger.debug(f"Skipping {event}: no recipient")
            return False
        try:
            self.queue.put_nowait(Notification(recipient_id=recipient_id, event=event, payload=payload))
        except asyncio.QueueFull:
            logger.warning("Notification queue full, dropping event", extra={"event": event, "recipient": recipient_id})
            return False
        return True

    def emit_to_restaurant_owner(self, restaurant: Optional[dict], event: str, payload: dict) -> bool:
        if not restaurant:
            return False
        return self.emit(restaurant.get("owner_id"), event, payload)

    async def dispatch_one(self, notification: Notification) -> int:
        try:
            return await self.manager.send_to_user(notification.recipient_id, notification.to_message())
        except Exception:
            logger.exception(f"Failed to deliver {notification.event} to {notification.recipient_id}")
            return 0

    async def _run(self):
        while True:
            notification = await self.queue.get()
            try:
                await self.dispatch_one(notification)
            finally:
                self.queue.task_done()

    def start(self):
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run())
            logger.info("Notification dispatcher started")

    async def stop(self):
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Notification dispatcher stopped")
