from __future__ import annotations

import asyncio

from services.notification_service import ConnectionManager, Notification, Notifier


class FakeSocket:
    def __init__(self, fail: bool = False, delay: float = 0) -> None:
        self.fail = fail
        self.delay = delay
        self.accepted = False
        self.sent: list[dict] = []

    async def accept(self) -> None:
        self.accepted = True

    async def send_json(self, message: dict) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(message)


def test_emit_without_recipient_is_dropped() -> None:
    notifier = Notifier(maxsize=10)
    assert notifier.emit(None, "new_review", {}) is False
    assert notifier.emit_to_restaurant_owner(None, "new_review", {}) is False
    assert notifier.queue.qsize() == 0


def test_full_queue_drops_without_raising() -> None:
    notifier = Notifier(maxsize=1)
    assert notifier.emit("u1", "new_review", {"n": 1}) is True
    assert notifier.emit("u1", "new_review", {"n": 2}) is False
    assert notifier.queue.qsize() == 1


def test_emit_to_restaurant_owner_targets_owner() -> None:
    notifier = Notifier(maxsize=10)
    assert notifier.emit_to_restaurant_owner({"owner_id": "o1"}, "new_reservation", {"guests": 2})
    queued = notifier.queue.get_nowait()
    assert queued.recipient_id == "o1"
    assert queued.event == "new_reservation"


async def test_dispatch_fans_out_and_drops_dead_sockets() -> None:
    manager = ConnectionManager()
    alive, dead = FakeSocket(), FakeSocket(fail=True)
    await manager.connect("u1", alive)
    await manager.connect("u1", dead)
    assert alive.accepted and dead.accepted
    assert manager.session_count("u1") == 2

    notifier = Notifier(manager=manager, maxsize=10)
    delivered = await notifier.dispatch_one(Notification(recipient_id="u1", event="review_moderated", payload={"status": "approved"}))
    assert delivered == 1
    assert alive.sent[0]["event"] == "review_moderated"
    assert alive.sent[0]["data"] == {"status": "approved"}
    assert manager.session_count("u1") == 1


async def test_dispatcher_task_drains_queue() -> None:
    manager = ConnectionManager()
    socket = FakeSocket()
    await manager.connect("u1", socket)
    notifier = Notifier(manager=manager, maxsize=10)
    notifier.start()
    try:
        notifier.emit("u1", "reservation_updated", {"status": "confirmed"})
        notifier.emit("u2", "reservation_updated", {"status": "confirmed"})
        await asyncio.wait_for(notifier.queue.join(), timeout=1)
    finally:
        await notifier.stop()
    assert [m["event"] for m in socket.sent] == ["reservation_updated"]


async def test_stalled_socket_times_out_without_blocking_others() -> None:
    manager = ConnectionManager(send_timeout=0.05)
    stalled, alive = FakeSocket(delay=10), FakeSocket()
    await manager.connect("u1", stalled)
    await manager.connect("u1", alive)

    delivered = await asyncio.wait_for(manager.send_to_user("u1", {"event": "new_review"}), timeout=1)
    assert delivered == 1
    assert alive.sent == [{"event": "new_review"}]
    assert stalled.sent == []
    assert manager.session_count("u1") == 1
