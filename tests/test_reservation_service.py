from __future__ import annotations

import datetime as dt

import pytest
from pymongo.errors import PyMongoError

from conftest import insert_restaurant
from core.exceptions import AuthorizationError, NotFoundError, UpstreamError, ValidationError
from models.reservation import ReservationCreate, ReservationUpdate
from services import reservation_service
from services.reservation_service import can_transition


def _booking(restaurant_id: str, guests: int = 2) -> ReservationCreate:
    return ReservationCreate(restaurant_id=restaurant_id, date=dt.date(2026, 12, 24), time="19:30", guests=guests)


@pytest.mark.parametrize(
    "current,new,expected",
    [
        ("pending", "confirmed", True),
        ("pending", "cancelled", True),
        ("confirmed", "cancelled", True),
        ("confirmed", "pending", False),
        ("cancelled", "confirmed", False),
        ("cancelled", "cancelled", True),
    ],
)
def test_status_transitions(current, new, expected) -> None:
    assert can_transition(current, new) is expected


async def test_create_reservation(db, notifier, alice, owner, restaurant_id) -> None:
    out = await reservation_service.create_reservation(db, notifier, alice, _booking(restaurant_id, guests=4))
    assert out["status"] == "pending"
    assert out["date"] == "2026-12-24"
    assert out["guests"] == 4
    assert out["restaurant_name"] == "Trattoria"
    assert out["customer_name"] == "Alice"
    assert notifier.for_user(owner.id) == ["new_reservation"]


async def test_owner_cannot_book(db, notifier, owner, restaurant_id) -> None:
    with pytest.raises(AuthorizationError):
        await reservation_service.create_reservation(db, notifier, owner, _booking(restaurant_id))


async def test_booking_unknown_restaurant(db, notifier, alice) -> None:
    with pytest.raises(NotFoundError):
        await reservation_service.create_reservation(db, notifier, alice, _booking("64b7f0c2a1b2c3d4e5f60718"))


async def test_owner_confirms_then_customer_cannot_edit(db, notifier, alice, owner, restaurant_id) -> None:
    booking = await reservation_service.create_reservation(db, notifier, alice, _booking(restaurant_id))

    confirmed = await reservation_service.update_reservation(db, notifier, owner, booking["id"], ReservationUpdate(status="confirmed"))
    assert confirmed["status"] == "confirmed"
    assert notifier.for_user(alice.id) == ["reservation_updated"]

    with pytest.raises(ValidationError):
        await reservation_service.update_reservation(db, notifier, alice, booking["id"], ReservationUpdate(guests=6))


async def test_confirmed_booking_rejects_any_customer_change(db, notifier, alice, owner, restaurant_id) -> None:
    booking = await reservation_service.create_reservation(db, notifier, alice, _booking(restaurant_id))
    await reservation_service.update_reservation(db, notifier, owner, booking["id"], ReservationUpdate(status="confirmed"))

    with pytest.raises(ValidationError):
        await reservation_service.update_reservation(
            db, notifier, alice, booking["id"], ReservationUpdate(status="cancelled", guests=3)
        )
    stored = await reservation_service.get_reservation(db, alice, booking["id"])
    assert stored["status"] == "confirmed"
    assert stored["guests"] == 2


async def test_customer_edits_pending_booking(db, notifier, alice, owner, restaurant_id) -> None:
    booking = await reservation_service.create_reservation(db, notifier, alice, _booking(restaurant_id))
    out = await reservation_service.update_reservation(
        db, notifier, alice, booking["id"], ReservationUpdate(guests=5, special_requests="Window seat")
    )
    assert out["guests"] == 5
    assert out["special_requests"] == "Window seat"
    assert out["status"] == "pending"
    assert notifier.for_user(owner.id) == ["new_reservation", "reservation_updated"]


async def test_customer_cannot_set_status(db, notifier, alice, restaurant_id) -> None:
    booking = await reservation_service.create_reservation(db, notifier, alice, _booking(restaurant_id))
    with pytest.raises(AuthorizationError):
        await reservation_service.update_reservation(db, notifier, alice, booking["id"], ReservationUpdate(status="confirmed"))


async def test_owner_cannot_change_booking_fields(db, notifier, alice, owner, restaurant_id) -> None:
    booking = await reservation_service.create_reservation(db, notifier, alice, _booking(restaurant_id))
    with pytest.raises(AuthorizationError):
        await reservation_service.update_reservation(db, notifier, owner, booking["id"], ReservationUpdate(guests=10))


async def test_cancelled_is_terminal(db, notifier, alice, owner, restaurant_id) -> None:
    booking = await reservation_service.create_reservation(db, notifier, alice, _booking(restaurant_id))
    await reservation_service.update_reservation(db, notifier, owner, booking["id"], ReservationUpdate(status="cancelled"))
    with pytest.raises(ValidationError):
        await reservation_service.update_reservation(db, notifier, owner, booking["id"], ReservationUpdate(status="confirmed"))

    # same status again is accepted and sends nothing new
    before = len(notifier.events)
    out = await reservation_service.update_reservation(db, notifier, owner, booking["id"], ReservationUpdate(status="cancelled"))
    assert out["status"] == "cancelled"
    assert len(notifier.events) == before


async def test_other_owner_cannot_confirm(db, notifier, alice, other_owner, restaurant_id) -> None:
    booking = await reservation_service.create_reservation(db, notifier, alice, _booking(restaurant_id))
    with pytest.raises(AuthorizationError):
        await reservation_service.update_reservation(db, notifier, other_owner, booking["id"], ReservationUpdate(status="confirmed"))


async def test_listing_is_scoped_to_caller(db, notifier, alice, bob, owner, other_owner, restaurant_id) -> None:
    second = await insert_restaurant(db, other_owner, name="Bistro")
    await reservation_service.create_reservation(db, notifier, alice, _booking(restaurant_id))
    await reservation_service.create_reservation(db, notifier, bob, _booking(restaurant_id))
    await reservation_service.create_reservation(db, notifier, alice, _booking(second))

    mine = await reservation_service.list_reservations(db, alice)
    assert len(mine) == 2
    assert {r["customer_id"] for r in mine} == {alice.id}

    for_owner = await reservation_service.list_reservations(db, owner)
    assert len(for_owner) == 2
    assert {r["restaurant_id"] for r in for_owner} == {restaurant_id}

    with pytest.raises(AuthorizationError):
        await reservation_service.list_reservations(db, other_owner, restaurant_id=restaurant_id)


async def test_read_reservation_permissions(db, notifier, alice, bob, owner, restaurant_id) -> None:
    booking = await reservation_service.create_reservation(db, notifier, alice, _booking(restaurant_id))
    assert (await reservation_service.get_reservation(db, owner, booking["id"]))["id"] == booking["id"]
    assert (await reservation_service.get_reservation(db, alice, booking["id"]))["customer_name"] == "Alice"
    with pytest.raises(AuthorizationError):
        await reservation_service.get_reservation(db, bob, booking["id"])


async def test_failed_insert_surfaces_as_upstream_error(db, notifier, alice, owner, restaurant_id, monkeypatch) -> None:
    async def broken_insert_one(*args, **kwargs):
        raise PyMongoError("write concern timeout")

    monkeypatch.setattr(db.reservations_collection, "insert_one", broken_insert_one)
    with pytest.raises(UpstreamError) as exc:
        await reservation_service.create_reservation(db, notifier, alice, _booking(restaurant_id))
    assert exc.value.status_code == 500
    assert notifier.events == []
