"""Tests for the live rides list."""

from unittest.mock import AsyncMock, patch

import pytest
from conftest import ride_doc

from goride.core.collaborators import SERVER_TIMESTAMP, Direction
from goride.core.exceptions import (
    StoreException,
    UnauthorizedException,
    ValidationException,
)
from goride.services.ride_sync import RideListSynchronizer


def ride_ids(sync: RideListSynchronizer) -> list[str]:
    return [ride.id for ride in sync.state.rides]


def test_start_subscribes_to_user_rides_newest_first(recording_store):
    """Test the subscription targets users/{uid}/rides ordered by createdAt descending."""
    sync = RideListSynchronizer(recording_store)
    sync.start("u1")

    assert recording_store.latest["path"] == "users/u1/rides"
    assert recording_store.latest["order_by"] == "createdAt"
    assert recording_store.latest["direction"] == Direction.DESCENDING
    assert sync.state.is_loading is True
    assert sync.state.uid == "u1"


def test_start_rejects_blank_uid(recording_store):
    """Test a blank uid is rejected without subscribing."""
    sync = RideListSynchronizer(recording_store)

    with pytest.raises(ValidationException):
        sync.start("  ")

    assert recording_store.subscriptions == []


def test_each_snapshot_replaces_the_whole_list(recording_store):
    """Test the list after snapshot Sn is exactly Sn, with nothing left from Sn-1."""
    sync = RideListSynchronizer(recording_store)
    sync.start("u1")

    recording_store.emit([ride_doc("b", "Mall", "Park", 2), ride_doc("a", "Home", "Office", 1)])
    assert ride_ids(sync) == ["b", "a"]
    assert sync.state.is_loading is False

    recording_store.emit([ride_doc("c", "Gym", "Home", 3)])
    assert ride_ids(sync) == ["c"]

    recording_store.emit([])
    assert ride_ids(sync) == []


def test_snapshot_order_is_kept_as_delivered(recording_store):
    """Test no client-side re-sorting happens."""
    sync = RideListSynchronizer(recording_store)
    sync.start("u1")

    # Deliberately out of createdAt order
    recording_store.emit([ride_doc("old", "A", "B", 1), ride_doc("new", "C", "D", 9)])

    assert ride_ids(sync) == ["old", "new"]


def test_snapshot_decoding_is_lenient(recording_store):
    """Test malformed fields decode to empty values."""
    sync = RideListSynchronizer(recording_store)
    sync.start("u1")

    doc = ride_doc("x", "A", "B")
    doc.data.update({"drop": 42, "createdAt": "yesterday"})
    recording_store.emit([doc])

    ride = sync.state.rides[0]
    assert ride.pickup == "A"
    assert ride.drop == ""
    assert ride.created_at is None


@pytest.mark.parametrize(
    ("pickup", "drop"),
    [("", "X"), ("X", ""), ("  ", "  ")],
)
async def test_create_rejects_blank_fields_without_remote_calls(recording_store, pickup, drop):
    """Test blank pickup or drop is rejected with no remote call."""
    sync = RideListSynchronizer(recording_store)
    sync.start("u1")

    with pytest.raises(ValidationException) as exc_info:
        await sync.create(pickup, drop)

    assert exc_info.value.message == "Please enter pickup and drop"
    assert recording_store.writes == []


async def test_create_trims_and_sends_server_timestamp(recording_store):
    """Test create trims input and asks for a server timestamp."""
    sync = RideListSynchronizer(recording_store)
    sync.start("u1")

    ride_id = await sync.create("  Home ", " Office  ")

    assert ride_id == "ride1"
    op, path, fields = recording_store.writes[0]
    assert op == "add"
    assert path == "users/u1/rides"
    assert fields == {"pickup": "Home", "drop": "Office", "createdAt": SERVER_TIMESTAMP}


async def test_create_does_not_touch_local_list(recording_store):
    """Test a booked ride only shows up through the next snapshot."""
    sync = RideListSynchronizer(recording_store)
    sync.start("u1")
    recording_store.emit([ride_doc("a", "Home", "Office", 1)])

    await sync.create("Mall", "Park")
    assert ride_ids(sync) == ["a"]

    recording_store.emit([ride_doc("b", "Mall", "Park", 2), ride_doc("a", "Home", "Office", 1)])
    assert ride_ids(sync) == ["b", "a"]
    assert sync.state.rides[0].pickup == "Mall"


async def test_created_ride_lands_at_the_head(memory_store):
    """Test a new ride arrives first in the next snapshot."""
    sync = RideListSynchronizer(memory_store)
    sync.start("u1")

    await sync.create("X", "Y")
    await sync.create("A", "B")

    assert [(r.pickup, r.drop) for r in sync.state.rides] == [("A", "B"), ("X", "Y")]


async def test_create_requires_active_subscription(recording_store):
    """Test create fails when no user's list was started."""
    sync = RideListSynchronizer(recording_store)

    with pytest.raises(UnauthorizedException):
        await sync.create("Home", "Office")

    assert recording_store.writes == []


async def test_create_failure_is_reported_and_keeps_state(memory_store):
    """Test a rejected write raises and leaves the list unchanged."""
    sync = RideListSynchronizer(memory_store)
    sync.start("u1")
    await sync.create("Home", "Office")
    before = sync.state

    with patch.object(
        memory_store, "add", AsyncMock(side_effect=StoreException("PERMISSION_DENIED"))
    ):
        with pytest.raises(StoreException) as exc_info:
            await sync.create("Mall", "Park")

    assert exc_info.value.message == "PERMISSION_DENIED"
    assert sync.state == before
    assert sync.is_active


async def test_create_failure_without_message_uses_default(memory_store):
    """Test a rejected write without a message uses the default."""
    sync = RideListSynchronizer(memory_store)
    sync.start("u1")

    with patch.object(memory_store, "add", AsyncMock(side_effect=StoreException(""))):
        with pytest.raises(StoreException) as exc_info:
            await sync.create("Mall", "Park")

    assert exc_info.value.message == "Booking failed"


async def test_delete_removes_exactly_that_ride(memory_store):
    """Test delete removes only the requested ride."""
    sync = RideListSynchronizer(memory_store)
    sync.start("u1")
    first = await sync.create("Home", "Office")
    second = await sync.create("Mall", "Park")
    third = await sync.create("Gym", "Home")

    await sync.delete(second)

    assert ride_ids(sync) == [third, first]


async def test_delete_sends_request_without_local_removal(recording_store):
    """Test delete only sends the request."""
    sync = RideListSynchronizer(recording_store)
    sync.start("u1")
    recording_store.emit([ride_doc("a", "Home", "Office", 1)])

    await sync.delete("a")

    assert recording_store.writes == [("delete", "users/u1/rides/a")]
    assert ride_ids(sync) == ["a"]


async def test_delete_of_unknown_ride_is_harmless(memory_store):
    """Test deleting an unknown ride is not an error."""
    sync = RideListSynchronizer(memory_store)
    sync.start("u1")
    ride_id = await sync.create("Home", "Office")

    await sync.delete("does-not-exist")

    assert ride_ids(sync) == [ride_id]
    assert sync.state.error is None


async def test_delete_failure_is_reported(memory_store):
    """Test a rejected delete uses the default message."""
    sync = RideListSynchronizer(memory_store)
    sync.start("u1")
    ride_id = await sync.create("Home", "Office")

    with patch.object(memory_store, "delete", AsyncMock(side_effect=StoreException(""))):
        with pytest.raises(StoreException) as exc_info:
            await sync.delete(ride_id)

    assert exc_info.value.message == "Delete failed"
    assert ride_ids(sync) == [ride_id]


async def test_delete_rejects_blank_id(recording_store):
    """Test a blank ride id is rejected without writes."""
    sync = RideListSynchronizer(recording_store)
    sync.start("u1")

    with pytest.raises(ValidationException):
        await sync.delete(" ")

    assert recording_store.writes == []


def test_subscription_error_is_sticky_and_keeps_rides(recording_store):
    """Test a subscription error stays until the next snapshot."""
    sync = RideListSynchronizer(recording_store)
    sync.start("u1")
    recording_store.emit([ride_doc("a", "Home", "Office", 1)])

    recording_store.emit_error("Missing or insufficient permissions.")
    assert sync.state.error == "Missing or insufficient permissions."
    assert ride_ids(sync) == ["a"]

    recording_store.emit_error("")
    assert sync.state.error == "Failed to load rides"

    recording_store.emit([ride_doc("a", "Home", "Office", 1), ride_doc("z", "Z", "Z", 0)])
    assert sync.state.error is None
    assert ride_ids(sync) == ["a", "z"]


def test_error_before_first_snapshot_ends_loading(recording_store):
    """Test an error before any snapshot ends loading."""
    sync = RideListSynchronizer(recording_store)
    sync.start("u1")

    recording_store.emit_error("offline")

    assert sync.state.is_loading is False
    assert sync.state.rides == ()


def test_late_callbacks_after_stop_are_ignored(recording_store):
    """Test callbacks after stop() do not change state."""
    sync = RideListSynchronizer(recording_store)
    sync.start("u1")
    recording_store.emit([ride_doc("a", "Home", "Office", 1)])
    before = sync.state

    sync.stop()
    recording_store.emit([ride_doc("b", "Mall", "Park", 2)])
    recording_store.emit_error("stream closed")

    assert sync.state == before
    assert recording_store.latest["handle"].unsubscribe_calls == 1


def test_stop_is_idempotent(recording_store):
    """Test stop() can be called repeatedly."""
    sync = RideListSynchronizer(recording_store)
    sync.stop()

    sync.start("u1")
    sync.stop()
    sync.stop()

    assert recording_store.latest["handle"].unsubscribe_calls == 1
    assert sync.is_active is False


def test_start_for_another_user_replaces_subscription(recording_store):
    """Test starting for another user drops the previous stream."""
    sync = RideListSynchronizer(recording_store)
    sync.start("u1")
    recording_store.emit([ride_doc("a", "Home", "Office", 1)])

    sync.start("u2")

    assert recording_store.subscriptions[0]["handle"].unsubscribe_calls == 1
    assert recording_store.latest["path"] == "users/u2/rides"
    assert sync.state.rides == ()

    # The first user's stream is no longer listened to
    recording_store.emit([ride_doc("x", "X", "Y", 5)], index=0)
    assert sync.state.rides == ()


def test_start_for_same_user_keeps_subscription(recording_store):
    """Test starting twice for the same user subscribes once."""
    sync = RideListSynchronizer(recording_store)
    sync.start("u1")
    sync.start("u1")

    assert len(recording_store.subscriptions) == 1


def test_subscribe_failure_surfaces_error_state(recording_store):
    """Test a failed subscription open becomes error state."""
    sync = RideListSynchronizer(recording_store)

    with patch.object(
        recording_store, "subscribe", side_effect=StoreException("UNAVAILABLE")
    ):
        sync.start("u1")

    assert sync.state.error == "UNAVAILABLE"
    assert sync.state.is_loading is False
    assert sync.is_active is False


async def test_writes_still_reach_store_after_failed_open(memory_store):
    """Test a failed subscription open does not turn bookings into auth errors."""
    sync = RideListSynchronizer(memory_store)
    with patch.object(memory_store, "subscribe", side_effect=StoreException("UNAVAILABLE")):
        sync.start("u1")

    ride_id = await sync.create("Home", "Office")
    await sync.delete("missing")

    assert sync.uid == "u1"
    doc = await memory_store.get(f"users/u1/rides/{ride_id}")
    assert doc.data["pickup"] == "Home"


async def test_start_again_after_failed_open_resubscribes(memory_store):
    """Test calling start() again after a failed open picks up the live list."""
    sync = RideListSynchronizer(memory_store)
    with patch.object(memory_store, "subscribe", side_effect=StoreException("UNAVAILABLE")):
        sync.start("u1")
    ride_id = await sync.create("Home", "Office")

    sync.start("u1")

    assert sync.is_active
    assert ride_ids(sync) == [ride_id]
    assert sync.state.error is None


def test_retry_keeps_error_until_first_snapshot(recording_store):
    """Test the open failure stays visible while the retried subscription loads."""
    sync = RideListSynchronizer(recording_store)
    with patch.object(recording_store, "subscribe", side_effect=StoreException("UNAVAILABLE")):
        sync.start("u1")

    sync.start("u1")
    assert sync.state.error == "UNAVAILABLE"
    assert sync.state.is_loading is True

    recording_store.emit([ride_doc("a", "Home", "Office", 1)])
    assert sync.state.error is None
    assert ride_ids(sync) == ["a"]


async def test_stop_after_failed_open_forgets_user(recording_store):
    """Test stop() after a failed open leaves no user to write for."""
    sync = RideListSynchronizer(recording_store)
    with patch.object(recording_store, "subscribe", side_effect=StoreException("UNAVAILABLE")):
        sync.start("u1")

    sync.stop()

    with pytest.raises(UnauthorizedException):
        await sync.create("Home", "Office")
    assert recording_store.writes == []


def test_listeners_see_each_state_and_can_be_removed(recording_store):
    """Test listeners get every state until removed."""
    sync = RideListSynchronizer(recording_store)
    seen = []
    remove = sync.add_listener(seen.append)

    sync.start("u1")
    recording_store.emit([ride_doc("a", "Home", "Office", 1)])
    remove()
    recording_store.emit([])

    assert [state.is_loading for state in seen] == [True, False]
    assert seen[-1].rides[0].id == "a"


def test_failing_listener_does_not_block_updates(recording_store):
    """Test a raising listener does not stop updates."""
    sync = RideListSynchronizer(recording_store)

    def broken(_state):
        raise RuntimeError("boom")

    sync.add_listener(broken)
    sync.start("u1")
    recording_store.emit([ride_doc("a", "Home", "Office", 1)])

    assert ride_ids(sync) == ["a"]


async def test_end_to_end_booking_on_empty_collection(memory_store):
    """Test start on an empty collection, then a booking arriving by snapshot."""
    sync = RideListSynchronizer(memory_store)
    sync.start("u1")

    assert sync.state.rides == ()
    assert sync.state.is_loading is False

    snapshots = []
    sync.add_listener(snapshots.append)

    await sync.create("Home", "Office")

    assert len(snapshots) == 1
    (ride,) = snapshots[0].rides
    assert ride.pickup == "Home"
    assert ride.drop == "Office"
    assert ride.created_at is not None
    assert ride.id
