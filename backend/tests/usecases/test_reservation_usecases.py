import logging
from datetime import date

import pytest
from seating.domain.errors import (
    CapacityExceeded,
    EventNotFoundError,
    InvalidStatusTransition,
    MissingReservationCode,
    ReservationFinalized,
    ReservationNotFoundError,
    TableConflict,
    UnknownTable,
)
from seating.domain.scheduling import Adjustment, ConflictKind, Interval
from seating.models import ReservationStatus, ReservationStream
from seating.usecases import reservations as uc

DAY = date(2025, 6, 1)
NEXT = date(2025, 6, 2)


async def _create(repos, **kwargs):
    fields = {
        "guest_name": "Ana",
        "day": DAY,
        "time": "19:00",
        "party_size": 2,
        "tables": ["1"],
    }
    fields.update(kwargs)
    return await uc.create_reservation(
        repos.reservations, repos.adjustments, repos.events, repos.layout, **fields
    )


@pytest.mark.asyncio
async def test_create_resolves_tables_and_books(repos) -> None:
    reservation = await _create(repos, tables=["Window", " ", "2", "1"])
    assert reservation.table_ids == ["t1", "t2"]
    assert reservation.status == ReservationStatus.BOOKED
    assert reservation.stream == ReservationStream.ORDINARY
    assert reservation.id in repos.reservations.rows
    assert repos.adjustments.rows == {}


@pytest.mark.asyncio
async def test_create_rejects_unknown_table(repos) -> None:
    with pytest.raises(UnknownTable):
        await _create(repos, tables=["99"])
    assert repos.reservations.rows == {}


@pytest.mark.asyncio
async def test_create_raises_table_conflict_without_writing(repos, make_reservation) -> None:
    make_reservation("a", day=DAY, time="19:00", party_size=3)
    with pytest.raises(TableConflict) as excinfo:
        await _create(repos, time="20:00")
    assert excinfo.value.guest_name == "guest-a"
    assert set(repos.reservations.rows) == {"a"}


@pytest.mark.asyncio
async def test_create_allows_touching_slot(repos, make_reservation) -> None:
    make_reservation("a", day=DAY, time="19:00", party_size=2)
    reservation = await _create(repos, time="20:00")
    assert reservation.time == "20:00"


@pytest.mark.asyncio
async def test_create_persists_spillover_overlay(repos) -> None:
    reservation = await _create(repos, time="23:30", party_size=6, extend_until=1500)
    assert repos.adjustments.rows[(DAY, reservation.id)] == Adjustment(start=1410, end=1500)


@pytest.mark.asyncio
async def test_overlay_write_failure_is_logged_not_raised(repos, caplog) -> None:
    repos.adjustments.fail_writes = True
    with caplog.at_level(logging.WARNING, logger="seating.usecases.reservations"):
        reservation = await _create(repos, time="23:30", party_size=6, extend_until=1500)
    assert reservation.id in repos.reservations.rows
    assert "failed to persist adjustment" in caplog.text


@pytest.mark.asyncio
async def test_seated_spillover_blocks_next_morning(repos, make_reservation) -> None:
    make_reservation("late", day=DAY, time="23:30", party_size=6, status=ReservationStatus.ARRIVED)
    repos.adjustments.rows[(DAY, "late")] = Adjustment(end=1500)

    with pytest.raises(TableConflict) as excinfo:
        await _create(repos, day=NEXT, time="00:30")
    assert excinfo.value.conflict_kind == ConflictKind.SPILLOVER.value

    reservation = await _create(repos, day=NEXT, time="01:00")
    assert reservation.date == NEXT


@pytest.mark.asyncio
async def test_booked_spillover_does_not_block_next_morning(repos, make_reservation) -> None:
    make_reservation("late", day=DAY, time="23:30", party_size=6)
    repos.adjustments.rows[(DAY, "late")] = Adjustment(end=1500)
    reservation = await _create(repos, day=NEXT, time="00:30")
    assert reservation.date == NEXT


@pytest.mark.asyncio
async def test_event_reservation_generates_code(repos, make_event) -> None:
    make_event("ev1", day=DAY, end_time="23:00")
    reservation = await _create(repos, stream=ReservationStream.EVENT, event_id="ev1", generate_code=True)
    assert reservation.reservation_code.startswith("EVT-2025-")
    assert reservation.event_id == "ev1"


@pytest.mark.asyncio
async def test_event_reservation_without_code_is_rejected(repos, make_event) -> None:
    make_event("ev1", day=DAY)
    with pytest.raises(MissingReservationCode):
        await _create(repos, stream=ReservationStream.EVENT, event_id="ev1")


@pytest.mark.asyncio
async def test_event_reservation_for_missing_event(repos) -> None:
    with pytest.raises(EventNotFoundError):
        await _create(repos, stream=ReservationStream.EVENT, event_id="nope", reservation_code="EVT-2025-AAAAAA")


@pytest.mark.asyncio
async def test_event_capacity_is_enforced(repos, make_event, make_reservation) -> None:
    make_event("ev1", day=DAY, capacity_total=50)
    make_reservation(
        "e1", day=DAY, time="18:00", party_size=48, table_ids=["t9"], stream=ReservationStream.EVENT, event_id="ev1"
    )
    with pytest.raises(CapacityExceeded) as excinfo:
        await _create(
            repos, stream=ReservationStream.EVENT, event_id="ev1", party_size=3, reservation_code="EVT-2025-AAAAAA"
        )
    assert excinfo.value.remaining == 2

    reservation = await _create(
        repos, stream=ReservationStream.EVENT, event_id="ev1", party_size=2, reservation_code="EVT-2025-AAAAAA"
    )
    assert reservation.party_size == 2


@pytest.mark.asyncio
async def test_update_ignores_own_slot(repos, make_reservation) -> None:
    make_reservation("a", day=DAY, time="19:00", party_size=3)
    updated = await uc.update_reservation(
        repos.reservations,
        repos.adjustments,
        repos.events,
        repos.layout,
        reservation_id="a",
        guest_name="  Ana  ",
        time="19:30",
        party_size=4,
        tables=["1"],
    )
    assert updated.time == "19:30"
    assert updated.party_size == 4
    assert updated.guest_name == "Ana"
    assert repos.reservations.saved == ["a"]


@pytest.mark.asyncio
async def test_update_rejects_conflict_with_others(repos, make_reservation) -> None:
    make_reservation("a", day=DAY, time="19:00")
    make_reservation("b", day=DAY, time="21:00")
    with pytest.raises(TableConflict):
        await uc.update_reservation(
            repos.reservations,
            repos.adjustments,
            repos.events,
            repos.layout,
            reservation_id="a",
            guest_name="Ana",
            time="20:30",
            party_size=2,
            tables=["1"],
        )
    assert repos.reservations.saved == []


@pytest.mark.asyncio
async def test_update_refuses_finalized(repos, make_reservation) -> None:
    make_reservation("a", day=DAY, time="19:00", status=ReservationStatus.CANCELLED)
    with pytest.raises(ReservationFinalized):
        await uc.update_reservation(
            repos.reservations,
            repos.adjustments,
            repos.events,
            repos.layout,
            reservation_id="a",
            guest_name="Ana",
            time="19:00",
            party_size=2,
            tables=["1"],
        )


@pytest.mark.asyncio
async def test_update_missing_reservation(repos) -> None:
    with pytest.raises(ReservationNotFoundError):
        await uc.update_reservation(
            repos.reservations,
            repos.adjustments,
            repos.events,
            repos.layout,
            reservation_id="ghost",
            guest_name="Ana",
            time="19:00",
            party_size=2,
            tables=["1"],
        )


@pytest.mark.asyncio
async def test_update_without_extension_resets_spillover(repos, make_reservation) -> None:
    make_reservation("a", day=DAY, time="23:00", party_size=3)
    repos.adjustments.rows[(DAY, "a")] = Adjustment(start=1380, end=1500)
    await uc.update_reservation(
        repos.reservations,
        repos.adjustments,
        repos.events,
        repos.layout,
        reservation_id="a",
        guest_name="Ana",
        time="23:00",
        party_size=3,
        tables=["1"],
    )
    assert repos.adjustments.rows[(DAY, "a")] == Adjustment(start=1380, end=1440)


@pytest.mark.asyncio
async def test_update_with_extension_writes_overlay(repos, make_reservation) -> None:
    make_reservation("a", day=DAY, time="22:00", party_size=2)
    await uc.update_reservation(
        repos.reservations,
        repos.adjustments,
        repos.events,
        repos.layout,
        reservation_id="a",
        guest_name="Ana",
        time="22:00",
        party_size=2,
        tables=["1"],
        extend_until=1530,
    )
    assert repos.adjustments.rows[(DAY, "a")] == Adjustment(start=1320, end=1530)


@pytest.mark.asyncio
async def test_update_moving_time_resets_stored_window(repos, make_reservation) -> None:
    make_reservation("a", day=DAY, time="19:00", party_size=2)
    repos.adjustments.rows[(DAY, "a")] = Adjustment(start=1140, end=1320)
    make_reservation("b", day=DAY, time="20:00", party_size=2, table_ids=["t2"])

    await uc.update_reservation(
        repos.reservations,
        repos.adjustments,
        repos.events,
        repos.layout,
        reservation_id="a",
        guest_name="Ana",
        time="12:00",
        party_size=2,
        tables=["2"],
    )

    stored = repos.adjustments.rows[(DAY, "a")]
    assert stored == Adjustment(start=720, end=780)
    assert not Interval(stored.start, stored.end).overlaps(Interval(1200, 1260))


@pytest.mark.asyncio
async def test_update_checks_kept_window_on_new_tables(repos, make_reservation) -> None:
    make_reservation("a", day=DAY, time="19:00", party_size=2)
    repos.adjustments.rows[(DAY, "a")] = Adjustment(start=1140, end=1320)
    make_reservation("b", day=DAY, time="20:00", party_size=2, table_ids=["t2"])

    with pytest.raises(TableConflict) as excinfo:
        await uc.update_reservation(
            repos.reservations,
            repos.adjustments,
            repos.events,
            repos.layout,
            reservation_id="a",
            guest_name="Ana",
            time="19:00",
            party_size=2,
            tables=["2"],
        )
    assert excinfo.value.reservation_id == "b"
    assert repos.reservations.saved == []
    assert repos.adjustments.rows[(DAY, "a")] == Adjustment(start=1140, end=1320)


@pytest.mark.asyncio
async def test_update_keeps_window_when_visit_unchanged(repos, make_reservation) -> None:
    make_reservation("a", day=DAY, time="19:00", party_size=2)
    repos.adjustments.rows[(DAY, "a")] = Adjustment(start=1140, end=1320)

    await uc.update_reservation(
        repos.reservations,
        repos.adjustments,
        repos.events,
        repos.layout,
        reservation_id="a",
        guest_name="Ana B.",
        time="19:00",
        party_size=2,
        tables=["1"],
    )
    assert repos.adjustments.rows[(DAY, "a")] == Adjustment(start=1140, end=1320)


@pytest.mark.asyncio
async def test_update_replacing_stored_window_must_persist(repos, make_reservation) -> None:
    make_reservation("a", day=DAY, time="19:00", party_size=2)
    repos.adjustments.rows[(DAY, "a")] = Adjustment(start=1140, end=1320)
    repos.adjustments.fail_writes = True

    with pytest.raises(ConnectionError):
        await uc.update_reservation(
            repos.reservations,
            repos.adjustments,
            repos.events,
            repos.layout,
            reservation_id="a",
            guest_name="Ana",
            time="12:00",
            party_size=2,
            tables=["1"],
        )


@pytest.mark.asyncio
async def test_status_moves_forward_only(repos, make_reservation) -> None:
    make_reservation("a", day=DAY, time="19:00")

    reservation, status_from = await uc.change_status(
        repos.reservations, reservation_id="a", action=uc.StatusAction.ARRIVE
    )
    assert status_from == ReservationStatus.BOOKED
    assert reservation.status == ReservationStatus.ARRIVED

    with pytest.raises(InvalidStatusTransition):
        await uc.change_status(repos.reservations, reservation_id="a", action=uc.StatusAction.CANCEL)

    reservation, status_from = await uc.change_status(
        repos.reservations, reservation_id="a", action=uc.StatusAction.CLEAR
    )
    assert status_from == ReservationStatus.ARRIVED
    assert reservation.cleared is True

    with pytest.raises(InvalidStatusTransition):
        await uc.change_status(repos.reservations, reservation_id="a", action=uc.StatusAction.CLEAR)


@pytest.mark.asyncio
async def test_clear_requires_arrival(repos, make_reservation) -> None:
    make_reservation("a", day=DAY, time="19:00")
    with pytest.raises(InvalidStatusTransition):
        await uc.change_status(repos.reservations, reservation_id="a", action=uc.StatusAction.CLEAR)


@pytest.mark.asyncio
async def test_status_change_on_missing_reservation(repos) -> None:
    with pytest.raises(ReservationNotFoundError):
        await uc.change_status(repos.reservations, reservation_id="ghost", action=uc.StatusAction.CANCEL)


@pytest.mark.asyncio
async def test_table_occupancy_lists_spillover_and_same_day(repos, make_reservation) -> None:
    make_reservation("late", day=DAY, time="23:30", party_size=6, status=ReservationStatus.ARRIVED)
    repos.adjustments.rows[(DAY, "late")] = Adjustment(end=1500)
    make_reservation("dinner", day=NEXT, time="19:00", party_size=3)
    make_reservation("lunch", day=NEXT, time="12:00", party_size=2)
    make_reservation("gone", day=NEXT, time="13:00", status=ReservationStatus.CANCELLED)
    make_reservation("other-table", day=NEXT, time="14:00", table_ids=["t2"])

    items = await uc.table_occupancy(repos.reservations, repos.adjustments, day=NEXT, table_id="t1")

    assert [item.reservation_id for item in items] == ["late", "lunch", "dinner"]
    assert items[0].kind == ConflictKind.SPILLOVER
    assert items[0].interval == Interval(0, 60)
    assert items[2].interval == Interval(1140, 1260)
