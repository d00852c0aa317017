from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Mapping, Optional, Sequence

from ..models import ReservationStatus, ReservationStream
from .errors import (
    CapacityExceeded,
    EventWindowViolation,
    InvalidAdjustment,
    InvalidGuestCount,
    MissingGuestName,
    MissingReservationCode,
    SchedulingError,
    TableConflict,
)
from .scheduling import (
    Adjustment,
    ConflictQuery,
    ReservationSnapshot,
    find_conflict,
    is_booking_active,
    is_physically_occupied,
    resolve_interval,
)


@dataclass(frozen=True)
class EventSnapshot:
    id: str
    date: date
    start_minute: int
    end_minute: Optional[int] = None
    end_date: Optional[date] = None
    capacity: Optional[int] = None


@dataclass(frozen=True)
class ReservationCandidate:
    """A reservation as submitted, with table references already canonical."""

    date: date
    start_minute: int
    party_size: Any
    table_ids: tuple[str, ...]
    guest_name: str
    stream: ReservationStream = ReservationStream.ORDINARY
    id: Optional[str] = None
    event_id: Optional[str] = None
    reservation_code: Optional[str] = None
    # explicit window for edit flows (e.g. extended past midnight)
    interval_override: Optional[Adjustment] = None


@dataclass(frozen=True)
class ValidationContext:
    same_day: Sequence[ReservationSnapshot] = ()
    previous_day: Sequence[ReservationSnapshot] = ()
    adjustments: Mapping[str, Adjustment] = field(default_factory=dict)
    previous_day_adjustments: Mapping[str, Adjustment] = field(default_factory=dict)
    event: Optional[EventSnapshot] = None
    event_reservations: Sequence[ReservationSnapshot] = ()


def _valid_party_size(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, float):
        return math.isfinite(value) and value.is_integer() and value > 0
    return isinstance(value, int) and value > 0


def _check_capacity(candidate: ReservationCandidate, context: ValidationContext) -> Optional[SchedulingError]:
    event = context.event
    if candidate.event_id is None or event is None or not event.capacity:
        return None
    used = sum(
        r.party_size
        for r in context.event_reservations
        if r.event_id == event.id and r.status != ReservationStatus.CANCELLED and r.id != candidate.id
    )
    remaining = event.capacity - used
    if candidate.party_size > remaining:
        return CapacityExceeded(remaining=max(remaining, 0), capacity=event.capacity)
    return None


def _check_tables(candidate: ReservationCandidate, context: ValidationContext) -> Optional[SchedulingError]:
    interval = resolve_interval(candidate.start_minute, int(candidate.party_size), candidate.interval_override)
    booked = [r for r in context.same_day if is_booking_active(r)]
    # Only seated ordinary parties carry over midnight; a booked guest who
    # never checked in does not block the next morning.
    seated = [
        r
        for r in context.previous_day
        if r.stream == ReservationStream.ORDINARY and is_physically_occupied(r)
    ]
    for table_id in candidate.table_ids:
        conflict = find_conflict(
            ConflictQuery(table_id=table_id, interval=interval, reservation_id=candidate.id),
            booked,
            seated,
            adjustments=context.adjustments,
            prev_day_adjustments=context.previous_day_adjustments,
        )
        if conflict is not None:
            return TableConflict(
                table_id=table_id,
                guest_name=conflict.reservation.guest_name,
                start=conflict.interval.start,
                end=conflict.interval.end,
                conflict_kind=conflict.kind.value,
                reservation_id=conflict.reservation.id,
            )
    return None


def _check_event_window(candidate: ReservationCandidate, context: ValidationContext) -> Optional[SchedulingError]:
    event = context.event
    if candidate.event_id is None or event is None or event.end_minute is None:
        return None
    if event.end_date is not None:
        if candidate.date == event.date and candidate.start_minute < event.start_minute:
            return EventWindowViolation("arrival time cannot be before the event starts", start_minute=event.start_minute)
        return None
    if candidate.start_minute >= event.end_minute:
        return EventWindowViolation("arrival time cannot be after the event ends", end_minute=event.end_minute)
    return None


def validate_reservation(candidate: ReservationCandidate, context: ValidationContext) -> Optional[SchedulingError]:
    """
    Pure validation of a new or edited reservation against everything already on the floor.

    Checks run in a fixed order and stop at the first failure:
    guest name, party size, event capacity, table conflicts, event window,
    reservation code. Returns the failing domain error, or None when the
    candidate can be written. Never raises for rule violations.
    """
    if not (candidate.guest_name or "").strip():
        return MissingGuestName()
    if not _valid_party_size(candidate.party_size):
        return InvalidGuestCount(candidate.party_size)

    capacity_error = _check_capacity(candidate, context)
    if capacity_error is not None:
        return capacity_error

    try:
        table_error = _check_tables(candidate, context)
    except InvalidAdjustment as exc:
        return exc
    if table_error is not None:
        return table_error

    window_error = _check_event_window(candidate, context)
    if window_error is not None:
        return window_error

    if candidate.stream == ReservationStream.EVENT and not (candidate.reservation_code or "").strip():
        return MissingReservationCode()
    return None
