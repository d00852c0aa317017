"""
Table/time availability engine.

All times are minutes since midnight of the reservation's own date. An
interval end above MINUTES_PER_DAY means the table stays occupied into the
following date.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import StrEnum
from typing import Iterable, Mapping, Optional

from ..models import ReservationStatus, ReservationStream
from .errors import InvalidAdjustment

MINUTES_PER_DAY = 1440


def estimate_duration(party_size: int) -> int:
    """Default minutes a party of `party_size` keeps a table."""
    if party_size <= 2:
        return 60
    if party_size <= 4:
        return 120
    return 150


@dataclass(frozen=True)
class Interval:
    start: int
    end: int

    def overlaps(self, other: "Interval") -> bool:
        # half-open: touching intervals do not overlap
        return self.start < other.end and other.start < self.end


def overlaps(a: Interval, b: Interval) -> bool:
    return a.overlaps(b)


@dataclass(frozen=True)
class Adjustment:
    start: Optional[int] = None
    end: Optional[int] = None


@dataclass(frozen=True)
class ReservationSnapshot:
    id: str
    date: date
    start_minute: int
    party_size: int
    table_ids: frozenset[str]
    status: ReservationStatus
    stream: ReservationStream
    guest_name: str = ""
    cleared: bool = False
    event_id: Optional[str] = None


def resolve_interval(
    nominal_start: int,
    party_size: int,
    adjustment: Optional[Adjustment] = None,
) -> Interval:
    start = adjustment.start if adjustment is not None and adjustment.start is not None else nominal_start
    if adjustment is not None and adjustment.end is not None:
        end = adjustment.end
    else:
        end = min(MINUTES_PER_DAY, start + estimate_duration(party_size))
    if end <= start:
        raise InvalidAdjustment(start, end)
    return Interval(start, end)


def translate_for_next_day(interval: Interval) -> Optional[Interval]:
    """Return the part of `interval` that falls on the following date, if any."""
    if interval.end <= MINUTES_PER_DAY:
        return None
    return Interval(0, min(MINUTES_PER_DAY, interval.end - MINUTES_PER_DAY))


def is_finalized(reservation: ReservationSnapshot) -> bool:
    if reservation.status in (ReservationStatus.CANCELLED, ReservationStatus.NOT_ARRIVED):
        return True
    return reservation.status == ReservationStatus.ARRIVED and reservation.cleared


def is_booking_active(reservation: ReservationSnapshot) -> bool:
    """Still holds its slot: booked, or arrived and not yet cleared."""
    return not is_finalized(reservation)


def is_physically_occupied(reservation: ReservationSnapshot) -> bool:
    """The party is seated right now."""
    return reservation.status == ReservationStatus.ARRIVED and not reservation.cleared


_TRANSITIONS: dict[ReservationStatus, frozenset[ReservationStatus]] = {
    ReservationStatus.BOOKED: frozenset(
        {ReservationStatus.ARRIVED, ReservationStatus.CANCELLED, ReservationStatus.NOT_ARRIVED}
    ),
    ReservationStatus.ARRIVED: frozenset(),
    ReservationStatus.CANCELLED: frozenset(),
    ReservationStatus.NOT_ARRIVED: frozenset(),
}


def can_transition(reservation: ReservationSnapshot, target: ReservationStatus, *, clear: bool = False) -> bool:
    """
    booked -> arrived | cancelled | not_arrived, and arrived -> arrived+cleared.
    Every other move, including anything out of a finalized state, is refused.
    """
    if clear:
        return target == ReservationStatus.ARRIVED and is_physically_occupied(reservation)
    return target in _TRANSITIONS[reservation.status]


def effective_interval(
    reservation: ReservationSnapshot,
    adjustments: Mapping[str, Adjustment] | None = None,
) -> Interval:
    adjustment = (adjustments or {}).get(reservation.id)
    return resolve_interval(reservation.start_minute, reservation.party_size, adjustment)


class ConflictKind(StrEnum):
    SAME_DAY = "same_day"
    SPILLOVER = "spillover"


@dataclass(frozen=True)
class ConflictQuery:
    table_id: str
    interval: Interval
    reservation_id: Optional[str] = None


@dataclass(frozen=True)
class Conflict:
    table_id: str
    reservation: ReservationSnapshot
    interval: Interval
    kind: ConflictKind


def find_conflict(
    query: ConflictQuery,
    same_day_active: Iterable[ReservationSnapshot],
    prev_day_spillover: Iterable[ReservationSnapshot] = (),
    *,
    adjustments: Mapping[str, Adjustment] | None = None,
    prev_day_adjustments: Mapping[str, Adjustment] | None = None,
) -> Optional[Conflict]:
    """
    First reservation occupying `query.table_id` during `query.interval`, or None.

    Previous-day reservations are checked first and only through the part of
    their interval that spills past midnight. Same-day reservations skip the
    query's own id and anything finalized. Callers choose which statuses count
    as active for each list; only finalized same-day rows are dropped here.
    """
    for other in prev_day_spillover:
        if other.id == query.reservation_id or query.table_id not in other.table_ids:
            continue
        spill = translate_for_next_day(effective_interval(other, prev_day_adjustments))
        if spill is not None and spill.overlaps(query.interval):
            return Conflict(query.table_id, other, spill, ConflictKind.SPILLOVER)

    for other in same_day_active:
        if other.id == query.reservation_id or query.table_id not in other.table_ids:
            continue
        if is_finalized(other):
            continue
        interval = effective_interval(other, adjustments)
        if interval.overlaps(query.interval):
            return Conflict(query.table_id, other, interval, ConflictKind.SAME_DAY)
    return None
