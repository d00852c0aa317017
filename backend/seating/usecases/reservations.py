from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import StrEnum
from typing import Optional, Sequence

from ..domain.errors import (
    EventNotFoundError,
    InvalidStatusTransition,
    ReservationFinalized,
    ReservationNotFoundError,
    UnknownTable,
)
from ..domain.repositories import AdjustmentRepository, EventRepository, LayoutResolver, ReservationRepository
from ..domain.scheduling import (
    MINUTES_PER_DAY,
    Adjustment,
    ConflictKind,
    Interval,
    can_transition,
    effective_interval,
    estimate_duration,
    is_booking_active,
    is_finalized,
    is_physically_occupied,
    translate_for_next_day,
)
from ..domain.services import ReservationCandidate, validate_reservation
from ..models import Event, Reservation, ReservationStatus, ReservationStream
from ..utils.codes import generate_reservation_code
from ..utils.time import time_to_minutes
from .context import load_context, to_snapshot

logger = logging.getLogger(__name__)


class StatusAction(StrEnum):
    ARRIVE = "arrive"
    CLEAR = "clear"
    CANCEL = "cancel"
    NOT_ARRIVED = "not_arrived"


_ACTION_TARGETS = {
    StatusAction.ARRIVE: ReservationStatus.ARRIVED,
    StatusAction.CLEAR: ReservationStatus.ARRIVED,
    StatusAction.CANCEL: ReservationStatus.CANCELLED,
    StatusAction.NOT_ARRIVED: ReservationStatus.NOT_ARRIVED,
}


@dataclass(frozen=True)
class Occupancy:
    reservation_id: str
    guest_name: str
    interval: Interval
    kind: ConflictKind


async def resolve_tables(layout: LayoutResolver, references: Sequence[str]) -> tuple[str, ...]:
    """Turn user-entered table names/numbers into canonical table ids, keeping order and dropping blanks."""
    resolved: list[str] = []
    for reference in references:
        cleaned = reference.strip()
        if not cleaned:
            continue
        table_id = await layout.resolve_table(cleaned)
        if table_id is None:
            raise UnknownTable(cleaned)
        if table_id not in resolved:
            resolved.append(table_id)
    return tuple(resolved)


async def _get_event(event_repo: EventRepository, event_id: Optional[str]) -> Optional[Event]:
    if event_id is None:
        return None
    event = await event_repo.get(event_id)
    if event is None:
        raise EventNotFoundError("event not found")
    return event


async def _save_adjustment(
    adj_repo: AdjustmentRepository,
    day: date,
    reservation_id: str,
    adjustment: Adjustment,
) -> None:
    # a failed overlay write leaves the reservation on its estimated window
    try:
        await adj_repo.upsert(day, reservation_id, start=adjustment.start, end=adjustment.end)
    except Exception:
        logger.warning(
            "failed to persist adjustment for reservation %s on %s", reservation_id, day, exc_info=True
        )


async def create_reservation(
    res_repo: ReservationRepository,
    adj_repo: AdjustmentRepository,
    event_repo: EventRepository,
    layout: LayoutResolver,
    *,
    guest_name: str,
    day: date,
    time: str,
    party_size: int,
    tables: Sequence[str],
    stream: ReservationStream = ReservationStream.ORDINARY,
    zone_id: Optional[str] = None,
    event_id: Optional[str] = None,
    reservation_code: Optional[str] = None,
    generate_code: bool = False,
    extend_until: Optional[int] = None,
) -> Reservation:
    table_ids = await resolve_tables(layout, tables)
    event = await _get_event(event_repo, event_id)
    if stream == ReservationStream.EVENT and not (reservation_code or "").strip() and generate_code:
        reservation_code = generate_reservation_code(event.date if event is not None else day)

    start_minute = time_to_minutes(time)
    override = Adjustment(start=start_minute, end=extend_until) if extend_until is not None else None
    candidate = ReservationCandidate(
        date=day,
        start_minute=start_minute,
        party_size=party_size,
        table_ids=table_ids,
        guest_name=guest_name,
        stream=stream,
        event_id=event_id,
        reservation_code=reservation_code,
        interval_override=override,
    )
    context = await load_context(res_repo, adj_repo, day=day, event=event)
    error = validate_reservation(candidate, context)
    if error is not None:
        raise error

    reservation = await res_repo.create(
        stream=stream,
        guest_name=guest_name.strip(),
        day=day,
        time=time,
        party_size=party_size,
        table_ids=list(table_ids),
        zone_id=zone_id,
        event_id=event_id,
        reservation_code=reservation_code.strip() if reservation_code else None,
    )
    if override is not None:
        await _save_adjustment(adj_repo, day, reservation.id, override)
    return reservation


async def update_reservation(
    res_repo: ReservationRepository,
    adj_repo: AdjustmentRepository,
    event_repo: EventRepository,
    layout: LayoutResolver,
    *,
    reservation_id: str,
    guest_name: str,
    time: str,
    party_size: int,
    tables: Sequence[str],
    day: Optional[date] = None,
    zone_id: Optional[str] = None,
    reservation_code: Optional[str] = None,
    extend_until: Optional[int] = None,
) -> Reservation:
    """
    Edit an existing reservation in place.

    The reservation is validated against everyone else on the floor, never
    against itself, using the window it will occupy after the write. Without
    `extend_until`, a stored overlay is kept as long as it still describes the
    same visit (same date, time and party size, ending by midnight);
    otherwise it is reset to the estimated default window.
    """
    reservation = await res_repo.get_for_update(reservation_id)
    if reservation is None:
        raise ReservationNotFoundError("reservation not found")
    if is_finalized(to_snapshot(reservation)):
        raise ReservationFinalized(reservation.status.value)

    table_ids = await resolve_tables(layout, tables)
    event = await _get_event(event_repo, reservation.event_id)
    target_day = day or reservation.date
    code = (reservation_code or "").strip() or reservation.reservation_code

    start_minute = time_to_minutes(time)
    context = await load_context(res_repo, adj_repo, day=target_day, event=event)
    stored = context.adjustments.get(reservation.id)
    stale = stored is not None and (
        (stored.end is not None and stored.end > MINUTES_PER_DAY)
        or target_day != reservation.date
        or start_minute != time_to_minutes(reservation.time)
        or party_size != reservation.party_size
    )
    if extend_until is not None:
        override: Optional[Adjustment] = Adjustment(start=start_minute, end=extend_until)
    elif stored is not None and not stale:
        override = stored
    else:
        override = None

    candidate = ReservationCandidate(
        id=reservation.id,
        date=target_day,
        start_minute=start_minute,
        party_size=party_size,
        table_ids=table_ids,
        guest_name=guest_name,
        stream=reservation.stream,
        event_id=reservation.event_id,
        reservation_code=code,
        interval_override=override,
    )
    error = validate_reservation(candidate, context)
    if error is not None:
        raise error

    reservation.guest_name = guest_name.strip()
    reservation.date = target_day
    reservation.time = time
    reservation.party_size = party_size
    reservation.table_ids = list(table_ids)
    reservation.zone_id = zone_id if zone_id is not None else reservation.zone_id
    reservation.reservation_code = code
    reservation.updated_at = datetime.now(timezone.utc).replace(tzinfo=None)
    updated = await res_repo.save(reservation)

    if extend_until is not None and stored is None:
        await _save_adjustment(adj_repo, target_day, updated.id, Adjustment(start=start_minute, end=extend_until))
    elif extend_until is not None or stale:
        # a stored overlay that is not replaced would override the validated window
        window = override or Adjustment(
            start=start_minute, end=min(MINUTES_PER_DAY, start_minute + estimate_duration(party_size))
        )
        await adj_repo.upsert(target_day, updated.id, start=window.start, end=window.end)
    return updated


async def change_status(
    res_repo: ReservationRepository,
    *,
    reservation_id: str,
    action: StatusAction,
) -> tuple[Reservation, ReservationStatus]:
    """Apply a one-way status move. Returns the reservation and its status before the change."""
    reservation = await res_repo.get_for_update(reservation_id)
    if reservation is None:
        raise ReservationNotFoundError("reservation not found")

    target = _ACTION_TARGETS[action]
    clear = action == StatusAction.CLEAR
    status_from = reservation.status
    if not can_transition(to_snapshot(reservation), target, clear=clear):
        label = "arrived+cleared" if clear else target.value
        raise InvalidStatusTransition(status_from.value, label)

    reservation.status = target
    if clear:
        reservation.cleared = True
    reservation.updated_at = datetime.now(timezone.utc).replace(tzinfo=None)
    return await res_repo.save(reservation), status_from


async def table_occupancy(
    res_repo: ReservationRepository,
    adj_repo: AdjustmentRepository,
    *,
    day: date,
    table_id: str,
) -> list[Occupancy]:
    """Windows during which `table_id` is taken on `day`, including parties still seated from the night before."""
    context = await load_context(res_repo, adj_repo, day=day)
    items: list[Occupancy] = []
    for other in context.previous_day:
        if table_id not in other.table_ids or not (
            other.stream == ReservationStream.ORDINARY and is_physically_occupied(other)
        ):
            continue
        spill = translate_for_next_day(effective_interval(other, context.previous_day_adjustments))
        if spill is not None:
            items.append(Occupancy(other.id, other.guest_name, spill, ConflictKind.SPILLOVER))
    for other in context.same_day:
        if table_id not in other.table_ids or not is_booking_active(other):
            continue
        interval = effective_interval(other, context.adjustments)
        items.append(Occupancy(other.id, other.guest_name, interval, ConflictKind.SAME_DAY))
    return sorted(items, key=lambda item: (item.interval.start, item.interval.end))
