from __future__ import annotations

from datetime import date
from typing import Optional

from ..domain.repositories import AdjustmentRepository, ReservationRepository
from ..domain.scheduling import ReservationSnapshot
from ..domain.services import EventSnapshot, ValidationContext
from ..models import Event, Reservation, ReservationStatus, ReservationStream
from ..utils.time import previous_day, time_to_minutes


def to_snapshot(reservation: Reservation) -> ReservationSnapshot:
    return ReservationSnapshot(
        id=reservation.id,
        date=reservation.date,
        start_minute=time_to_minutes(reservation.time),
        party_size=reservation.party_size,
        table_ids=frozenset(str(t) for t in (reservation.table_ids or [])),
        status=reservation.status,
        stream=reservation.stream,
        guest_name=reservation.guest_name,
        cleared=bool(reservation.cleared),
        event_id=reservation.event_id,
    )


def to_event_snapshot(event: Event) -> EventSnapshot:
    return EventSnapshot(
        id=event.id,
        date=event.date,
        start_minute=time_to_minutes(event.start_time),
        end_minute=time_to_minutes(event.end_time) if event.end_time else None,
        end_date=event.end_date,
        capacity=event.capacity_total,
    )


async def load_context(
    res_repo: ReservationRepository,
    adj_repo: AdjustmentRepository,
    *,
    day: date,
    event: Optional[Event] = None,
) -> ValidationContext:
    """Read everything validation needs for `day`: both streams, yesterday's seated parties, overlays."""
    prev = previous_day(day)
    same_day = [
        *await res_repo.list_active(day, ReservationStream.ORDINARY),
        *await res_repo.list_active(day, ReservationStream.EVENT),
    ]
    seated_yesterday = await res_repo.list_active(
        prev, ReservationStream.ORDINARY, statuses=[ReservationStatus.ARRIVED]
    )
    event_reservations: list[Reservation] = []
    if event is not None and event.capacity_total:
        event_reservations = await res_repo.list_for_event(event.id)

    return ValidationContext(
        same_day=[to_snapshot(r) for r in same_day],
        previous_day=[to_snapshot(r) for r in seated_yesterday],
        adjustments=dict(await adj_repo.get_by_date(day)),
        previous_day_adjustments=dict(await adj_repo.get_by_date(prev)),
        event=to_event_snapshot(event) if event is not None else None,
        event_reservations=[to_snapshot(r) for r in event_reservations],
    )
