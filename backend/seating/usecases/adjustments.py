from __future__ import annotations

from typing import Optional

from ..domain.errors import EventNotFoundError, ReservationFinalized, ReservationNotFoundError
from ..domain.repositories import AdjustmentRepository, EventRepository, ReservationRepository
from ..domain.scheduling import MINUTES_PER_DAY, Adjustment, estimate_duration, is_finalized, resolve_interval
from ..domain.services import ReservationCandidate, validate_reservation
from ..models import Reservation
from .context import load_context, to_snapshot


async def _load(res_repo: ReservationRepository, reservation_id: str) -> Reservation:
    reservation = await res_repo.get(reservation_id)
    if reservation is None:
        raise ReservationNotFoundError("reservation not found")
    return reservation


async def set_adjustment(
    res_repo: ReservationRepository,
    adj_repo: AdjustmentRepository,
    event_repo: EventRepository,
    *,
    reservation_id: str,
    start: Optional[int],
    end: Optional[int],
) -> Adjustment:
    """
    Override the time window of a reservation on its own date.

    The new window must be non-empty and must not collide with anything else
    on the same tables. Unlike the overlay written alongside a booking, this
    write is the whole operation, so repository failures propagate.
    """
    reservation = await _load(res_repo, reservation_id)
    snapshot = to_snapshot(reservation)
    if is_finalized(snapshot):
        raise ReservationFinalized(reservation.status.value)

    adjustment = Adjustment(start=start, end=end)
    resolve_interval(snapshot.start_minute, snapshot.party_size, adjustment)

    event = None
    if reservation.event_id is not None:
        event = await event_repo.get(reservation.event_id)
        if event is None:
            raise EventNotFoundError("event not found")
    context = await load_context(res_repo, adj_repo, day=reservation.date, event=event)
    candidate = ReservationCandidate(
        id=reservation.id,
        date=reservation.date,
        start_minute=snapshot.start_minute,
        party_size=reservation.party_size,
        table_ids=tuple(str(t) for t in reservation.table_ids or []),
        guest_name=reservation.guest_name,
        stream=reservation.stream,
        event_id=reservation.event_id,
        reservation_code=reservation.reservation_code,
        interval_override=adjustment,
    )
    error = validate_reservation(candidate, context)
    if error is not None:
        raise error

    await adj_repo.upsert(reservation.date, reservation.id, start=start, end=end)
    return adjustment


async def reset_adjustment(
    res_repo: ReservationRepository,
    adj_repo: AdjustmentRepository,
    *,
    reservation_id: str,
) -> Adjustment:
    """Write back the estimated default window, dropping any spillover."""
    reservation = await _load(res_repo, reservation_id)
    snapshot = to_snapshot(reservation)
    if is_finalized(snapshot):
        raise ReservationFinalized(reservation.status.value)
    start = snapshot.start_minute
    adjustment = Adjustment(start=start, end=min(MINUTES_PER_DAY, start + estimate_duration(reservation.party_size)))
    await adj_repo.upsert(reservation.date, reservation.id, start=adjustment.start, end=adjustment.end)
    return adjustment
