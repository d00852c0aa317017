import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import get_session
from ..domain.errors import (
    CapacityExceeded,
    EventNotFoundError,
    InvalidGuestCount,
    InvalidStatusTransition,
    MissingGuestName,
    ReservationFinalized,
    ReservationNotFoundError,
    SchedulingError,
    TableConflict,
)
from ..infrastructure.repositories import (
    SqlAlchemyAdjustmentRepository,
    SqlAlchemyEventRepository,
    SqlAlchemyLayoutResolver,
    SqlAlchemyReservationRepository,
)
from ..schemas import AdjustmentRead, AdjustmentWrite, ReservationCreate, ReservationRead, ReservationUpdate, StatusChange
from ..usecases import adjustments as adjustment_usecase
from ..usecases import reservations as reservation_usecase
from ..utils.audit_log import emit_audit_log

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reservations", tags=["reservations"])

_UNPROCESSABLE = (MissingGuestName, InvalidGuestCount)
_CONFLICTS = (CapacityExceeded, TableConflict, InvalidStatusTransition, ReservationFinalized)


def _http_error(exc: SchedulingError) -> HTTPException:
    if isinstance(exc, _UNPROCESSABLE):
        code = status.HTTP_422_UNPROCESSABLE_ENTITY
    elif isinstance(exc, _CONFLICTS):
        code = status.HTTP_409_CONFLICT
    else:
        code = status.HTTP_400_BAD_REQUEST
    logger.info("reservation rejected: %s %s", exc.kind, exc.detail)
    return HTTPException(status_code=code, detail={"kind": exc.kind, "message": str(exc), **exc.detail})


def _audit(**kwargs: Any) -> None:
    try:
        emit_audit_log(**kwargs)
    except RuntimeError:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="audit log failed")


@router.post("", response_model=ReservationRead, status_code=status.HTTP_201_CREATED)
async def create_reservation(
    payload: ReservationCreate,
    session: AsyncSession = Depends(get_session),
) -> ReservationRead:
    res_repo = SqlAlchemyReservationRepository(session)
    adj_repo = SqlAlchemyAdjustmentRepository(session)
    event_repo = SqlAlchemyEventRepository(session)
    layout = SqlAlchemyLayoutResolver(session)
    async with session.begin():
        try:
            reservation = await reservation_usecase.create_reservation(
                res_repo,
                adj_repo,
                event_repo,
                layout,
                guest_name=payload.guest_name,
                day=payload.date,
                time=payload.time,
                party_size=payload.party_size,
                tables=payload.tables,
                stream=payload.stream,
                zone_id=payload.zone_id,
                event_id=payload.event_id,
                reservation_code=payload.reservation_code,
                generate_code=payload.generate_code,
                extend_until=payload.extend_until,
            )
        except EventNotFoundError:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="event not found")
        except SchedulingError as exc:
            raise _http_error(exc)

    _audit(
        action="reservation.created",
        reservation_id=reservation.id,
        stream=reservation.stream,
        reservation_date=reservation.date.isoformat(),
        event_id=reservation.event_id,
        table_ids=reservation.table_ids,
        party_size=reservation.party_size,
        status_to=reservation.status,
    )
    return ReservationRead.from_db(reservation=reservation)


@router.patch("/{reservation_id}", response_model=ReservationRead)
async def update_reservation(
    payload: ReservationUpdate,
    reservation_id: str = Path(..., min_length=1),
    session: AsyncSession = Depends(get_session),
) -> ReservationRead:
    res_repo = SqlAlchemyReservationRepository(session)
    adj_repo = SqlAlchemyAdjustmentRepository(session)
    event_repo = SqlAlchemyEventRepository(session)
    layout = SqlAlchemyLayoutResolver(session)
    async with session.begin():
        try:
            reservation = await reservation_usecase.update_reservation(
                res_repo,
                adj_repo,
                event_repo,
                layout,
                reservation_id=reservation_id,
                guest_name=payload.guest_name,
                time=payload.time,
                party_size=payload.party_size,
                tables=payload.tables,
                day=payload.date,
                zone_id=payload.zone_id,
                reservation_code=payload.reservation_code,
                extend_until=payload.extend_until,
            )
        except (ReservationNotFoundError, EventNotFoundError) as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
        except SchedulingError as exc:
            raise _http_error(exc)

    _audit(
        action="reservation.updated",
        reservation_id=reservation.id,
        stream=reservation.stream,
        reservation_date=reservation.date.isoformat(),
        event_id=reservation.event_id,
        table_ids=reservation.table_ids,
        party_size=reservation.party_size,
    )
    return ReservationRead.from_db(reservation=reservation)


@router.post("/{reservation_id}/status", response_model=ReservationRead)
async def change_status(
    payload: StatusChange,
    reservation_id: str = Path(..., min_length=1),
    session: AsyncSession = Depends(get_session),
) -> ReservationRead:
    res_repo = SqlAlchemyReservationRepository(session)
    async with session.begin():
        try:
            reservation, status_from = await reservation_usecase.change_status(
                res_repo,
                reservation_id=reservation_id,
                action=payload.action,
            )
        except ReservationNotFoundError:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="reservation not found")
        except SchedulingError as exc:
            raise _http_error(exc)

    _audit(
        action="reservation.status_changed",
        reservation_id=reservation.id,
        stream=reservation.stream,
        reservation_date=reservation.date.isoformat(),
        status_from=status_from,
        status_to=reservation.status,
        extra={"cleared": True} if reservation.cleared else None,
    )
    return ReservationRead.from_db(reservation=reservation)


@router.put("/{reservation_id}/adjustment", response_model=AdjustmentRead)
async def put_adjustment(
    payload: AdjustmentWrite,
    reservation_id: str = Path(..., min_length=1),
    session: AsyncSession = Depends(get_session),
) -> AdjustmentRead:
    res_repo = SqlAlchemyReservationRepository(session)
    adj_repo = SqlAlchemyAdjustmentRepository(session)
    event_repo = SqlAlchemyEventRepository(session)
    async with session.begin():
        try:
            if payload.reset:
                adjustment = await adjustment_usecase.reset_adjustment(
                    res_repo, adj_repo, reservation_id=reservation_id
                )
            else:
                adjustment = await adjustment_usecase.set_adjustment(
                    res_repo,
                    adj_repo,
                    event_repo,
                    reservation_id=reservation_id,
                    start=payload.start,
                    end=payload.end,
                )
        except (ReservationNotFoundError, EventNotFoundError) as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
        except SchedulingError as exc:
            raise _http_error(exc)

    result = AdjustmentRead.from_domain(reservation_id=reservation_id, adjustment=adjustment)
    _audit(
        action="reservation.adjusted",
        reservation_id=reservation_id,
        stream=None,
        extra={"start_min": result.start, "end_min": result.end, "spills_over": result.spills_over},
    )
    return result
