import datetime as dt
from typing import Optional

from pydantic import BaseModel, Field, field_serializer

from .domain.scheduling import MINUTES_PER_DAY, Adjustment
from .models import Reservation, ReservationStatus, ReservationStream
from .usecases.reservations import Occupancy, StatusAction
from .utils.time import format_minutes

TIME_PATTERN = r"^([01]?\d|2[0-3]):[0-5]\d$"


class ReservationCreate(BaseModel):
    guest_name: str
    date: dt.date
    time: str = Field(pattern=TIME_PATTERN)
    party_size: int
    tables: list[str] = Field(default_factory=list)
    stream: ReservationStream = ReservationStream.ORDINARY
    zone_id: Optional[str] = None
    event_id: Optional[str] = None
    reservation_code: Optional[str] = None
    generate_code: bool = False
    # minutes since midnight of `date`; above 1440 runs into the next day
    extend_until: Optional[int] = Field(default=None, ge=1, le=2 * MINUTES_PER_DAY)


class ReservationUpdate(BaseModel):
    guest_name: str
    time: str = Field(pattern=TIME_PATTERN)
    party_size: int
    tables: list[str] = Field(default_factory=list)
    date: Optional[dt.date] = None
    zone_id: Optional[str] = None
    reservation_code: Optional[str] = None
    extend_until: Optional[int] = Field(default=None, ge=1, le=2 * MINUTES_PER_DAY)


class StatusChange(BaseModel):
    action: StatusAction


class AdjustmentWrite(BaseModel):
    start: Optional[int] = Field(default=None, ge=0, lt=MINUTES_PER_DAY)
    end: Optional[int] = Field(default=None, ge=1, le=2 * MINUTES_PER_DAY)
    reset: bool = False


class AdjustmentRead(BaseModel):
    reservation_id: str
    start: Optional[int]
    end: Optional[int]
    spills_over: bool

    @classmethod
    def from_domain(cls, *, reservation_id: str, adjustment: Adjustment) -> "AdjustmentRead":
        return cls(
            reservation_id=reservation_id,
            start=adjustment.start,
            end=adjustment.end,
            spills_over=adjustment.end is not None and adjustment.end > MINUTES_PER_DAY,
        )


class ReservationRead(BaseModel):
    reservation_id: str
    stream: ReservationStream
    event_id: Optional[str]
    guest_name: str
    date: dt.date
    time: str
    party_size: int
    table_ids: list[str]
    zone_id: Optional[str]
    status: ReservationStatus
    cleared: bool
    reservation_code: Optional[str]
    updated_at: dt.datetime

    @field_serializer("updated_at")
    def _ser_datetime(self, value: dt.datetime) -> str:
        return value.isoformat()

    @classmethod
    def from_db(cls, *, reservation: Reservation) -> "ReservationRead":
        return cls(
            reservation_id=reservation.id,
            stream=reservation.stream,
            event_id=reservation.event_id,
            guest_name=reservation.guest_name,
            date=reservation.date,
            time=reservation.time,
            party_size=reservation.party_size,
            table_ids=list(reservation.table_ids or []),
            zone_id=reservation.zone_id,
            status=reservation.status,
            cleared=bool(reservation.cleared),
            reservation_code=reservation.reservation_code,
            updated_at=reservation.updated_at,
        )


class OccupancyRead(BaseModel):
    reservation_id: str
    guest_name: str
    start: int
    end: int
    starts_at: str
    ends_at: str
    kind: str

    @classmethod
    def from_domain(cls, occupancy: Occupancy) -> "OccupancyRead":
        return cls(
            reservation_id=occupancy.reservation_id,
            guest_name=occupancy.guest_name,
            start=occupancy.interval.start,
            end=occupancy.interval.end,
            starts_at=format_minutes(occupancy.interval.start % MINUTES_PER_DAY),
            ends_at=format_minutes(occupancy.interval.end % MINUTES_PER_DAY),
            kind=occupancy.kind.value,
        )
