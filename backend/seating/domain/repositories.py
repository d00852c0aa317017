from __future__ import annotations

from datetime import date
from typing import Iterable, Mapping, Optional, Protocol

from ..models import Event, Reservation, ReservationStatus, ReservationStream
from .scheduling import Adjustment


class ReservationRepository(Protocol):
    async def list_active(
        self,
        day: date,
        stream: ReservationStream,
        statuses: Optional[Iterable[ReservationStatus]] = None,
    ) -> list[Reservation]: ...

    async def list_for_event(self, event_id: str) -> list[Reservation]: ...

    async def get(self, reservation_id: str) -> Reservation | None: ...

    async def get_for_update(self, reservation_id: str) -> Reservation | None: ...

    async def create(
        self,
        *,
        stream: ReservationStream,
        guest_name: str,
        day: date,
        time: str,
        party_size: int,
        table_ids: list[str],
        zone_id: Optional[str],
        event_id: Optional[str],
        reservation_code: Optional[str],
    ) -> Reservation: ...

    async def save(self, reservation: Reservation) -> Reservation: ...


class AdjustmentRepository(Protocol):
    async def get_by_date(self, day: date) -> Mapping[str, Adjustment]: ...

    async def upsert(
        self,
        day: date,
        reservation_id: str,
        *,
        start: Optional[int],
        end: Optional[int],
    ) -> None: ...


class EventRepository(Protocol):
    async def get(self, event_id: str) -> Event | None: ...


class LayoutResolver(Protocol):
    async def resolve_table(self, name_or_number: str) -> str | None: ...
