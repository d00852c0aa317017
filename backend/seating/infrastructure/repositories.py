from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import Iterable, Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.repositories import AdjustmentRepository, EventRepository, LayoutResolver, ReservationRepository
from ..domain.scheduling import Adjustment
from ..models import DiningTable, Event, Reservation, ReservationAdjustment, ReservationStatus, ReservationStream


def _utc_now_naive() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class SqlAlchemyReservationRepository(ReservationRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_active(
        self,
        day: date,
        stream: ReservationStream,
        statuses: Optional[Iterable[ReservationStatus]] = None,
    ) -> list[Reservation]:
        stmt = (
            select(Reservation)
            .where(
                Reservation.date == day,
                Reservation.stream == stream,
                Reservation.is_deleted.is_(False),
            )
            .order_by(Reservation.time, Reservation.created_at)
        )
        if statuses is not None:
            stmt = stmt.where(Reservation.status.in_(list(statuses)))
        rows = await self.session.scalars(stmt)
        return list(rows.all())

    async def list_for_event(self, event_id: str) -> list[Reservation]:
        stmt = select(Reservation).where(
            Reservation.event_id == event_id,
            Reservation.is_deleted.is_(False),
        )
        rows = await self.session.scalars(stmt)
        return list(rows.all())

    async def get(self, reservation_id: str) -> Reservation | None:
        stmt = select(Reservation).where(Reservation.id == reservation_id, Reservation.is_deleted.is_(False))
        return await self.session.scalar(stmt)

    async def get_for_update(self, reservation_id: str) -> Reservation | None:
        stmt = (
            select(Reservation)
            .where(Reservation.id == reservation_id, Reservation.is_deleted.is_(False))
            .with_for_update()
        )
        return await self.session.scalar(stmt)

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
    ) -> Reservation:
        now = _utc_now_naive()
        reservation = Reservation(
            id=str(uuid.uuid4()),
            stream=stream,
            guest_name=guest_name,
            date=day,
            time=time,
            party_size=party_size,
            table_ids=table_ids,
            zone_id=zone_id,
            event_id=event_id,
            reservation_code=reservation_code,
            status=ReservationStatus.BOOKED,
            cleared=False,
            is_deleted=False,
            created_at=now,
            updated_at=now,
        )
        self.session.add(reservation)
        await self.session.flush()
        return reservation

    async def save(self, reservation: Reservation) -> Reservation:
        self.session.add(reservation)
        await self.session.flush()
        return reservation


class SqlAlchemyAdjustmentRepository(AdjustmentRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_date(self, day: date) -> dict[str, Adjustment]:
        rows = await self.session.scalars(select(ReservationAdjustment).where(ReservationAdjustment.date == day))
        return {row.reservation_id: Adjustment(start=row.start_min, end=row.end_min) for row in rows.all()}

    async def upsert(
        self,
        day: date,
        reservation_id: str,
        *,
        start: Optional[int],
        end: Optional[int],
    ) -> None:
        stmt = select(ReservationAdjustment).where(
            ReservationAdjustment.date == day,
            ReservationAdjustment.reservation_id == reservation_id,
        )
        # savepoint: a rejected row must not abort the caller's transaction
        async with self.session.begin_nested():
            row = await self.session.scalar(stmt)
            if row is None:
                row = ReservationAdjustment(date=day, reservation_id=reservation_id)
                self.session.add(row)
            row.start_min = start
            row.end_min = end
            row.updated_at = _utc_now_naive()


class SqlAlchemyEventRepository(EventRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, event_id: str) -> Event | None:
        return await self.session.get(Event, event_id)


class SqlAlchemyLayoutResolver(LayoutResolver):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def resolve_table(self, name_or_number: str) -> str | None:
        reference = name_or_number.strip()
        if not reference:
            return None
        conditions = [DiningTable.id == reference, DiningTable.name == reference]
        if reference.isdigit():
            conditions.append(DiningTable.number == int(reference))
        stmt = select(DiningTable.id).where(or_(*conditions)).order_by(DiningTable.id).limit(1)
        return await self.session.scalar(stmt)
