from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable, Iterable, Optional

import pytest
from seating.domain.scheduling import Adjustment
from seating.models import Event, Reservation, ReservationStatus, ReservationStream

NOW = datetime(2025, 5, 1, 12, 0)


class FakeReservationRepo:
    def __init__(self) -> None:
        self.rows: dict[str, Reservation] = {}
        self.saved: list[str] = []
        self._seq = 0

    def add(self, reservation: Reservation) -> Reservation:
        self.rows[reservation.id] = reservation
        return reservation

    async def list_active(
        self,
        day: date,
        stream: ReservationStream,
        statuses: Optional[Iterable[ReservationStatus]] = None,
    ) -> list[Reservation]:
        allowed = set(statuses) if statuses is not None else None
        return [
            r
            for r in self.rows.values()
            if r.date == day
            and r.stream == stream
            and not r.is_deleted
            and (allowed is None or r.status in allowed)
        ]

    async def list_for_event(self, event_id: str) -> list[Reservation]:
        return [r for r in self.rows.values() if r.event_id == event_id and not r.is_deleted]

    async def get(self, reservation_id: str) -> Reservation | None:
        return self.rows.get(reservation_id)

    async def get_for_update(self, reservation_id: str) -> Reservation | None:
        return self.rows.get(reservation_id)

    async def create(self, *, day: date, **fields: Any) -> Reservation:
        self._seq += 1
        reservation = Reservation(
            id=f"new-{self._seq}",
            date=day,
            status=ReservationStatus.BOOKED,
            cleared=False,
            is_deleted=False,
            created_at=NOW,
            updated_at=NOW,
            **fields,
        )
        return self.add(reservation)

    async def save(self, reservation: Reservation) -> Reservation:
        self.saved.append(reservation.id)
        self.rows[reservation.id] = reservation
        return reservation


class FakeAdjustmentRepo:
    def __init__(self) -> None:
        self.rows: dict[tuple[date, str], Adjustment] = {}
        self.fail_writes = False

    async def get_by_date(self, day: date) -> dict[str, Adjustment]:
        return {res_id: adj for (d, res_id), adj in self.rows.items() if d == day}

    async def upsert(self, day: date, reservation_id: str, *, start: Optional[int], end: Optional[int]) -> None:
        if self.fail_writes:
            raise ConnectionError("adjustment store unavailable")
        self.rows[(day, reservation_id)] = Adjustment(start=start, end=end)


class FakeEventRepo:
    def __init__(self) -> None:
        self.rows: dict[str, Event] = {}

    async def get(self, event_id: str) -> Event | None:
        return self.rows.get(event_id)


class FakeLayout:
    def __init__(self, tables: dict[str, str]) -> None:
        self.tables = tables

    async def resolve_table(self, name_or_number: str) -> str | None:
        return self.tables.get(name_or_number)


@dataclass
class Repos:
    reservations: FakeReservationRepo
    adjustments: FakeAdjustmentRepo
    events: FakeEventRepo
    layout: FakeLayout


@pytest.fixture
def repos() -> Repos:
    return Repos(
        reservations=FakeReservationRepo(),
        adjustments=FakeAdjustmentRepo(),
        events=FakeEventRepo(),
        layout=FakeLayout({"1": "t1", "2": "t2", "Window": "t1", "t1": "t1", "t2": "t2"}),
    )


@pytest.fixture
def make_reservation(repos: Repos) -> Callable[..., Reservation]:
    def _make(
        res_id: str,
        *,
        day: date,
        time: str,
        party_size: int = 2,
        table_ids: Optional[list[str]] = None,
        status: ReservationStatus = ReservationStatus.BOOKED,
        cleared: bool = False,
        stream: ReservationStream = ReservationStream.ORDINARY,
        event_id: Optional[str] = None,
        reservation_code: Optional[str] = None,
        guest_name: Optional[str] = None,
    ) -> Reservation:
        return repos.reservations.add(
            Reservation(
                id=res_id,
                stream=stream,
                event_id=event_id,
                guest_name=guest_name or f"guest-{res_id}",
                date=day,
                time=time,
                party_size=party_size,
                zone_id=None,
                table_ids=table_ids if table_ids is not None else ["t1"],
                status=status,
                cleared=cleared,
                reservation_code=reservation_code,
                is_deleted=False,
                created_at=NOW,
                updated_at=NOW,
            )
        )

    return _make


@pytest.fixture
def make_event(repos: Repos) -> Callable[..., Event]:
    def _make(
        event_id: str,
        *,
        day: date,
        start_time: str = "18:00",
        end_time: Optional[str] = None,
        end_date: Optional[date] = None,
        capacity_total: Optional[int] = None,
    ) -> Event:
        event = Event(
            id=event_id,
            name=f"event-{event_id}",
            date=day,
            end_date=end_date,
            start_time=start_time,
            end_time=end_time,
            capacity_total=capacity_total,
            created_at=NOW,
            updated_at=NOW,
        )
        repos.events.rows[event_id] = event
        return event

    return _make
