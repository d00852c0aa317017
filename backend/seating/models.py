from __future__ import annotations

import datetime as dt
from enum import StrEnum
from typing import Optional

from sqlalchemy import JSON, CheckConstraint, Enum, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql.sqltypes import Boolean, Date, DateTime, Integer, String


class Base(DeclarativeBase):
    pass


class ReservationStatus(StrEnum):
    BOOKED = "booked"
    ARRIVED = "arrived"
    CANCELLED = "cancelled"
    NOT_ARRIVED = "not_arrived"


class ReservationStream(StrEnum):
    ORDINARY = "ordinary"
    EVENT = "event"


def _enum(enum_cls: type[StrEnum]) -> Enum:
    return Enum(
        enum_cls,
        values_callable=lambda cls: [e.value for e in cls],
        native_enum=False,
    )


class Zone(Base):
    __tablename__ = "zones"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    tables: Mapped[list["DiningTable"]] = relationship(back_populates="zone")


class DiningTable(Base):
    __tablename__ = "dining_tables"
    __table_args__ = (
        UniqueConstraint("zone_id", "name", name="uq_tables_zone_name"),
        Index("idx_tables_zone", "zone_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    zone_id: Mapped[str] = mapped_column(ForeignKey("zones.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    number: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    zone: Mapped["Zone"] = relationship(back_populates="tables")


class Event(Base):
    __tablename__ = "events"
    __table_args__ = (CheckConstraint("capacity_total IS NULL OR capacity_total >= 1", name="chk_events_capacity"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    end_date: Mapped[Optional[dt.date]] = mapped_column(Date, nullable=True)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[Optional[str]] = mapped_column(String(5), nullable=True)
    capacity_total: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=False), nullable=False)

    reservations: Mapped[list["Reservation"]] = relationship(back_populates="event")


class Reservation(Base):
    __tablename__ = "reservations"
    __table_args__ = (
        CheckConstraint("party_size >= 1", name="chk_res_party_size"),
        UniqueConstraint("reservation_code", name="uq_res_code"),
        Index("idx_res_date_stream", "date", "stream"),
        Index("idx_res_event", "event_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    stream: Mapped[ReservationStream] = mapped_column(
        _enum(ReservationStream), nullable=False, default=ReservationStream.ORDINARY
    )
    event_id: Mapped[Optional[str]] = mapped_column(ForeignKey("events.id"), nullable=True)
    guest_name: Mapped[str] = mapped_column(String(255), nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    time: Mapped[str] = mapped_column(String(5), nullable=False)
    party_size: Mapped[int] = mapped_column(Integer, nullable=False)
    zone_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    table_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    status: Mapped[ReservationStatus] = mapped_column(
        _enum(ReservationStatus), nullable=False, default=ReservationStatus.BOOKED
    )
    cleared: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    reservation_code: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=False), nullable=False)

    event: Mapped[Optional["Event"]] = relationship(back_populates="reservations")


class ReservationAdjustment(Base):
    __tablename__ = "reservation_adjustments"
    __table_args__ = (
        UniqueConstraint("date", "reservation_id", name="uq_adj_date_reservation"),
        CheckConstraint(
            "start_min IS NULL OR end_min IS NULL OR end_min > start_min",
            name="chk_adj_window",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    reservation_id: Mapped[str] = mapped_column(ForeignKey("reservations.id"), nullable=False)
    # end_min may exceed 1440 when the stay runs past midnight
    start_min: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    end_min: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=False), nullable=False)
