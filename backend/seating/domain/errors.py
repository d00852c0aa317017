from __future__ import annotations

from typing import Any, Optional


class SchedulingError(Exception):
    """Base class for seating rule violations. Validation returns these, use cases raise them."""

    kind = "scheduling_error"

    def __init__(self, message: str, **detail: Any) -> None:
        super().__init__(message)
        self.detail: dict[str, Any] = detail

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SchedulingError) or type(self) is not type(other):
            return NotImplemented
        return self.args == other.args and self.detail == other.detail

    def __hash__(self) -> int:
        return hash((type(self), self.args))


class MissingGuestName(SchedulingError):
    kind = "missing_guest_name"

    def __init__(self) -> None:
        super().__init__("guest name is required")


class InvalidGuestCount(SchedulingError):
    kind = "invalid_guest_count"

    def __init__(self, party_size: Any) -> None:
        super().__init__("party_size must be a positive integer", party_size=party_size)


class CapacityExceeded(SchedulingError):
    kind = "capacity_exceeded"

    def __init__(self, remaining: int, capacity: int) -> None:
        super().__init__("event capacity exceeded", remaining=remaining, capacity=capacity)
        self.remaining = remaining
        self.capacity = capacity


class TableConflict(SchedulingError):
    kind = "table_conflict"

    def __init__(
        self,
        *,
        table_id: str,
        guest_name: str,
        start: int,
        end: int,
        conflict_kind: str,
        reservation_id: Optional[str] = None,
    ) -> None:
        super().__init__(
            f"table {table_id} is occupied by {guest_name!r}",
            table_id=table_id,
            guest_name=guest_name,
            start=start,
            end=end,
            conflict_kind=conflict_kind,
            reservation_id=reservation_id,
        )
        self.table_id = table_id
        self.guest_name = guest_name
        self.start = start
        self.end = end
        self.conflict_kind = conflict_kind
        self.reservation_id = reservation_id


class EventWindowViolation(SchedulingError):
    kind = "event_window_violation"

    def __init__(self, message: str, **detail: Any) -> None:
        super().__init__(message, **detail)


class MissingReservationCode(SchedulingError):
    kind = "missing_reservation_code"

    def __init__(self) -> None:
        super().__init__("reservation code is missing")


class InvalidAdjustment(SchedulingError):
    kind = "invalid_adjustment"

    def __init__(self, start: int, end: int) -> None:
        super().__init__("adjustment end must be after start", start=start, end=end)


class UnknownTable(SchedulingError):
    kind = "unknown_table"

    def __init__(self, reference: str) -> None:
        super().__init__(f"no table matches {reference!r}", reference=reference)


class InvalidStatusTransition(SchedulingError):
    kind = "invalid_status_transition"

    def __init__(self, status_from: str, status_to: str) -> None:
        super().__init__(
            f"cannot move reservation from {status_from} to {status_to}",
            status_from=status_from,
            status_to=status_to,
        )


class ReservationFinalized(SchedulingError):
    kind = "reservation_finalized"

    def __init__(self, status: str) -> None:
        super().__init__(f"reservation is {status} and can no longer be edited", status=status)


class ReservationNotFoundError(Exception):
    pass


class EventNotFoundError(Exception):
    pass
