import secrets
from datetime import date, datetime, timezone
from typing import Optional

# no 0/O or 1/I
CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
CODE_PREFIX = "EVT"


def _random_segment(length: int) -> str:
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


def generate_reservation_code(event_date: Optional[date] = None, *, length: int = 6) -> str:
    """
    Human-friendly event reservation code such as EVT-2025-ABC123.
    Uniqueness is enforced by the database constraint on reservations.reservation_code.
    """
    year = event_date.year if event_date is not None else datetime.now(timezone.utc).year
    return f"{CODE_PREFIX}-{year}-{_random_segment(length)}"
