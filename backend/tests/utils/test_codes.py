import re
from datetime import date

from seating.utils.codes import CODE_ALPHABET, generate_reservation_code


def test_code_uses_event_year_and_unambiguous_alphabet() -> None:
    code = generate_reservation_code(date(2025, 12, 31))
    prefix, year, segment = code.split("-")
    assert prefix == "EVT"
    assert year == "2025"
    assert len(segment) == 6
    assert all(ch in CODE_ALPHABET for ch in segment)


def test_code_without_date_uses_current_year() -> None:
    assert re.fullmatch(r"EVT-\d{4}-[A-Z2-9]{6}", generate_reservation_code())


def test_codes_differ_between_calls() -> None:
    codes = {generate_reservation_code(date(2025, 1, 1)) for _ in range(20)}
    assert len(codes) > 1
