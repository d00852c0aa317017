import json
from typing import Any, List

import pytest
from seating.models import ReservationStatus, ReservationStream
from seating.utils import audit_log
from seating.utils.request_id import set_request_id


def test_emit_audit_log_outputs_json(monkeypatch) -> None:
    messages: List[str] = []

    class DummyLogger:
        def info(self, message: str) -> None:
            messages.append(message)

    monkeypatch.setattr(audit_log, "_audit_logger", DummyLogger())

    set_request_id("req-123")
    audit_log.emit_audit_log(
        action="reservation.created",
        reservation_id="r-1",
        stream=ReservationStream.EVENT,
        reservation_date="2025-06-01",
        event_id="ev-1",
        table_ids=["t-1", "t-2"],
        party_size=4,
        status_to=ReservationStatus.BOOKED,
    )
    set_request_id(None)

    assert len(messages) == 1
    payload = json.loads(messages[0])
    assert payload["action"] == "reservation.created"
    assert payload["request_id"] == "req-123"
    assert payload["stream"] == "event"
    assert payload["status_to"] == "booked"
    assert payload["table_ids"] == ["t-1", "t-2"]
    assert "status_from" not in payload
    assert "timestamp" in payload


def test_emit_audit_log_raises_on_logger_failure(monkeypatch) -> None:
    class DummyLogger:
        def info(self, _: Any) -> None:
            raise ValueError("fail")

    monkeypatch.setattr(audit_log, "_audit_logger", DummyLogger())

    with pytest.raises(RuntimeError):
        audit_log.emit_audit_log(
            action="reservation.status_changed",
            reservation_id="r-1",
            stream=ReservationStream.ORDINARY,
            status_from=ReservationStatus.BOOKED,
            status_to=ReservationStatus.CANCELLED,
        )
