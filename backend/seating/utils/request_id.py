from __future__ import annotations

import re
import uuid
from contextvars import ContextVar
from typing import Optional

REQUEST_ID_HEADER = "X-Request-ID"
_MAX_LENGTH = 64
_ALLOWED = re.compile(r"[A-Za-z0-9._-]+")

_current_request_id: ContextVar[Optional[str]] = ContextVar("seating_request_id", default=None)


def generate_request_id() -> str:
    return uuid.uuid4().hex


def request_id_from_header(value: Optional[str]) -> str:
    """Reuse the caller's id when it is short and printable, otherwise mint a new one."""
    if value and len(value) <= _MAX_LENGTH and _ALLOWED.fullmatch(value):
        return value
    return generate_request_id()


def set_request_id(request_id: Optional[str]) -> None:
    _current_request_id.set(request_id)


def get_request_id() -> Optional[str]:
    return _current_request_id.get()
