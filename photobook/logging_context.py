"""Draft-session tagging for log records.

Each ``BookingConfigurator`` binds its draft session ID when it starts and
releases it when it closes, so every record logged by the store, the coupon
protocol or the submission pipeline in between carries that ID. Records
logged outside a session are tagged ``NO_SESSION``.

Usage:
    token = bind_session(new_session_id())
    logger = get_session_logger(__name__)
    logger.info("Coupon applied")  # → [DRAFT-1A2B3C4D] Coupon applied
    release_session(token)
"""

import logging
import uuid
from contextvars import ContextVar, Token

NO_SESSION = "NO_SESSION"

_session_id: ContextVar[str] = ContextVar("session_id", default=NO_SESSION)


def new_session_id() -> str:
    return f"DRAFT-{uuid.uuid4().hex[:8].upper()}"


def bind_session(session_id: str) -> Token:
    """Tag records logged in the current async context with ``session_id``."""
    return _session_id.set(session_id)


def release_session(token: Token) -> None:
    """Restore whatever session tag was bound before ``bind_session``."""
    _session_id.reset(token)


class SessionIdFilter(logging.Filter):
    """Sets ``record.session_id`` unless the caller passed one via ``extra``."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "session_id", None):
            record.session_id = _session_id.get()  # type: ignore[attr-defined]
        return True


def get_session_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    if not any(isinstance(f, SessionIdFilter) for f in logger.filters):
        logger.addFilter(SessionIdFilter())
    return logger
