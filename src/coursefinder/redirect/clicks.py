"""Click analytics: privacy-preserving event construction and detached writes.

Redirects never wait on analytics. ``ClickRecorder.dispatch`` schedules the
write as its own asyncio task and returns immediately; a failed write is
handed to the recorder's error sink and dropped, never retried.
"""

from __future__ import annotations

import asyncio
import hashlib
import hmac
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from coursefinder.database import get_session_factory
from coursefinder.db.models import CLICK_SOURCE_TELEGRAM, CLICK_SOURCE_WEB, ClickEvent

logger = structlog.get_logger()

MAX_HEADER_LENGTH = 512


def hash_ip(ip: str, salt: str) -> str:
    """Keyed SHA-256 of the caller's address (64 hex chars)."""
    return hmac.new(salt.encode(), ip.encode(), hashlib.sha256).hexdigest()


def click_source(src: str | None) -> str:
    """Normalize the ``src`` query hint: ``tg`` is Telegram, anything else is web."""
    return CLICK_SOURCE_TELEGRAM if src == "tg" else CLICK_SOURCE_WEB


def _clip(value: str | None) -> str | None:
    if not value:
        return None
    return value[:MAX_HEADER_LENGTH]


def _country(value: str | None) -> str | None:
    if not value or len(value) != 2 or not value.isalpha():
        return None
    return value.upper()


@dataclass(frozen=True)
class ClickEventData:
    course_id: str
    source: str
    ip_hash: str | None = None
    user_agent: str | None = None
    referer: str | None = None
    country: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def build(
        cls,
        course_id: str,
        *,
        src: str | None,
        ip: str,
        salt: str,
        user_agent: str | None = None,
        referer: str | None = None,
        country: str | None = None,
    ) -> ClickEventData:
        """Assemble an event from raw request metadata."""
        return cls(
            course_id=course_id,
            source=click_source(src),
            ip_hash=hash_ip(ip, salt),
            user_agent=_clip(user_agent),
            referer=_clip(referer),
            country=_country(country),
        )


class ClickWriter(ABC):
    """Append-only sink for click events."""

    @abstractmethod
    async def write(self, event: ClickEventData) -> None:
        """Persist one event. May raise; the recorder deals with failures."""
        ...


class SqlClickWriter(ClickWriter):
    """Writes each event in its own session, independent of the request session.

    The session factory is looked up per write because the engine is created
    in the application lifespan, after the writer is constructed.
    """

    def __init__(
        self,
        get_factory: Callable[[], async_sessionmaker[AsyncSession]] = get_session_factory,
    ) -> None:
        self.get_factory = get_factory

    async def write(self, event: ClickEventData) -> None:
        async with self.get_factory()() as session:
            session.add(
                ClickEvent(
                    course_id=event.course_id,
                    source=event.source,
                    ip_hash=event.ip_hash,
                    user_agent=event.user_agent,
                    referer=event.referer,
                    country=event.country,
                    created_at=event.created_at,
                )
            )
            await session.commit()


ErrorSink = Callable[[ClickEventData, BaseException], None]


def log_click_failure(event: ClickEventData, exc: BaseException) -> None:
    """Default error sink: report to the error log and move on."""
    logger.error(
        "click_log_failed",
        course_id=event.course_id,
        source=event.source,
        error=str(exc),
        exc_info=exc,
    )


class ClickRecorder:
    """Fire-and-forget dispatcher for click writes."""

    def __init__(self, writer: ClickWriter, on_error: ErrorSink = log_click_failure) -> None:
        self.writer = writer
        self.on_error = on_error
        self._pending: set[asyncio.Task[None]] = set()

    def dispatch(self, event: ClickEventData) -> asyncio.Task[None]:
        """Schedule the write and return without awaiting it."""
        task = asyncio.create_task(self._write(event), name=f"click-log:{event.course_id}")
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _write(self, event: ClickEventData) -> None:
        try:
            await self.writer.write(event)
        except Exception as exc:  # noqa: BLE001
            try:
                self.on_error(event, exc)
            except Exception:  # noqa: BLE001
                logger.exception("click_error_sink_failed", course_id=event.course_id)

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait for in-flight writes (shutdown and tests)."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
