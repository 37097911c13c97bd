"""Audit emission for authorization decisions."""

import asyncio
from typing import Iterable

import structlog

from .interfaces import AuditSink
from .types import AuditEvent

logger = structlog.get_logger()


class LoggingAuditSink(AuditSink):
    """Writes every decision to the structured log."""

    def __init__(self, event_name: str = "Authorization decision"):
        self.event_name = event_name
        self.logger = structlog.get_logger("tenantguard.audit")

    async def write(self, event: AuditEvent) -> None:
        self.logger.info(self.event_name, **event.to_dict())


class InMemoryAuditSink(AuditSink):
    """Keeps events in a list. For development and tests."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def write(self, event: AuditEvent) -> None:
        self.events.append(event)

    def clear(self) -> None:
        self.events.clear()


class AuditEmitter:
    """
    Fans one event out to every sink.

    Sinks are written concurrently, each bounded by `timeout` seconds, so a
    slow sink adds at most `timeout` to a decision. A failing or timed-out
    sink never changes a decision: the error is logged and counted in
    `failures`, and the remaining sinks still receive the event.
    """

    def __init__(self, sinks: Iterable[AuditSink] = (), timeout: float | None = 2.0):
        self.sinks: list[AuditSink] = list(sinks)
        self.timeout = timeout
        self.failures = 0

    def add_sink(self, sink: AuditSink) -> None:
        self.sinks.append(sink)

    async def _write(self, sink: AuditSink, event: AuditEvent) -> None:
        if self.timeout is None:
            await sink.write(event)
        else:
            await asyncio.wait_for(sink.write(event), self.timeout)

    async def emit(self, event: AuditEvent) -> bool:
        """Returns False if any sink failed."""
        outcomes = await asyncio.gather(
            *(self._write(sink, event) for sink in self.sinks),
            return_exceptions=True,
        )

        delivered = True
        for sink, outcome in zip(self.sinks, outcomes):
            if not isinstance(outcome, Exception):
                continue
            self.failures += 1
            delivered = False
            logger.error(
                "Audit sink failed",
                sink=type(sink).__name__,
                error=str(outcome) or type(outcome).__name__,
                principal_id=event.principal_id,
                tenant=event.tenant,
                outcome=event.outcome.value,
            )
        return delivered
