"""Stage tracing hooks for the orchestrator.

Tracing is instrumentation only: the orchestrator opens a stage around
classification, tool selection, tool execution and the final answer, and
a tracer decides what (if anything) to record.
"""

import logging
import time
from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class StageTracer(Protocol):
    """Callback interface invoked around each orchestrator stage."""

    def stage(self, name: str, **metadata: Any) -> AbstractAsyncContextManager[None]: ...


class NoopTracer:
    """Tracer that records nothing."""

    @asynccontextmanager
    async def stage(self, name: str, **metadata: Any) -> AsyncIterator[None]:  # noqa: ARG002
        yield


class LoggingTracer:
    """Tracer that logs stage boundaries and durations."""

    @asynccontextmanager
    async def stage(self, name: str, **metadata: Any) -> AsyncIterator[None]:
        started = time.perf_counter()
        logger.debug("Stage started: %s %s", name, metadata)
        try:
            yield
        except Exception:
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.warning("Stage failed: %s after %.1fms", name, elapsed_ms)
            raise
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info("Stage finished: %s in %.1fms", name, elapsed_ms)
