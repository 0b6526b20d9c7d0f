"""
Ordered fallback chain with per-source deadlines.

Sources are tried strictly in order. Each one runs under its own timeout, and a
source only wins if it returns a result the ``accept`` predicate likes; errors,
timeouts and empty results all move the chain on to the next source. When the
sources are exhausted the optional terminal callable (a pure local generator that
cannot fail) supplies the answer, otherwise AllSourcesExhausted is raised.

Used by the orchestrator (primary model -> rule-based reply) and by the GIF
search chain (Tenor direct -> proxies -> local placeholders).
"""
from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Generic, List, Optional, Sequence, Tuple, Type, TypeVar

from .exceptions import AllSourcesExhausted
from .utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

TERMINAL_SOURCE = "local"


@dataclass
class FallbackSource(Generic[T]):
    """One step of a fallback chain. ``timeout_s=None`` means the probe bounds itself."""

    name: str
    probe: Callable[[], Awaitable[T]]
    timeout_s: Optional[float] = None


@dataclass
class ChainResult(Generic[T]):
    """Outcome of a chain run."""

    value: T
    source: str
    attempts: int = 0
    failures: List[Tuple[str, str]] = field(default_factory=list)
    total_time: float = 0.0

    @property
    def fallback_occurred(self) -> bool:
        return bool(self.failures) or self.source == TERMINAL_SOURCE


def is_non_empty(value: Any) -> bool:
    """Default acceptance test: None, empty strings and empty containers are failures."""
    if value is None:
        return False
    if isinstance(value, (str, bytes, list, tuple, dict, set, frozenset)):
        return len(value) > 0
    return True


async def run_fallback_chain(
    sources: Sequence[FallbackSource[T]],
    *,
    terminal: Optional[Callable[[], T]] = None,
    accept: Callable[[T], bool] = is_non_empty,
    failure_types: Tuple[Type[BaseException], ...] = (Exception,),
    label: str = "chain",
) -> ChainResult[T]:
    """
    Run ``sources`` in order and return the first accepted result.

    Args:
        sources: Ordered sources; each probe is awaited under its own timeout.
        terminal: Guaranteed-success generator used once every source failed.
        accept: Predicate deciding whether a returned value counts as success.
        failure_types: Exceptions treated as an ordinary source failure. Anything
            else propagates to the caller untouched. Timeouts always count.
        label: Name used in log lines.

    Raises:
        AllSourcesExhausted: every source failed and no terminal was given.
    """
    start_time = time.monotonic()
    failures: List[Tuple[str, str]] = []
    total = len(sources)

    for idx, source in enumerate(sources, start=1):
        logger.debug(f"🔗 [{label}] [{idx}/{total}] Trying {source.name} (timeout: {source.timeout_s}s)")
        try:
            if source.timeout_s is None:
                value = await source.probe()
            else:
                value = await asyncio.wait_for(source.probe(), timeout=source.timeout_s)
        except asyncio.TimeoutError:
            failures.append((source.name, f"timeout after {source.timeout_s}s"))
            logger.info(f"⏱️ [{label}] {source.name} timed out after {source.timeout_s}s")
            continue
        except failure_types as e:
            failures.append((source.name, str(e) or type(e).__name__))
            logger.info(f"⚠️ [{label}] {source.name} failed: {e}")
            continue

        if not accept(value):
            failures.append((source.name, "empty result"))
            logger.info(f"⚠️ [{label}] {source.name} returned an empty result")
            continue

        total_time = time.monotonic() - start_time
        logger.info(
            f"✅ [{label}] {source.name} succeeded ({total_time:.2f}s)",
            extra={
                "subsys": "fallback",
                "event": f"{label}.success",
                "detail": {"source": source.name, "attempts": idx, "failures": len(failures)},
            },
        )
        return ChainResult(
            value=value,
            source=source.name,
            attempts=idx,
            failures=failures,
            total_time=total_time,
        )

    total_time = time.monotonic() - start_time
    if terminal is None:
        raise AllSourcesExhausted(f"All {total} sources failed for {label}", failures)

    logger.info(
        f"🎨 [{label}] All sources failed - using local fallback",
        extra={
            "subsys": "fallback",
            "event": f"{label}.terminal",
            "detail": {"failures": failures},
        },
    )
    return ChainResult(
        value=terminal(),
        source=TERMINAL_SOURCE,
        attempts=total,
        failures=failures,
        total_time=total_time,
    )
