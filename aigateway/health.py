"""
Backend health monitoring with a TTL-cached verdict.

At most one probe runs per TTL window: concurrent callers that find the snapshot
stale share the same in-flight probe task. The lock only guards the staleness
check and the snapshot write, never the network call.
"""
from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, FrozenSet, Optional, Protocol

from .utils.logging import get_logger

logger = get_logger(__name__)


class ModelLister(Protocol):
    async def list_models(self, timeout: float = ...) -> list: ...


@dataclass(frozen=True)
class HealthSnapshot:
    """Result of the most recent backend probe."""

    healthy: bool
    checked_at: float
    models: FrozenSet[str] = field(default_factory=frozenset)
    error: Optional[str] = None

    @property
    def checked_at_iso(self) -> str:
        return datetime.fromtimestamp(self.checked_at, tz=timezone.utc).isoformat()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "healthy": self.healthy,
            "checked_at": self.checked_at_iso,
            "models": sorted(self.models),
            "error": self.error,
        }


class HealthMonitor:
    """Answers "is the primary backend usable right now?" without hammering it."""

    def __init__(
        self,
        client: ModelLister,
        ttl_s: float = 60.0,
        probe_timeout_s: float = 2.0,
        clock: Callable[[], float] = time.time,
    ):
        self.client = client
        self.ttl_s = ttl_s
        self.probe_timeout_s = probe_timeout_s
        self._clock = clock
        self._snapshot: Optional[HealthSnapshot] = None
        self._lock = asyncio.Lock()
        self._inflight: Optional[asyncio.Task] = None
        self.probe_count = 0

    async def is_available(self) -> bool:
        """Return the cached verdict while fresh, otherwise probe once. Never raises."""
        async with self._lock:
            snapshot = self._snapshot
            if snapshot is not None and (self._clock() - snapshot.checked_at) < self.ttl_s:
                return snapshot.healthy
            if self._inflight is None or self._inflight.done():
                self._inflight = asyncio.create_task(self._probe())
            task = self._inflight

        snapshot = await asyncio.shield(task)
        return snapshot.healthy

    def snapshot(self) -> Optional[HealthSnapshot]:
        return self._snapshot

    def invalidate(self) -> None:
        """Force the next is_available() call to probe."""
        self._snapshot = None

    async def _probe(self) -> HealthSnapshot:
        self.probe_count += 1
        try:
            models = await asyncio.wait_for(
                self.client.list_models(timeout=self.probe_timeout_s),
                timeout=self.probe_timeout_s,
            )
        except asyncio.TimeoutError:
            snapshot = HealthSnapshot(False, self._clock(), error=f"probe timed out after {self.probe_timeout_s}s")
        except Exception as e:
            snapshot = HealthSnapshot(False, self._clock(), error=str(e) or type(e).__name__)
        else:
            snapshot = HealthSnapshot(True, self._clock(), models=frozenset(models or ()))

        async with self._lock:
            self._snapshot = snapshot

        if snapshot.healthy:
            logger.info(
                f"✅ Ollama is running. Available models: {', '.join(sorted(snapshot.models)) or 'none'}",
                extra={"subsys": "health", "event": "health.ok", "detail": {"models": sorted(snapshot.models)}},
            )
        else:
            logger.warning(
                f"⚠️ Ollama not available: {snapshot.error}",
                extra={"subsys": "health", "event": "health.down", "detail": {"error": snapshot.error}},
            )
        return snapshot
