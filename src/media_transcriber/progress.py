from __future__ import annotations

"""Per-session progress tracking shared by the upload and stream routes."""

import abc
import logging
import time
from typing import Callable, Dict, Optional, Tuple

import redis.asyncio as redis

from .settings import ProgressSettings

logger = logging.getLogger(__name__)


def _clamp(percent: float) -> int:
    return int(max(0, min(100, round(percent))))


class ProgressTracker(abc.ABC):
    """Keyed 0-100 counter. ``set`` never lowers an existing value."""

    name: str

    @abc.abstractmethod
    async def set(self, session_id: str, percent: float) -> int:
        raise NotImplementedError

    @abc.abstractmethod
    async def get(self, session_id: str) -> int:
        raise NotImplementedError

    @abc.abstractmethod
    async def clear(self, session_id: str) -> None:
        raise NotImplementedError

    async def close(self) -> None:
        return None


class InMemoryProgressTracker(ProgressTracker):
    """Process-local tracker; entries expire ``ttl_seconds`` after their last write."""

    name = "memory"

    def __init__(self, *, ttl_seconds: float = 3600.0, clock: Callable[[], float] = time.monotonic) -> None:
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, Tuple[int, float]] = {}

    async def set(self, session_id: str, percent: float) -> int:
        value = _clamp(percent)
        self._purge_expired()
        current = self._entries.get(session_id)
        if current is not None and current[0] > value:
            value = current[0]
        self._entries[session_id] = (value, self._clock() + self._ttl_seconds)
        return value

    async def get(self, session_id: str) -> int:
        self._purge_expired()
        entry = self._entries.get(session_id)
        return entry[0] if entry else 0

    async def clear(self, session_id: str) -> None:
        self._entries.pop(session_id, None)

    def _purge_expired(self) -> None:
        now = self._clock()
        expired = [key for key, (_, deadline) in self._entries.items() if deadline <= now]
        for key in expired:
            del self._entries[key]


class RedisProgressTracker(ProgressTracker):
    """Redis-backed tracker for deployments with more than one worker process."""

    name = "redis"

    def __init__(self, client: redis.Redis, *, ttl_seconds: float = 3600.0, key_prefix: str = "transcribe:progress:") -> None:
        self._client = client
        self._ttl = max(1, int(ttl_seconds))
        self._prefix = key_prefix

    @classmethod
    def from_settings(cls, cfg: ProgressSettings) -> "RedisProgressTracker":
        client = redis.Redis(host=cfg.redis_host, port=cfg.redis_port, db=cfg.redis_db, decode_responses=True)
        return cls(client, ttl_seconds=cfg.ttl_seconds, key_prefix=cfg.key_prefix)

    def _key(self, session_id: str) -> str:
        return f"{self._prefix}{session_id}"

    async def set(self, session_id: str, percent: float) -> int:
        value = _clamp(percent)
        # one writer per session, so read-then-write is enough to stay monotonic
        current = await self._read(session_id)
        if current is not None and current > value:
            value = current
        await self._client.set(self._key(session_id), value, ex=self._ttl)
        return value

    async def get(self, session_id: str) -> int:
        current = await self._read(session_id)
        return current or 0

    async def clear(self, session_id: str) -> None:
        await self._client.delete(self._key(session_id))

    async def close(self) -> None:
        await self._client.aclose()

    async def _read(self, session_id: str) -> Optional[int]:
        raw = await self._client.get(self._key(session_id))
        if raw is None:
            return None
        try:
            return int(raw)
        except (TypeError, ValueError):
            logger.warning("transcribe.progress.bad_value", extra={"session_id": session_id, "raw": raw})
            return None


def build_progress_tracker(cfg: ProgressSettings | None) -> ProgressTracker:
    backend = (cfg.backend if cfg else "memory").strip().lower()
    if backend == "memory":
        return InMemoryProgressTracker(ttl_seconds=cfg.ttl_seconds if cfg else 3600.0)
    if backend == "redis":
        return RedisProgressTracker.from_settings(cfg)
    raise RuntimeError(f"unsupported progress backend: {backend}")


__all__ = [
    "ProgressTracker",
    "InMemoryProgressTracker",
    "RedisProgressTracker",
    "build_progress_tracker",
]
