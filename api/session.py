"""Game storage with Redis backend and in-memory fallback."""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import Any, AsyncIterator

import redis.asyncio as redis
from redis.exceptions import LockError, RedisError

from config import config
from core.exceptions import InvalidState
from core.game.models import GameSession

logger = logging.getLogger(__name__)


class LockGuard:
    """Handle on a held per-game lock, yielded by `SessionStore.lock`."""

    async def confirm(self) -> None:
        """
        Check the lock is still held. Call right before committing.

        Raises:
            InvalidState: If the lock was lost
        """


class RedisLockGuard(LockGuard):
    """Guard over a redis-py lock, which can expire while held."""

    def __init__(self, lock: Any, session_id: str) -> None:
        self._lock = lock
        self._session_id = session_id

    async def confirm(self) -> None:
        """Reset the lock's expiry, failing if another writer owns it now."""
        try:
            await self._lock.reacquire()
        except LockError:
            logger.warning("Lost lock on game %s before commit", self._session_id)
            raise InvalidState("Game is busy, try again") from None


class SessionStore(ABC):
    """Abstract game store keyed by stringified game id."""

    @abstractmethod
    async def get(self, session_id: str) -> dict[str, Any] | None:
        """Get raw game data."""
        ...

    @abstractmethod
    async def set(self, session_id: str, data: dict[str, Any], ttl: int | None = None) -> None:
        """Set raw game data."""
        ...

    @abstractmethod
    async def delete(self, session_id: str) -> None:
        """Delete a game."""
        ...

    @abstractmethod
    async def exists(self, session_id: str) -> bool:
        """Check if a game exists."""
        ...

    @abstractmethod
    async def next_id(self) -> int:
        """Allocate the next game id. Ids strictly increase."""
        ...

    @abstractmethod
    def lock(self, session_id: str) -> Any:
        """
        Async context manager serializing mutations of one game.

        Yields a `LockGuard`; confirm it before saving.

        Raises:
            InvalidState: If the lock could not be acquired in time
        """
        ...

    async def load(self, session_id: int | str) -> GameSession | None:
        """Load a game as a model, or None if absent."""
        data = await self.get(str(session_id))
        if data is None:
            return None
        return GameSession.from_dict(data)

    async def save(self, session: GameSession) -> None:
        """Persist the full game, replacing the previous snapshot."""
        await self.set(str(session.id), session.to_dict(), ttl=config.session_ttl)

    async def aclose(self) -> None:
        """Release any held resources."""


class InMemorySessionStore(SessionStore):
    """In-memory game store for local development and tests."""

    def __init__(self) -> None:
        self._sessions: dict[str, tuple[dict[str, Any], datetime | None]] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._last_id = 0

    async def get(self, session_id: str) -> dict[str, Any] | None:
        """Get raw game data."""
        if session_id not in self._sessions:
            return None

        data, expiry = self._sessions[session_id]
        if expiry is not None and expiry < datetime.now():
            await self.delete(session_id)
            return None

        return data

    async def set(
        self,
        session_id: str,
        data: dict[str, Any],
        ttl: int | None = None,
    ) -> None:
        """Set raw game data. Without a ttl the game never expires."""
        expiry = datetime.now() + timedelta(seconds=ttl) if ttl else None
        self._sessions[session_id] = (data, expiry)

    async def delete(self, session_id: str) -> None:
        """Delete a game and its idle lock."""
        self._sessions.pop(session_id, None)
        lock = self._locks.get(session_id)
        if lock is not None and not lock.locked():
            del self._locks[session_id]

    async def exists(self, session_id: str) -> bool:
        """Check if a game exists."""
        return await self.get(session_id) is not None

    async def next_id(self) -> int:
        """Allocate the next game id."""
        self._last_id += 1
        return self._last_id

    @asynccontextmanager
    async def lock(self, session_id: str) -> AsyncIterator[LockGuard]:
        """Hold the per-game asyncio lock."""
        lock = self._locks.setdefault(str(session_id), asyncio.Lock())
        try:
            await asyncio.wait_for(lock.acquire(), timeout=config.lock.blocking_timeout)
        except asyncio.TimeoutError:
            raise InvalidState("Game is busy, try again") from None
        try:
            yield LockGuard()
        finally:
            lock.release()

    async def cleanup_expired(self) -> int:
        """Remove expired games."""
        now = datetime.now()
        expired = [
            sid
            for sid, (_, expiry) in self._sessions.items()
            if expiry is not None and expiry < now
        ]
        for sid in expired:
            await self.delete(sid)
        return len(expired)


class RedisSessionStore(SessionStore):
    """Redis-backed game store with distributed per-game locks."""

    def __init__(self, redis_client: "redis.Redis", prefix: str | None = None) -> None:
        self._redis = redis_client
        self._prefix = prefix or config.store.key_prefix

    def _key(self, session_id: str) -> str:
        """Get Redis key for a game."""
        return f"{self._prefix}game:{session_id}"

    def _lock_key(self, session_id: str) -> str:
        """Get Redis key for a game's mutation lock."""
        return f"{self._prefix}lock:{session_id}"

    async def get(self, session_id: str) -> dict[str, Any] | None:
        """Get raw game data."""
        data = await self._redis.get(self._key(session_id))
        if data is None:
            return None
        return json.loads(data)

    async def set(
        self,
        session_id: str,
        data: dict[str, Any],
        ttl: int | None = None,
    ) -> None:
        """Set raw game data. Without a ttl the key never expires."""
        await self._redis.set(self._key(session_id), json.dumps(data), ex=ttl)

    async def delete(self, session_id: str) -> None:
        """Delete a game."""
        await self._redis.delete(self._key(session_id))

    async def exists(self, session_id: str) -> bool:
        """Check if a game exists."""
        return await self._redis.exists(self._key(session_id)) > 0

    async def next_id(self) -> int:
        """Allocate the next game id with an atomic INCR."""
        return int(await self._redis.incr(f"{self._prefix}game_id"))

    @asynccontextmanager
    async def lock(self, session_id: str) -> AsyncIterator[LockGuard]:
        """Hold a Redis lock on the game across processes."""
        lock = self._redis.lock(
            self._lock_key(str(session_id)),
            timeout=config.lock.timeout,
            blocking_timeout=config.lock.blocking_timeout,
        )
        if not await lock.acquire():
            raise InvalidState("Game is busy, try again")
        try:
            yield RedisLockGuard(lock, str(session_id))
        finally:
            try:
                await lock.release()
            except LockError:
                logger.warning("Lock on game %s expired before release", session_id)

    async def aclose(self) -> None:
        """Close the Redis connection pool."""
        await self._redis.aclose()


# Global game store instance
_session_store: SessionStore | None = None


async def get_session_store() -> SessionStore:
    """Get or create the game store."""
    global _session_store

    if _session_store is not None:
        return _session_store

    if config.store.backend != "memory":
        try:
            redis_client = redis.from_url(config.redis.url)
            await redis_client.ping()
            _session_store = RedisSessionStore(redis_client)
            logger.info("Using Redis game store at %s:%s", config.redis.host, config.redis.port)
            return _session_store
        except (RedisError, OSError):
            if config.store.backend == "redis":
                raise
            logger.warning("Redis unavailable, falling back to in-memory game store")

    _session_store = InMemorySessionStore()
    return _session_store


async def close_session_store() -> None:
    """Close and forget the game store."""
    global _session_store
    if _session_store is not None:
        await _session_store.aclose()
        _session_store = None
