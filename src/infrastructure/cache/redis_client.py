"""
Redis Client - Distributed (L2) cache tier

Architecture:
    RedisClient (Public API)
        ├── ConnectionManager (Connection lifecycle + background reconnect)
        └── HealthMonitor (Ping latency for health endpoints)

Failure Model:
    The distributed tier is an optimization, never a correctness dependency.
    Every public operation degrades to "miss" / "write skipped" when Redis
    is not connected, and absorbs RedisError instead of raising it. A lost
    connection is logged once, then a tenacity-driven backoff loop tries to
    reconnect; when it gives up the tier stays unavailable until connect()
    is called again.

Author: Platform Team
Date: 2026-10-18
"""

import asyncio
import time
from collections.abc import Callable
from typing import Any

import orjson
import redis.asyncio as redis
from redis.asyncio.retry import Retry
from redis.backoff import NoBackoff
from redis.exceptions import ConnectionError, RedisError, TimeoutError
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from src.core.config.constants import REDIS_SCAN_COUNT, DistributedCacheState, Stage
from src.core.config.settings import RedisSettings, get_settings
from src.core.exceptions import ConfigurationError
from src.core.logging.logger import get_logger, log_stage

logger = get_logger(__name__)

# Errors that mean "the connection is gone", as opposed to a bad command
_CONNECTION_ERRORS = (ConnectionError, TimeoutError, OSError)

_URL_SCHEMES = ("redis://", "rediss://", "unix://")


def escape_glob(pattern: str) -> str:
    """Escape Redis glob metacharacters so `pattern` matches literally."""
    return "".join("\\" + ch if ch in "\\*?[]" else ch for ch in pattern)


# =============================================================================
# LAYER 1: CONNECTION MANAGEMENT
# Handles connection lifecycle and reconnection
# =============================================================================


class ConnectionManager:
    """
    Manages the Redis connection lifecycle.

    Responsibility: connect, detect loss, reconnect with bounded backoff.

    State machine (DistributedCacheState):
        DISCONNECTED --connect()--> CONNECTING --ok--> CONNECTED
        CONNECTING --fail--> RECONNECTING
        CONNECTED --connection error--> RECONNECTING
        RECONNECTING --ok--> CONNECTED
        RECONNECTING --retries exhausted--> UNAVAILABLE --connect()--> CONNECTING
    """

    def __init__(
        self,
        settings: RedisSettings,
        client_factory: Callable[[], redis.Redis] | None = None,
    ):
        """
        Initialize connection manager.

        Args:
            settings: Redis settings view
            client_factory: Builds an unconnected client (injectable for tests)

        Raises:
            ConfigurationError: REDIS_URL is set but not a Redis URL
        """
        if settings.distributed_enabled and not settings.REDIS_URL.startswith(_URL_SCHEMES):
            raise ConfigurationError(
                "REDIS_URL must use redis://, rediss:// or unix://",
                details={"scheme": settings.REDIS_URL.split(":", 1)[0]},
            )

        self._settings = settings
        self._client_factory = client_factory or self._build_client
        self._client: redis.Redis | None = None
        self._reconnect_task: asyncio.Task | None = None
        self._state = (
            DistributedCacheState.DISCONNECTED
            if settings.distributed_enabled
            else DistributedCacheState.DISABLED
        )

    def _build_client(self) -> redis.Redis:
        options: dict[str, Any] = {
            "db": self._settings.REDIS_DB,
            "socket_connect_timeout": self._settings.REDIS_CONNECT_TIMEOUT,
            "socket_timeout": self._settings.REDIS_SOCKET_TIMEOUT,
            "max_connections": self._settings.REDIS_MAX_CONNECTIONS,
            "decode_responses": True,
            # Reconnection is handled by the backoff loop below, not per command
            "retry": Retry(NoBackoff(), 0),
        }
        if self._settings.REDIS_PASSWORD:
            options["password"] = self._settings.REDIS_PASSWORD
        return redis.from_url(self._settings.REDIS_URL, **options)

    @property
    def state(self) -> DistributedCacheState:
        return self._state

    def is_connected(self) -> bool:
        return self._state == DistributedCacheState.CONNECTED

    def get_client(self) -> redis.Redis | None:
        """The live client, or None when commands must not be sent."""
        return self._client if self.is_connected() else None

    async def connect(self) -> bool:
        """
        Establish the connection.

        STAGE-REDIS.CONNECT: Connection establishment

        Never raises. On failure the background reconnect loop is started
        and the tier behaves as a permanent miss until it succeeds.

        Returns:
            True if connected now
        """
        if not self._settings.distributed_enabled:
            self._state = DistributedCacheState.DISABLED
            log_stage(logger, Stage.REDIS_CONNECT, "Distributed cache disabled, running local-only")
            return False

        if self.is_connected():
            return True

        await self._cancel_reconnect()
        self._state = DistributedCacheState.CONNECTING

        try:
            await self._open()
        except (RedisError, OSError) as e:
            log_stage(
                logger, Stage.REDIS_CONNECT, "Failed to connect to Redis",
                level="error", error=str(e),
            )
            self._schedule_reconnect()
            return False

        self._state = DistributedCacheState.CONNECTED
        log_stage(logger, Stage.REDIS_CONNECT, "Redis connected successfully", db=self._settings.REDIS_DB)
        return True

    async def _open(self) -> None:
        await self._close_client()
        client = self._client_factory()
        try:
            await client.ping()
        except (RedisError, OSError):
            await client.aclose()
            raise
        self._client = client

    def mark_failed(self, error: Exception) -> None:
        """
        Record a connection-level failure seen by a command.

        Only the first failure is logged; the state change makes every
        following command a silent no-op until the connection is back.
        """
        if not self.is_connected():
            return

        log_stage(
            logger, Stage.REDIS_RECONNECT, "Redis connection lost",
            level="error", error=str(error),
        )
        self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        self._state = DistributedCacheState.RECONNECTING
        if self._reconnect_task is None or self._reconnect_task.done():
            self._reconnect_task = asyncio.get_running_loop().create_task(self._reconnect_loop())

    async def _reconnect_loop(self) -> None:
        """
        Retry with exponential backoff, capped per attempt, bounded in count.

        STAGE-REDIS.RECONNECT
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._settings.REDIS_RECONNECT_MAX_RETRIES),
            wait=wait_exponential(
                multiplier=self._settings.REDIS_RECONNECT_BASE_DELAY,
                max=self._settings.REDIS_RECONNECT_MAX_DELAY,
            ),
            retry=retry_if_exception_type((RedisError, OSError)),
            before_sleep=lambda retry_state: log_stage(
                logger,
                Stage.REDIS_RECONNECT,
                "Redis reconnect attempt failed",
                level="debug",
                attempt=retry_state.attempt_number,
                delay=round(retry_state.next_action.sleep, 3) if retry_state.next_action else None,
            ),
            reraise=True,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    await self._open()
        except (RedisError, OSError) as e:
            self._state = DistributedCacheState.UNAVAILABLE
            log_stage(
                logger,
                Stage.REDIS_RECONNECT,
                "Redis unavailable, giving up reconnect",
                level="error",
                attempts=self._settings.REDIS_RECONNECT_MAX_RETRIES,
                error=str(e),
            )
            return

        self._state = DistributedCacheState.CONNECTED
        log_stage(logger, Stage.REDIS_RECONNECT, "Redis reconnected")

    async def wait_reconnect(self) -> None:
        """Wait for a running reconnect loop to settle (tests, shutdown)."""
        if self._reconnect_task is not None:
            await asyncio.gather(self._reconnect_task, return_exceptions=True)

    async def _cancel_reconnect(self) -> None:
        if self._reconnect_task is not None and not self._reconnect_task.done():
            self._reconnect_task.cancel()
            await asyncio.gather(self._reconnect_task, return_exceptions=True)
        self._reconnect_task = None

    async def _close_client(self) -> None:
        if self._client is not None:
            client, self._client = self._client, None
            try:
                await client.aclose()
            except (RedisError, OSError) as e:
                logger.warning("Error closing Redis client", error=str(e))

    async def disconnect(self) -> None:
        """
        Close the client and stop reconnecting.

        STAGE-REDIS.3: Connection cleanup
        """
        await self._cancel_reconnect()
        await self._close_client()
        if self._state != DistributedCacheState.DISABLED:
            self._state = DistributedCacheState.DISCONNECTED
            logger.info("Redis disconnected", stage="REDIS.3")


# =============================================================================
# LAYER 2: HEALTH MONITORING
# =============================================================================


class HealthMonitor:
    """Reports Redis connectivity and ping latency."""

    def __init__(self, connection_manager: ConnectionManager):
        self._conn_mgr = connection_manager

    async def health_check(self) -> dict[str, Any]:
        health = {
            "status": "healthy",
            "state": self._conn_mgr.state.value,
            "connected": self._conn_mgr.is_connected(),
            "ping_latency_ms": None,
        }

        client = self._conn_mgr.get_client()
        if client is None:
            health["status"] = (
                "disabled" if self._conn_mgr.state == DistributedCacheState.DISABLED else "unhealthy"
            )
            return health

        try:
            start = time.perf_counter()
            await client.ping()
            health["ping_latency_ms"] = round((time.perf_counter() - start) * 1000, 2)
        except _CONNECTION_ERRORS as e:
            self._conn_mgr.mark_failed(e)
            health["status"] = "unhealthy"
            health["error"] = str(e)
        except RedisError as e:
            health["status"] = "unhealthy"
            health["error"] = str(e)

        return health


# =============================================================================
# LAYER 3: PUBLIC API
# =============================================================================


class RedisClient:
    """
    Defensive async Redis client used as the distributed cache tier.

    Usage:
        client = RedisClient(get_settings().redis)
        await client.connect()

        await client.set("product:42", {"name": "Tee"}, ttl=600)
        value = await client.get("product:42")
        removed = await client.delete_matching("product:")

    Values are JSON-encoded with orjson. TTL is mandatory on every write.
    """

    def __init__(
        self,
        settings: RedisSettings | None = None,
        client_factory: Callable[[], redis.Redis] | None = None,
    ):
        self._settings = settings or get_settings().redis
        self._conn = ConnectionManager(self._settings, client_factory)
        self._health = HealthMonitor(self._conn)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def connect(self) -> bool:
        return await self._conn.connect()

    async def disconnect(self) -> None:
        await self._conn.disconnect()

    async def wait_reconnect(self) -> None:
        await self._conn.wait_reconnect()

    @property
    def state(self) -> DistributedCacheState:
        return self._conn.state

    @property
    def is_connected(self) -> bool:
        return self._conn.is_connected()

    @property
    def enabled(self) -> bool:
        return self._settings.distributed_enabled

    # -------------------------------------------------------------------------
    # Cache Operations
    # -------------------------------------------------------------------------

    async def get(self, key: str) -> Any | None:
        """
        Get and decode a value.

        STAGE-REDIS.GET

        Returns:
            Decoded value, or None on miss / decode failure / unavailability
        """
        client = self._conn.get_client()
        if client is None:
            return None

        try:
            raw = await client.get(key)
        except UnicodeDecodeError as e:
            self._undecodable(key, e)
            return None
        except (RedisError, OSError) as e:
            self._handle_error("GET", e, key=key)
            return None

        return self._decode(key, raw)

    async def get_with_ttl(self, key: str) -> tuple[Any, int | None] | None:
        """
        Get a value together with its remaining TTL in one round-trip.

        Returns:
            (value, remaining_seconds) or None on miss. remaining_seconds is
            None when Redis reports no expiry.
        """
        client = self._conn.get_client()
        if client is None:
            return None

        try:
            raw, remaining = await client.pipeline(transaction=False).get(key).ttl(key).execute()
        except UnicodeDecodeError as e:
            self._undecodable(key, e)
            return None
        except (RedisError, OSError) as e:
            self._handle_error("GET+TTL", e, key=key)
            return None

        value = self._decode(key, raw)
        if value is None:
            return None
        return value, (remaining if remaining and remaining > 0 else None)

    async def set(self, key: str, value: Any, ttl: int) -> bool:
        """
        Encode and store a value with an expiry (SET EX).

        STAGE-REDIS.SET

        Returns:
            True if written, False if skipped or failed
        """
        if ttl is None or ttl <= 0:
            logger.warning("Redis SET refused: TTL is mandatory", stage="REDIS.SET", key=key, ttl=ttl)
            return False

        client = self._conn.get_client()
        if client is None:
            return False

        try:
            payload = orjson.dumps(value)
        except TypeError as e:
            logger.warning("Redis SET skipped: value not serializable", stage="REDIS.SET", key=key, error=str(e))
            return False

        try:
            await client.set(key, payload, ex=int(ttl))
        except (RedisError, OSError) as e:
            self._handle_error("SET", e, key=key)
            return False
        return True

    async def delete_matching(self, pattern: str) -> int:
        """
        Delete every key containing `pattern`.

        STAGE-REDIS.DEL

        SCAN for `*pattern*`, then one DEL for everything found. Not atomic
        against concurrent writers: a key written between the scan and the
        delete survives until its TTL.

        Returns:
            Number of keys deleted
        """
        client = self._conn.get_client()
        if client is None:
            return 0

        match = f"*{escape_glob(pattern)}*"
        try:
            keys = [key async for key in client.scan_iter(match=match, count=REDIS_SCAN_COUNT)]
            if not keys:
                return 0
            return int(await client.delete(*keys))
        except (RedisError, OSError) as e:
            self._handle_error("DEL", e, pattern=pattern)
            return 0

    async def flush_all(self) -> bool:
        """
        Clear this service's logical database (FLUSHDB). Administrative only.
        """
        client = self._conn.get_client()
        if client is None:
            return False

        try:
            await client.flushdb()
        except (RedisError, OSError) as e:
            self._handle_error("FLUSHDB", e)
            return False
        logger.info("Redis database flushed", stage="REDIS.FLUSH")
        return True

    async def health_check(self) -> dict[str, Any]:
        return await self._health.health_check()

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _decode(self, key: str, raw: Any) -> Any | None:
        if raw is None:
            return None
        try:
            return orjson.loads(raw)
        except orjson.JSONDecodeError as e:
            self._undecodable(key, e)
            return None

    def _undecodable(self, key: str, error: Exception) -> None:
        # Written by something other than this client (or not UTF-8 at all)
        logger.warning("Redis value not decodable, treating as miss", stage="REDIS.GET", key=key, error=str(error))

    def _handle_error(self, operation: str, error: Exception, **context) -> None:
        if isinstance(error, _CONNECTION_ERRORS):
            self._conn.mark_failed(error)
            return
        log_stage(
            logger,
            Stage.REDIS_OPERATION,
            f"Redis {operation} failed",
            level="warning",
            error=str(error),
            **context,
        )
