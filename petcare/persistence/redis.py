from asyncio import get_running_loop
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from uuid import uuid4

from opentelemetry.instrumentation.redis import RedisInstrumentor
from redis.asyncio import Connection, ConnectionPool, Redis, SSLConnection
from redis.asyncio.retry import Retry
from redis.backoff import ExponentialBackoff
from redis.exceptions import (
    BusyLoadingError,
    ConnectionError as RedisConnectionError,
    RedisError,
)

from petcare.helpers.config_models.database import RedisModel
from petcare.helpers.logging import logger
from petcare.models.error import StorageUnavailableError
from petcare.models.readiness import ReadinessEnum
from petcare.persistence.istore import IStore

# Instrument redis
RedisInstrumentor().instrument()


class RedisStore(IStore):
    _config: RedisModel
    _pools: dict[int, ConnectionPool]

    def __init__(self, config: RedisModel):
        self._config = config
        self._pools = {}

    async def readiness(self) -> ReadinessEnum:
        """
        Check the readiness of the Redis store.

        This will validate the ACID properties of the database: Create, Read, Update, Delete.
        """
        test_name = str(uuid4())
        test_value = "test"
        try:
            async with self._use_client() as client:
                # Test the item does not exist
                assert await client.get(test_name) is None
                # Create a new item
                await client.set(test_name, test_value)
                # Test the item is the same
                assert (await client.get(test_name)).decode() == test_value
                # Delete the item
                await client.delete(test_name)
                # Test the item does not exist
                assert await client.get(test_name) is None
            return ReadinessEnum.OK
        except AssertionError:
            logger.exception("Readiness test failed")
        except RedisError:
            logger.exception("Error requesting Redis")
        except Exception:
            logger.exception("Unknown error while checking Redis readiness")
        return ReadinessEnum.FAIL

    async def get(self, key: str) -> str | None:
        """
        Get a document from the store.

        If the key does not exist, return `None`. Connection errors are retried 3 times by the pool, then raised as `StorageUnavailableError`.
        """
        try:
            async with self._use_client() as client:
                res: bytes | None = await client.get(key)
        except RedisError as e:
            logger.exception("Error getting document %s", key)
            raise StorageUnavailableError(f"Cannot read {key}") from e
        return res.decode() if res is not None else None

    async def set(self, key: str, value: str) -> None:
        """
        Replace a document in the store, without expiration.
        """
        try:
            async with self._use_client() as client:
                await client.set(
                    name=key,
                    value=value,
                )
        except RedisError as e:
            logger.exception("Error setting document %s", key)
            raise StorageUnavailableError(f"Cannot write {key}") from e

    def _use_connection_pool(self) -> ConnectionPool:
        """
        Get the Redis connection pool of the running event loop, creating it on first use.
        """
        loop_id = id(get_running_loop())
        pool = self._pools.get(loop_id, None)
        if pool is not None:
            return pool

        logger.info("Using Redis store %s:%s", self._config.host, self._config.port)
        pool = self._pools[loop_id] = ConnectionPool(
            # Database location
            db=self._config.database,
            # Reliability
            health_check_interval=10,  # Check the health of the connection every 10 secs
            retry_on_error=[BusyLoadingError, RedisConnectionError],
            retry_on_timeout=True,
            retry=Retry(backoff=ExponentialBackoff(), retries=3),
            socket_connect_timeout=5,  # Give the system sufficient time to connect even under higher CPU conditions
            socket_timeout=5,
            # Deployment
            connection_class=SSLConnection if self._config.ssl else Connection,
            host=self._config.host,
            port=self._config.port,
            # Authentication
            password=self._config.password.get_secret_value()
            if self._config.password
            else None,
        )
        return pool

    @asynccontextmanager
    async def _use_client(self) -> AsyncGenerator[Redis]:
        """
        Return a Redis connection.
        """
        async with Redis(connection_pool=self._use_connection_pool()) as client:
            yield client
