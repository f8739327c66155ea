"""
Neo4j Graph Session Implementation

Wraps the async neo4j driver behind the GraphClient / GraphSession
capability. Nothing outside this module imports the driver for data
access.

TRADEOFFS:
- Managed transactions are used for both reads and writes, but the
  driver's transparent retry is disabled (max_transaction_retry_time=0).
  Failures surface to the caller, who owns the retry policy.
- Only the startup connectivity probe is retried, a bounded number of
  times, before it becomes fatal.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import structlog
from neo4j import AsyncDriver, AsyncGraphDatabase, AsyncManagedTransaction, AsyncSession
from neo4j.exceptions import DriverError, Neo4jError, ServiceUnavailable, SessionExpired
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ledger.config import Neo4jSettings, get_settings
from ledger.services.storage.interface import (
    ConnectionError,
    GraphClient,
    GraphSession,
    Row,
    StorageError,
)


logger = structlog.get_logger(__name__)


async def _collect(
    tx: AsyncManagedTransaction,
    query: str,
    params: dict,
) -> list[Row]:
    """Run one statement and drain it into plain dicts."""
    result = await tx.run(query, params)
    return await result.data()


class Neo4jGraphSession(GraphSession):
    """GraphSession backed by one neo4j AsyncSession."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def execute_read(self, query: str, params: Optional[dict] = None) -> list[Row]:
        try:
            return await self._session.execute_read(_collect, query, params or {})
        except (Neo4jError, DriverError) as e:
            raise StorageError(f"Read failed: {e}") from e

    async def execute_write(self, query: str, params: Optional[dict] = None) -> list[Row]:
        try:
            return await self._session.execute_write(_collect, query, params or {})
        except (Neo4jError, DriverError) as e:
            raise StorageError(f"Write failed: {e}") from e


class Neo4jClient(GraphClient):
    """
    Owns the driver and its connection pool.

    Sessions are cheap and short-lived: one per ledger operation.
    """

    def __init__(
        self,
        settings: Optional[Neo4jSettings] = None,
        encrypted: bool = False,
        driver: Optional[AsyncDriver] = None,
    ):
        """
        Initialize the client.

        Args:
            settings: Connection settings. Loaded from the environment if None.
            encrypted: Encrypt transport (ignored for +s/+ssc URI schemes,
                       which configure TLS themselves).
            driver: Pre-built driver, mostly for tests.
        """
        self._settings = settings or get_settings().neo4j
        self._encrypted = encrypted
        self._driver = driver

    @property
    def uri(self) -> str:
        return self._settings.uri

    @property
    def database(self) -> Optional[str]:
        return self._settings.database

    def _create_driver(self) -> AsyncDriver:
        config = {
            "max_connection_pool_size": self._settings.max_connection_pool_size,
            "connection_acquisition_timeout": self._settings.connection_acquisition_timeout,
            # Operations are never retried transparently
            "max_transaction_retry_time": 0,
        }
        if not self._settings.scheme_has_tls:
            config["encrypted"] = self._encrypted

        return AsyncGraphDatabase.driver(
            self._settings.uri,
            auth=(self._settings.username, self._settings.password),
            **config,
        )

    @property
    def driver(self) -> AsyncDriver:
        if self._driver is None:
            self._driver = self._create_driver()
        return self._driver

    async def verify_connectivity(self) -> None:
        """
        Confirm the store is reachable.

        Raises:
            ConnectionError: If connectivity could not be confirmed after
                             the configured number of attempts
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._settings.connect_attempts),
            wait=wait_exponential(multiplier=1, min=2, max=10),
            retry=retry_if_exception_type((ServiceUnavailable, SessionExpired)),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    await self.driver.verify_connectivity()
        except (Neo4jError, DriverError) as e:
            logger.error("neo4j_connection_failed", uri=self.uri, error=str(e))
            raise ConnectionError(f"Failed to connect to Neo4j at {self.uri}: {e}") from e

        logger.info("neo4j_connected", uri=self.uri, database=self.database)

    @asynccontextmanager
    async def session(self) -> AsyncIterator[GraphSession]:
        session = self.driver.session(database=self.database)
        try:
            yield Neo4jGraphSession(session)
        finally:
            await session.close()

    async def close(self) -> None:
        """Close the driver and its pool."""
        if self._driver is None:
            return
        await self._driver.close()
        self._driver = None
        logger.info("neo4j_closed", uri=self.uri)
