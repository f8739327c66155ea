"""
Shared fixtures.

FakeGraphClient stands in for the graph store: tests script the rows
each statement returns, in order, and afterwards inspect every
(mode, query, params) call that was made.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import pytest

from ledger.config import LedgerSettings
from ledger.services.storage import (
    ConnectionError,
    GraphClient,
    GraphSession,
    InMemoryAuditStorage,
    StorageError,
)


class FakeGraphSession(GraphSession):
    def __init__(self, client: "FakeGraphClient"):
        self._client = client

    async def execute_read(self, query: str, params: Optional[dict] = None) -> list[dict]:
        return self._client.respond("read", query, params)

    async def execute_write(self, query: str, params: Optional[dict] = None) -> list[dict]:
        return self._client.respond("write", query, params)


class FakeGraphClient(GraphClient):
    """Scripted graph store that records every statement."""

    def __init__(self, reachable: bool = True):
        self.calls: list[tuple[str, str, dict]] = []
        self.sessions_opened = 0
        self.sessions_closed = 0
        self.closed = False
        self.reachable = reachable
        self._responses: list = []

    @property
    def uri(self) -> str:
        return "bolt://fake:7687"

    def script(self, *responses) -> "FakeGraphClient":
        """
        Queue what the next statements return.

        Each response is a list of rows, or an exception instance to raise.
        Statements past the end of the script return no rows.
        """
        self._responses.extend(responses)
        return self

    def respond(self, mode: str, query: str, params: Optional[dict]) -> list[dict]:
        self.calls.append((mode, query, dict(params or {})))
        if not self._responses:
            return []
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    @property
    def reads(self) -> list[tuple[str, str, dict]]:
        return [call for call in self.calls if call[0] == "read"]

    @property
    def writes(self) -> list[tuple[str, str, dict]]:
        return [call for call in self.calls if call[0] == "write"]

    @asynccontextmanager
    async def session(self) -> AsyncIterator[GraphSession]:
        self.sessions_opened += 1
        try:
            yield FakeGraphSession(self)
        finally:
            self.sessions_closed += 1

    async def verify_connectivity(self) -> None:
        if not self.reachable:
            raise ConnectionError(f"Failed to connect to Neo4j at {self.uri}")

    async def close(self) -> None:
        self.closed = True


def purchase_node(
    purchase_id: str = "p-1",
    price: float = 42.5,
    date: str = "2024-03-15T00:00:00+00:00",
    description: str = "Groceries",
    tags: Optional[list] = None,
) -> dict:
    """Purchase node properties as the driver hands them back."""
    return {
        "id": purchase_id,
        "description": description,
        "price": price,
        "date": date,
        "tags": tags or [],
        "createdAt": "2024-03-15T12:00:00+00:00",
        "updatedAt": "2024-03-15T12:00:00+00:00",
    }


@pytest.fixture
def graph() -> FakeGraphClient:
    return FakeGraphClient()


@pytest.fixture
def audit_storage() -> InMemoryAuditStorage:
    return InMemoryAuditStorage(max_events=100)


@pytest.fixture
def ledger_settings() -> LedgerSettings:
    return LedgerSettings(
        default_page_size=20,
        max_page_size=100,
        default_months=6,
        max_months=24,
    )


@pytest.fixture
def storage_failure() -> StorageError:
    return StorageError("Read failed: connection reset")
