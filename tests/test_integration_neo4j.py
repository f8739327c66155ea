"""
Live tests against a real Neo4j.

Skipped unless NEO4J_URI (plus NEO4J_USERNAME / NEO4J_PASSWORD) is set.
Each test uses fresh random ids and removes what it created.
"""

import os
import pytest
from datetime import date
from uuid import uuid4

from ledger.config import Neo4jSettings
from ledger.models.purchase import PurchaseCreate, PurchaseQuery, PurchaseUpdate
from ledger.services.storage import Neo4jClient, Neo4jPurchaseRepository


pytestmark = pytest.mark.skipif(
    not os.environ.get("NEO4J_URI"),
    reason="NEO4J_URI not set",
)


async def _count(client: Neo4jClient, label: str, node_id: str) -> int:
    async with client.session() as session:
        rows = await session.execute_read(
            f"MATCH (n:{label} {{id: $id}}) RETURN count(n) AS n",
            {"id": node_id},
        )
    return rows[0]["n"]


async def _cleanup(client: Neo4jClient, user_id: str, category_id: str) -> None:
    async with client.session() as session:
        await session.execute_write(
            "MATCH (p:Purchase)-[:MADE_BY]->(:User {id: $userId}) DETACH DELETE p",
            {"userId": user_id},
        )
        await session.execute_write(
            "MATCH (n) WHERE (n:User AND n.id = $userId) OR (n:Category AND n.id = $categoryId) "
            "DETACH DELETE n",
            {"userId": user_id, "categoryId": category_id},
        )


class TestLiveNeo4j:
    """Round trips against a live database."""

    @pytest.mark.asyncio
    async def test_ensure_is_idempotent(self):
        """Test that repeated upserts never duplicate nodes."""
        client = Neo4jClient(Neo4jSettings(connect_attempts=1))
        repository = Neo4jPurchaseRepository(client)
        user_id, category_id = f"user-{uuid4()}", f"cat-{uuid4()}"
        try:
            await client.verify_connectivity()
            for _ in range(3):
                await repository.ensure_user_exists(user_id)
                await repository.ensure_category_exists(category_id)

            assert await _count(client, "User", user_id) == 1
            assert await _count(client, "Category", category_id) == 1
        finally:
            await _cleanup(client, user_id, category_id)
            await client.close()

    @pytest.mark.asyncio
    async def test_create_list_update_delete(self):
        """Test the full purchase lifecycle."""
        client = Neo4jClient(Neo4jSettings(connect_attempts=1))
        repository = Neo4jPurchaseRepository(client)
        user_id, category_id = f"user-{uuid4()}", f"cat-{uuid4()}"
        try:
            created = await repository.create_purchase(PurchaseCreate(
                user_id=user_id,
                price=42.5,
                date=date(2024, 3, 15),
                category_id=category_id,
            ))
            assert created.category_id == category_id

            listed = await repository.list_purchases(PurchaseQuery(user_id=user_id))
            assert [p.id for p in listed] == [created.id]
            assert listed[0].category_id == category_id

            assert await repository.update_purchase(
                created.id, "someone-else", PurchaseUpdate(price=1)
            ) is None

            updated = await repository.update_purchase(
                created.id, user_id, PurchaseUpdate(price=50)
            )
            assert updated.price == 50.0
            assert updated.category_id == category_id

            assert await repository.delete_purchase(created.id, user_id) is True
            assert await repository.delete_purchase(created.id, user_id) is False
        finally:
            await _cleanup(client, user_id, category_id)
            await client.close()
