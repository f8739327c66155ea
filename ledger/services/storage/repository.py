"""
Neo4j Purchase Repository

Implements PurchaseStorageInterface on top of the GraphClient capability.

Each public method takes its own session and releases it when done.
Statements inside one method run sequentially on that session, so an
existence upsert or an ownership check is always visible to the
statement that follows it.

Ownership: a purchase is only ever reached through its MADE_BY edge
to the calling user. A purchase owned by someone else is
indistinguishable from one that does not exist.
"""

from typing import Optional

from ledger.models.purchase import (
    Purchase,
    PurchaseCreate,
    PurchaseQuery,
    PurchaseUpdate,
)
from ledger.models.values import materialize_purchase
from ledger.queries.builder import CypherQuery, PurchaseQueryBuilder
from ledger.services.storage.interface import (
    GraphClient,
    GraphSession,
    PurchaseStorageInterface,
    Row,
    StorageInconsistencyError,
)


async def _run(session: GraphSession, query: CypherQuery) -> list[Row]:
    if query.is_write:
        return await session.execute_write(query.text, query.params)
    return await session.execute_read(query.text, query.params)


class Neo4jPurchaseRepository(PurchaseStorageInterface):
    """
    Purchases stored as (:Purchase) nodes linked to (:User) and (:Category).

    Purchase ids are generated by the store (randomUUID()).
    """

    def __init__(
        self,
        client: GraphClient,
        builder: Optional[PurchaseQueryBuilder] = None,
    ):
        self._client = client
        self._builder = builder or PurchaseQueryBuilder()

    async def ensure_user_exists(self, user_id: str) -> None:
        async with self._client.session() as session:
            await _run(session, self._builder.ensure_user(user_id))

    async def ensure_category_exists(self, category_id: str) -> None:
        async with self._client.session() as session:
            await _run(session, self._builder.ensure_category(category_id))

    async def create_purchase(self, data: PurchaseCreate) -> Purchase:
        """Create the purchase and its links in a single write."""
        query = self._builder.create(data)
        async with self._client.session() as session:
            rows = await _run(session, query)

        if not rows:
            raise StorageInconsistencyError(
                f"Create for user {data.user_id} returned no record"
            )
        return materialize_purchase(rows[0], user_id=data.user_id)

    async def list_purchases(self, query: PurchaseQuery) -> list[Purchase]:
        """List purchases, upserting the user first so unknown users get []."""
        async with self._client.session() as session:
            await _run(session, self._builder.ensure_user(query.user_id))
            rows = await _run(session, self._builder.list_purchases(query))

        return [materialize_purchase(row, user_id=query.user_id) for row in rows]

    async def update_purchase(
        self,
        purchase_id: str,
        user_id: str,
        changes: PurchaseUpdate,
    ) -> Optional[Purchase]:
        """
        Apply the supplied fields to an owned purchase.

        Returns None without writing anything when the ownership check
        fails, and None when the write itself matched nothing.
        """
        async with self._client.session() as session:
            if not await self._is_owned(session, purchase_id, user_id):
                return None
            rows = await _run(session, self._builder.update(purchase_id, user_id, changes))

        if not rows:
            return None
        return materialize_purchase(rows[0], user_id=user_id)

    async def delete_purchase(self, purchase_id: str, user_id: str) -> bool:
        """Detach-delete an owned purchase. False (and no write) otherwise."""
        async with self._client.session() as session:
            if not await self._is_owned(session, purchase_id, user_id):
                return False
            await _run(session, self._builder.delete(purchase_id, user_id))
        return True

    async def _is_owned(
        self,
        session: GraphSession,
        purchase_id: str,
        user_id: str,
    ) -> bool:
        rows = await _run(session, self._builder.ownership(purchase_id, user_id))
        return len(rows) > 0
