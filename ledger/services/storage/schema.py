"""Neo4j schema definitions for the purchase graph.

Creates the constraints and indexes the ledger relies on:

    Purchase -[:MADE_BY]-> User
    Purchase -[:BELONGS_TO]-> Category

Uniqueness on User.id and Category.id is what keeps the MERGE-based
existence guarantee from ever producing duplicate nodes under
concurrent callers.
"""

import structlog

from ledger.services.storage.interface import GraphClient


logger = structlog.get_logger(__name__)

# Uniqueness constraints (also serve as indexes)
CONSTRAINTS = [
    (
        "user_id",
        "CREATE CONSTRAINT user_id IF NOT EXISTS "
        "FOR (u:User) REQUIRE u.id IS UNIQUE",
    ),
    (
        "category_id",
        "CREATE CONSTRAINT category_id IF NOT EXISTS "
        "FOR (c:Category) REQUIRE c.id IS UNIQUE",
    ),
    (
        "purchase_id",
        "CREATE CONSTRAINT purchase_id IF NOT EXISTS "
        "FOR (p:Purchase) REQUIRE p.id IS UNIQUE",
    ),
]

# Range indexes for filtering/sorting
RANGE_INDEXES = [
    (
        "purchase_date",
        "CREATE INDEX purchase_date IF NOT EXISTS "
        "FOR (p:Purchase) ON (p.date)",
    ),
]


async def ensure_schema(client: GraphClient) -> None:
    """Create all constraints and indexes.

    Safe to call repeatedly: every statement uses IF NOT EXISTS.
    Each statement runs in its own write transaction.
    """
    async with client.session() as session:
        for name, cypher in CONSTRAINTS:
            logger.info("ensuring_constraint", name=name)
            await session.execute_write(cypher)

        for name, cypher in RANGE_INDEXES:
            logger.info("ensuring_index", name=name)
            await session.execute_write(cypher)

    logger.info(
        "schema_ready",
        constraints=len(CONSTRAINTS),
        indexes=len(RANGE_INDEXES),
    )
