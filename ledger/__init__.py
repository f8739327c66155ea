"""
Purchase Ledger - Source Package

Tracks personal purchases owned by users, optionally tagged with a
user-defined category, and produces spending reports on top of a
Neo4j property graph:

    (Purchase)-[:MADE_BY]->(User)
    (Purchase)-[:BELONGS_TO]->(Category)

DESIGN PRINCIPLES:
1. Every purchase read or mutation is scoped to its owner
2. Not found is an answer, not an error
3. Reports have a fixed shape (zero-filled, never sparse)
4. Every step must be auditable
5. The graph store is a capability, not a dependency of the logic
"""

__version__ = "1.0.0"
__author__ = "Purchase Ledger Team"
