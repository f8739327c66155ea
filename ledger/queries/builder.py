"""
Cypher Query Builder

DESIGN DECISION: Query text is never concatenated clause by clause.
Each operation has one fixed skeleton with named slots ({where},
{category_match}, {assignments}, ...). Optional pieces are described
declaratively as Clause entries and reduced into those slots, so the
order in which filters are applied is the order of the lists below
and nothing else:

    1. date lower bound
    2. date upper bound
    3. category (a second traversal, applied after the date predicates)

Ownership is part of every skeleton that touches an existing purchase:
the purchase is only ever reached through its MADE_BY edge to the
calling user.
"""

import textwrap
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Union

from pydantic import BaseModel, ConfigDict

from ledger.models.purchase import (
    OTHER_CATEGORY,
    MonthlyStatsQuery,
    PurchaseCreate,
    PurchaseQuery,
    PurchaseUpdate,
    StatsQuery,
)
from ledger.models.values import to_iso


class QueryKind(str, Enum):
    """Statements the builder knows how to produce."""
    ENSURE_USER = "ensure_user"
    ENSURE_CATEGORY = "ensure_category"
    CREATE = "create"
    LIST = "list"
    OWNERSHIP = "ownership"
    UPDATE = "update"
    DELETE = "delete"
    TOTALS = "totals"
    CATEGORY_TOTALS = "category_totals"
    MONTHLY_TOTALS = "monthly_totals"


class CypherQuery(BaseModel):
    """Query text plus its parameter bag."""
    model_config = ConfigDict(frozen=True)

    kind: QueryKind
    text: str
    params: dict[str, Any]

    @property
    def is_write(self) -> bool:
        return self.kind in WRITE_KINDS


class Clause(BaseModel):
    """
    One optional piece of a query.

    Included when the option attribute is set (not None) on the
    options record; contributes its Cypher fragment and one parameter.
    """
    model_config = ConfigDict(frozen=True)

    option: str
    param: str
    cypher: str


WRITE_KINDS = frozenset({
    QueryKind.ENSURE_USER,
    QueryKind.ENSURE_CATEGORY,
    QueryKind.CREATE,
    QueryKind.UPDATE,
    QueryKind.DELETE,
})


# =============================================================================
# DECLARATIVE CLAUSES
# =============================================================================

DATE_FILTERS: tuple[Clause, ...] = (
    Clause(option="start_date", param="startDate", cypher="p.date >= datetime($startDate)"),
    Clause(option="end_date", param="endDate", cypher="p.date <= datetime($endDate)"),
)

CATEGORY_FILTER = Clause(
    option="category_id",
    param="categoryId",
    cypher="MATCH (p)-[:BELONGS_TO]->(c:Category {id: $categoryId})",
)
OPTIONAL_CATEGORY = "OPTIONAL MATCH (p)-[:BELONGS_TO]->(c:Category)"

# updatedAt is always refreshed, these only when supplied
UPDATE_ASSIGNMENTS: tuple[Clause, ...] = (
    Clause(option="description", param="description", cypher="p.description = $description"),
    Clause(option="price", param="price", cypher="p.price = $price"),
    Clause(option="date", param="date", cypher="p.date = datetime($date)"),
    Clause(option="tags", param="tags", cypher="p.tags = $tags"),
)
TOUCH_UPDATED_AT = "p.updatedAt = datetime()"


# =============================================================================
# SKELETONS
# =============================================================================

ENSURE_USER = "MERGE (u:User {id: $userId})"

ENSURE_CATEGORY = "MERGE (c:Category {id: $categoryId})"

CREATE_SKELETON = """
    MERGE (u:User {{id: $userId}})
    {category_merge}
    CREATE (p:Purchase {{
        id: randomUUID(),
        description: $description,
        price: $price,
        date: datetime($date),
        tags: $tags,
        createdAt: datetime(),
        updatedAt: datetime()
    }})
    CREATE (p)-[:MADE_BY]->(u)
    {category_link}
    RETURN p, {category_id} AS categoryId
"""

LIST_SKELETON = """
    MATCH (p:Purchase)-[:MADE_BY]->(:User {{id: $userId}})
    {where}
    WITH p
    {category_match}
    RETURN p, c.id AS categoryId
    ORDER BY p.date DESC
    SKIP $offset
    LIMIT $limit
"""

OWNERSHIP_SKELETON = """
    MATCH (p:Purchase {id: $id})-[:MADE_BY]->(:User {id: $userId})
    RETURN p.id AS id
"""

# Old link removal and new link creation happen in the same statement
RELINK_CATEGORY = """
    MERGE (c:Category {id: $categoryId})
    WITH p, c
    OPTIONAL MATCH (p)-[old:BELONGS_TO]->(:Category)
    DELETE old
    WITH DISTINCT p, c
    MERGE (p)-[:BELONGS_TO]->(c)
"""

# Category lookup after SET is OPTIONAL so uncategorized purchases still
# return a row; only the ownership MATCH can produce not found
UPDATE_SKELETON = """
    MATCH (p:Purchase {{id: $id}})-[:MADE_BY]->(:User {{id: $userId}})
    {relink}
    SET {assignments}
    WITH p
    OPTIONAL MATCH (p)-[:BELONGS_TO]->(c:Category)
    RETURN p, c.id AS categoryId
"""

DELETE_SKELETON = """
    MATCH (p:Purchase {id: $id})-[:MADE_BY]->(:User {id: $userId})
    DETACH DELETE p
"""

TOTALS_SKELETON = """
    MATCH (p:Purchase)-[:MADE_BY]->(:User {{id: $userId}})
    {where}
    RETURN sum(p.price) AS totalAmount, count(p) AS totalCount
"""

CATEGORY_TOTALS_SKELETON = """
    MATCH (p:Purchase)-[:MADE_BY]->(:User {{id: $userId}})
    {where}
    OPTIONAL MATCH (p)-[:BELONGS_TO]->(c:Category)
    WITH coalesce(c.id, $otherCategory) AS categoryId,
         sum(p.price) AS categoryTotal,
         count(p) AS categoryCount
    RETURN categoryId, categoryTotal, categoryCount
    ORDER BY categoryTotal DESC, categoryId
"""

MONTHLY_TOTALS_SKELETON = """
    MATCH (p:Purchase)-[:MADE_BY]->(:User {{id: $userId}})
    {where}
    OPTIONAL MATCH (p)-[:BELONGS_TO]->(c:Category)
    WITH coalesce(c.id, $otherCategory) AS categoryId,
         p.date.year AS year,
         p.date.month AS month,
         sum(p.price) AS monthTotal
    RETURN categoryId, year, month, monthTotal
    ORDER BY year, month, categoryId
"""


# =============================================================================
# HELPERS
# =============================================================================

def _render(skeleton: str, **slots: str) -> str:
    """Fill the named slots and drop the lines left empty."""
    text = textwrap.dedent(skeleton)
    if slots:
        text = text.format(**slots)
    return "\n".join(line for line in text.splitlines() if line.strip())


def _param_value(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return to_iso(value)
    if isinstance(value, (list, tuple)):
        return list(value)
    return value


def _reduce(clauses: tuple[Clause, ...], options: Any) -> tuple[list[str], dict[str, Any]]:
    """Keep the clauses whose option is set, in list order."""
    fragments: list[str] = []
    params: dict[str, Any] = {}
    for clause in clauses:
        value = getattr(options, clause.option, None)
        if value is None:
            continue
        fragments.append(clause.cypher)
        params[clause.param] = _param_value(value)
    return fragments, params


def _where(options: Any) -> tuple[str, dict[str, Any]]:
    predicates, params = _reduce(DATE_FILTERS, options)
    if not predicates:
        return "", params
    return "WHERE " + " AND ".join(predicates), params


def to_store_int(value: Union[int, float], name: str) -> int:
    """
    Coerce a pagination value to a native integer.

    SKIP/LIMIT reject floats, so 50.0 must travel as 50.
    """
    if isinstance(value, bool):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"{name} must be a whole number, got {value!r}")
    value = int(value)
    if value < 0:
        raise ValueError(f"{name} cannot be negative, got {value}")
    return value


# =============================================================================
# BUILDER
# =============================================================================

class PurchaseQueryBuilder:
    """
    Produces the exact Cypher and parameters for every ledger statement.

    Stateless; one instance can be shared by any number of callers.
    """

    def __init__(self, other_category: str = OTHER_CATEGORY):
        self._other_category = other_category
        self._builders: dict[QueryKind, Callable[..., CypherQuery]] = {
            QueryKind.ENSURE_USER: self.ensure_user,
            QueryKind.ENSURE_CATEGORY: self.ensure_category,
            QueryKind.CREATE: self.create,
            QueryKind.LIST: self.list_purchases,
            QueryKind.OWNERSHIP: self.ownership,
            QueryKind.UPDATE: self.update,
            QueryKind.DELETE: self.delete,
            QueryKind.TOTALS: self.totals,
            QueryKind.CATEGORY_TOTALS: self.category_totals,
            QueryKind.MONTHLY_TOTALS: self.monthly_totals,
        }

    def build(self, kind: QueryKind, **options: Any) -> CypherQuery:
        """Route to the builder for kind."""
        try:
            builder = self._builders[QueryKind(kind)]
        except (KeyError, ValueError):
            raise ValueError(f"Unknown query kind: {kind}")
        return builder(**options)

    # -------------------------------------------------------------------------
    # Existence guarantees
    # -------------------------------------------------------------------------

    def ensure_user(self, user_id: str) -> CypherQuery:
        return CypherQuery(
            kind=QueryKind.ENSURE_USER,
            text=ENSURE_USER,
            params={"userId": user_id},
        )

    def ensure_category(self, category_id: str) -> CypherQuery:
        return CypherQuery(
            kind=QueryKind.ENSURE_CATEGORY,
            text=ENSURE_CATEGORY,
            params={"categoryId": category_id},
        )

    # -------------------------------------------------------------------------
    # CRUD
    # -------------------------------------------------------------------------

    def create(self, data: PurchaseCreate) -> CypherQuery:
        """User and category upserts, node creation and links in one write."""
        params: dict[str, Any] = {
            "userId": data.user_id,
            "description": data.description or "",
            "price": float(data.price),
            "date": to_iso(data.date),
            "tags": list(data.tags),
        }
        if data.category_id:
            params["categoryId"] = data.category_id
            text = _render(
                CREATE_SKELETON,
                category_merge="MERGE (c:Category {id: $categoryId})",
                category_link="CREATE (p)-[:BELONGS_TO]->(c)",
                category_id="c.id",
            )
        else:
            text = _render(
                CREATE_SKELETON,
                category_merge="",
                category_link="",
                category_id="null",
            )
        return CypherQuery(kind=QueryKind.CREATE, text=text, params=params)

    def list_purchases(self, query: PurchaseQuery) -> CypherQuery:
        """
        A user's purchases, newest first.

        Without a category filter the category is matched optionally so
        uncategorized purchases are not dropped.
        """
        where, params = _where(query)
        params.update({
            "userId": query.user_id,
            "offset": to_store_int(query.offset, "offset"),
            "limit": to_store_int(query.limit, "limit"),
        })

        category_match, category_params = _reduce((CATEGORY_FILTER,), query)
        params.update(category_params)

        text = _render(
            LIST_SKELETON,
            where=where,
            category_match=category_match[0] if category_match else OPTIONAL_CATEGORY,
        )
        return CypherQuery(kind=QueryKind.LIST, text=text, params=params)

    def ownership(self, purchase_id: str, user_id: str) -> CypherQuery:
        return CypherQuery(
            kind=QueryKind.OWNERSHIP,
            text=_render(OWNERSHIP_SKELETON),
            params={"id": purchase_id, "userId": user_id},
        )

    def update(
        self,
        purchase_id: str,
        user_id: str,
        changes: PurchaseUpdate,
    ) -> CypherQuery:
        """
        Partial update scoped to the owner.

        A new category id is upserted, the old BELONGS_TO removed and the
        new one created inside the same statement.
        """
        assignments, params = _reduce(UPDATE_ASSIGNMENTS, changes)
        if "price" in params:
            params["price"] = float(params["price"])
        params.update({"id": purchase_id, "userId": user_id})

        relink = ""
        if changes.category_id:
            relink = textwrap.dedent(RELINK_CATEGORY)
            params["categoryId"] = changes.category_id

        text = _render(
            UPDATE_SKELETON,
            relink=relink,
            assignments=", ".join([TOUCH_UPDATED_AT] + assignments),
        )
        return CypherQuery(kind=QueryKind.UPDATE, text=text, params=params)

    def delete(self, purchase_id: str, user_id: str) -> CypherQuery:
        return CypherQuery(
            kind=QueryKind.DELETE,
            text=_render(DELETE_SKELETON),
            params={"id": purchase_id, "userId": user_id},
        )

    # -------------------------------------------------------------------------
    # Aggregates
    # -------------------------------------------------------------------------

    def totals(self, query: StatsQuery) -> CypherQuery:
        where, params = _where(query)
        params["userId"] = query.user_id
        return CypherQuery(
            kind=QueryKind.TOTALS,
            text=_render(TOTALS_SKELETON, where=where),
            params=params,
        )

    def category_totals(self, query: StatsQuery) -> CypherQuery:
        where, params = _where(query)
        params.update({"userId": query.user_id, "otherCategory": self._other_category})
        return CypherQuery(
            kind=QueryKind.CATEGORY_TOTALS,
            text=_render(CATEGORY_TOTALS_SKELETON, where=where),
            params=params,
        )

    def monthly_totals(self, query: MonthlyStatsQuery) -> CypherQuery:
        """Per (category, year, month) sums; bucket keys are built by the caller."""
        where, params = _where(query)
        params.update({"userId": query.user_id, "otherCategory": self._other_category})
        return CypherQuery(
            kind=QueryKind.MONTHLY_TOTALS,
            text=_render(MONTHLY_TOTALS_SKELETON, where=where),
            params=params,
        )

