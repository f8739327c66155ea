"""Tests for the Cypher query builder."""

import pytest
from datetime import date, datetime, timezone

from ledger.models.purchase import (
    MonthlyStatsQuery,
    PurchaseCreate,
    PurchaseQuery,
    PurchaseUpdate,
    StatsQuery,
)
from ledger.queries.builder import (
    PurchaseQueryBuilder,
    QueryKind,
    to_store_int,
)


START = datetime(2024, 1, 1, tzinfo=timezone.utc)
END = datetime(2024, 3, 31, 23, 59, tzinfo=timezone.utc)


@pytest.fixture
def builder() -> PurchaseQueryBuilder:
    return PurchaseQueryBuilder()


class TestListQuery:
    """Filter order, category matching and pagination."""

    def test_filters_applied_in_fixed_order(self, builder):
        """Test date lower bound, then upper bound, then category."""
        query = builder.list_purchases(PurchaseQuery(
            user_id="U1",
            category_id="C1",
            start_date=START,
            end_date=END,
        ))
        text = query.text

        lower = text.index("p.date >= datetime($startDate)")
        upper = text.index("p.date <= datetime($endDate)")
        category = text.index("MATCH (p)-[:BELONGS_TO]->(c:Category {id: $categoryId})")
        assert lower < upper < category
        assert "OPTIONAL MATCH" not in text

    def test_without_category_filter_matches_optionally(self, builder):
        """Test that uncategorized purchases are not excluded."""
        query = builder.list_purchases(PurchaseQuery(user_id="U1"))
        assert "OPTIONAL MATCH (p)-[:BELONGS_TO]->(c:Category)" in query.text
        assert "categoryId" not in query.params
        assert "WHERE" not in query.text

    def test_ordering_and_pagination(self, builder):
        """Test newest-first ordering and SKIP/LIMIT parameters."""
        query = builder.list_purchases(PurchaseQuery(user_id="U1", limit=10, offset=20))
        assert "ORDER BY p.date DESC" in query.text
        assert query.text.index("SKIP $offset") < query.text.index("LIMIT $limit")
        assert query.params["limit"] == 10
        assert query.params["offset"] == 20
        assert type(query.params["limit"]) is int

    def test_only_upper_bound(self, builder):
        """Test a single date predicate."""
        query = builder.list_purchases(PurchaseQuery(user_id="U1", end_date=END))
        assert "WHERE p.date <= datetime($endDate)" in query.text
        assert "startDate" not in query.params
        assert query.params["endDate"] == "2024-03-31T23:59:00+00:00"

    def test_read_only(self, builder):
        """Test that listing is a read."""
        query = builder.list_purchases(PurchaseQuery(user_id="U1"))
        assert query.kind == QueryKind.LIST
        assert query.is_write is False


class TestStoreInt:
    """Pagination values travel as native integers."""

    def test_whole_float_becomes_int(self):
        """Test that 50.0 becomes 50."""
        result = to_store_int(50.0, "limit")
        assert result == 50
        assert type(result) is int

    @pytest.mark.parametrize("value", [2.5, -1, True])
    def test_rejects_unrepresentable(self, value):
        """Test fractional, negative and boolean values."""
        with pytest.raises(ValueError):
            to_store_int(value, "limit")


class TestCreateQuery:
    """Create is one write with mandatory MADE_BY and optional BELONGS_TO."""

    def test_with_category(self, builder):
        """Test category upsert and link."""
        query = builder.create(PurchaseCreate(
            user_id="U1",
            price=42.5,
            date=date(2024, 3, 15),
            category_id="C1",
        ))
        assert query.is_write is True
        assert "MERGE (u:User {id: $userId})" in query.text
        assert "MERGE (c:Category {id: $categoryId})" in query.text
        assert "CREATE (p)-[:MADE_BY]->(u)" in query.text
        assert "CREATE (p)-[:BELONGS_TO]->(c)" in query.text
        assert "RETURN p, c.id AS categoryId" in query.text
        assert query.params["date"] == "2024-03-15T00:00:00+00:00"
        assert query.params["categoryId"] == "C1"

    def test_without_category(self, builder):
        """Test that no category is touched and categoryId is null."""
        query = builder.create(PurchaseCreate(user_id="U1", price=5, date=date(2024, 3, 15)))
        assert "Category" not in query.text
        assert "RETURN p, null AS categoryId" in query.text
        assert "categoryId" not in query.params
        assert query.params["price"] == 5.0

    def test_generated_id_and_timestamps(self, builder):
        """Test that the store generates id and bookkeeping timestamps."""
        query = builder.create(PurchaseCreate(user_id="U1", price=5, date=date(2024, 3, 15)))
        assert "id: randomUUID()" in query.text
        assert "createdAt: datetime()" in query.text
        assert "updatedAt: datetime()" in query.text


class TestUpdateQuery:
    """Partial updates and category relinking."""

    def test_only_supplied_fields_assigned(self, builder):
        """Test that absent fields are not written and updatedAt always is."""
        query = builder.update("p-1", "U1", PurchaseUpdate(price=12))
        assert "p.updatedAt = datetime()" in query.text
        assert "p.price = $price" in query.text
        assert "p.description" not in query.text
        assert "p.tags" not in query.text
        assert query.params == {"price": 12.0, "id": "p-1", "userId": "U1"}

    def test_empty_update_touches_updated_at(self, builder):
        """Test that an empty update still refreshes updatedAt."""
        query = builder.update("p-1", "U1", PurchaseUpdate())
        assert "SET p.updatedAt = datetime()" in query.text

    def test_assignment_order(self, builder):
        """Test that assignments follow declaration order."""
        query = builder.update("p-1", "U1", PurchaseUpdate(
            tags=["a"],
            description="New",
            date=date(2024, 2, 1),
        ))
        text = query.text
        assert text.index("p.description") < text.index("p.date = datetime($date)") < text.index("p.tags")
        assert query.params["date"] == "2024-02-01T00:00:00+00:00"

    def test_scoped_to_owner(self, builder):
        """Test that the purchase is reached through MADE_BY."""
        query = builder.update("p-1", "U1", PurchaseUpdate(price=1))
        assert "MATCH (p:Purchase {id: $id})-[:MADE_BY]->(:User {id: $userId})" in query.text

    def test_category_relink_in_one_statement(self, builder):
        """Test upsert, old link removal and new link creation together."""
        query = builder.update("p-1", "U1", PurchaseUpdate(category_id="C2"))
        text = query.text

        merge = text.index("MERGE (c:Category {id: $categoryId})")
        delete = text.index("DELETE old")
        link = text.index("MERGE (p)-[:BELONGS_TO]->(c)")
        assert merge < delete < link < text.index("SET ")
        assert query.params["categoryId"] == "C2"
        assert "OPTIONAL MATCH (p)-[:BELONGS_TO]->(c:Category)" in text

    def test_no_relink_without_category(self, builder):
        """Test that the existing link is left alone."""
        query = builder.update("p-1", "U1", PurchaseUpdate(description="x"))
        assert "DELETE old" not in query.text


class TestOwnershipAndDelete:
    """Ownership check and detach-delete."""

    def test_ownership_is_read(self, builder):
        """Test the ownership probe."""
        query = builder.ownership("p-1", "U1")
        assert query.is_write is False
        assert query.params == {"id": "p-1", "userId": "U1"}
        assert "MATCH (p:Purchase {id: $id})-[:MADE_BY]->(:User {id: $userId})" in query.text

    def test_delete_detaches(self, builder):
        """Test that delete removes all relationships."""
        query = builder.delete("p-1", "U1")
        assert query.is_write is True
        assert "DETACH DELETE p" in query.text


class TestAggregateQueries:
    """Totals and monthly statements."""

    def test_category_totals_use_sentinel(self, builder):
        """Test that uncategorized spending is grouped under the sentinel."""
        query = builder.category_totals(StatsQuery(user_id="U1"))
        assert "coalesce(c.id, $otherCategory)" in query.text
        assert query.params["otherCategory"] == "other"

    def test_totals_with_range(self, builder):
        """Test that the date range is applied to totals."""
        query = builder.totals(StatsQuery(user_id="U1", start_date=START, end_date=END))
        assert "WHERE p.date >= datetime($startDate) AND p.date <= datetime($endDate)" in query.text
        assert "sum(p.price) AS totalAmount" in query.text

    def test_monthly_returns_year_and_month(self, builder):
        """Test that bucket keys are left to the caller."""
        query = builder.monthly_totals(MonthlyStatsQuery(user_id="U1", start_date=START, end_date=END))
        assert "p.date.year AS year" in query.text
        assert "p.date.month AS month" in query.text
        assert query.is_write is False


class TestBuildDispatch:
    """The kind-based entry point."""

    def test_build_routes_by_kind(self, builder):
        """Test dispatch by QueryKind and by its value."""
        assert builder.build(QueryKind.ENSURE_USER, user_id="U1").params == {"userId": "U1"}
        assert builder.build("ensure_category", category_id="C1").text == "MERGE (c:Category {id: $categoryId})"

    def test_unknown_kind(self, builder):
        """Test that unknown kinds are rejected."""
        with pytest.raises(ValueError, match="Unknown query kind"):
            builder.build("drop_everything")
