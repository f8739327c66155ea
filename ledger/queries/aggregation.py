"""
Spending Aggregation Engine

DESIGN DECISION: Reports have a fixed shape that data never changes.
The totals report always carries totals (zero, never None). The
monthly report's x-axis is computed from the calendar before the
store is queried; store rows only fill cells of that grid.

Both reports are computed from data stored in the graph; nothing is
estimated. Every numeric the store returns passes through the value
normalizer first.
"""

from datetime import datetime
from typing import Optional

from ledger.models.purchase import (
    OTHER_CATEGORY,
    CategoryStat,
    MonthlyCategoryStat,
    MonthlyPurchaseStats,
    MonthlyStatsQuery,
    PurchaseStats,
    StatsQuery,
)
from ledger.models.values import to_count, to_float
from ledger.queries.builder import PurchaseQueryBuilder
from ledger.queries.calendar import month_key, month_label, month_sequence, resolve_window
from ledger.services.storage.interface import GraphClient, Row


class MonthlyTable:
    """
    Spending per (category, bucket).

    Categories iterate in the order of their first active bucket, then by
    id, whatever order rows were added in.
    """

    def __init__(self, buckets: list[str]):
        self._buckets = list(buckets)
        self._positions = {key: i for i, key in enumerate(self._buckets)}
        self._cells: dict[tuple[str, str], float] = {}

    def add(self, category_id: str, bucket: str, amount: float) -> bool:
        """Accumulate amount; rows outside the window are ignored."""
        if bucket not in self._positions:
            return False
        key = (category_id, bucket)
        self._cells[key] = self._cells.get(key, 0.0) + amount
        return True

    def categories(self) -> list[str]:
        first_seen: dict[str, int] = {}
        for category_id, bucket in self._cells:
            position = self._positions[bucket]
            if category_id not in first_seen or position < first_seen[category_id]:
                first_seen[category_id] = position
        return sorted(first_seen, key=lambda c: (first_seen[c], c))

    def series(self, category_id: str) -> list[float]:
        """Amounts aligned to the buckets, 0.0 where there was no spending."""
        return [self._cells.get((category_id, bucket), 0.0) for bucket in self._buckets]


class PurchaseStatsEngine:
    """
    Computes the totals and monthly series reports for one user.

    GUARANTEES:
    - Totals are plain numbers, 0 when there is no data
    - Uncategorized spending is reported under OTHER_CATEGORY
    - Monthly series have exactly `months` buckets, zero-filled
    """

    def __init__(
        self,
        client: GraphClient,
        builder: Optional[PurchaseQueryBuilder] = None,
    ):
        self._client = client
        self._builder = builder or PurchaseQueryBuilder()

    async def get_purchase_stats(self, query: StatsQuery) -> PurchaseStats:
        """Overall total/count and per-category totals within the range."""
        async with self._client.session() as session:
            ensure = self._builder.ensure_user(query.user_id)
            await session.execute_write(ensure.text, ensure.params)

            totals = self._builder.totals(query)
            totals_rows = await session.execute_read(totals.text, totals.params)

            by_category = self._builder.category_totals(query)
            category_rows = await session.execute_read(by_category.text, by_category.params)

        totals_row: Row = totals_rows[0] if totals_rows else {}
        categories = [self._category_stat(row) for row in category_rows]
        categories.sort(key=lambda stat: (-stat.total_amount, stat.category_id))

        return PurchaseStats(
            total_amount=to_float(totals_row.get("totalAmount")),
            total_count=to_count(totals_row.get("totalCount")),
            categories_stats=categories,
        )

    async def get_monthly_purchase_stats(
        self,
        query: MonthlyStatsQuery,
        now: Optional[datetime] = None,
    ) -> MonthlyPurchaseStats:
        """
        Month-by-month spending per category.

        Args:
            query: Owner, optional window bounds, number of months
            now: Reference time for the default end of the window

        Returns:
            Report whose months and every monthly_amounts list have
            exactly query.months entries
        """
        start, end = resolve_window(query.start_date, query.end_date, query.months, now=now)
        buckets = month_sequence(start, query.months)
        window = query.model_copy(update={"start_date": start, "end_date": end})

        async with self._client.session() as session:
            ensure = self._builder.ensure_user(query.user_id)
            await session.execute_write(ensure.text, ensure.params)

            monthly = self._builder.monthly_totals(window)
            rows = await session.execute_read(monthly.text, monthly.params)

        table = MonthlyTable(buckets)
        for row in rows:
            bucket = self._bucket_of(row)
            if bucket is None:
                continue
            table.add(
                row.get("categoryId") or OTHER_CATEGORY,
                bucket,
                to_float(row.get("monthTotal")),
            )

        return MonthlyPurchaseStats(
            months=[month_label(key) for key in buckets],
            month_keys=buckets,
            category_stats=[
                MonthlyCategoryStat(category_id=category_id, monthly_amounts=table.series(category_id))
                for category_id in table.categories()
            ],
        )

    def _category_stat(self, row: Row) -> CategoryStat:
        return CategoryStat(
            category_id=row.get("categoryId") or OTHER_CATEGORY,
            total_amount=to_float(row.get("categoryTotal")),
            count=to_count(row.get("categoryCount")),
        )

    def _bucket_of(self, row: Row) -> Optional[str]:
        year = to_count(row.get("year"))
        month = to_count(row.get("month"))
        if not 1 <= month <= 12:
            return None
        return month_key(year, month)
