"""
Core Data Models for Purchase Ledger

These models define the strict schemas for all data crossing the
ledger boundary. They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Keep store-specific types (neo4j temporals, driver records) out
4. Serialize to the camelCase shape API callers expect

DESIGN DECISION: Python attributes stay snake_case. Output models carry
camelCase aliases, so model_dump(by_alias=True) yields categoryId,
totalAmount, monthlyAmounts, ...
"""

from datetime import date, datetime, timezone
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)
from pydantic.alias_generators import to_camel


# Reserved category id for purchases without a BELONGS_TO relationship
OTHER_CATEGORY = "other"


def _as_utc(value):
    """
    Date-only values become midnight UTC, naive datetimes are read as UTC
    and aware datetimes are converted to UTC.
    """
    if isinstance(value, date) and not isinstance(value, datetime):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    return value


class _ApiModel(BaseModel):
    """Base for models returned to callers."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


# =============================================================================
# PURCHASE RECORD
# =============================================================================

class Purchase(_ApiModel):
    """
    A purchase as seen by callers.

    category_id is None when the purchase has no BELONGS_TO relationship.
    Aggregate views report the same purchase under OTHER_CATEGORY.
    """

    id: str
    description: str = ""
    price: float
    date: datetime = Field(
        ...,
        description="When the spending occurred"
    )
    tags: list[str] = Field(default_factory=list)
    user_id: Optional[str] = Field(
        default=None,
        description="Owner (MADE_BY)"
    )
    category_id: Optional[str] = Field(
        default=None,
        description="Category (BELONGS_TO), None when uncategorized"
    )

    # Bookkeeping, set by the ledger
    created_at: datetime
    updated_at: datetime


class PurchaseCreate(BaseModel):
    """Input for creating a purchase."""
    model_config = ConfigDict(str_strip_whitespace=True)

    user_id: str = Field(
        ...,
        min_length=1,
        description="Owning user id"
    )
    description: str = Field(
        default="",
        max_length=1000,
    )
    price: float = Field(
        ...,
        allow_inf_nan=False,
        description="Amount spent"
    )
    date: datetime
    tags: list[str] = Field(default_factory=list)
    category_id: Optional[str] = Field(
        default=None,
        min_length=1,
    )

    @field_validator('date', mode='before')
    @classmethod
    def normalize_date(cls, v):
        return _as_utc(v)

    @field_validator('date')
    @classmethod
    def require_timezone(cls, v: datetime) -> datetime:
        return _as_utc(v)


class PurchaseUpdate(BaseModel):
    """
    Partial update of a purchase.

    Only fields that are present and not None are written.
    category_id replaces the existing category link; it never removes one.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    description: Optional[str] = Field(default=None, max_length=1000)
    price: Optional[float] = Field(default=None, allow_inf_nan=False)
    date: Optional[datetime] = None
    tags: Optional[list[str]] = None
    category_id: Optional[str] = Field(default=None, min_length=1)

    @field_validator('date', mode='before')
    @classmethod
    def normalize_date(cls, v):
        return _as_utc(v)

    @field_validator('date')
    @classmethod
    def require_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(v)

    def changes(self) -> dict:
        """Fields to write, in declaration order."""
        return self.model_dump(exclude_none=True)

    @property
    def is_empty(self) -> bool:
        return not self.changes()


# =============================================================================
# QUERY OPTIONS
# =============================================================================

class _DateRange(BaseModel):
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @field_validator('start_date', 'end_date', mode='before')
    @classmethod
    def normalize_bounds(cls, v):
        return _as_utc(v)

    @field_validator('start_date', 'end_date')
    @classmethod
    def require_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(v)


class PurchaseQuery(_DateRange):
    """Options for listing a user's purchases."""

    user_id: str = Field(..., min_length=1)
    category_id: Optional[str] = Field(default=None, min_length=1)
    limit: int = Field(default=50, ge=0)
    offset: int = Field(default=0, ge=0)


class StatsQuery(_DateRange):
    """Options for the totals report."""

    user_id: str = Field(..., min_length=1)


class MonthlyStatsQuery(_DateRange):
    """
    Options for the monthly series report.

    end_date defaults to now. When start_date is absent it is derived
    from end_date and months.
    """

    user_id: str = Field(..., min_length=1)
    months: int = Field(default=6, ge=1)


# =============================================================================
# REPORTS
# =============================================================================

class CategoryStat(_ApiModel):
    """Totals for one category within a date range."""

    category_id: str
    total_amount: float = 0.0
    count: int = 0


class PurchaseStats(_ApiModel):
    """
    Totals report.

    categories_stats is sorted by descending total. Uncategorized
    purchases are grouped under OTHER_CATEGORY.
    """

    total_amount: float = 0.0
    total_count: int = 0
    categories_stats: list[CategoryStat] = Field(default_factory=list)


class MonthlyCategoryStat(_ApiModel):
    """One category's spending, aligned positionally to the report months."""

    category_id: str
    monthly_amounts: list[float]


class MonthlyPurchaseStats(_ApiModel):
    """
    Monthly series report.

    months holds "Month Year" labels in ascending order, month_keys the
    matching YYYY-MM bucket keys. Every monthly_amounts list has the
    same length as months.
    """

    months: list[str]
    month_keys: list[str] = Field(default_factory=list)
    category_stats: list[MonthlyCategoryStat] = Field(default_factory=list)

    def amounts_for(self, category_id: str) -> Optional[list[float]]:
        """Monthly amounts of a category, None when it had no activity."""
        for stat in self.category_stats:
            if stat.category_id == category_id:
                return stat.monthly_amounts
        return None
