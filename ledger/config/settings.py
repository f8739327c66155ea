"""
Configuration Management for Purchase Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Neo4jSettings(BaseSettings):
    """Neo4j graph store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="NEO4J_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    uri: str = Field(
        ...,
        description="Bolt/neo4j URI of the graph store"
    )
    username: str = Field(
        ...,
        description="Neo4j username"
    )
    password: str = Field(
        ...,
        description="Neo4j password"
    )
    database: Optional[str] = Field(
        default=None,
        description="Database name (server default when unset)"
    )

    # Connection pool
    max_connection_pool_size: int = Field(
        default=50,
        ge=1,
        description="Maximum number of pooled connections"
    )
    connection_acquisition_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Seconds to wait for a pooled connection"
    )

    # Startup
    connect_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Connectivity probe attempts before startup fails"
    )
    ensure_schema: bool = Field(
        default=True,
        description="Create constraints and indexes on startup"
    )

    @field_validator('uri')
    @classmethod
    def validate_uri_scheme(cls, v: str) -> str:
        """Only accept schemes the driver understands."""
        scheme = v.split("://", 1)[0].lower()
        allowed = {"bolt", "bolt+s", "bolt+ssc", "neo4j", "neo4j+s", "neo4j+ssc"}
        if scheme not in allowed:
            raise ValueError(f"Unsupported Neo4j URI scheme: {scheme}. Allowed: {sorted(allowed)}")
        return v

    @property
    def scheme_has_tls(self) -> bool:
        """True when the URI scheme already configures encryption."""
        return "+s" in self.uri.split("://", 1)[0]


class LedgerSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Listing
    default_page_size: int = Field(
        default=50,
        ge=1,
        description="Purchases returned by a list call without a limit"
    )
    max_page_size: int = Field(
        default=500,
        ge=1,
        description="Upper bound accepted for a list limit"
    )

    # Monthly report
    default_months: int = Field(
        default=6,
        ge=1,
        description="Months covered by the monthly report by default"
    )
    max_months: int = Field(
        default=120,
        ge=1,
        description="Largest month window the monthly report accepts"
    )

    # Audit
    audit_buffer_size: int = Field(
        default=1000,
        ge=1,
        description="Recent audit events kept in memory"
    )

    @property
    def is_production(self) -> bool:
        return self.app_environment.lower() == "production"


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Note: These are loaded lazily to allow partial configuration

    @property
    def neo4j(self) -> Neo4jSettings:
        return Neo4jSettings()

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def use_encryption(self) -> bool:
        """Encrypt transport in production unless the URI scheme already does."""
        return self.ledger.is_production and not self.neo4j.scheme_has_tls


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    try:
        _ = settings.neo4j
        results["neo4j"] = True
    except Exception as e:
        results["neo4j"] = False
        results["neo4j_error"] = str(e)

    try:
        _ = settings.ledger
        results["ledger"] = True
    except Exception as e:
        results["ledger"] = False
        results["ledger_error"] = str(e)

    return results
