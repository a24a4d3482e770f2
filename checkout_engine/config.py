"""
Settings — environment-driven configuration.

    settings = Settings()            # reads CHECKOUT_* variables and .env
    engine = build_engine(settings)

Components never read Settings themselves; build_engine() passes plain values in.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Configuration for the checkout engine."""

    model_config = SettingsConfigDict(
        env_prefix="CHECKOUT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Logging
    log_level: str = Field("INFO", description="structlog filtering level")
    log_json: bool = Field(False, description="Render logs as JSON lines")

    # Remote commerce API
    commerce_url: str = Field(
        "http://localhost:8080/graphql", description="GraphQL endpoint of the commerce backend"
    )
    commerce_timeout: float = Field(30.0, description="Transport timeout for commerce calls")

    # Courier (delivery-history) API
    courier_url: str = Field(
        "https://dash.hoorin.com/api/courier/search.php",
        description="Delivery-history search endpoint",
    )
    courier_api_key: SecretStr = Field(SecretStr(""), description="Delivery-history API key")
    courier_timeout: float = Field(10.0, description="Transport timeout for courier lookups")
    risk_ttl: float = Field(300.0, description="Seconds a computed verdict stays cached")
    risk_bypass_suffixes: list[str] = Field(
        default=["6644575", "0000000", "1111111"],
        description="Phone suffixes that skip verification",
    )
    risk_fail_open: bool = Field(True, description="Allow orders when the courier API is unavailable")

    # Cache defaults
    cache_ttl: float = Field(300.0, description="Default entry TTL in seconds")
    cache_max_size: int = Field(1000, description="Entries kept before eviction")
    cache_sweep_interval: float = Field(60.0, description="Seconds between expiry sweeps")

    # Rate limiter presets
    graphql_rate_limit: int = Field(60, description="GraphQL requests per window")
    category_rate_limit: int = Field(10, description="Category requests per window")
    verify_rate_limit: int = Field(10, description="Verification requests per window")
    rate_window: float = Field(60.0, description="Window length in seconds")
    rate_cleanup_interval: float = Field(300.0, description="Seconds between window cleanups")

    # Checkout tuning
    submission_limit: int = Field(3, description="Submissions allowed in the guard window")
    submission_window: float = Field(600.0, description="Guard window in seconds")
    sync_batch_size: int = Field(3, description="Concurrent cart-line pushes per batch")
    sync_batch_delay: float = Field(0.1, description="Pause between cart-line batches")
    place_timeout: float = Field(10.0, description="Order placement timeout in seconds")
    place_retries: int = Field(1, description="Extra placement attempts after a timeout")
    shipping_inside: float = Field(80.0, description="Delivery charge inside the city")
    shipping_outside: float = Field(130.0, description="Delivery charge outside the city")
    currency: str = Field("BDT", description="ISO currency for analytics payloads")
    receipt_path: str = Field("/thank-you", description="Receipt view path")

    # Event batcher
    batch_flush_interval: float = Field(2.0, description="Seconds between periodic flushes")
    batch_size: int = Field(5, description="Events per dispatch chunk")
    batch_max_queue: int = Field(500, description="Queued events kept before dropping the oldest")

    # Analytics
    pixel_id: str = Field("", description="Pixel id for the conversions endpoint")
    conversions_token: SecretStr = Field(SecretStr(""), description="Conversions API access token")
    graph_api_version: str = Field("v18.0", description="Graph API version")
    graph_api_base: str = Field("https://graph.facebook.com", description="Graph API base URL")
    event_source_url: str = Field("https://zoansh.com", description="Default event source URL")

    # Storage
    state_dir: Path = Field(Path(".checkout-state"), description="Directory for JSON stores")
    database_url: str | None = Field(None, description="SQLAlchemy URL for the durable key/value table")


__all__ = ("Settings",)
