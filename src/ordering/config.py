"""Runtime settings for the ordering service.

Values come from environment variables (or a local ``.env`` file). Protean's
own infrastructure settings (databases, brokers) live in ``domain.toml``;
this module holds the business and integration knobs.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # Pricing
    tax_rate: float = Field(0.0, ge=0)
    shipping_fee: float = Field(99.0, ge=0)
    free_shipping_threshold: float = Field(5000.0, ge=0)
    currency: str = "INR"

    # Orders and carts
    order_number_prefix: str = "GEM"
    cart_ttl_days: int = Field(30, ge=1)
    unpaid_order_ttl_hours: int = Field(24, ge=1)  # Online orders left unpaid this long are cancelled

    # Razorpay
    razorpay_key_id: str = ""
    razorpay_key_secret: str = ""
    razorpay_webhook_secret: str = ""

    # Cache
    redis_url: str | None = None
    catalog_cache_ttl: int = 300
    cache_max_entries: int = 1024

    debug: bool = False
    allowed_origins: str = "*"  # Comma-separated list or '*' for all

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    get_settings.cache_clear()
