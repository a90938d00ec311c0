"""
Configuration management for the arbitrage core
"""
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Core settings. Every field has a default so the library builds without an .env"""

    # Logging
    log_level: str = "INFO"
    log_to_file: bool = False
    log_dir: str = "logs"

    # Seller feed (GraphQL GetAllSellerOffers)
    seller_feed_url: str = (
        "https://www.walmart.com/orchestra/home/graphql/GetAllSellerOffers/"
        "ceb1a19937155516286824bfb2b9cc9331cc89e6d4bea5756776737724d5b3cf"
    )
    seller_feed_cache_seconds: float = 30.0  # prices/stock move quickly
    seller_feed_timeout_seconds: float = 15.0
    seller_feed_rate_max_requests: int = 30
    seller_feed_rate_window_seconds: float = 60.0
    platform_storefront_name: str = "Walmart.com"

    # Outbound notifications (feedback form, emails)
    notification_rate_max_requests: int = 5
    notification_rate_window_seconds: float = 60.0

    # Bot protection cooldown: uniform(min, max) * 2^min(n, max_exponent)
    block_backoff_min_seconds: float = 60.0
    block_backoff_max_seconds: float = 90.0
    block_backoff_max_exponent: int = 4

    # Snapshot cache
    snapshot_cache_seconds: float = 1800.0  # 30 minutes

    # Pricing defaults
    starting_cost_ratio: float = 0.4
    dimensional_weight_divisor: float = 139.0
    default_contract_category: str = "Everything Else (Most Items)"
    default_season: str = "Jan-Sep"
    default_storage_months: int = 1
    default_inbound_rate: float = 0.5  # $ per lb, platform-fulfilled
    default_sf_inbound_rate: float = 0.0  # $ per lb, seller-fulfilled
    default_prep_cost_type: str = "per lb"
    default_additional_cost_type: str = "per lb"

    class Config:
        env_prefix = "ARBITRAGE_"
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
