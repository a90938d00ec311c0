"""
Buy-decision signals derived from a snapshot, and their evaluation against
the user's thresholds.
"""
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterable, Optional

from arbitrage.models.pricing import PricingMetrics, Thresholds
from arbitrage.models.snapshot import ProductSnapshot, SellerType
from arbitrage.services.seller_feed_service import is_brand_match
from arbitrage.utils.helpers import parse_datetime

RECENCY_WINDOWS = (30, 90, 365)


@dataclass
class MarketSignals:
    total_ratings: int = 0
    ratings_30_days: int = 0
    overall_rating: float = 0.0
    seller_count: int = 0
    wfs_seller_count: int = 0
    total_stock: int = 0
    brand_is_selling: bool = False


def _parse_review_date(value: str) -> Optional[datetime]:
    parsed = parse_datetime(value)
    if parsed is None:
        try:
            parsed = datetime.strptime(value.strip(), "%m/%d/%Y")
        except (AttributeError, ValueError):
            return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def days_ago(value: str, now: datetime) -> Optional[int]:
    """Whole days between a review date and now, rounded up"""
    parsed = _parse_review_date(value)
    if parsed is None:
        return None
    return math.ceil(abs((now - parsed).total_seconds()) / 86400)


def review_recency(review_dates: Iterable[str], now: Optional[datetime] = None) -> Dict[int, int]:
    """Count of reviews within the last 30, 90 and 365 days"""
    now = now or datetime.utcnow()
    ages = [age for age in (days_ago(d, now) for d in review_dates) if age is not None]
    return {window: sum(1 for age in ages if age <= window) for window in RECENCY_WINDOWS}


def wfs_seller_count(snapshot: ProductSnapshot) -> int:
    return sum(
        1 for seller in snapshot.sellers.other_sellers
        if seller.seller_type in (SellerType.WFS, SellerType.WFS_BRAND)
    )


def brand_is_selling(snapshot: ProductSnapshot) -> bool:
    brand = snapshot.basic.brand
    if not brand:
        return False
    return any(is_brand_match(brand, s.seller_name) for s in snapshot.sellers.other_sellers)


def market_signals(snapshot: ProductSnapshot, now: Optional[datetime] = None) -> MarketSignals:
    recency = review_recency(snapshot.reviews.review_dates, now)
    return MarketSignals(
        total_ratings=snapshot.reviews.number_of_ratings,
        ratings_30_days=recency[30],
        overall_rating=snapshot.reviews.overall_rating,
        seller_count=snapshot.sellers.total_sellers,
        wfs_seller_count=wfs_seller_count(snapshot),
        total_stock=snapshot.inventory.total_stock,
        brand_is_selling=brand_is_selling(snapshot)
    )


def _within_max(value: float, maximum: float) -> bool:
    # 0 means no limit
    return maximum <= 0 or value <= maximum


def evaluate(metrics: PricingMetrics, signals: MarketSignals, thresholds: Thresholds) -> Dict[str, bool]:
    """Pass/fail per gauge metric"""
    return {
        "profit": metrics.total_profit >= thresholds.min_profit,
        "margin": metrics.margin >= thresholds.min_margin,
        "roi": metrics.roi >= thresholds.min_roi,
        "total_ratings": signals.total_ratings >= thresholds.min_total_ratings,
        "ratings_30_days": signals.ratings_30_days >= thresholds.min_ratings_30_days,
        "overall_rating": signals.overall_rating >= thresholds.min_overall_rating,
        "sellers": _within_max(signals.seller_count, thresholds.max_sellers),
        "wfs_sellers": _within_max(signals.wfs_seller_count, thresholds.max_wfs_sellers),
        "stock": _within_max(signals.total_stock, thresholds.max_stock),
    }
