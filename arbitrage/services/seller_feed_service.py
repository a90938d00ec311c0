"""
Seller Feed Client

Turns the raw GetAllSellerOffers rows into classified, deduplicated,
in-stock SellerOffer entries.

- Single-entry cache with a short TTL (prices and stock move fast)
- Every network call goes through the rate limiter
- Bot-protection blocks start a cooldown window instead of sleeping
- Never raises: any failure degrades to an empty offer list
"""
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

from arbitrage.config import get_settings
from arbitrage.connectors.base_connector import BaseConnector
from arbitrage.connectors.seller_feed_connector import SellerFeedBlocked, SellerFeedError
from arbitrage.models.snapshot import SellerOffer, SellerType
from arbitrage.utils.backoff import BlockBackoff
from arbitrage.utils.helpers import parse_datetime, parse_flag
from arbitrage.utils.logger import get_logger
from arbitrage.utils.rate_limiter import RateLimiter, RateLimitExceeded


def is_brand_match(brand: Optional[str], seller_name: Optional[str]) -> bool:
    """
    Case-insensitive token match: any whitespace token of the brand that
    appears inside the seller name counts.

    Deliberately loose: "Home Goods Outlet" matches brand "Home Depot".
    """
    if not brand or not seller_name:
        return False
    name = seller_name.lower()
    return any(token in name for token in brand.lower().split())


def classify_seller(
    seller_name: str,
    is_wfs: bool,
    brand: Optional[str] = None,
    storefront_name: str = "Walmart.com"
) -> SellerType:
    if seller_name == storefront_name:
        return SellerType.WMT
    brand_match = is_brand_match(brand, seller_name)
    if is_wfs:
        return SellerType.WFS_BRAND if brand_match else SellerType.WFS
    return SellerType.SF_BRAND if brand_match else SellerType.SF


def format_delivery_date(value: Any) -> str:
    """'2025-10-05T06:00:00.000Z' -> 'Oct 5'"""
    parsed = parse_datetime(value)
    if parsed is None:
        return "N/A"
    return f"{parsed.strftime('%b')} {parsed.day}"


def _available_quantity(raw: Dict[str, Any]) -> int:
    options = raw.get("fulfillmentOptions")
    if not isinstance(options, list) or not options or not isinstance(options[0], dict):
        return 0
    try:
        return max(int(options[0].get("availableQuantity") or 0), 0)
    except (TypeError, ValueError):
        return 0


def normalize_offer(
    raw: Dict[str, Any],
    brand: Optional[str] = None,
    storefront_name: str = "Walmart.com"
) -> SellerOffer:
    """Map one raw allOffers row to a SellerOffer"""
    seller_name = raw.get("sellerDisplayName") or raw.get("sellerName") or "Unknown Seller"

    price_info = raw.get("priceInfo") or {}
    current_price = price_info.get("currentPrice") or {} if isinstance(price_info, dict) else {}
    price = current_price.get("priceString") if isinstance(current_price, dict) else None

    is_wfs = parse_flag(raw.get("wfsEnabled")) or raw.get("fulfillmentType") == "FC"
    shipping = raw.get("shippingOption") or {}

    return SellerOffer(
        seller_name=str(seller_name),
        price=price or "N/A",
        seller_type=classify_seller(str(seller_name), is_wfs, brand, storefront_name),
        arrives=format_delivery_date(shipping.get("deliveryDate") if isinstance(shipping, dict) else None),
        is_pro_seller=parse_flag(raw.get("hasSellerBadge")),
        is_wfs=is_wfs,
        available_quantity=_available_quantity(raw)
    )


def normalize_offers(
    raw_offers: List[Dict[str, Any]],
    brand: Optional[str] = None,
    storefront_name: str = "Walmart.com"
) -> List[SellerOffer]:
    """Keep IN_STOCK rows, normalize, and collapse duplicate (seller, price) pairs"""
    offers = []
    seen = set()
    for raw in raw_offers:
        if raw.get("availabilityStatus") != "IN_STOCK":
            continue
        offer = normalize_offer(raw, brand, storefront_name)
        key = (offer.seller_name, offer.price)
        if key in seen:
            continue
        seen.add(key)
        offers.append(offer)
    return offers


class SellerFeedClient:
    """Cached, rate-limited, fail-soft access to the seller feed"""

    def __init__(
        self,
        connector: BaseConnector,
        rate_limiter: RateLimiter,
        cache_seconds: Optional[float] = None,
        storefront_name: Optional[str] = None,
        clock: Callable[[], float] = time.time,
        backoff: Optional[BlockBackoff] = None,
        logger=None
    ):
        settings = get_settings()
        self.connector = connector
        self.rate_limiter = rate_limiter
        self.cache_seconds = cache_seconds if cache_seconds is not None else settings.seller_feed_cache_seconds
        self.storefront_name = storefront_name or settings.platform_storefront_name
        self._clock = clock
        self.backoff = backoff or BlockBackoff(
            min_delay=settings.block_backoff_min_seconds,
            max_delay=settings.block_backoff_max_seconds,
            max_exponent=settings.block_backoff_max_exponent,
            clock=clock
        )
        self.log = get_logger("seller_feed", logger)

        # (product_id, brand) -> (stored_at, offers); one entry at most
        self._entry: Optional[Tuple[Tuple[str, Optional[str]], float, List[SellerOffer]]] = None

    def invalidate(self) -> None:
        self._entry = None

    def _cached(self, key: Tuple[str, Optional[str]]) -> Optional[List[SellerOffer]]:
        if self._entry is None:
            return None
        entry_key, stored_at, offers = self._entry
        if entry_key != key or self._clock() - stored_at >= self.cache_seconds:
            return None
        return offers

    async def get_offers(self, product_id: str, brand: Optional[str] = None) -> List[SellerOffer]:
        """
        In-stock, classified offers for a product.

        Returns [] when rate limited, cooling down after a block, or on any
        fetch failure. Failures are never cached.
        """
        key = (str(product_id), brand)
        cached = self._cached(key)
        if cached is not None:
            self.log.debug(f"Seller feed cache hit for {product_id}")
            return list(cached)

        if self.backoff.is_cooling_down():
            self.log.warning(
                f"Seller feed cooling down after block, "
                f"{self.backoff.seconds_remaining():.0f}s remaining"
            )
            return []

        try:
            raw_offers = await self.rate_limiter.run_guarded(
                lambda: self.connector.fetch_offers(str(product_id))
            )
        except RateLimitExceeded as e:
            self.log.warning(f"Seller feed skipped for {product_id}: {e}")
            return []
        except SellerFeedBlocked as e:
            delay = self.backoff.record_block()
            self.log.warning(f"{e}; pausing seller feed for {delay:.0f}s")
            return []
        except SellerFeedError as e:
            self.log.warning(f"Seller feed failed for {product_id}: {e}")
            return []
        except Exception as e:
            self.log.exception(f"Unexpected seller feed error for {product_id}: {e}")
            return []

        self.backoff.record_success()
        try:
            offers = normalize_offers(raw_offers or [], brand, self.storefront_name)
        except Exception as e:
            self.log.exception(f"Could not normalize seller offers for {product_id}: {e}")
            return []

        self._entry = (key, self._clock(), offers)
        self.log.info(f"Seller feed returned {len(offers)} in-stock offers for {product_id}")
        return list(offers)
