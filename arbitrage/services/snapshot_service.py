"""
Snapshot Assembler and Provider

Combines the page's raw product record with the seller feed into one
immutable ProductSnapshot, and owns the snapshot cache for a page context.
"""
from typing import Any, Callable, List, Mapping, Optional

from arbitrage.models.raw_product import RawProductRecord, normalize_raw
from arbitrage.models.snapshot import (
    BasicInfo, Categories, Category, Dimensions, Flags, FulfillmentOption,
    Inventory, Media, PricingInfo, ProductSnapshot, Reviews, SellerOffer,
    Sellers, Variants
)
from arbitrage.services.seller_feed_service import SellerFeedClient
from arbitrage.utils.cache import SnapshotCache
from arbitrage.utils.logger import get_logger


def _mentions_apparel(record: RawProductRecord) -> bool:
    if any("apparel" in badge.lower() for badge in record.badges):
        return True
    paths = [record.main_category or ""] + [c.name for c in record.categories]
    return any("apparel" in path.lower() for path in paths)


def build_snapshot(record: RawProductRecord, offers: List[SellerOffer]) -> ProductSnapshot:
    """Build the snapshot from a normalized record and an already-fetched offer list"""
    main_seller = offers[0] if offers else None
    other_sellers = list(offers[1:])
    total_sellers = (1 if main_seller is not None else 0) + len(other_sellers)
    total_stock = sum(offer.available_quantity or 0 for offer in offers)

    return ProductSnapshot(
        basic=BasicInfo(
            product_id=record.product_id,
            name=record.name,
            upc=record.upc,
            brand=record.brand,
            brand_url=record.brand_url,
            model_number=record.model_number
        ),
        pricing=PricingInfo(
            current_price=record.current_price,
            seller_name=record.seller_name,
            seller_display_name=record.seller_display_name,
            seller_type=record.seller_type
        ),
        dimensions=Dimensions(
            shipping_length=record.shipping_length,
            shipping_width=record.shipping_width,
            shipping_height=record.shipping_height,
            weight=record.weight
        ),
        media=Media(image_url=record.image_url, images=record.images, videos=record.videos),
        categories=Categories(
            main_category=record.main_category,
            categories=[Category(name=c.name, url=c.url) for c in record.categories]
        ),
        badges=record.badges,
        inventory=Inventory(
            total_sellers=total_sellers,
            total_stock=total_stock,
            fulfillment_options=[
                FulfillmentOption(type=o.type, available_quantity=o.available_quantity)
                for o in record.fulfillment_options
            ]
        ),
        reviews=Reviews(
            overall_rating=record.overall_rating,
            number_of_ratings=record.number_of_ratings,
            number_of_reviews=record.number_of_reviews,
            customer_reviews=record.customer_reviews,
            review_dates=record.review_dates
        ),
        variants=Variants(
            variant_criteria=record.variant_criteria,
            variants_map=record.variants_map
        ),
        sellers=Sellers(
            main_seller=main_seller,
            other_sellers=other_sellers,
            total_sellers=total_sellers
        ),
        flags=Flags(
            is_apparel=record.is_apparel or _mentions_apparel(record),
            is_hazardous_material=record.is_hazardous_material
        )
    )


class SnapshotAssembler:
    """Raw scrape + seller feed -> ProductSnapshot"""

    def __init__(self, feed_client: SellerFeedClient, logger=None):
        self.feed_client = feed_client
        self.log = get_logger("snapshot_assembler", logger)

    async def assemble(self, raw: Optional[Mapping[str, Any]]) -> Optional[ProductSnapshot]:
        """
        Returns None when the raw scrape is absent (not a product page).
        Missing optional fields are defaulted, never fatal.
        """
        record = normalize_raw(raw)
        if record is None:
            self.log.debug("No raw product record, snapshot not ready")
            return None

        offers: List[SellerOffer] = []
        if record.product_id:
            offers = await self.feed_client.get_offers(record.product_id, record.brand)

        snapshot = build_snapshot(record, offers)
        self.log.info(
            f"Snapshot built for {record.product_id}: "
            f"{snapshot.sellers.total_sellers} sellers, {snapshot.inventory.total_stock} in stock"
        )
        return snapshot


class SnapshotProvider:
    """
    Composes assembler, raw source and cache for one page context.

    invalidate() is the navigation contract: the host calls it when the
    active product changes.
    """

    def __init__(
        self,
        assembler: SnapshotAssembler,
        raw_source: Callable[[], Optional[Mapping[str, Any]]],
        cache: Optional[SnapshotCache] = None,
        logger=None
    ):
        self.assembler = assembler
        self.raw_source = raw_source
        self.cache = cache or SnapshotCache()
        self.log = get_logger("snapshot_provider", logger)

    async def get_snapshot(self) -> Optional[ProductSnapshot]:
        return await self.cache.get_or_build(
            lambda: self.assembler.assemble(self.raw_source())
        )

    def invalidate(self) -> None:
        self.cache.clear()
        self.assembler.feed_client.invalidate()
        self.log.info("Snapshot invalidated")
