"""
Product snapshot models.

A ProductSnapshot is built once per cache cycle by the SnapshotAssembler and
never mutated afterwards (all models are frozen).
"""
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class SellerType(str, Enum):
    """Fulfillment classification of a seller offer"""
    WMT = "WMT"
    WFS = "WFS"
    WFS_BRAND = "WFS-Brand"
    SF = "SF"
    SF_BRAND = "SF-Brand"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class SellerOffer(_Frozen):
    """One row of the seller feed"""
    seller_name: str
    price: str = "N/A"  # kept as the platform's display string
    seller_type: SellerType = SellerType.SF
    arrives: str = "N/A"
    is_pro_seller: bool = False
    is_wfs: bool = False
    available_quantity: int = 0


class BasicInfo(_Frozen):
    product_id: Optional[str] = None
    name: Optional[str] = None
    upc: Optional[str] = None
    brand: Optional[str] = None
    brand_url: Optional[str] = None
    model_number: Optional[str] = None


class PricingInfo(_Frozen):
    current_price: Optional[float] = None
    seller_name: Optional[str] = None
    seller_display_name: Optional[str] = None
    seller_type: Optional[str] = None


class Dimensions(_Frozen):
    """Shipping dimensions exactly as scraped; consumers parse lazily"""
    shipping_length: Optional[str] = None
    shipping_width: Optional[str] = None
    shipping_height: Optional[str] = None
    weight: Optional[str] = None


class Media(_Frozen):
    image_url: Optional[str] = None
    images: List[Any] = Field(default_factory=list)
    videos: List[Any] = Field(default_factory=list)


class Category(_Frozen):
    name: str = ""
    url: str = ""


class Categories(_Frozen):
    main_category: Optional[str] = None
    categories: List[Category] = Field(default_factory=list)


class FulfillmentOption(_Frozen):
    type: str = ""
    available_quantity: int = 0


class Inventory(_Frozen):
    total_sellers: int = 0
    total_stock: int = 0
    fulfillment_options: List[FulfillmentOption] = Field(default_factory=list)


class Reviews(_Frozen):
    overall_rating: float = 0.0
    number_of_ratings: int = 0
    number_of_reviews: int = 0
    customer_reviews: List[Any] = Field(default_factory=list)
    review_dates: List[str] = Field(default_factory=list)


class Variants(_Frozen):
    variant_criteria: List[Any] = Field(default_factory=list)
    variants_map: Dict[str, Any] = Field(default_factory=dict)


class Sellers(_Frozen):
    main_seller: Optional[SellerOffer] = None
    other_sellers: List[SellerOffer] = Field(default_factory=list)
    total_sellers: int = 0

    @property
    def all_sellers(self) -> List[SellerOffer]:
        head = [self.main_seller] if self.main_seller is not None else []
        return head + list(self.other_sellers)


class Flags(_Frozen):
    is_apparel: bool = False
    is_hazardous_material: bool = False


class ProductSnapshot(_Frozen):
    """Normalized aggregate of product, pricing, inventory, review, variant and seller data"""
    basic: BasicInfo = Field(default_factory=BasicInfo)
    pricing: PricingInfo = Field(default_factory=PricingInfo)
    dimensions: Dimensions = Field(default_factory=Dimensions)
    media: Media = Field(default_factory=Media)
    categories: Categories = Field(default_factory=Categories)
    badges: List[str] = Field(default_factory=list)
    inventory: Inventory = Field(default_factory=Inventory)
    reviews: Reviews = Field(default_factory=Reviews)
    variants: Variants = Field(default_factory=Variants)
    sellers: Sellers = Field(default_factory=Sellers)
    flags: Flags = Field(default_factory=Flags)

    @model_validator(mode="after")
    def _check_seller_totals(self):
        sellers = self.sellers.all_sellers
        expected_total = len(sellers)
        expected_stock = sum(s.available_quantity or 0 for s in sellers)

        if self.sellers.total_sellers != expected_total:
            raise ValueError(
                f"sellers.total_sellers={self.sellers.total_sellers} "
                f"but snapshot holds {expected_total} sellers"
            )
        if self.inventory.total_sellers != expected_total:
            raise ValueError(
                f"inventory.total_sellers={self.inventory.total_sellers} "
                f"but snapshot holds {expected_total} sellers"
            )
        if self.inventory.total_stock != expected_stock:
            raise ValueError(
                f"inventory.total_stock={self.inventory.total_stock} "
                f"but sellers report {expected_stock}"
            )
        return self
