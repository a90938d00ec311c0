"""
Validated-on-entry model of the raw scraped product record.

The page parser hands over a loosely-typed mapping (camelCase keys, any
subset of fields present). normalize_raw() is the one place defaults are
filled in; everything downstream can rely on the field types below.
"""
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from arbitrage.utils.helpers import parse_flag, parse_number
from arbitrage.utils.logger import log


def _to_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return None


class RawCategory(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = ""
    url: str = ""

    @field_validator("name", "url", mode="before")
    @classmethod
    def _text(cls, value):
        return _to_str(value) or ""


class RawFulfillmentOption(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    type: str = ""
    available_quantity: int = Field(0, alias="availableQuantity")

    @field_validator("type", mode="before")
    @classmethod
    def _type(cls, value):
        return _to_str(value) or ""

    @field_validator("available_quantity", mode="before")
    @classmethod
    def _quantity(cls, value):
        try:
            return max(int(value or 0), 0)
        except (TypeError, ValueError):
            return 0


class RawProductRecord(BaseModel):
    """Raw product record as produced by the page parser"""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    product_id: Optional[str] = Field(None, alias="productID")
    name: Optional[str] = None
    upc: Optional[str] = None
    brand: Optional[str] = None
    brand_url: Optional[str] = Field(None, alias="brandUrl")
    model_number: Optional[str] = Field(None, alias="modelNumber")

    current_price: Optional[float] = Field(None, alias="currentPrice")
    seller_name: Optional[str] = Field(None, alias="sellerName")
    seller_display_name: Optional[str] = Field(None, alias="sellerDisplayName")
    seller_type: Optional[str] = Field(None, alias="sellerType")

    shipping_length: Optional[str] = Field(None, alias="shippingLength")
    shipping_width: Optional[str] = Field(None, alias="shippingWidth")
    shipping_height: Optional[str] = Field(None, alias="shippingHeight")
    weight: Optional[str] = None

    image_url: Optional[str] = Field(None, alias="imageUrl")
    images: List[Any] = Field(default_factory=list)
    videos: List[Any] = Field(default_factory=list)

    main_category: Optional[str] = Field(None, alias="mainCategory")
    categories: List[RawCategory] = Field(default_factory=list)
    badges: List[str] = Field(default_factory=list)

    fulfillment_options: List[RawFulfillmentOption] = Field(default_factory=list, alias="fulfillmentOptions")

    overall_rating: float = Field(0.0, alias="overallRating")
    number_of_ratings: int = Field(0, alias="numberOfRatings")
    number_of_reviews: int = Field(0, alias="numberOfReviews")
    customer_reviews: List[Any] = Field(default_factory=list, alias="customerReviews")
    review_dates: List[str] = Field(default_factory=list, alias="reviewDates")

    variant_criteria: List[Any] = Field(default_factory=list, alias="variantCriteria")
    variants_map: Dict[str, Any] = Field(default_factory=dict, alias="variantsMap")

    is_apparel: bool = Field(False, alias="isApparel")
    is_hazardous_material: bool = Field(False, alias="isHazardousMaterial")

    @field_validator(
        "product_id", "name", "upc", "brand", "brand_url", "model_number",
        "seller_name", "seller_display_name", "seller_type",
        "shipping_length", "shipping_width", "shipping_height", "weight",
        "image_url", "main_category",
        mode="before"
    )
    @classmethod
    def _optional_str(cls, value):
        return _to_str(value)

    @field_validator("current_price", mode="before")
    @classmethod
    def _price(cls, value):
        return parse_number(value)

    @field_validator("overall_rating", mode="before")
    @classmethod
    def _rating(cls, value):
        return parse_number(value) or 0.0

    @field_validator("number_of_ratings", "number_of_reviews", mode="before")
    @classmethod
    def _count(cls, value):
        number = parse_number(value)
        return int(number) if number is not None and number > 0 else 0

    @field_validator("is_apparel", "is_hazardous_material", mode="before")
    @classmethod
    def _flag(cls, value):
        return parse_flag(value)

    @field_validator("images", "videos", "customer_reviews", "variant_criteria", mode="before")
    @classmethod
    def _list(cls, value):
        return value if isinstance(value, list) else []

    @field_validator("categories", "fulfillment_options", mode="before")
    @classmethod
    def _mapping_list(cls, value):
        if not isinstance(value, list):
            return []
        return [v for v in value if isinstance(v, (dict, BaseModel))]

    @field_validator("badges", mode="before")
    @classmethod
    def _badges(cls, value):
        if not isinstance(value, list):
            return []
        badges = []
        for badge in value:
            if isinstance(badge, dict):
                badge = badge.get("text") or badge.get("key")
            if isinstance(badge, str) and badge.strip():
                badges.append(badge.strip())
        return badges

    @field_validator("review_dates", mode="before")
    @classmethod
    def _review_dates(cls, value):
        if not isinstance(value, list):
            return []
        return [str(v) for v in value if v]

    @field_validator("variants_map", mode="before")
    @classmethod
    def _map(cls, value):
        return value if isinstance(value, dict) else {}


def normalize_raw(data: Optional[Mapping[str, Any]]) -> Optional[RawProductRecord]:
    """
    Validate the raw scrape into a RawProductRecord.

    Returns None when the scrape is missing entirely (the page is not a
    recognized product page). Missing optional fields never fail; a field
    that still does not validate is dropped and takes its default.
    """
    if data is None:
        return None
    if isinstance(data, RawProductRecord):
        return data
    if not isinstance(data, Mapping):
        return None

    payload = dict(data)
    try:
        return RawProductRecord.model_validate(payload)
    except ValidationError as e:
        invalid = {error["loc"][0] for error in e.errors() if error["loc"]}
        log.warning(f"Raw product record has invalid fields {sorted(map(str, invalid))}, using defaults for them")

    payload = {key: value for key, value in payload.items() if key not in invalid}
    try:
        return RawProductRecord.model_validate(payload)
    except ValidationError as e:
        log.error(f"Raw product record could not be validated, using an empty record: {e}")
        return RawProductRecord()
