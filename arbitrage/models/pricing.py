"""
Mutable pricing state owned by the PricingController.

Every numeric field has a raw_* shadow. The shadow holds the text the user
typed while it does not parse to a valid number; it is None otherwise. The
numeric field itself is always a finite float.
"""
import copy
from dataclasses import dataclass, field, fields
from typing import Dict, Optional


# numeric field -> raw shadow field, per state group
COST_FIELDS: Dict[str, str] = {
    "product_cost": "raw_product_cost",
    "sale_price": "raw_sale_price",
}

DIMENSION_FIELDS: Dict[str, str] = {
    "shipping_length": "raw_length",
    "shipping_width": "raw_width",
    "shipping_height": "raw_height",
    "weight": "raw_weight",
}

FEE_FIELDS: Dict[str, str] = {
    "referral_fee": "raw_referral_fee",
    "inbound_shipping_fee": "raw_inbound_shipping_fee",
    "storage_fee": "raw_storage_fee",
    "prep_fee": "raw_prep_fee",
    "additional_fees": "raw_additional_fees",
    "wfs_fee": "raw_wfs_fee",
}

# Fees derived from the schedule and general settings until the user edits them
DERIVED_FEES = ("referral_fee", "wfs_fee", "inbound_shipping_fee", "storage_fee", "prep_fee", "additional_fees")


@dataclass
class Thresholds:
    """User-configured decision thresholds (0 means unset)"""
    min_profit: float = 0.0
    min_margin: float = 0.0
    min_roi: float = 0.0
    min_monthly_sales: Optional[float] = None
    min_total_ratings: int = 0
    min_ratings_30_days: int = 0
    min_overall_rating: float = 0.0
    max_sellers: int = 0
    max_wfs_sellers: int = 0
    max_stock: int = 0


@dataclass
class PricingCosts:
    product_cost: float = 0.0
    raw_product_cost: Optional[str] = None
    sale_price: float = 0.0
    raw_sale_price: Optional[str] = None


@dataclass
class PricingDimensions:
    shipping_length: float = 0.0
    raw_length: Optional[str] = None
    shipping_width: float = 0.0
    raw_width: Optional[str] = None
    shipping_height: float = 0.0
    raw_height: Optional[str] = None
    weight: float = 0.0
    raw_weight: Optional[str] = None


@dataclass
class PricingFees:
    referral_fee: float = 0.0
    raw_referral_fee: Optional[str] = None
    inbound_shipping_fee: float = 0.0
    raw_inbound_shipping_fee: Optional[str] = None
    storage_fee: float = 0.0
    raw_storage_fee: Optional[str] = None
    prep_fee: float = 0.0
    raw_prep_fee: Optional[str] = None
    additional_fees: float = 0.0
    raw_additional_fees: Optional[str] = None
    wfs_fee: float = 0.0
    raw_wfs_fee: Optional[str] = None

    def total(self) -> float:
        return sum(getattr(self, name) for name in FEE_FIELDS)


@dataclass
class PricingGeneral:
    contract_category: str = "Everything Else (Most Items)"
    season: str = "Jan-Sep"
    storage_months: int = 1
    inbound_rate: float = 0.5
    sf_inbound_rate: float = 0.0
    is_platform_fulfilled: bool = True
    prep_cost_type: str = "per lb"
    prep_cost_per_lb: float = 0.0
    prep_cost_each: float = 0.0
    additional_cost_type: str = "per lb"
    additional_cost_per_lb: float = 0.0
    additional_cost_each: float = 0.0


@dataclass
class PricingMetrics:
    total_profit: float = 0.0
    roi: float = 0.0
    margin: float = 0.0
    cubic_feet: float = 0.0
    dimensional_weight: float = 0.0
    inbound_weight: float = 0.0
    wfs_weight: float = 0.0
    thresholds: Thresholds = field(default_factory=Thresholds)


@dataclass
class PricingState:
    costs: PricingCosts = field(default_factory=PricingCosts)
    dimensions: PricingDimensions = field(default_factory=PricingDimensions)
    fees: PricingFees = field(default_factory=PricingFees)
    general: PricingGeneral = field(default_factory=PricingGeneral)
    metrics: PricingMetrics = field(default_factory=PricingMetrics)

    def copy(self) -> "PricingState":
        return copy.deepcopy(self)

    def to_dict(self) -> dict:
        """Flatten to nested dicts for display/export"""
        return {
            group.name: {
                f.name: getattr(getattr(self, group.name), f.name)
                for f in fields(getattr(self, group.name))
                if f.name != "thresholds"
            }
            for group in fields(self)
        }
