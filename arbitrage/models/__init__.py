"""Data models for the arbitrage core"""

from arbitrage.models.raw_product import RawProductRecord, normalize_raw

from arbitrage.models.snapshot import (
    SellerType,
    SellerOffer,
    ProductSnapshot,
    BasicInfo,
    PricingInfo,
    Dimensions,
    Media,
    Categories,
    Category,
    FulfillmentOption,
    Inventory,
    Reviews,
    Variants,
    Sellers,
    Flags
)

from arbitrage.models.pricing import (
    Thresholds,
    PricingCosts,
    PricingDimensions,
    PricingFees,
    PricingGeneral,
    PricingMetrics,
    PricingState
)
