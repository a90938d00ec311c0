"""
Marketplace fee schedule.

Pure functions from (price, category, weight, dimensions, flags) to fees.
Dimensions are inches, weights pounds, money dollars. Every fee is rounded
to cents; ROI and margin are percentages rounded to two places.
"""
import math
from dataclasses import dataclass
from typing import Callable, Dict

from arbitrage.config import get_settings
from arbitrage.utils.helpers import round_money, safe_divide

CUBIC_INCHES_PER_FOOT = 1728
DEFAULT_REFERRAL_RATE = 0.15


def _flat(rate: float) -> Callable[[float], float]:
    return lambda price: rate


def _tiered(limit: float, low: float, high: float) -> Callable[[float], float]:
    """low rate up to and including limit, high rate above it"""
    return lambda price: low if price <= limit else high


# contract category -> rate as a function of sale price
REFERRAL_RATES: Dict[str, Callable[[float], float]] = {
    "Apparel & Accessories": lambda price: 0.05 if price <= 15 else 0.10 if price <= 20 else 0.15,
    "Automotive & Powersports": _flat(0.12),
    "Automotive Electronics": _flat(0.15),
    "Baby": _tiered(10, 0.08, 0.15),
    "Beauty": _tiered(10, 0.08, 0.15),
    "Books": _flat(0.15),
    "Camera & Photo": _flat(0.08),
    "Cell Phones": _flat(0.08),
    "Consumer Electronics": _flat(0.08),
    "Electronics Accessories": _tiered(100, 0.15, 0.08),
    "Indoor & Outdoor Furniture": _tiered(200, 0.15, 0.10),
    "Decor": _flat(0.15),
    "Gourmet Food": _flat(0.15),
    "Grocery": _tiered(10, 0.08, 0.15),
    "Health & Personal Care": _tiered(10, 0.08, 0.15),
    "Home & Garden": _flat(0.15),
    "Industrial & Scientific": _flat(0.12),
    "Jewelry": _tiered(250, 0.20, 0.05),
    "Kitchen": _flat(0.15),
    "Luggage & Travel Accessories": _flat(0.15),
    "Major Appliances": _flat(0.08),
    "Music": _flat(0.15),
    "Musical Instruments": _flat(0.12),
    "Office Products": _flat(0.15),
    "Outdoors": _flat(0.15),
    "Outdoor Power Tools": _tiered(500, 0.15, 0.08),
    "Personal Computers": _flat(0.06),
    "Pet Supplies": _flat(0.15),
    "Plumbing Heating Cooling & Ventilation": _flat(0.10),
    "Shoes, Handbags & Sunglasses": _flat(0.15),
    "Software & Computer Video Games": _flat(0.15),
    "Sporting Goods": _flat(0.15),
    "Tires & Wheels": _flat(0.10),
    "Tools & Home Improvement": _flat(0.15),
    "Toys & Games": _flat(0.15),
    "Video & DVD": _flat(0.15),
    "Video Game Consoles": _flat(0.08),
    "Video Games": _flat(0.15),
    "Watches": _tiered(1500, 0.15, 0.03),
}


# ---------------------------------------------------------------------------
# Dimensions and weights
# ---------------------------------------------------------------------------

def cubic_feet(length: float, width: float, height: float) -> float:
    return (length * width * height) / CUBIC_INCHES_PER_FOOT


def dimensional_weight(length: float, width: float, height: float, divisor: float = 139.0) -> float:
    """Volumetric weight in pounds"""
    return safe_divide(length * width * height, divisor)


def _longest_and_girth(length: float, width: float, height: float):
    longest = max(length, width, height)
    girth = 2 * (width + height)
    return longest, girth


def is_big_and_bulky(weight: float, length: float, width: float, height: float) -> bool:
    longest, girth = _longest_and_girth(length, width, height)
    return weight > 150 or 108 < longest <= 120 or longest + girth > 165


def inbound_shipping_weight(
    weight: float, length: float, width: float, height: float, divisor: float = 139.0
) -> float:
    """Billable inbound weight: actual weight with a volumetric floor"""
    return max(weight, dimensional_weight(length, width, height, divisor))


def wfs_shipping_weight(
    weight: float, length: float, width: float, height: float, divisor: float = 139.0
) -> int:
    """Fulfillment weight: packaging allowance of 0.25 lb, rounded up to the next pound"""
    if is_big_and_bulky(weight, length, width, height):
        return math.ceil(weight + 0.25)
    if weight < 1:
        base = weight
    else:
        base = max(weight, dimensional_weight(length, width, height, divisor))
    return math.ceil(base + 0.25)


# ---------------------------------------------------------------------------
# Fees
# ---------------------------------------------------------------------------

def referral_fee(sale_price: float, contract_category: str) -> float:
    rate_for = REFERRAL_RATES.get(contract_category)
    rate = rate_for(sale_price) if rate_for else DEFAULT_REFERRAL_RATE
    return round_money(sale_price * rate)


def _base_fulfillment_fee(weight: float) -> float:
    if weight <= 1:
        return 3.45
    if weight <= 2:
        return 4.95
    if weight <= 3:
        return 5.45
    if weight <= 20:
        return 5.75 + 0.40 * (weight - 4)
    if weight <= 30:
        return 15.55 + 0.40 * (weight - 21)
    if weight <= 50:
        return 14.55 + 0.40 * (weight - 31)
    return 17.55 + 0.40 * (weight - 51)


def wfs_fee(
    weight: float,
    length: float,
    width: float,
    height: float,
    is_platform_fulfilled: bool = True,
    is_apparel: bool = False,
    is_hazardous_material: bool = False,
    retail_price: float = 0.0
) -> float:
    """Platform fulfillment fee; 0 for seller-fulfilled items"""
    if not is_platform_fulfilled:
        return 0.0

    if is_big_and_bulky(weight, length, width, height):
        extra = (weight - 90) * 0.80 if weight > 90 else 0.0
        return round_money(155 + extra)

    longest, girth = _longest_and_girth(length, width, height)
    median = sorted([length, width, height])[1]

    surcharge = 0.0
    if is_apparel:
        surcharge += 0.50
    if is_hazardous_material:
        surcharge += 0.50
    if retail_price and retail_price < 10:
        surcharge += 1.00

    oversize = 48 < longest <= 96 or median > 30 or 105 < longest + girth <= 130
    additional_oversize = 96 < longest <= 108 or 130 < longest + girth <= 165
    if oversize:
        surcharge += 3.00
    if additional_oversize:
        surcharge += 20.00

    return round_money(_base_fulfillment_fee(weight) + surcharge)


def storage_fee(season: str, cubic_ft: float, months: float) -> float:
    """Monthly storage; the Oct-Dec peak rate applies past the first month"""
    if season == "Jan-Sep" or months <= 1:
        rate = 0.75
    else:
        rate = 1.50
    return round_money(cubic_ft * rate * months)


def inbound_shipping_fee(inbound_weight: float, rate: float) -> float:
    return round_money(inbound_weight * rate)


PER_LB = "per lb"
EACH = "each"
COST_TYPES = (PER_LB, EACH)


def handling_fee(weight: float, cost_type: str, per_lb: float, each: float) -> float:
    """Prep or additional cost: per_lb * weight for "per lb", otherwise a flat per-item amount"""
    fee = per_lb * weight if cost_type == PER_LB else each
    return round_money(fee)


def starting_product_cost(sale_price: float, ratio: float = 0.4) -> float:
    return round_money(sale_price * ratio)


# ---------------------------------------------------------------------------
# Profitability
# ---------------------------------------------------------------------------

def total_profit(
    sale_price: float,
    product_cost: float,
    referral: float,
    wfs: float,
    inbound_shipping: float,
    storage: float,
    prep: float,
    additional: float
) -> float:
    total_cost = product_cost + referral + wfs + inbound_shipping + storage + prep + additional
    return round_money(sale_price - total_cost)


def roi(profit: float, product_cost: float) -> float:
    """Return on investment in percent; 0 when cost is 0"""
    return round(safe_divide(profit, product_cost) * 100, 2)


def margin(profit: float, sale_price: float) -> float:
    """Profit margin in percent; 0 when sale price is 0"""
    return round(safe_divide(profit, sale_price) * 100, 2)


@dataclass
class FeeSchedule:
    """Policy knobs the pricing controller calculates with"""
    dimensional_weight_divisor: float = 139.0
    starting_cost_ratio: float = 0.4

    @classmethod
    def from_settings(cls, settings=None) -> "FeeSchedule":
        settings = settings or get_settings()
        return cls(
            dimensional_weight_divisor=settings.dimensional_weight_divisor,
            starting_cost_ratio=settings.starting_cost_ratio
        )

    def starting_cost(self, sale_price: float) -> float:
        return starting_product_cost(sale_price, self.starting_cost_ratio)

    def dimensional_weight(self, length: float, width: float, height: float) -> float:
        return dimensional_weight(length, width, height, self.dimensional_weight_divisor)

    def inbound_weight(self, weight: float, length: float, width: float, height: float) -> float:
        return inbound_shipping_weight(weight, length, width, height, self.dimensional_weight_divisor)

    def wfs_weight(self, weight: float, length: float, width: float, height: float) -> int:
        return wfs_shipping_weight(weight, length, width, height, self.dimensional_weight_divisor)

    referral_fee = staticmethod(referral_fee)
    wfs_fee = staticmethod(wfs_fee)
    storage_fee = staticmethod(storage_fee)
    inbound_shipping_fee = staticmethod(inbound_shipping_fee)
    handling_fee = staticmethod(handling_fee)
