"""
Read contract for persisted user preferences.

The host owns the store; this module only reads it. Missing or malformed
keys fall back to defaults and never raise.
"""
import json
from typing import Any, Dict, Mapping, Optional, Protocol

from arbitrage.config import get_settings
from arbitrage.models.pricing import Thresholds
from arbitrage.services.fee_schedule import COST_TYPES
from arbitrage.utils.helpers import parse_flag, parse_number
from arbitrage.utils.logger import log

METRICS_KEY = "desiredMetrics"
FULFILLMENT_KEY = "isWalmartFulfilled"

# stored camelCase key -> (Thresholds field, cast)
THRESHOLD_KEYS = {
    "minProfit": ("min_profit", float),
    "minMargin": ("min_margin", float),
    "minROI": ("min_roi", float),
    "minMonthlySales": ("min_monthly_sales", float),
    "minTotalRatings": ("min_total_ratings", int),
    "minRatings30Days": ("min_ratings_30_days", int),
    "minOverallRating": ("min_overall_rating", float),
    "maxSellers": ("max_sellers", int),
    "maxWfsSellers": ("max_wfs_sellers", int),
    "maxStock": ("max_stock", int),
}

# stored key -> (update_general() keyword, settings default attribute or None for 0.0).
# Prep and additional costs are top-level keys; the type picks per lb or each.
HANDLING_KEYS = {
    "prepCostType": ("prep_cost_type", "default_prep_cost_type"),
    "prepCostPerLb": ("prep_cost_per_lb", None),
    "prepCostEach": ("prep_cost_each", None),
    "additionalCostType": ("additional_cost_type", "default_additional_cost_type"),
    "additionalCostPerLb": ("additional_cost_per_lb", None),
    "additionalCostEach": ("additional_cost_each", None),
}


class PreferenceStore(Protocol):
    def get(self, key: str, default: Any = None) -> Any:
        ...


class DictPreferenceStore:
    """In-memory store, values kept as the host serialized them"""

    def __init__(self, data: Optional[Mapping[str, Any]] = None):
        self._data = dict(data or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value


def _read_mapping(store: PreferenceStore, key: str) -> Dict[str, Any]:
    """Stored mappings may be dicts or JSON text"""
    value = store.get(key)
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            log.warning(f"Preference {key} is not valid JSON, using defaults")
            return {}
    return dict(value) if isinstance(value, Mapping) else {}


def load_thresholds(store: PreferenceStore) -> Thresholds:
    metrics = _read_mapping(store, METRICS_KEY)
    values = {}
    for key, (field_name, cast) in THRESHOLD_KEYS.items():
        number = parse_number(metrics.get(key))
        if number is not None:
            values[field_name] = cast(number)
    return Thresholds(**values)


def _non_negative(value: Any, default: float) -> float:
    number = parse_number(value)
    return number if number is not None and number >= 0 else default


def load_fee_settings(store: PreferenceStore) -> Dict[str, Any]:
    """
    Fee inputs in PricingController.update_general() keyword form.

    Defaults: season, storage months and both inbound rates come from
    Settings (inbound $0.50/lb platform-fulfilled, $0.00/lb seller-fulfilled).
    Prep and additional costs default to "per lb" at $0.00.
    """
    settings = get_settings()
    metrics = _read_mapping(store, METRICS_KEY)

    season = metrics.get("season")
    if season not in ("Jan-Sep", "Oct-Dec"):
        season = settings.default_season

    months = parse_number(metrics.get("storageLength"))

    fee_settings = {
        "season": season,
        "storage_months": int(months) if months and months > 0 else settings.default_storage_months,
        "inbound_rate": _non_negative(metrics.get("inboundShippingCost"), settings.default_inbound_rate),
        "sf_inbound_rate": _non_negative(metrics.get("sfShippingCost"), settings.default_sf_inbound_rate),
        "is_platform_fulfilled": parse_flag(store.get(FULFILLMENT_KEY), True),
    }

    for key, (field_name, default_attr) in HANDLING_KEYS.items():
        value = store.get(key)
        if default_attr is not None:
            default = getattr(settings, default_attr)
            fee_settings[field_name] = value if value in COST_TYPES else default
        else:
            fee_settings[field_name] = _non_negative(value, 0.0)
    return fee_settings
