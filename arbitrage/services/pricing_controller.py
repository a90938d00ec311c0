"""
Pricing Controller

Owns the mutable PricingState for the active product and keeps it
consistent as the user edits inputs:

- cost change         -> referral re-derived (sale price), metrics recomputed
- dimension change    -> derived fees recomputed, then metrics
- general change      -> derived fees recomputed, then metrics
- fee change          -> fee marked user-edited, metrics recomputed

Invalid numeric input never raises: the last valid number is kept and the
typed text lands in the field's raw_* shadow.
"""
from typing import Any, Dict, Iterable, Optional, Set

from arbitrage.config import Settings, get_settings
from arbitrage.models.pricing import (
    COST_FIELDS, DERIVED_FEES, DIMENSION_FIELDS, FEE_FIELDS,
    PricingGeneral, PricingMetrics, PricingState, Thresholds
)
from arbitrage.models.snapshot import ProductSnapshot
from arbitrage.services import fee_schedule as fees
from arbitrage.services.fee_schedule import COST_TYPES, FeeSchedule
from arbitrage.utils.helpers import parse_flag, parse_leading_number, parse_number
from arbitrage.utils.logger import get_logger

GENERAL_FIELDS = (
    "contract_category", "season", "storage_months", "inbound_rate", "sf_inbound_rate",
    "is_platform_fulfilled", "prep_cost_type", "prep_cost_per_lb", "prep_cost_each",
    "additional_cost_type", "additional_cost_per_lb", "additional_cost_each",
)
COST_TYPE_FIELDS = ("prep_cost_type", "additional_cost_type")


class PricingController:
    """Reactive profitability calculator for one product at a time"""

    def __init__(
        self,
        fee_schedule: Optional[FeeSchedule] = None,
        thresholds: Optional[Thresholds] = None,
        settings: Optional[Settings] = None,
        logger=None
    ):
        settings = settings or get_settings()
        self.fee_schedule = fee_schedule or FeeSchedule.from_settings(settings)
        self.log = get_logger("pricing", logger)

        self._state = PricingState(
            general=PricingGeneral(
                contract_category=settings.default_contract_category,
                season=settings.default_season,
                storage_months=settings.default_storage_months,
                inbound_rate=settings.default_inbound_rate,
                sf_inbound_rate=settings.default_sf_inbound_rate,
                prep_cost_type=settings.default_prep_cost_type,
                additional_cost_type=settings.default_additional_cost_type
            ),
            metrics=PricingMetrics(thresholds=thresholds or Thresholds())
        )
        self._snapshot: Optional[ProductSnapshot] = None
        self._cost_initialized = False
        self._dimensions_seeded = False
        self._edited: Set[str] = set()

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def state(self) -> PricingState:
        """Detached copy; mutate through the update_* / reset_* operations"""
        return self._state.copy()

    @property
    def snapshot(self) -> Optional[ProductSnapshot]:
        return self._snapshot

    @property
    def is_cost_initialized(self) -> bool:
        return self._cost_initialized

    @property
    def edited_fields(self) -> Set[str]:
        return set(self._edited)

    def _snapshot_price(self) -> float:
        if self._snapshot is None:
            return 0.0
        return self._snapshot.pricing.current_price or 0.0

    # ------------------------------------------------------------------
    # Snapshot loading
    # ------------------------------------------------------------------

    def load_snapshot(self, snapshot: Optional[ProductSnapshot]) -> None:
        """
        Attach a (possibly refreshed) snapshot.

        Costs are initialized from the snapshot price once; dimensions are
        seeded on the first load only. Later loads never overwrite edits.
        """
        self._snapshot = snapshot
        if snapshot is None:
            return

        if not self._dimensions_seeded:
            self._seed_dimensions()
            self._dimensions_seeded = True

        price = self._snapshot_price()
        if price > 0 and not self._cost_initialized:
            costs = self._state.costs
            if "sale_price" not in self._edited:
                costs.sale_price = price
                costs.raw_sale_price = None
            self._initialize_cost(costs.sale_price)

        self._recompute_fees()
        self._recompute_metrics()

    def _initialize_cost(self, sale_price: float) -> None:
        if self._cost_initialized or sale_price <= 0:
            return
        costs = self._state.costs
        if "product_cost" not in self._edited:
            costs.product_cost = self.fee_schedule.starting_cost(sale_price)
            costs.raw_product_cost = None
        self._cost_initialized = True
        self.log.debug(f"Product cost initialized to {costs.product_cost} from sale price {sale_price}")

    def _seed_dimensions(self) -> None:
        dims = self._state.dimensions
        source = self._snapshot.dimensions
        for name, raw_name in DIMENSION_FIELDS.items():
            setattr(dims, name, parse_leading_number(getattr(source, name)) or 0.0)
            setattr(dims, raw_name, None)

    # ------------------------------------------------------------------
    # Mutators
    # ------------------------------------------------------------------

    def _apply(self, group: Any, field_map: Dict[str, str], values: Dict[str, Any]) -> Set[str]:
        """Write values into a state group; returns the fields whose number changed"""
        for key in values:
            if key not in field_map:
                raise KeyError(f"Unknown {type(group).__name__} field: {key}")

        changed = set()
        for key, value in values.items():
            number = parse_number(value)
            self._edited.add(key)
            if number is None:
                setattr(group, field_map[key], "" if value is None else str(value))
                self.log.warning(f"Invalid numeric input for {key}: {value!r}, keeping {getattr(group, key)}")
                continue
            setattr(group, key, number)
            setattr(group, field_map[key], None)
            changed.add(key)
        return changed

    def update_costs(self, **values) -> None:
        changed = self._apply(self._state.costs, COST_FIELDS, values)
        if "sale_price" in changed:
            self._initialize_cost(self._state.costs.sale_price)
            self._recompute_fees(only=("referral_fee",))
        self._recompute_metrics()

    def update_dimensions(self, **values) -> None:
        self._apply(self._state.dimensions, DIMENSION_FIELDS, values)
        self._recompute_fees()
        self._recompute_metrics()

    def update_fees(self, **values) -> None:
        self._apply(self._state.fees, FEE_FIELDS, values)
        self._recompute_metrics()

    def update_general(self, **values) -> None:
        for key in values:
            if key not in GENERAL_FIELDS:
                raise KeyError(f"Unknown PricingGeneral field: {key}")

        general = self._state.general
        for key, value in values.items():
            if key in ("contract_category", "season"):
                setattr(general, key, str(value))
            elif key in COST_TYPE_FIELDS:
                if value not in COST_TYPES:
                    self.log.warning(f"Invalid {key}: {value!r}, keeping {getattr(general, key)}")
                    continue
                setattr(general, key, value)
            elif key == "is_platform_fulfilled":
                general.is_platform_fulfilled = parse_flag(value, general.is_platform_fulfilled)
            else:
                number = parse_number(value)
                if number is None or number < 0:
                    self.log.warning(f"Invalid {key}: {value!r}, keeping {getattr(general, key)}")
                    continue
                setattr(general, key, int(number) if key == "storage_months" else number)

        self._recompute_fees()
        self._recompute_metrics()

    def set_thresholds(self, thresholds: Thresholds) -> None:
        self._state.metrics.thresholds = thresholds

    # ------------------------------------------------------------------
    # Resets
    # ------------------------------------------------------------------

    def reset_pricing(self) -> None:
        """Sale price and product cost back to the snapshot's values"""
        costs = self._state.costs
        costs.sale_price = self._snapshot_price()
        costs.product_cost = self.fee_schedule.starting_cost(costs.sale_price)
        costs.raw_sale_price = None
        costs.raw_product_cost = None
        self._edited.difference_update(COST_FIELDS)
        self._cost_initialized = costs.sale_price > 0

        self._recompute_fees(only=("referral_fee",))
        self._recompute_metrics()
        self.log.info("Pricing reset to snapshot values")

    def reset_fees(self) -> None:
        """Zero every fee and raw shadow; fees are re-derived on the next input change"""
        fee_state = self._state.fees
        for name, raw_name in FEE_FIELDS.items():
            setattr(fee_state, name, 0.0)
            setattr(fee_state, raw_name, None)
        self._edited.difference_update(FEE_FIELDS)
        self._recompute_metrics()
        self.log.info("Fees reset")

    def reset_shipping_dimensions(self) -> None:
        if self._snapshot is None:
            dims = self._state.dimensions
            for name, raw_name in DIMENSION_FIELDS.items():
                setattr(dims, name, 0.0)
                setattr(dims, raw_name, None)
        else:
            self._seed_dimensions()
        self._edited.difference_update(DIMENSION_FIELDS)
        self._recompute_fees()
        self._recompute_metrics()
        self.log.info("Shipping dimensions reset")

    # ------------------------------------------------------------------
    # Recompute
    # ------------------------------------------------------------------

    def _recompute_fees(self, only: Iterable[str] = DERIVED_FEES) -> None:
        state = self._state
        dims = state.dimensions
        general = state.general
        metrics = state.metrics
        schedule = self.fee_schedule
        l, w, h, weight = dims.shipping_length, dims.shipping_width, dims.shipping_height, dims.weight

        metrics.cubic_feet = fees.cubic_feet(l, w, h)
        metrics.dimensional_weight = schedule.dimensional_weight(l, w, h)
        metrics.inbound_weight = schedule.inbound_weight(weight, l, w, h)
        metrics.wfs_weight = schedule.wfs_weight(weight, l, w, h)

        flags = self._snapshot.flags if self._snapshot is not None else None
        inbound_rate = general.inbound_rate if general.is_platform_fulfilled else general.sf_inbound_rate
        derived = {
            "referral_fee": lambda: schedule.referral_fee(state.costs.sale_price, general.contract_category),
            "wfs_fee": lambda: schedule.wfs_fee(
                metrics.wfs_weight, l, w, h,
                is_platform_fulfilled=general.is_platform_fulfilled,
                is_apparel=bool(flags and flags.is_apparel),
                is_hazardous_material=bool(flags and flags.is_hazardous_material),
                retail_price=self._snapshot_price()
            ),
            "inbound_shipping_fee": lambda: schedule.inbound_shipping_fee(metrics.inbound_weight, inbound_rate),
            "storage_fee": lambda: schedule.storage_fee(general.season, metrics.cubic_feet, general.storage_months),
            "prep_fee": lambda: schedule.handling_fee(
                weight, general.prep_cost_type, general.prep_cost_per_lb, general.prep_cost_each
            ),
            "additional_fees": lambda: schedule.handling_fee(
                weight, general.additional_cost_type, general.additional_cost_per_lb, general.additional_cost_each
            ),
        }

        for name in only:
            if name in self._edited:
                continue
            setattr(state.fees, name, derived[name]())
            setattr(state.fees, FEE_FIELDS[name], None)

    def _recompute_metrics(self) -> None:
        costs = self._state.costs
        fee_state = self._state.fees
        metrics = self._state.metrics

        metrics.total_profit = fees.total_profit(
            costs.sale_price,
            costs.product_cost,
            fee_state.referral_fee,
            fee_state.wfs_fee,
            fee_state.inbound_shipping_fee,
            fee_state.storage_fee,
            fee_state.prep_fee,
            fee_state.additional_fees
        )
        metrics.roi = fees.roi(metrics.total_profit, costs.product_cost)
        metrics.margin = fees.margin(metrics.total_profit, costs.sale_price)
        self.log.debug(
            f"Recomputed metrics: profit={metrics.total_profit} roi={metrics.roi} margin={metrics.margin}"
        )

    def meets_thresholds(self) -> Dict[str, bool]:
        metrics = self._state.metrics
        thresholds = metrics.thresholds
        return {
            "profit": metrics.total_profit >= thresholds.min_profit,
            "margin": metrics.margin >= thresholds.min_margin,
            "roi": metrics.roi >= thresholds.min_roi,
        }
