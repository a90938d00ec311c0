"""
Example usage of the arbitrage core

Shows how to:
1. Build a product snapshot from a scraped record plus the live seller feed
2. Run the profitability numbers with the user's saved preferences
3. Check the buy signals against the user's thresholds
"""
import asyncio

from arbitrage.connectors import SellerFeedConnector
from arbitrage.services.analysis_service import evaluate, market_signals
from arbitrage.services.preferences_service import (
    DictPreferenceStore, load_fee_settings, load_thresholds
)
from arbitrage.services.pricing_controller import PricingController
from arbitrage.services.seller_feed_service import SellerFeedClient
from arbitrage.services.snapshot_service import SnapshotAssembler, SnapshotProvider
from arbitrage.utils.logger import setup_logger
from arbitrage.utils.rate_limiter import build_rate_limiters

SCRAPED = {
    "productID": "5550001",
    "name": "Acme Cordless Drill",
    "brand": "Acme",
    "currentPrice": 49.99,
    "shippingLength": "12.5",
    "shippingWidth": "4",
    "shippingHeight": "9",
    "weight": "3.2",
    "numberOfRatings": 154,
    "overallRating": 4.6,
}

PREFERENCES = DictPreferenceStore({
    "desiredMetrics": {"minProfit": "5", "minMargin": "15", "minROI": "30", "maxSellers": "10"},
    "isWalmartFulfilled": True,
    "prepCostType": "each",
    "prepCostEach": "0.35",
})


async def build_snapshot():
    print("\n" + "="*60)
    print("EXAMPLE 1: Build Product Snapshot")
    print("="*60)

    limiters = build_rate_limiters()
    feed = SellerFeedClient(SellerFeedConnector(), limiters["seller_feed"])
    provider = SnapshotProvider(SnapshotAssembler(feed), raw_source=lambda: SCRAPED)

    snapshot = await provider.get_snapshot()
    print(f"Product: {snapshot.basic.name} ({snapshot.basic.product_id})")
    print(f"Sellers: {snapshot.sellers.total_sellers}, stock: {snapshot.inventory.total_stock}")
    for offer in snapshot.sellers.all_sellers[:5]:
        print(f"   {offer.seller_name:<30} {offer.price:>10}  {offer.seller_type.value:<10} arrives {offer.arrives}")
    return snapshot


def run_pricing(snapshot):
    print("\n" + "="*60)
    print("EXAMPLE 2: Profitability")
    print("="*60)

    controller = PricingController(thresholds=load_thresholds(PREFERENCES))
    controller.update_general(**load_fee_settings(PREFERENCES))
    controller.load_snapshot(snapshot)
    controller.update_costs(product_cost="18.50")

    state = controller.state
    print(f"Sale price:   ${state.costs.sale_price:,.2f}")
    print(f"Product cost: ${state.costs.product_cost:,.2f}")
    print(f"Fees:         ${state.fees.total():,.2f}")
    print(f"Profit:       ${state.metrics.total_profit:,.2f}  ROI {state.metrics.roi}%  margin {state.metrics.margin}%")
    return controller


def check_signals(snapshot, controller):
    print("\n" + "="*60)
    print("EXAMPLE 3: Buy Signals")
    print("="*60)

    state = controller.state
    results = evaluate(state.metrics, market_signals(snapshot), state.metrics.thresholds)
    for metric, passed in results.items():
        print(f"   {'✅' if passed else '❌'} {metric}")


async def main():
    snapshot = await build_snapshot()
    controller = run_pricing(snapshot)
    check_signals(snapshot, controller)


if __name__ == "__main__":
    setup_logger()
    asyncio.run(main())
