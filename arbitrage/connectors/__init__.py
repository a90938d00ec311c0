"""Network connectors for the arbitrage core"""

from arbitrage.connectors.base_connector import BaseConnector
from arbitrage.connectors.seller_feed_connector import (
    SellerFeedConnector,
    SellerFeedError,
    SellerFeedBlocked
)

__all__ = [
    "BaseConnector",
    "SellerFeedConnector",
    "SellerFeedError",
    "SellerFeedBlocked"
]
