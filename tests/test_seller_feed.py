"""
Seller feed tests (connector transport + client).

Guards against:
1. Misclassified sellers: storefront name wins over every other flag, the
   pro badge never changes the type, brand matching stays token-based
2. Out-of-stock or duplicate offers leaking into the seller table
3. Cache hits touching the rate limiter, or failures being cached
4. Exceptions escaping the client (it must always degrade to [])
5. Bot-protection pages parsed as empty-but-successful responses
"""
import asyncio
import json
from urllib.parse import unquote

import pytest

from arbitrage.connectors.base_connector import BaseConnector
from arbitrage.connectors.seller_feed_connector import (
    SellerFeedBlocked,
    SellerFeedConnector,
    SellerFeedError,
    extract_offers,
    is_blocked_response,
)
from arbitrage.models.snapshot import SellerType
from arbitrage.services.seller_feed_service import (
    SellerFeedClient,
    classify_seller,
    format_delivery_date,
    is_brand_match,
    normalize_offer,
    normalize_offers,
)
from arbitrage.utils.backoff import BlockBackoff
from arbitrage.utils.rate_limiter import RateLimiter


def _run(coro):
    """Run an async coroutine in a sync test."""
    return asyncio.run(coro)


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


def _offer(name, price="$19.99", status="IN_STOCK", wfs=False, badge=False, qty=5, **extra):
    offer = {
        "sellerDisplayName": name,
        "sellerName": name,
        "priceInfo": {"currentPrice": {"price": 19.99, "priceString": price}},
        "availabilityStatus": status,
        "wfsEnabled": wfs,
        "fulfillmentType": "FC" if wfs else "MARKETPLACE",
        "hasSellerBadge": badge,
        "shippingOption": {"deliveryDate": "2025-10-05T06:00:00.000Z"},
        "fulfillmentOptions": [{"type": "SHIPPING", "availableQuantity": qty}],
    }
    offer.update(extra)
    return offer


class FakeConnector(BaseConnector):
    """Returns canned raw offers, or raises the queued exception"""

    def __init__(self, offers=None, error=None):
        super().__init__("FakeFeed")
        self.offers = offers or []
        self.error = error
        self.calls = []

    async def fetch_offers(self, item_id):
        self.calls.append(item_id)
        if self.error is not None:
            raise self.error
        return list(self.offers)


def _client(connector, clock=None, max_requests=10, **kwargs):
    clock = clock or FakeClock()
    limiter = RateLimiter("seller_feed", max_requests=max_requests, window_seconds=60, clock=clock)
    backoff = BlockBackoff(min_delay=60, max_delay=60, clock=clock)
    client = SellerFeedClient(
        connector, limiter, cache_seconds=30, storefront_name="Walmart.com",
        clock=clock, backoff=backoff, **kwargs
    )
    return client, limiter, clock


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------

def test_storefront_name_is_wmt_regardless_of_flags():
    assert classify_seller("Walmart.com", is_wfs=True, brand="Walmart") == SellerType.WMT
    assert classify_seller("Walmart.com", is_wfs=False, brand=None) == SellerType.WMT


def test_storefront_match_is_exact():
    assert classify_seller("walmart.com", is_wfs=False) == SellerType.SF
    assert classify_seller("Walmart.com Outlet", is_wfs=True) == SellerType.WFS


def test_platform_fulfilled_brand_seller_is_wfs_brand():
    assert classify_seller("Acme Official Store", is_wfs=True, brand="Acme") == SellerType.WFS_BRAND


def test_seller_fulfilled_brand_seller_is_sf_brand():
    assert classify_seller("ACME DIRECT", is_wfs=False, brand="acme") == SellerType.SF_BRAND


def test_neither_fulfillment_nor_brand_is_sf():
    assert classify_seller("Deal Hunters LLC", is_wfs=False, brand="Acme") == SellerType.SF


def test_pro_badge_does_not_change_type():
    plain = normalize_offer(_offer("Deal Hunters", wfs=True, badge=False))
    pro = normalize_offer(_offer("Deal Hunters", wfs=True, badge=True))
    assert plain.seller_type == pro.seller_type == SellerType.WFS
    assert pro.is_pro_seller is True


def test_brand_match_is_loose_token_substring():
    assert is_brand_match("Home Depot", "Home Goods Outlet") is True
    assert is_brand_match("Sony", "SonyDirect") is True
    assert is_brand_match("Sony", "Panasonic") is False
    assert is_brand_match("", "Anything") is False
    assert is_brand_match(None, "Anything") is False
    assert is_brand_match("Acme", None) is False


# ---------------------------------------------------------------------------
# Normalisation
# ---------------------------------------------------------------------------

def test_normalize_offer_fields():
    offer = normalize_offer(_offer("Acme Store", price="$24.50", wfs=True, qty=7), brand="Acme")
    assert offer.seller_name == "Acme Store"
    assert offer.price == "$24.50"
    assert offer.is_wfs is True
    assert offer.seller_type == SellerType.WFS_BRAND
    assert offer.arrives == "Oct 5"
    assert offer.available_quantity == 7


def test_normalize_offer_defaults():
    offer = normalize_offer({"availabilityStatus": "IN_STOCK"})
    assert offer.seller_name == "Unknown Seller"
    assert offer.price == "N/A"
    assert offer.arrives == "N/A"
    assert offer.available_quantity == 0
    assert offer.is_wfs is False
    assert offer.seller_type == SellerType.SF


def test_display_name_preferred_over_seller_name():
    offer = normalize_offer({"sellerDisplayName": "Shown", "sellerName": "internal-id"})
    assert offer.seller_name == "Shown"


def test_fulfillment_type_fc_counts_as_wfs():
    offer = normalize_offer({"sellerName": "X", "fulfillmentType": "FC"})
    assert offer.is_wfs is True


def test_unparseable_delivery_date():
    assert format_delivery_date("next week") == "N/A"
    assert format_delivery_date(None) == "N/A"


def test_only_in_stock_offers_are_kept():
    offers = normalize_offers([
        _offer("A"),
        _offer("B", status="OUT_OF_STOCK"),
        _offer("C", status="LIMITED_STOCK"),
        {"sellerName": "D"},
    ])
    assert [o.seller_name for o in offers] == ["A"]


def test_duplicates_collapse_first_wins_order_preserved():
    offers = normalize_offers([
        _offer("B", price="$10.00", qty=1),
        _offer("A", price="$12.00"),
        _offer("B", price="$10.00", qty=9),
        _offer("B", price="$11.00"),
    ])
    assert [(o.seller_name, o.price) for o in offers] == [
        ("B", "$10.00"), ("A", "$12.00"), ("B", "$11.00")
    ]
    assert offers[0].available_quantity == 1


# ---------------------------------------------------------------------------
# Client: cache, rate limiting, fail-soft
# ---------------------------------------------------------------------------

def test_cache_hit_skips_network_and_limiter():
    connector = FakeConnector([_offer("A"), _offer("B")])
    client, limiter, clock = _client(connector)

    first = _run(client.get_offers("123"))
    clock.advance(10)
    second = _run(client.get_offers("123"))

    assert len(connector.calls) == 1
    assert limiter.remaining() == 9
    assert first == second


def test_cache_expires_after_ttl():
    connector = FakeConnector([_offer("A")])
    client, _, clock = _client(connector)

    _run(client.get_offers("123"))
    clock.advance(30)
    _run(client.get_offers("123"))
    assert len(connector.calls) == 2


def test_cache_is_single_entry():
    connector = FakeConnector([_offer("A")])
    client, _, _ = _client(connector)

    _run(client.get_offers("1"))
    _run(client.get_offers("2"))
    _run(client.get_offers("1"))
    assert connector.calls == ["1", "2", "1"]


def test_different_brand_reclassifies():
    connector = FakeConnector([_offer("Acme Store")])
    client, _, _ = _client(connector)

    plain = _run(client.get_offers("1"))
    branded = _run(client.get_offers("1", brand="Acme"))
    assert plain[0].seller_type == SellerType.SF
    assert branded[0].seller_type == SellerType.SF_BRAND
    assert len(connector.calls) == 2


def test_invalidate_forces_refetch():
    connector = FakeConnector([_offer("A")])
    client, _, _ = _client(connector)
    _run(client.get_offers("1"))
    client.invalidate()
    _run(client.get_offers("1"))
    assert len(connector.calls) == 2


def test_rate_limited_returns_empty_list():
    connector = FakeConnector([_offer("A")])
    client, limiter, _ = _client(connector, max_requests=1)
    limiter.record()

    assert _run(client.get_offers("1")) == []
    assert connector.calls == []


def test_transport_error_returns_empty_and_is_not_cached():
    connector = FakeConnector(error=SellerFeedError("HTTP 500"))
    client, limiter, _ = _client(connector)

    assert _run(client.get_offers("1")) == []
    assert limiter.remaining() == 10

    connector.error = None
    connector.offers = [_offer("A")]
    assert [o.seller_name for o in _run(client.get_offers("1"))] == ["A"]


def test_unexpected_exception_never_escapes():
    connector = FakeConnector(error=RuntimeError("surprise"))
    client, _, _ = _client(connector)
    assert _run(client.get_offers("1")) == []


def test_block_starts_cooldown_without_network():
    connector = FakeConnector(error=SellerFeedBlocked("blocked"))
    client, _, clock = _client(connector)

    assert _run(client.get_offers("1")) == []
    assert client.backoff.is_cooling_down() is True

    connector.error = None
    connector.offers = [_offer("A")]
    assert _run(client.get_offers("1")) == []
    assert len(connector.calls) == 1

    clock.advance(121)
    assert len(_run(client.get_offers("1"))) == 1
    assert client.backoff.consecutive_blocks == 0


# ---------------------------------------------------------------------------
# Connector transport
# ---------------------------------------------------------------------------

class FakeResponse:
    def __init__(self, status, body):
        self.status = status
        self._body = body

    async def text(self):
        return self._body

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


class FakeSession:
    def __init__(self, status=200, body=""):
        self.status = status
        self.body = body
        self.requests = []

    def get(self, url, headers=None):
        self.requests.append((url, headers))
        return FakeResponse(self.status, self.body)


def _payload(offers):
    return json.dumps({"data": {"product": {"allOffers": offers}}})


def test_connector_builds_graphql_request():
    session = FakeSession(body=_payload([_offer("A")]))
    connector = SellerFeedConnector(
        endpoint="https://example.test/graphql", session=session, cookies={"auth": "x"}
    )

    offers = _run(connector.fetch_offers("987"))

    assert len(offers) == 1
    url, headers = session.requests[0]
    assert url.startswith("https://example.test/graphql?variables=")
    variables = json.loads(unquote(url.split("variables=", 1)[1]))
    assert variables == {"itemId": "987", "isSubscriptionEligible": True}
    assert headers["x-apollo-operation-name"] == "GetAllSellerOffers"
    assert headers["accept"] == "application/json"
    assert headers["cookie"] == "auth=x"
    assert connector.get_status()["fetch_count"] == 1


def test_connector_412_is_blocked():
    connector = SellerFeedConnector(session=FakeSession(status=412, body="Precondition Failed"))
    with pytest.raises(SellerFeedBlocked):
        _run(connector.fetch_offers("1"))
    assert connector.get_status()["block_count"] == 1


def test_connector_blocked_redirect_body():
    body = json.dumps({"redirectUrl": "/blocked?url=abc"})
    connector = SellerFeedConnector(session=FakeSession(status=200, body=body))
    with pytest.raises(SellerFeedBlocked):
        _run(connector.fetch_offers("1"))


def test_connector_http_error_and_bad_json():
    connector = SellerFeedConnector(session=FakeSession(status=503, body="unavailable"))
    with pytest.raises(SellerFeedError) as exc_info:
        _run(connector.fetch_offers("1"))
    assert not isinstance(exc_info.value, SellerFeedBlocked)

    connector = SellerFeedConnector(session=FakeSession(status=200, body="<html>"))
    with pytest.raises(SellerFeedError):
        _run(connector.fetch_offers("1"))
    assert connector.get_status()["error_count"] == 1


def test_blocked_detection_and_offer_extraction():
    assert is_blocked_response(412, "") is True
    assert is_blocked_response(200, '{"redirectUrl": "/account/login"}') is False
    assert extract_offers({"data": {"product": None}}) == []
    assert extract_offers({"data": {"product": {"allOffers": [{"a": 1}, "junk"]}}}) == [{"a": 1}]
    assert extract_offers(None) == []
