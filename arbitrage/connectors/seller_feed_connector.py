"""
Seller feed connector.
Fetches every marketplace offer for an item from the platform's GraphQL
GetAllSellerOffers operation.

API structure:
  - GET {endpoint}?variables={"itemId": ..., "isSubscriptionEligible": true}
  - Response: data.product.allOffers[] with sellerName/sellerDisplayName,
    priceInfo.currentPrice.priceString, wfsEnabled/fulfillmentType,
    hasSellerBadge, shippingOption.deliveryDate, availabilityStatus and
    fulfillmentOptions[].availableQuantity

Bot protection answers 412, or 200 with a redirect body pointing at
/blocked. Both surface as SellerFeedBlocked so the client can cool down.
"""
from typing import Any, Dict, List, Mapping, Optional
import asyncio
import json
import uuid
from urllib.parse import quote

import aiohttp

from arbitrage.connectors.base_connector import BaseConnector
from arbitrage.config import get_settings


class SellerFeedError(Exception):
    """Network or parse failure while fetching seller offers"""


class SellerFeedBlocked(SellerFeedError):
    """The platform's bot protection rejected the request"""


def is_blocked_response(status: int, body: str) -> bool:
    if status == 412:
        return True
    return bool(body) and "redirectUrl" in body and "/blocked" in body


def extract_offers(payload: Any) -> List[Dict[str, Any]]:
    """Pull data.product.allOffers out of a GraphQL payload ([] when absent)"""
    if not isinstance(payload, dict):
        return []
    data = payload.get("data")
    product = data.get("product") if isinstance(data, dict) else None
    offers = product.get("allOffers") if isinstance(product, dict) else None
    if not isinstance(offers, list):
        return []
    return [offer for offer in offers if isinstance(offer, dict)]


class SellerFeedConnector(BaseConnector):
    """Connector for the GetAllSellerOffers GraphQL endpoint"""

    def __init__(
        self,
        endpoint: Optional[str] = None,
        session: Optional[aiohttp.ClientSession] = None,
        headers: Optional[Mapping[str, str]] = None,
        cookies: Optional[Mapping[str, str]] = None,
        timeout_seconds: Optional[float] = None,
        logger=None
    ):
        super().__init__("SellerFeed", logger)
        settings = get_settings()
        self.endpoint = endpoint or settings.seller_feed_url
        self.timeout_seconds = timeout_seconds or settings.seller_feed_timeout_seconds
        self._session = session
        self.extra_headers = dict(headers or {})
        self.cookies = dict(cookies or {})

    def build_url(self, item_id: str) -> str:
        variables = {"itemId": item_id, "isSubscriptionEligible": True}
        return f"{self.endpoint}?variables={quote(json.dumps(variables, separators=(',', ':')))}"

    def build_headers(self) -> Dict[str, str]:
        correlation_id = uuid.uuid4().hex[:13]
        headers = {
            "accept": "application/json",
            "accept-language": "en-US",
            "cache-control": "no-cache",
            "content-type": "application/json",
            "x-apollo-operation-name": "GetAllSellerOffers",
            "x-o-gql-query": "query GetAllSellerOffers",
            "x-o-correlation-id": correlation_id,
            "wm_qos.correlation_id": correlation_id,
        }
        if self.cookies:
            headers["cookie"] = "; ".join(f"{k}={v}" for k, v in self.cookies.items())
        headers.update(self.extra_headers)
        return headers

    async def fetch_offers(self, item_id: str) -> List[Dict[str, Any]]:
        """
        Fetch raw offers for an item.

        Raises:
            SellerFeedBlocked: bot protection triggered
            SellerFeedError: transport failure, non-2xx status or invalid JSON
        """
        url = self.build_url(item_id)
        try:
            if self._session is not None:
                status, body = await self._get(self._session, url)
            else:
                timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
                async with aiohttp.ClientSession(timeout=timeout) as session:
                    status, body = await self._get(session, url)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self._record_error()
            raise SellerFeedError(f"Seller feed request failed for {item_id}: {e}") from e

        if is_blocked_response(status, body):
            self._record_error(blocked=True)
            raise SellerFeedBlocked(f"Seller feed blocked by bot protection (status {status})")

        if status >= 400:
            self._record_error()
            raise SellerFeedError(f"Seller feed HTTP {status} for {item_id}: {body[:200]}")

        try:
            payload = json.loads(body)
        except ValueError as e:
            self._record_error()
            raise SellerFeedError(f"Seller feed returned invalid JSON for {item_id}") from e

        offers = extract_offers(payload)
        self._record_success()
        self.log.debug(f"{self.name} returned {len(offers)} raw offers for {item_id}")
        return offers

    async def _get(self, session: aiohttp.ClientSession, url: str):
        async with session.get(url, headers=self.build_headers()) as response:
            body = await response.text()
            return response.status, body
