"""
Store-data collaborator used for tool dispatch.

The language model may ask to look up an order; the orchestrator calls
ShopifyStoreClient.lookup_order and speaks the returned sentence. Raw order
JSON never leaves this module.
"""

import logging
from typing import Any, Dict, List, Optional

import aiohttp
from aiohttp import ClientTimeout

from voice_relay.config.constants import DEFAULT_SHOPIFY_API_VERSION, LOGGER_NAME

logger = logging.getLogger(LOGGER_NAME)

REQUEST_TIMEOUT = 10  # seconds


def normalize_order_number(order_number: str) -> str:
    return str(order_number).strip().lstrip("#").strip()


def format_order_summary(order_number: str, order: Dict[str, Any]) -> str:
    """Describe an order in one or two spoken sentences."""
    status = order.get("fulfillment_status") or "pending"
    total = order.get("total_price") or "0.00"
    item_count = len(order.get("line_items") or [])

    tracking = order.get("tracking_number")
    if not tracking:
        for fulfillment in order.get("fulfillments") or []:
            tracking = fulfillment.get("tracking_number")
            if tracking:
                break

    tracking_text = f"Tracking number: {tracking}" if tracking else "No tracking info yet."
    return f"Order #{order_number}: Status is {status}. Total: ${total} for {item_count} item(s). {tracking_text}"


class ShopifyStoreClient:
    """Order lookups against the Shopify Admin REST API."""

    def __init__(self, api_version: str = DEFAULT_SHOPIFY_API_VERSION, timeout: float = REQUEST_TIMEOUT):
        self.api_version = api_version
        self.timeout = timeout

    async def _fetch_orders(self, shop_domain: str, access_token: str, order_number: str) -> List[Dict[str, Any]]:
        url = f"https://{shop_domain}/admin/api/{self.api_version}/orders.json"
        headers = {
            "X-Shopify-Access-Token": access_token,
            "Content-Type": "application/json",
        }
        params = {"name": order_number, "status": "any"}

        async with aiohttp.ClientSession(timeout=ClientTimeout(total=self.timeout)) as http:
            async with http.get(url, headers=headers, params=params) as response:
                if response.status != 200:
                    logger.error(f"Shopify API error for {shop_domain}: {response.status}")
                    return []
                data = await response.json()
                return data.get("orders") or []

    async def lookup_order(
        self,
        shop_domain: str,
        access_token: str,
        order_number: str,
        email: Optional[str] = None,
    ) -> Optional[str]:
        """
        Look up an order by its number.

        Args:
            shop_domain: The tenant's store domain
            access_token: Store API credentials
            order_number: Order number as spoken, with or without '#'
            email: When given, the order must have been placed with it

        Returns:
            A natural-language summary, or None if the order was not found or
            the lookup failed
        """
        number = normalize_order_number(order_number)
        if not number:
            return None

        try:
            orders = await self._fetch_orders(shop_domain, access_token, number)
        except Exception as e:
            logger.error(f"Order lookup error for {shop_domain}: {e}", exc_info=True)
            return None

        if not orders:
            logger.info(f"Order {number} not found for {shop_domain}")
            return None

        order = orders[0]
        if email and (order.get("email") or "").lower() != email.strip().lower():
            logger.info(f"Order {number} email mismatch for {shop_domain}")
            return None

        return format_order_summary(number, order)
