import pytest
from unittest.mock import AsyncMock, patch

from voice_relay.services.store_client import (
    ShopifyStoreClient,
    format_order_summary,
    normalize_order_number,
)

ORDER = {
    "email": "Jane@Example.com",
    "fulfillment_status": "fulfilled",
    "total_price": "59.99",
    "line_items": [{"id": 1}, {"id": 2}],
    "fulfillments": [{"tracking_number": "1Z999"}],
}


def test_normalize_order_number():
    assert normalize_order_number(" #1001 ") == "1001"
    assert normalize_order_number("1001") == "1001"


def test_format_order_summary_with_tracking():
    summary = format_order_summary("1001", ORDER)

    assert summary == "Order #1001: Status is fulfilled. Total: $59.99 for 2 item(s). Tracking number: 1Z999"


def test_format_order_summary_defaults():
    summary = format_order_summary("1002", {"total_price": "10.00"})

    assert "Status is pending" in summary
    assert "0 item(s)" in summary
    assert summary.endswith("No tracking info yet.")


@pytest.mark.asyncio
async def test_lookup_order_found():
    client = ShopifyStoreClient()

    with patch.object(client, "_fetch_orders", AsyncMock(return_value=[ORDER])) as mock_fetch:
        summary = await client.lookup_order("demo.myshopify.com", "shpat_test", "#1001")

    mock_fetch.assert_called_once_with("demo.myshopify.com", "shpat_test", "1001")
    assert summary.startswith("Order #1001: Status is fulfilled.")


@pytest.mark.asyncio
async def test_lookup_order_not_found():
    client = ShopifyStoreClient()

    with patch.object(client, "_fetch_orders", AsyncMock(return_value=[])):
        assert await client.lookup_order("demo.myshopify.com", "shpat_test", "9999") is None


@pytest.mark.asyncio
async def test_lookup_order_email_must_match():
    client = ShopifyStoreClient()

    with patch.object(client, "_fetch_orders", AsyncMock(return_value=[ORDER])):
        assert await client.lookup_order("demo.myshopify.com", "t", "1001", email="jane@example.com")
        assert await client.lookup_order("demo.myshopify.com", "t", "1001", email="bob@example.com") is None


@pytest.mark.asyncio
async def test_lookup_order_errors_become_none():
    client = ShopifyStoreClient()

    with patch.object(client, "_fetch_orders", AsyncMock(side_effect=RuntimeError("timeout"))):
        assert await client.lookup_order("demo.myshopify.com", "t", "1001") is None


@pytest.mark.asyncio
async def test_blank_order_number_is_not_looked_up():
    client = ShopifyStoreClient()

    with patch.object(client, "_fetch_orders", AsyncMock()) as mock_fetch:
        assert await client.lookup_order("demo.myshopify.com", "t", " # ") is None

    mock_fetch.assert_not_called()
