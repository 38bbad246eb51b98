"""
Razorpay Gateway Service — creates provider-side orders.

Only one server-side call is made: POST /v1/orders. The charge itself
happens in Razorpay's hosted checkout in the browser, which later hands
the client a signed confirmation (see utils/signatures.py).

Calls are single-shot: no automatic retry, because a blind retry against
a payment gateway can create duplicate orders. Any transport error,
timeout, non-2xx status or malformed body becomes GatewayError; the raw
provider body is logged here and never returned to the client.
"""
import logging
from typing import Optional

import httpx

from config import settings
from domain.errors import GatewayError

logger = logging.getLogger(__name__)


def _get_auth() -> tuple[str, str]:
    """Build Razorpay basic-auth credentials."""
    if not settings.razorpay_key_id or not settings.razorpay_key_secret:
        logger.error(
            "Razorpay key id and secret must be set in .env "
            "(RAZORPAY_KEY_ID, RAZORPAY_KEY_SECRET)"
        )
        raise GatewayError()
    return settings.razorpay_key_id, settings.razorpay_key_secret


def _provider_error_description(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:500]
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        return body["error"].get("description") or str(body["error"])
    return str(body)[:500]


async def create_order(
    amount: int,
    currency: str,
    receipt: str,
    notes: Optional[dict] = None,
) -> dict:
    """
    Create a Razorpay order.

    Args:
        amount: Amount in the currency's smallest unit (paise for INR)
        currency: ISO currency code
        receipt: Per-attempt reference (max 40 chars)
        notes: Key/value metadata kept on the provider order

    Returns:
        dict: {id, amount, currency} as issued by Razorpay

    Raises:
        GatewayError on any failure
    """
    payload = {
        "amount": amount,
        "currency": currency,
        "receipt": receipt,
        "notes": notes or {},
    }

    try:
        async with httpx.AsyncClient(timeout=settings.gateway_timeout_seconds) as client:
            response = await client.post(
                f"{settings.razorpay_api_base}/orders",
                json=payload,
                auth=_get_auth(),
            )
    except httpx.HTTPError as e:
        logger.error(f"  ❌ Razorpay order request failed (receipt={receipt}): {e!r}")
        raise GatewayError()

    if response.status_code < 200 or response.status_code >= 300:
        logger.error(
            f"  ❌ Razorpay rejected order (receipt={receipt}) "
            f"status={response.status_code}: {_provider_error_description(response)}"
        )
        raise GatewayError()

    try:
        order = response.json()
    except ValueError:
        logger.error(f"  ❌ Razorpay returned non-JSON order body (receipt={receipt})")
        raise GatewayError()

    if not isinstance(order, dict) or not order.get("id") or "amount" not in order or not order.get("currency"):
        logger.error(f"  ❌ Razorpay order body missing fields (receipt={receipt}): {order!r}"[:600])
        raise GatewayError()

    if order["amount"] != amount or order["currency"] != currency:
        logger.error(
            f"  ❌ Razorpay order {order['id']} does not match request: "
            f"{order['amount']} {order['currency']} != {amount} {currency}"
        )
        raise GatewayError()

    logger.info(f"  💳 Razorpay order created: {order['id']} ({amount} {currency}, receipt={receipt})")

    return {
        "id": order["id"],
        "amount": order["amount"],
        "currency": order["currency"],
    }
