# dnsportal/services/razorpay.py

import hashlib
import hmac
import logging
from typing import Any, Dict, Optional

import httpx

from dnsportal.core.config import settings

logger = logging.getLogger(__name__)


class PaymentError(Exception):
    """Razorpay could not be reached or refused the request."""


def _credentials():
    if not settings.RAZORPAY_KEY_ID or not settings.RAZORPAY_KEY_SECRET:
        logger.error("Razorpay credentials (key id/secret) are not set.")
        raise PaymentError("Razorpay credentials not configured.")
    return settings.RAZORPAY_KEY_ID, settings.RAZORPAY_KEY_SECRET


async def create_order(amount: int, receipt: str, notes: Optional[Dict[str, str]] = None,
                       currency: Optional[str] = None) -> Dict[str, Any]:
    """
    Creates a Razorpay order. `amount` is in the smallest currency unit
    (paise for INR). Returns the order as Razorpay sends it
    (id, amount, currency, status, ...).
    """
    key_id, key_secret = _credentials()
    body = {
        "amount": amount,
        "currency": currency or settings.CURRENCY,
        "receipt": receipt,
        "notes": notes or {},
    }

    try:
        async with httpx.AsyncClient(timeout=10) as client:
            response = await client.post(
                f"{settings.RAZORPAY_API_URL}/orders",
                json=body,
                auth=(key_id, key_secret),
            )
    except httpx.HTTPError as e:
        logger.error(f"Razorpay order request failed: {e}")
        raise PaymentError(f"Failed to reach Razorpay: {e}") from e

    if response.status_code not in (200, 201):
        description = ""
        try:
            description = response.json().get("error", {}).get("description", "")
        except ValueError:
            pass
        logger.error(f"Razorpay API error: {response.status_code} {description}")
        raise PaymentError(f"Razorpay API error: {response.status_code} {description}".strip())

    order = response.json()
    logger.info(f"Razorpay order {order.get('id')} created for {amount} {body['currency']}")
    return order


def expected_signature(order_id: str, payment_id: str, secret: Optional[str] = None) -> str:
    key = secret if secret is not None else settings.RAZORPAY_KEY_SECRET
    message = f"{order_id}|{payment_id}"
    return hmac.new(key.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).hexdigest()


def verify_payment_signature(order_id: str, payment_id: str, signature: str,
                             secret: Optional[str] = None) -> bool:
    """
    Checkout handler signature: HMAC-SHA256 of "<order_id>|<payment_id>"
    keyed with the key secret, hex encoded.
    """
    if not order_id or not payment_id or not signature:
        return False
    if not (secret if secret is not None else settings.RAZORPAY_KEY_SECRET):
        raise PaymentError("Razorpay key secret not configured.")

    is_valid = hmac.compare_digest(expected_signature(order_id, payment_id, secret), signature)
    if is_valid:
        logger.info(f"Payment signature verified for order {order_id}")
    else:
        logger.warning(f"Payment signature mismatch for order {order_id}")
    return is_valid
