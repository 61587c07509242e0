"""
Razorpay order creation and checkout signature checks.
"""

from unittest.mock import AsyncMock, Mock, patch

import httpx
import pytest

from dnsportal.services import razorpay
from dnsportal.services.razorpay import (
    PaymentError,
    create_order,
    expected_signature,
    verify_payment_signature,
)

SECRET = "rzp_test_secret"


def _response(status_code, payload):
    response = Mock()
    response.status_code = status_code
    response.json.return_value = payload
    return response


class TestSignature:
    def test_valid_signature(self):
        signature = expected_signature("order_1", "pay_1", SECRET)
        assert verify_payment_signature("order_1", "pay_1", signature, SECRET) is True

    def test_tampered_payment_id(self):
        signature = expected_signature("order_1", "pay_1", SECRET)
        assert verify_payment_signature("order_1", "pay_2", signature, SECRET) is False

    def test_wrong_secret(self):
        signature = expected_signature("order_1", "pay_1", "another-secret")
        assert verify_payment_signature("order_1", "pay_1", signature, SECRET) is False

    def test_empty_fields_fail(self):
        assert verify_payment_signature("", "pay_1", "sig", SECRET) is False
        assert verify_payment_signature("order_1", "pay_1", "", SECRET) is False

    def test_missing_secret_raises(self):
        with pytest.raises(PaymentError):
            verify_payment_signature("order_1", "pay_1", "sig", "")

    def test_uses_configured_secret_by_default(self):
        signature = expected_signature("order_1", "pay_1", SECRET)
        assert verify_payment_signature("order_1", "pay_1", signature) is True


class TestCreateOrder:
    async def test_posts_amount_in_paise_with_basic_auth(self):
        order = {"id": "order_xyz", "amount": 1600, "currency": "INR", "status": "created"}
        post = AsyncMock(return_value=_response(200, order))

        with patch.object(httpx.AsyncClient, "post", post):
            result = await create_order(1600, "receipt_1", notes={"slots": "2"})

        assert result == order
        args, kwargs = post.call_args
        assert args[0].endswith("/orders")
        assert kwargs["json"] == {"amount": 1600, "currency": "INR", "receipt": "receipt_1", "notes": {"slots": "2"}}
        assert kwargs["auth"] == ("rzp_test_key", SECRET)

    async def test_error_response_raises(self):
        error = {"error": {"code": "BAD_REQUEST_ERROR", "description": "amount too small"}}
        post = AsyncMock(return_value=_response(400, error))

        with patch.object(httpx.AsyncClient, "post", post):
            with pytest.raises(PaymentError, match="amount too small"):
                await create_order(10, "receipt_1")

    async def test_transport_error_raises(self):
        post = AsyncMock(side_effect=httpx.ConnectError("boom"))

        with patch.object(httpx.AsyncClient, "post", post):
            with pytest.raises(PaymentError):
                await create_order(800, "receipt_1")

    async def test_missing_credentials(self):
        with patch.object(razorpay.settings, "RAZORPAY_KEY_ID", ""):
            with pytest.raises(PaymentError):
                await create_order(800, "receipt_1")
