# dnsportal/routes/payment.py

import logging
import time

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from dnsportal.core.config import settings
from dnsportal.core.limiter import limiter
from dnsportal.deps.supabase_auth import get_current_user, is_admin_user
from dnsportal.services.quota import slots_price
from dnsportal.services.razorpay import PaymentError, create_order, verify_payment_signature
from dnsportal.services.storage import Storage, get_storage
from dnsportal.services.transactions import TransactionService

logger = logging.getLogger(__name__)
router = APIRouter()

MAX_SLOTS_PER_ORDER = 100


class CreateOrderRequest(BaseModel):
    subdomain_slots: int = Field(..., ge=1, le=MAX_SLOTS_PER_ORDER)


class VerifyPaymentRequest(BaseModel):
    razorpay_order_id: str = Field(..., min_length=1)
    razorpay_payment_id: str = Field(..., min_length=1)
    razorpay_signature: str = Field(..., min_length=1)


@router.post("/create-order")
@limiter.limit(settings.RATE_LIMIT_CREATE_ORDER)
async def create_payment_order(
    request: Request,
    data: CreateOrderRequest,
    user=Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    """
    Opens a Razorpay order for N extra subdomain slots and records a
    `created` transaction. The checkout widget needs order_id + key_id.
    """
    amount = slots_price(data.subdomain_slots)
    try:
        order = await create_order(
            amount,
            receipt=f"receipt_{int(time.time() * 1000)}",
            notes={"user_id": user["id"], "email": user["email"], "subdomain_slots": str(data.subdomain_slots)},
        )
    except PaymentError as e:
        logger.error(f"Order creation failed for user {user['id']}: {e}")
        raise HTTPException(status_code=502, detail="Failed to create payment order")

    transaction = TransactionService(storage).create_transaction(
        user_id=user["id"],
        user_email=user["email"],
        user_name=user.get("name") or "",
        order_id=order["id"],
        amount=amount / 100,  # stored in rupees
        subdomain_slots=data.subdomain_slots,
        currency=order.get("currency", settings.CURRENCY),
    )

    return {
        "order_id": order["id"],
        "amount": order.get("amount", amount),
        "currency": order.get("currency", settings.CURRENCY),
        "transaction_id": transaction["id"],
        "key_id": settings.RAZORPAY_KEY_ID,
    }


@router.post("/verify")
@limiter.limit(settings.RATE_LIMIT_VERIFY_PAYMENT)
async def verify_payment(
    request: Request,
    data: VerifyPaymentRequest,
    user=Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    """
    Checks the checkout signature. Mismatch marks the order `failed`;
    a match marks it `paid` and credits the slots to the buyer.
    """
    service = TransactionService(storage)
    transaction = service.get_transaction_by_order_id(data.razorpay_order_id)
    if not transaction:
        raise HTTPException(status_code=404, detail="Transaction not found")
    if transaction["user_id"] != user["id"] and not is_admin_user(user):
        logger.warning(f"User {user['id']} tried to verify order {data.razorpay_order_id} of another user")
        raise HTTPException(status_code=403, detail="Access denied")

    try:
        valid = verify_payment_signature(
            data.razorpay_order_id, data.razorpay_payment_id, data.razorpay_signature
        )
    except PaymentError as e:
        logger.error(f"Cannot verify order {data.razorpay_order_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to verify payment")

    if not valid:
        service.update_transaction_status(data.razorpay_order_id, "failed")
        raise HTTPException(status_code=400, detail="Payment verification failed")

    transaction = service.update_transaction_status(
        data.razorpay_order_id, "paid", data.razorpay_payment_id
    )
    slots = int(transaction["subdomain_slots"])
    plural = "s" if slots > 1 else ""
    return {
        "success": True,
        "message": f"Payment successful! {slots} extra subdomain slot{plural} added to your account.",
        "subdomain_slots": slots,
    }

"""
--------------------------------------------------------------------
Purpose:
    Slot purchases: Razorpay order creation and checkout verification.

What It Does:
    - price = slots x EXTRA_SUBDOMAIN_PRICE rupees, sent to Razorpay in paise.
    - HMAC-SHA256("<order_id>|<payment_id>") must match the signature the
      checkout widget returns; only then are slots credited.

Security:
    - Only the buyer (or the admin) can verify an order.
    - A paid order is never credited twice.
--------------------------------------------------------------------
"""
