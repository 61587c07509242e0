# dnsportal/routes/transactions.py

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from dnsportal.core.config import settings
from dnsportal.deps.supabase_auth import get_current_user, is_admin_user, require_admin
from dnsportal.services.storage import Storage, get_storage
from dnsportal.services.transactions import TransactionService

logger = logging.getLogger(__name__)
router = APIRouter()


class CreateTransactionRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    order_id: str = Field(..., min_length=1)
    amount: float = Field(..., gt=0)
    subdomain_slots: int = Field(..., ge=1)
    user_email: str = ""
    user_name: str = ""
    payment_id: str = ""
    currency: str = settings.CURRENCY
    status: Literal["created", "paid", "failed"] = "created"


class UpdateTransactionRequest(BaseModel):
    order_id: str = Field(..., min_length=1)
    status: Literal["created", "paid", "failed"]
    payment_id: Optional[str] = None


class SetLimitRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    limit: int = Field(..., ge=0)


class ResetLimitRequest(BaseModel):
    user_id: str = Field(..., min_length=1)


def _require_self_or_admin(user, user_id: str) -> None:
    if user["id"] != user_id and not is_admin_user(user):
        raise HTTPException(status_code=403, detail="Access denied")


@router.get("")
async def list_transactions(
    admin: bool = Query(False),
    user=Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    """Own transactions, or every transaction with ?admin=true (admin only)."""
    service = TransactionService(storage)
    if admin:
        if not is_admin_user(user):
            raise HTTPException(status_code=403, detail="Admin access required")
        return service.get_all_transactions()
    return service.get_user_transactions(user["id"])


@router.get("/stats")
async def transaction_stats(admin=Depends(require_admin), storage: Storage = Depends(get_storage)):
    return TransactionService(storage).get_transaction_stats()


@router.get("/user/{user_id}")
async def user_transactions(user_id: str, user=Depends(get_current_user), storage: Storage = Depends(get_storage)):
    _require_self_or_admin(user, user_id)
    return TransactionService(storage).get_user_transactions(user_id)


@router.get("/limit/{user_id}")
async def get_limit(user_id: str, user=Depends(get_current_user), storage: Storage = Depends(get_storage)):
    _require_self_or_admin(user, user_id)
    return {"user_id": user_id, "limit": TransactionService(storage).get_user_subdomain_limit(user_id)}


@router.post("/limit")
async def set_limit(data: SetLimitRequest, admin=Depends(require_admin), storage: Storage = Depends(get_storage)):
    updated = TransactionService(storage).set_user_subdomain_limit(data.user_id, data.limit)
    if not updated:
        raise HTTPException(status_code=404, detail="User not found")
    logger.info(f"Admin set base subdomain limit of {data.user_id} to {data.limit}")
    return {"success": True, "user_id": data.user_id, "limit": data.limit}


@router.post("/reset")
async def reset_limit(data: ResetLimitRequest, admin=Depends(require_admin), storage: Storage = Depends(get_storage)):
    if not TransactionService(storage).reset_user_limit(data.user_id):
        raise HTTPException(status_code=404, detail="User not found")
    logger.info(f"Admin reset subdomain limit of {data.user_id}")
    return {"success": True, "user_id": data.user_id, "limit": settings.FREE_SUBDOMAIN_LIMIT}


@router.post("/create")
async def create_transaction(
    data: CreateTransactionRequest,
    admin=Depends(require_admin),
    storage: Storage = Depends(get_storage),
):
    """Manual bookkeeping entry (e.g. an offline payment)."""
    service = TransactionService(storage)
    if service.get_transaction_by_order_id(data.order_id):
        raise HTTPException(status_code=400, detail="Transaction for this order already exists")
    return service.create_transaction(**data.model_dump())


@router.post("/update")
async def update_transaction(
    data: UpdateTransactionRequest,
    admin=Depends(require_admin),
    storage: Storage = Depends(get_storage),
):
    transaction = TransactionService(storage).update_transaction_status(data.order_id, data.status, data.payment_id)
    if not transaction:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return transaction


@router.get("/{transaction_id}")
async def get_transaction(transaction_id: str, user=Depends(get_current_user), storage: Storage = Depends(get_storage)):
    transaction = TransactionService(storage).get_transaction(transaction_id)
    if not transaction:
        raise HTTPException(status_code=404, detail="Transaction not found")
    if transaction["user_id"] != user["id"] and not is_admin_user(user):
        raise HTTPException(status_code=403, detail="Access denied")
    return transaction
