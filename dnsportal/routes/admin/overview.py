# dnsportal/routes/admin/overview.py

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from dnsportal.core.config import settings
from dnsportal.deps.supabase_auth import require_admin
from dnsportal.services.storage import Storage, get_storage
from dnsportal.services.transactions import TransactionService

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/stats")
async def admin_stats(admin=Depends(require_admin), storage: Storage = Depends(get_storage)):
    users = storage.users.find_all()
    return {
        "total_users": sum(1 for u in users if not u.get("is_admin")),
        "total_domains": len(storage.domains.find_all()),
        "total_subdomains": len(storage.subdomains.find_all()),
        "total_records": storage.dns_records.count_all(),
        "transactions": TransactionService(storage).get_transaction_stats(),
    }


@router.get("/debug")
async def admin_debug(admin=Depends(require_admin), storage: Storage = Depends(get_storage)):
    """
    Storage and config health for the admin panel.
    Only reports whether secrets are set, never their values.
    """
    service = TransactionService(storage)
    transactions = service.get_all_transactions()
    return {
        "status": "success",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "storage": storage.describe(),
        "statistics": service.get_transaction_stats(),
        "admin_limit": service.get_user_subdomain_limit(admin["id"]),
        "recent_transactions": transactions[:5],
        "total_transactions": len(transactions),
        "environment": {
            "storage_backend": settings.STORAGE_BACKEND,
            "razorpay_key_id_set": bool(settings.RAZORPAY_KEY_ID),
            "razorpay_key_secret_set": bool(settings.RAZORPAY_KEY_SECRET),
            "supabase_jwt_secret_set": bool(settings.SUPABASE_JWT_SECRET),
            "free_subdomain_limit": settings.FREE_SUBDOMAIN_LIMIT,
            "extra_subdomain_price": settings.EXTRA_SUBDOMAIN_PRICE,
        },
    }
