# dnsportal/services/quota.py

from typing import Any, Dict, Optional

from dnsportal.core.config import settings


def effective_subdomain_limit(user: Optional[Dict[str, Any]]) -> int:
    """
    Base limit (free quota or admin override) plus slots bought through
    Razorpay. Unknown users get the free quota.
    """
    if not user:
        return settings.FREE_SUBDOMAIN_LIMIT
    base = user.get("subdomain_limit")
    if base is None:
        base = settings.FREE_SUBDOMAIN_LIMIT
    return max(int(base), 0) + max(int(user.get("purchased_slots") or 0), 0)


def remaining_slots(user: Optional[Dict[str, Any]], used: int) -> int:
    return max(effective_subdomain_limit(user) - used, 0)


def has_free_slot(user: Optional[Dict[str, Any]], used: int) -> bool:
    return used < effective_subdomain_limit(user)


def quota_summary(storage, user: Dict[str, Any]) -> Dict[str, int]:
    used = storage.subdomains.count_by_user_id(user["id"])
    return {
        "used": used,
        "limit": effective_subdomain_limit(user),
        "remaining": remaining_slots(user, used),
    }


def slots_price(slots: int) -> int:
    """Price in paise, which is what Razorpay expects."""
    return slots * settings.EXTRA_SUBDOMAIN_PRICE * 100
