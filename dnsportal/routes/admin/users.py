# dnsportal/routes/admin/users.py

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from dnsportal.deps.supabase_auth import require_admin
from dnsportal.services.quota import effective_subdomain_limit
from dnsportal.services.storage import Storage, get_storage
from dnsportal.services.subdomains import release_subdomain

logger = logging.getLogger(__name__)
router = APIRouter()


class UpdateUserRequest(BaseModel):
    subdomain_limit: Optional[int] = Field(None, ge=0)
    plan: Optional[Literal["FREE", "PRO", "ENTERPRISE"]] = None


@router.get("/users")
async def list_users(admin=Depends(require_admin), storage: Storage = Depends(get_storage)):
    users = []
    for user in storage.users.find_all():
        users.append({
            **user,
            "subdomain_count": storage.subdomains.count_by_user_id(user["id"]),
            "effective_limit": effective_subdomain_limit(user),
        })
    return users


@router.put("/users/{user_id}")
async def update_user(
    user_id: str,
    data: UpdateUserRequest,
    admin=Depends(require_admin),
    storage: Storage = Depends(get_storage),
):
    changes = data.model_dump(exclude_none=True)
    if not changes:
        raise HTTPException(status_code=400, detail="Nothing to update")

    if not storage.users.find_by_id(user_id):
        raise HTTPException(status_code=404, detail="User not found")
    updated = storage.users.update(user_id, changes)

    logger.info(f"Admin {admin['email']} updated user {user_id}: {changes}")
    return {"success": True, "user": updated}


@router.delete("/users/{user_id}")
async def delete_user(user_id: str, admin=Depends(require_admin), storage: Storage = Depends(get_storage)):
    """Removes the user, their Cloudflare records (best effort), subdomains and DNS records."""
    if user_id == admin["id"]:
        raise HTTPException(status_code=400, detail="Admins cannot delete their own account")

    user = storage.users.find_by_id(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    for subdomain in storage.subdomains.find_by_user_id(user_id):
        await release_subdomain(storage, subdomain)
    storage.users.delete(user_id)

    logger.info(f"Admin {admin['email']} deleted user {user_id} ({user['email']})")
    return {"success": True}
