# dnsportal/routes/admin/subdomains.py

import logging

from fastapi import APIRouter, Depends, HTTPException

from dnsportal.deps.supabase_auth import require_admin
from dnsportal.services.storage import Storage, get_storage
from dnsportal.services.subdomains import release_subdomain, subdomain_views

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/subdomains")
async def list_all_subdomains(admin=Depends(require_admin), storage: Storage = Depends(get_storage)):
    """Every subdomain with its parent domain, record and owner."""
    users = {user["id"]: user for user in storage.users.find_all()}
    subdomains = storage.subdomains.find_all()
    views = subdomain_views(storage, subdomains)
    for subdomain, view in zip(subdomains, views):
        owner = users.get(subdomain["user_id"], {})
        view["user_id"] = subdomain["user_id"]
        view["user_email"] = owner.get("email")
        view["user_name"] = owner.get("name")
    return views


@router.delete("/subdomains/{subdomain_id}")
async def delete_any_subdomain(subdomain_id: str, admin=Depends(require_admin), storage: Storage = Depends(get_storage)):
    subdomain = storage.subdomains.find_by_id(subdomain_id)
    if not subdomain:
        raise HTTPException(status_code=404, detail="Subdomain not found")

    await release_subdomain(storage, subdomain)
    logger.info(f"Admin {admin['email']} deleted subdomain {subdomain_id}")
    return {"success": True, "message": "Subdomain deleted successfully"}
