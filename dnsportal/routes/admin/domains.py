# dnsportal/routes/admin/domains.py

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, field_validator

from dnsportal.deps.supabase_auth import require_admin
from dnsportal.services.cloudflare import test_cloudflare_connection
from dnsportal.services.storage import DuplicateError, Storage, get_storage
from dnsportal.services.subdomains import release_subdomain
from dnsportal.utils.validators import is_valid_domain_name, mask_secret

logger = logging.getLogger(__name__)
router = APIRouter()


class CloudflareCredentials(BaseModel):
    cloudflare_zone_id: str = Field(..., min_length=1)
    cloudflare_api_key: str = Field(..., min_length=1)


class CreateDomainRequest(CloudflareCredentials):
    name: str

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        name = value.strip().lower()
        if not is_valid_domain_name(name):
            raise ValueError("Domain must be a valid hostname such as example.com")
        return name


def _public_domain(domain: dict, subdomain_count: int) -> dict:
    return {
        **domain,
        "cloudflare_api_key": mask_secret(domain.get("cloudflare_api_key", "")),
        "subdomain_count": subdomain_count,
    }


@router.get("/domains")
async def list_domains(admin=Depends(require_admin), storage: Storage = Depends(get_storage)):
    subdomains = storage.subdomains.find_all()
    return [
        _public_domain(domain, sum(1 for s in subdomains if s["domain_id"] == domain["id"]))
        for domain in storage.domains.find_all(include_inactive=True)
    ]


@router.post("/domains")
async def create_domain(data: CreateDomainRequest, admin=Depends(require_admin), storage: Storage = Depends(get_storage)):
    """Adds a parent domain once its Cloudflare zone credentials check out."""
    if storage.domains.find_by_name(data.name):
        raise HTTPException(status_code=400, detail="Domain already exists")

    if not await test_cloudflare_connection(data.cloudflare_zone_id, data.cloudflare_api_key):
        logger.warning(f"Cloudflare credentials rejected for {data.name}")
        raise HTTPException(status_code=400, detail="Invalid Cloudflare credentials")

    try:
        domain = storage.domains.create(data.name, data.cloudflare_zone_id, data.cloudflare_api_key)
    except DuplicateError:
        raise HTTPException(status_code=400, detail="Domain already exists")

    logger.info(f"Admin {admin['email']} added domain {domain['name']}")
    return _public_domain(domain, 0)


@router.delete("/domains/{domain_id}")
async def delete_domain(domain_id: str, admin=Depends(require_admin), storage: Storage = Depends(get_storage)):
    domain = storage.domains.find_by_id(domain_id)
    if not domain:
        raise HTTPException(status_code=404, detail="Domain not found")

    for subdomain in storage.subdomains.find_by_domain_id(domain_id):
        await release_subdomain(storage, subdomain, domain)
    storage.domains.delete(domain_id)

    logger.info(f"Admin {admin['email']} deleted domain {domain['name']}")
    return {"success": True}


@router.post("/domains/test")
async def test_domain_credentials(data: CloudflareCredentials, admin=Depends(require_admin)):
    is_valid = await test_cloudflare_connection(data.cloudflare_zone_id, data.cloudflare_api_key)
    return {"success": is_valid, "error": None if is_valid else "Connection failed"}
