# dnsportal/routes/dashboard.py

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field, field_validator, model_validator

from dnsportal.core.config import settings
from dnsportal.core.limiter import limiter
from dnsportal.deps.supabase_auth import get_current_user
from dnsportal.services.cloudflare import (
    CloudflareError,
    create_subdomain_record,
    delete_subdomain_record,
    srv_defaults,
    update_subdomain_record,
)
from dnsportal.services.quota import effective_subdomain_limit, has_free_slot, quota_summary
from dnsportal.services.storage import DuplicateError, Storage, get_storage
from dnsportal.services.subdomains import release_subdomain, subdomain_view, subdomain_views
from dnsportal.utils.validators import (
    is_valid_hostname,
    is_valid_ipv4,
    is_valid_subdomain_name,
    normalize_subdomain_name,
)

logger = logging.getLogger(__name__)
router = APIRouter()


class RecordFields(BaseModel):
    record_value: str
    ttl: Optional[int] = Field(None, ge=60, le=86400)
    priority: Optional[int] = Field(None, ge=0, le=65535)
    weight: Optional[int] = Field(None, ge=0, le=65535)
    port: Optional[int] = Field(None, ge=1, le=65535)

    @field_validator("record_value")
    @classmethod
    def strip_value(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Record value is required.")
        return value


def check_record_value(record_type: str, value: str) -> None:
    if record_type == "A" and not is_valid_ipv4(value):
        raise ValueError("A records need an IPv4 address.")
    if record_type in ("CNAME", "SRV") and not is_valid_hostname(value):
        raise ValueError(f"{record_type} records need a fully-qualified hostname.")


def record_options(record_type: str, ttl: Optional[int], priority: Optional[int],
                   weight: Optional[int], port: Optional[int]) -> dict:
    """
    ttl/priority/weight/port exactly as sent to Cloudflare, so the stored
    DnsRecord matches the live one. Non-SRV records carry no SRV fields.
    """
    options = {"ttl": ttl or settings.DEFAULT_DNS_TTL, "priority": None, "weight": None, "port": None}
    if record_type == "SRV":
        options.update(srv_defaults(priority, weight, port))
    return options


class SubdomainCreateRequest(RecordFields):
    name: str
    domain_id: str = Field(..., min_length=1)
    record_type: Literal["A", "CNAME", "SRV"]

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        name = normalize_subdomain_name(value)
        if not is_valid_subdomain_name(name):
            raise ValueError("Subdomain must be a single label of letters, numbers and hyphens (max 63), and not reserved.")
        return name

    @model_validator(mode="after")
    def validate_value(self):
        check_record_value(self.record_type, self.record_value)
        return self


class SubdomainUpdateRequest(RecordFields):
    record_type: Optional[Literal["A", "CNAME", "SRV"]] = None


@router.get("/domains")
async def list_domains(user=Depends(get_current_user), storage: Storage = Depends(get_storage)):
    """Active parent domains users can pick from (id and name only)."""
    return [{"id": d["id"], "name": d["name"]} for d in storage.domains.find_all()]


@router.get("/stats")
async def dashboard_stats(user=Depends(get_current_user), storage: Storage = Depends(get_storage)):
    quota = quota_summary(storage, user)
    return {
        "subdomain_count": quota["used"],
        "record_count": storage.dns_records.count_by_user_id(user["id"]),
        "subdomain_limit": quota["limit"],
        "remaining_slots": quota["remaining"],
        "purchased_slots": user.get("purchased_slots", 0),
        "current_plan": user.get("plan") or "FREE",
    }


@router.get("/subdomains")
async def list_subdomains(user=Depends(get_current_user), storage: Storage = Depends(get_storage)):
    return subdomain_views(storage, storage.subdomains.find_by_user_id(user["id"]))


@router.post("/subdomains")
@limiter.limit(settings.RATE_LIMIT_CREATE_SUBDOMAIN)
async def create_subdomain(
    request: Request,
    data: SubdomainCreateRequest,
    user=Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    """
    Claims <name>.<domain> for the user:
    quota check -> parent domain -> uniqueness -> Cloudflare record -> local rows.
    """
    current_count = storage.subdomains.count_by_user_id(user["id"])
    if not has_free_slot(user, current_count):
        limit = effective_subdomain_limit(user)
        logger.info(f"User {user['id']} hit subdomain limit ({current_count}/{limit})")
        raise HTTPException(
            status_code=400,
            detail=f"Subdomain limit reached ({limit}). Purchase additional slots to continue.",
        )

    domain = storage.domains.find_by_id(data.domain_id)
    if not domain or not domain.get("active", True):
        raise HTTPException(status_code=404, detail="Domain not found")

    if storage.subdomains.find_by_name_and_domain(data.name, domain["id"]):
        raise HTTPException(status_code=400, detail="Subdomain already exists for this domain")

    options = record_options(data.record_type, data.ttl, data.priority, data.weight, data.port)

    try:
        cloudflare_record_id = await create_subdomain_record(
            domain["name"],
            data.name,
            data.record_type,
            data.record_value,
            domain["cloudflare_zone_id"],
            domain["cloudflare_api_key"],
            **options,
        )
    except CloudflareError as e:
        raise HTTPException(status_code=400, detail=f"Failed to create DNS record: {e}")

    try:
        subdomain = storage.subdomains.create(
            name=data.name,
            domain_id=domain["id"],
            user_id=user["id"],
            cloudflare_record_id=cloudflare_record_id,
        )
    except DuplicateError:
        # Lost a race for the same name; drop the record we just made
        if cloudflare_record_id:
            try:
                await delete_subdomain_record(domain["cloudflare_zone_id"], domain["cloudflare_api_key"],
                                              cloudflare_record_id)
            except CloudflareError as e:
                logger.error(f"Could not roll back Cloudflare record {cloudflare_record_id}: {e}")
        raise HTTPException(status_code=400, detail="Subdomain already exists for this domain")

    storage.dns_records.create(
        type=data.record_type,
        value=data.record_value,
        subdomain_id=subdomain["id"],
        user_id=user["id"],
        cloudflare_record_id=cloudflare_record_id,
        **options,
    )

    logger.info(f"User {user['id']} created {data.name}.{domain['name']} ({data.record_type})")
    return {"success": True, "subdomain": subdomain_view(storage, subdomain, domain)}


def _owned_subdomain(storage: Storage, subdomain_id: str, user) -> dict:
    subdomain = storage.subdomains.find_by_id(subdomain_id)
    if not subdomain:
        raise HTTPException(status_code=404, detail="Subdomain not found")
    if subdomain["user_id"] != user["id"]:
        logger.warning(f"User {user['id']} tried to touch subdomain {subdomain_id} they don't own")
        raise HTTPException(status_code=403, detail="Access denied")
    return subdomain


@router.put("/subdomains/{subdomain_id}")
async def update_subdomain(
    subdomain_id: str,
    data: SubdomainUpdateRequest,
    user=Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    """Points an existing subdomain somewhere else (type and/or value)."""
    subdomain = _owned_subdomain(storage, subdomain_id, user)
    domain = storage.domains.find_by_id(subdomain["domain_id"])
    if not domain:
        raise HTTPException(status_code=404, detail="Domain not found")

    records = storage.dns_records.find_by_subdomain_id(subdomain["id"])
    record = records[0] if records else None
    record_type = data.record_type or (record or {}).get("type") or "A"
    try:
        check_record_value(record_type, data.record_value)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    # Omitted fields keep what the record already has
    previous = record or {}
    previous_srv = previous if previous.get("type") == "SRV" else {}
    options = record_options(
        record_type,
        data.ttl or previous.get("ttl"),
        data.priority if data.priority is not None else previous_srv.get("priority"),
        data.weight if data.weight is not None else previous_srv.get("weight"),
        data.port if data.port is not None else previous_srv.get("port"),
    )

    cloudflare_record_id = subdomain.get("cloudflare_record_id")
    try:
        if cloudflare_record_id:
            await update_subdomain_record(
                domain["name"], subdomain["name"], cloudflare_record_id, record_type, data.record_value,
                domain["cloudflare_zone_id"], domain["cloudflare_api_key"], **options,
            )
        else:
            cloudflare_record_id = await create_subdomain_record(
                domain["name"], subdomain["name"], record_type, data.record_value,
                domain["cloudflare_zone_id"], domain["cloudflare_api_key"], **options,
            )
            subdomain = storage.subdomains.update(subdomain["id"], {"cloudflare_record_id": cloudflare_record_id})
    except CloudflareError as e:
        raise HTTPException(status_code=400, detail=f"Failed to update DNS record: {e}")

    if record:
        storage.dns_records.update(record["id"], {
            "type": record_type,
            "value": data.record_value,
            "cloudflare_record_id": cloudflare_record_id,
            **options,
        })
    else:
        storage.dns_records.create(
            type=record_type, value=data.record_value, subdomain_id=subdomain["id"], user_id=user["id"],
            cloudflare_record_id=cloudflare_record_id, **options,
        )

    logger.info(f"User {user['id']} repointed subdomain {subdomain['id']} ({record_type})")
    return {"success": True, "subdomain": subdomain_view(storage, subdomain, domain)}


@router.delete("/subdomains/{subdomain_id}")
async def delete_subdomain(
    subdomain_id: str,
    user=Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    subdomain = _owned_subdomain(storage, subdomain_id, user)
    await release_subdomain(storage, subdomain)
    logger.info(f"User {user['id']} deleted subdomain {subdomain_id}")
    return {"success": True}

"""
--------------------------------------------------------------------
Purpose:
    The user dashboard: parent domains to choose from, usage stats and the
    create / repoint / delete lifecycle of the user's subdomains.

Good Practices:
    - Quota and uniqueness are checked before Cloudflare is called.
    - Ownership is enforced on every per-subdomain route (403 otherwise).
--------------------------------------------------------------------
"""
