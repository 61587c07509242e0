# dnsportal/services/subdomains.py

import logging
from typing import Any, Dict, List, Optional

from dnsportal.services.cloudflare import CloudflareError, delete_subdomain_record
from dnsportal.services.storage import Storage

logger = logging.getLogger(__name__)


def subdomain_view(storage: Storage, subdomain: Dict[str, Any],
                   domain: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Flattened subdomain + parent domain + first DNS record, as the UI lists it."""
    if domain is None:
        domain = storage.domains.find_by_id(subdomain["domain_id"])
    records = storage.dns_records.find_by_subdomain_id(subdomain["id"])
    record = records[0] if records else {}
    domain_name = domain["name"] if domain else "Unknown"
    return {
        "id": subdomain["id"],
        "name": subdomain["name"],
        "domain_id": subdomain["domain_id"],
        "domain_name": domain_name,
        "full_name": f"{subdomain['name']}.{domain_name}",
        "record_type": record.get("type", "A"),
        "record_value": record.get("value", ""),
        "ttl": record.get("ttl"),
        "priority": record.get("priority"),
        "weight": record.get("weight"),
        "port": record.get("port"),
        "active": subdomain.get("active", True),
        "created_at": subdomain.get("created_at"),
    }


def subdomain_views(storage: Storage, subdomains: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    domains: Dict[str, Optional[Dict[str, Any]]] = {}
    views = []
    for subdomain in subdomains:
        domain_id = subdomain["domain_id"]
        if domain_id not in domains:
            domains[domain_id] = storage.domains.find_by_id(domain_id)
        views.append(subdomain_view(storage, subdomain, domains[domain_id]))
    return views


async def release_subdomain(storage: Storage, subdomain: Dict[str, Any],
                            domain: Optional[Dict[str, Any]] = None) -> bool:
    """
    Removes the Cloudflare record (best effort) and then the local rows.
    A Cloudflare failure is logged and never blocks the local delete.
    """
    record_id = subdomain.get("cloudflare_record_id")
    if record_id:
        if domain is None:
            domain = storage.domains.find_by_id(subdomain["domain_id"])
        if domain:
            try:
                await delete_subdomain_record(domain["cloudflare_zone_id"], domain["cloudflare_api_key"], record_id)
            except CloudflareError as e:
                logger.error(f"Failed to delete Cloudflare record {record_id} for subdomain {subdomain['id']}: {e}")

    return storage.subdomains.delete(subdomain["id"])
