# dnsportal/services/cloudflare.py

import logging
from typing import Any, Dict, List, Optional

import httpx

from dnsportal.core.config import settings

logger = logging.getLogger(__name__)

RECORD_TYPES = ("A", "CNAME", "SRV")

SRV_DEFAULT_PRIORITY = 10
SRV_DEFAULT_WEIGHT = 10
SRV_DEFAULT_PORT = 80


def srv_defaults(priority: Optional[int] = None, weight: Optional[int] = None,
                 port: Optional[int] = None) -> Dict[str, int]:
    """SRV priority/weight/port with the values Cloudflare is sent when one is omitted."""
    return {
        "priority": SRV_DEFAULT_PRIORITY if priority is None else priority,
        "weight": SRV_DEFAULT_WEIGHT if weight is None else weight,
        "port": SRV_DEFAULT_PORT if port is None else port,
    }


class CloudflareError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def build_record_payload(type: str, name: Optional[str] = None, content: Optional[str] = None,
                         ttl: Optional[int] = None, priority: Optional[int] = None,
                         weight: Optional[int] = None, port: Optional[int] = None,
                         proxied: Optional[bool] = None) -> Dict[str, Any]:
    """
    Shapes a DNS record body for the v4 API. SRV records carry their target
    inside `data` instead of `content`.
    """
    payload: Dict[str, Any] = {"type": type}
    if name is not None:
        payload["name"] = name
    if ttl is not None:
        payload["ttl"] = ttl
    if proxied is not None:
        payload["proxied"] = proxied

    if type == "SRV":
        srv = srv_defaults(priority, weight, port)
        payload["priority"] = srv["priority"]
        payload["data"] = {**srv, "target": content}
    elif content is not None:
        payload["content"] = content
    return payload


class CloudflareAPI:
    """Async client for one zone's DNS records."""

    def __init__(self, zone_id: str, api_key: str, timeout: Optional[float] = None):
        if not zone_id or not api_key:
            raise CloudflareError("Cloudflare zone id and API key are required.")
        self.zone_id = zone_id
        self.api_key = api_key
        self.timeout = timeout or settings.CLOUDFLARE_TIMEOUT
        self.base_url = f"{settings.CLOUDFLARE_API_URL}/zones/{zone_id}"

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def _request(self, method: str, endpoint: str = "", json: Optional[Dict[str, Any]] = None,
                       params: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        url = f"{self.base_url}{endpoint}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request(method, url, headers=self._headers(), json=json, params=params)
        except httpx.HTTPError as e:
            logger.error(f"Cloudflare request {method} {endpoint or '/'} failed: {e}")
            raise CloudflareError(f"Failed to reach Cloudflare: {e}") from e

        try:
            data = response.json()
        except ValueError:
            logger.error(f"Cloudflare returned non-JSON ({response.status_code}) for {method} {endpoint or '/'}")
            raise CloudflareError(f"Cloudflare API error: HTTP {response.status_code}", response.status_code)

        if not data.get("success"):
            messages = [err.get("message", "") for err in data.get("errors") or [] if isinstance(err, dict)]
            message = ", ".join(m for m in messages if m) or "Unknown error"
            logger.error(f"Cloudflare API error on {method} {endpoint or '/'}: {message}")
            raise CloudflareError(f"Cloudflare API error: {message}", response.status_code)

        return data

    async def create_dns_record(self, type: str, name: str, content: str, ttl: Optional[int] = None,
                                priority: Optional[int] = None, weight: Optional[int] = None,
                                port: Optional[int] = None, proxied: bool = False) -> Optional[str]:
        if type not in RECORD_TYPES:
            raise CloudflareError(f"Unsupported record type: {type}")
        payload = build_record_payload(type, name, content, ttl or settings.DEFAULT_DNS_TTL,
                                       priority, weight, port, proxied)
        logger.info(f"Creating {type} record {name} in zone {self.zone_id}")
        data = await self._request("POST", "/dns_records", json=payload)
        return (data.get("result") or {}).get("id")

    async def update_dns_record(self, record_id: str, type: str, content: str, name: Optional[str] = None,
                                ttl: Optional[int] = None, priority: Optional[int] = None,
                                weight: Optional[int] = None, port: Optional[int] = None,
                                proxied: Optional[bool] = None) -> bool:
        payload = build_record_payload(type, name, content, ttl, priority, weight, port, proxied)
        logger.info(f"Updating record {record_id} in zone {self.zone_id}")
        data = await self._request("PUT", f"/dns_records/{record_id}", json=payload)
        return bool(data.get("success"))

    async def delete_dns_record(self, record_id: str) -> bool:
        logger.info(f"Deleting record {record_id} in zone {self.zone_id}")
        data = await self._request("DELETE", f"/dns_records/{record_id}")
        return bool(data.get("success"))

    async def get_dns_record(self, record_id: str) -> Optional[Dict[str, Any]]:
        try:
            data = await self._request("GET", f"/dns_records/{record_id}")
        except CloudflareError:
            return None
        return data.get("result")

    async def list_dns_records(self, name: Optional[str] = None, type: Optional[str] = None) -> List[Dict[str, Any]]:
        params = {}
        if name:
            params["name"] = name
        if type:
            params["type"] = type
        data = await self._request("GET", "/dns_records", params=params or None)
        return data.get("result") or []

    async def test_connection(self) -> bool:
        try:
            await self._request("GET")
            return True
        except CloudflareError:
            return False


def full_record_name(subdomain_name: str, domain_name: str) -> str:
    return f"{subdomain_name}.{domain_name}"


async def create_subdomain_record(domain_name: str, subdomain_name: str, record_type: str, record_value: str,
                                  zone_id: str, api_key: str, **options) -> Optional[str]:
    cloudflare = CloudflareAPI(zone_id, api_key)
    return await cloudflare.create_dns_record(
        record_type, full_record_name(subdomain_name, domain_name), record_value, **options
    )


async def update_subdomain_record(domain_name: str, subdomain_name: str, record_id: str, record_type: str,
                                  record_value: str, zone_id: str, api_key: str, **options) -> bool:
    cloudflare = CloudflareAPI(zone_id, api_key)
    return await cloudflare.update_dns_record(
        record_id, record_type, record_value, name=full_record_name(subdomain_name, domain_name), **options
    )


async def delete_subdomain_record(zone_id: str, api_key: str, record_id: str) -> bool:
    cloudflare = CloudflareAPI(zone_id, api_key)
    return await cloudflare.delete_dns_record(record_id)


async def test_cloudflare_connection(zone_id: str, api_key: str) -> bool:
    try:
        cloudflare = CloudflareAPI(zone_id, api_key)
    except CloudflareError:
        return False
    return await cloudflare.test_connection()

"""
--------------------------------------------------------------
Purpose:
    Creates, updates and removes the DNS records that back user subdomains
    (e.g. blog.example.tech) on admin-configured Cloudflare zones.

What It Does:
    - Talks to /zones/{zone_id}/dns_records with a Bearer API token.
    - Supports A, CNAME and SRV (SRV target/port/weight/priority in `data`).
    - Turns `success: false` or transport failures into CloudflareError.

Used By:
    - Dashboard subdomain routes, admin domain/subdomain routes.

Security:
    - Tokens come from the Domain row and are never logged.
--------------------------------------------------------------
"""
