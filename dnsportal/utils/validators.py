# dnsportal/utils/validators.py

import ipaddress
import logging
import re

logger = logging.getLogger(__name__)

# One DNS label: letters, digits, inner hyphens, 1-63 chars
SUBDOMAIN_REGEX = re.compile(r"^[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?$")
HOSTNAME_LABEL_REGEX = re.compile(r"^(?!-)[A-Za-z0-9_-]{1,63}(?<!-)$")

# Labels users may not claim on a shared parent domain
RESERVED_SUBDOMAINS = frozenset([
    "www", "mail", "ftp", "smtp", "imap", "pop", "mx",
    "ns", "ns1", "ns2", "admin", "api",
])


def normalize_subdomain_name(name: str) -> str:
    return (name or "").strip().lower()


def is_valid_subdomain_name(name: str) -> bool:
    """
    A single DNS label, lower-case, not reserved.
    """
    valid = bool(SUBDOMAIN_REGEX.fullmatch(name or "")) and name not in RESERVED_SUBDOMAINS
    if not valid:
        logger.debug(f"Subdomain validation failed: '{name}'")
    return valid


def is_valid_ipv4(value: str) -> bool:
    try:
        ipaddress.IPv4Address((value or "").strip())
        return True
    except ValueError:
        return False


def is_valid_hostname(value: str) -> bool:
    """
    Fully-qualified target for CNAME/SRV. A trailing dot is allowed,
    bare IP addresses are not.
    """
    hostname = (value or "").strip()
    if hostname.endswith("."):
        hostname = hostname[:-1]
    if not hostname or len(hostname) > 253 or "." not in hostname or is_valid_ipv4(hostname):
        return False
    return all(HOSTNAME_LABEL_REGEX.fullmatch(label) for label in hostname.split("."))


def is_valid_domain_name(value: str) -> bool:
    return is_valid_hostname(value) and not value.strip().endswith(".")


def normalize_email(email: str) -> str:
    """Lowercases and strips input for consistent email handling."""
    return (email or "").lower().strip()


def mask_secret(secret: str, visible: int = 4) -> str:
    if not secret:
        return ""
    if len(secret) <= visible:
        return "*" * len(secret)
    return "*" * (len(secret) - visible) + secret[-visible:]

"""
----------------------------------------------------------
Purpose:
    Input checks for subdomain names and record values before anything is
    sent to Cloudflare.

Used By:
    - Dashboard subdomain routes (request models).
    - Admin domain routes (parent domain names, masked API keys).
    - Storage and the auth dependency (email normalisation).
----------------------------------------------------------
"""
