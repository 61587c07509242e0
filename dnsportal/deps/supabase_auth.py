# dnsportal/deps/supabase_auth.py

import logging
from functools import lru_cache
from typing import Any, Dict, Optional

import requests
from fastapi import Depends, Header, HTTPException
from jose import JWTError, jwt

from dnsportal.core.config import settings
from dnsportal.services.storage import DuplicateError, Storage, get_storage
from dnsportal.utils.validators import normalize_email

logger = logging.getLogger(__name__)

# --- Supabase Auth JWT validation setup ---

JWKS_URL = f"{settings.SUPABASE_URL}/auth/v1/.well-known/jwks.json"

@lru_cache()
def get_supabase_jwks():
    """
    Downloads and caches the JWKS used to validate Supabase JWT tokens.
    Sends 'apikey' header as required by Supabase for all non-public endpoints.
    """
    headers = {"apikey": settings.SUPABASE_ANON_KEY} if settings.SUPABASE_ANON_KEY else {}
    resp = requests.get(JWKS_URL, headers=headers, timeout=10)
    resp.raise_for_status()
    return resp.json()

def decode_supabase_token(token: str) -> Dict[str, Any]:
    """
    Verifies a Supabase access token.
    - HS256 with the project's JWT secret when SUPABASE_JWT_SECRET is set.
    - Otherwise ES256 against the cached JWKS (asymmetric signing keys).
    Audience check is disabled; Supabase always issues 'authenticated'.
    """
    try:
        if settings.SUPABASE_JWT_SECRET:
            return jwt.decode(
                token,
                settings.SUPABASE_JWT_SECRET,
                algorithms=["HS256"],
                options={"verify_aud": False},
            )
        return jwt.decode(
            token,
            get_supabase_jwks(),
            algorithms=["ES256"],
            options={"verify_aud": False},
        )
    except JWTError as e:
        logger.warning(f"Rejected access token: {e}")
        raise HTTPException(status_code=401, detail="Invalid or expired token.")
    except requests.RequestException as e:
        logger.error(f"Could not fetch Supabase JWKS: {e}", exc_info=True)
        raise HTTPException(status_code=401, detail="Unable to verify token.")

def is_admin_email(email: Optional[str]) -> bool:
    return bool(email) and normalize_email(email) == normalize_email(settings.ADMIN_EMAIL)

def is_admin_user(user: Optional[Dict[str, Any]]) -> bool:
    """The stored flag and the configured admin email must agree."""
    return bool(user) and bool(user.get("is_admin")) and is_admin_email(user.get("email"))

def _provision_user(storage: Storage, payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    First sign-in through OAuth creates the local user row with the free quota.
    """
    email = normalize_email(payload.get("email"))
    user = storage.users.find_by_email(email)
    if user:
        return user

    metadata = payload.get("user_metadata") or {}
    try:
        return storage.users.create(
            email=email,
            name=metadata.get("full_name") or metadata.get("name") or "",
            image=metadata.get("avatar_url") or metadata.get("picture"),
        )
    except DuplicateError:
        # Another request provisioned the same account first
        return storage.users.find_by_email(email)

async def get_current_user(
    authorization: Optional[str] = Header(None),
    storage: Storage = Depends(get_storage),
) -> Dict[str, Any]:
    """
    FastAPI dependency for the signed-in user.
    - Expects: 'Authorization: Bearer <supabase access token>'
    - Returns the local user row (created on first sign-in).
    - Raises HTTP 401 for missing or invalid tokens.
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Unauthorized")

    token = authorization.split(" ", 1)[1].strip()
    payload = decode_supabase_token(token)

    if not payload.get("email"):
        logger.warning(f"Token for sub={payload.get('sub')} carries no email claim")
        raise HTTPException(status_code=401, detail="Unauthorized")

    return _provision_user(storage, payload)

async def require_admin(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    """Admin gate for the admin panel and admin-only transaction routes."""
    if not is_admin_user(user):
        logger.warning(f"Non-admin {user.get('email')} attempted an admin action")
        raise HTTPException(status_code=403, detail="Admin access required")
    return user

"""
------------------------------------------------
Purpose:
Reusable FastAPI dependencies for authenticating users signed in through
Supabase OAuth (Google by default) and for gating the admin panel.

What It Does:
- Verifies the Bearer access token (HS256 secret or ES256 JWKS).
- Looks up or provisions the local user row by email.
- `require_admin` allows only the single configured admin account.

Used By:
- Every dashboard, payment, transaction and admin route via Depends(...).
------------------------------------------------
"""
