# dnsportal/api/auth/oauth.py

import logging
from urllib.parse import urlencode, urlsplit

from fastapi import APIRouter, Depends, HTTPException, Query

from dnsportal.core.config import settings
from dnsportal.deps.supabase_auth import get_current_user, is_admin_user
from dnsportal.services.quota import quota_summary
from dnsportal.services.storage import Storage, get_storage

logger = logging.getLogger(__name__)
router = APIRouter()

SUPPORTED_PROVIDERS = ("google", "github")

def is_frontend_url(url: str) -> bool:
    """Same scheme and host:port as FRONTEND_URL; prefixes like `<frontend>.evil.com` do not count."""
    target = urlsplit(url)
    frontend = urlsplit(settings.FRONTEND_URL)
    return (target.scheme.lower(), target.netloc.lower()) == (frontend.scheme.lower(), frontend.netloc.lower())

@router.get("/oauth/{provider}")
async def oauth_url(provider: str, redirect_to: str = Query(None)):
    """
    Returns the Supabase Auth authorize URL for the given provider.
    The frontend sends the browser there; Supabase redirects back with the
    access token that every other endpoint expects as a Bearer token.
    """
    provider = provider.lower()
    if provider not in SUPPORTED_PROVIDERS:
        raise HTTPException(status_code=400, detail=f"Unsupported OAuth provider: {provider}")

    redirect = redirect_to or f"{settings.FRONTEND_URL}{settings.OAUTH_REDIRECT_PATH}"
    if not is_frontend_url(redirect):
        logger.warning(f"Rejected OAuth redirect outside frontend: {redirect}")
        raise HTTPException(status_code=400, detail="Invalid redirect URL.")

    query = urlencode({"provider": provider, "redirect_to": redirect})
    return {"provider": provider, "url": f"{settings.SUPABASE_URL}/auth/v1/authorize?{query}"}

@router.get("/me")
async def me(user=Depends(get_current_user), storage: Storage = Depends(get_storage)):
    """Current user with quota usage; drives the dashboard header."""
    quota = quota_summary(storage, user)
    return {
        "id": user["id"],
        "email": user["email"],
        "name": user.get("name"),
        "image": user.get("image"),
        "plan": user.get("plan", "FREE"),
        "is_admin": is_admin_user(user),
        "subdomain_count": quota["used"],
        "subdomain_limit": quota["limit"],
        "remaining_slots": quota["remaining"],
    }
