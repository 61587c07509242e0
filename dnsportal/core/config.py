# dnsportal/core/config.py

from functools import lru_cache
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

# ---------------------------------------------
# Settings class for all configuration values
# ---------------------------------------------
class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Storage ("file" keeps everything in DATA_DIR/database.json)
    STORAGE_BACKEND: Literal["file", "supabase"] = "file"
    DATA_DIR: str = "data"

    # Supabase settings (auth always, tables only for the supabase backend)
    SUPABASE_URL: str = "http://localhost:54321"
    SUPABASE_ANON_KEY: str = ""
    SUPABASE_SERVICE_ROLE_KEY: str = ""
    SUPABASE_JWT_SECRET: Optional[str] = None

    # OAuth sign-in
    OAUTH_PROVIDER: str = "google"
    OAUTH_REDIRECT_PATH: str = "/dashboard"

    # The one account allowed into the admin panel
    ADMIN_EMAIL: str = "admin@example.com"

    # Quota & pricing
    FREE_SUBDOMAIN_LIMIT: int = 2
    EXTRA_SUBDOMAIN_PRICE: int = 8  # rupees per extra slot
    CURRENCY: str = "INR"

    # Razorpay
    RAZORPAY_KEY_ID: str = ""
    RAZORPAY_KEY_SECRET: str = ""
    RAZORPAY_API_URL: str = "https://api.razorpay.com/v1"

    # Cloudflare
    CLOUDFLARE_API_URL: str = "https://api.cloudflare.com/client/v4"
    CLOUDFLARE_TIMEOUT: float = 10.0
    DEFAULT_DNS_TTL: int = 300

    # Frontend URL (used for CORS and OAuth redirects)
    FRONTEND_URL: str = "http://localhost:3000"

    RATE_LIMIT_DEFAULT: str = "60/minute"
    RATE_LIMIT_CREATE_SUBDOMAIN: str = "10/minute"
    RATE_LIMIT_CREATE_ORDER: str = "5/minute"
    RATE_LIMIT_VERIFY_PAYMENT: str = "10/minute"
    RATE_LIMIT_ADMIN: str = "120/minute"

# ---------------------------------------------
# Singleton pattern for config (caches instance)
# ---------------------------------------------
@lru_cache()
def get_settings():
    return Settings()

settings = get_settings()  # This is what you import elsewhere

"""
------------------------------------------------
Purpose:
Centralizes all environment-based configuration for the subdomain portal.

What It Does:
- Loads and type-checks config from the environment or a .env file.
- Exposes a cached `settings` object for the whole app.

Used By:
- Storage selection, auth (Supabase JWT + admin email), quota arithmetic,
  Razorpay and Cloudflare clients, CORS and rate limits.

Security:
- Cloudflare API keys live on Domain rows, not here.
- Razorpay secret and Supabase service key come from real env vars in prod.
------------------------------------------------
"""
