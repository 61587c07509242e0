"""
Pytest configuration and shared fixtures for dnsportal tests.
"""

import os
import tempfile
import time
from typing import AsyncGenerator
from uuid import uuid4

# Settings are read once at import time, so the environment goes first
_tmp_root = tempfile.mkdtemp(prefix="dnsportal-tests-")
os.environ.setdefault("LOG_DIR", os.path.join(_tmp_root, "logs"))
os.environ["DATA_DIR"] = os.path.join(_tmp_root, "data")
os.environ["STORAGE_BACKEND"] = "file"
os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret"
os.environ["ADMIN_EMAIL"] = "admin@example.com"
os.environ["RAZORPAY_KEY_ID"] = "rzp_test_key"
os.environ["RAZORPAY_KEY_SECRET"] = "rzp_test_secret"

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt

from dnsportal.services.storage import JsonFileBackend, Storage, get_storage

JWT_SECRET = "test-jwt-secret"
ADMIN_EMAIL = "admin@example.com"


def make_token(email: str, name: str = "Test User", expires_in: int = 3600, secret: str = JWT_SECRET) -> str:
    """Mint a Supabase-style access token."""
    now = int(time.time())
    payload = {
        "sub": str(uuid4()),
        "email": email,
        "aud": "authenticated",
        "role": "authenticated",
        "iat": now,
        "exp": now + expires_in,
        "user_metadata": {"full_name": name, "avatar_url": "https://example.com/avatar.png"},
    }
    return jwt.encode(payload, secret, algorithm="HS256")


def bearer(email: str, name: str = "Test User") -> dict:
    return {"Authorization": f"Bearer {make_token(email, name)}"}


@pytest.fixture
def storage(tmp_path) -> Storage:
    """Fresh whole-file JSON store per test."""
    return Storage(JsonFileBackend(str(tmp_path / "database.json")))


@pytest.fixture
def user(storage: Storage) -> dict:
    return storage.users.create(email="user@example.com", name="Regular User")


@pytest.fixture
def other_user(storage: Storage) -> dict:
    return storage.users.create(email="other@example.com", name="Other User")


@pytest.fixture
def admin_user(storage: Storage) -> dict:
    return storage.users.create(email=ADMIN_EMAIL, name="Admin User")


@pytest.fixture
def user_headers(user) -> dict:
    return bearer(user["email"], user["name"])


@pytest.fixture
def other_headers(other_user) -> dict:
    return bearer(other_user["email"], other_user["name"])


@pytest.fixture
def admin_headers(admin_user) -> dict:
    return bearer(admin_user["email"], admin_user["name"])


@pytest.fixture
def domain(storage: Storage) -> dict:
    return storage.domains.create("example.tech", "zone-123", "cf-token-abcdef")


@pytest.fixture
async def async_client(storage: Storage) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the app with storage pointed at the temp file."""
    from dnsportal.main import app

    app.dependency_overrides[get_storage] = lambda: storage

    # Reset rate limiter state between tests to prevent cross-test 429s
    app.state.limiter.reset()

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
