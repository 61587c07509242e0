"""
Admin panel: users, parent domains, every subdomain, stats and debug.
"""

from unittest.mock import AsyncMock, patch

import pytest

from dnsportal.services.transactions import TransactionService


@pytest.fixture
def cf_delete():
    with patch("dnsportal.services.subdomains.delete_subdomain_record", new=AsyncMock(return_value=True)) as mock:
        yield mock


def _cloudflare_check(result: bool):
    return patch("dnsportal.routes.admin.domains.test_cloudflare_connection", new=AsyncMock(return_value=result))


class TestUsers:
    async def test_list_includes_usage(self, async_client, storage, user, admin_headers, domain):
        storage.subdomains.create("blog", domain["id"], user["id"])
        storage.users.update(user["id"], {"purchased_slots": 3})

        body = (await async_client.get("/api/admin/users", headers=admin_headers)).json()

        row = next(u for u in body if u["id"] == user["id"])
        assert row["subdomain_count"] == 1
        assert row["effective_limit"] == 5

    async def test_update_limit_and_plan(self, async_client, storage, user, admin_headers):
        response = await async_client.put(f"/api/admin/users/{user['id']}",
                                          json={"subdomain_limit": 10, "plan": "PRO"}, headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["user"]["plan"] == "PRO"
        assert storage.users.find_by_id(user["id"])["subdomain_limit"] == 10

    async def test_update_validation(self, async_client, user, admin_headers):
        empty = await async_client.put(f"/api/admin/users/{user['id']}", json={}, headers=admin_headers)
        bad_plan = await async_client.put(f"/api/admin/users/{user['id']}", json={"plan": "GOLD"},
                                          headers=admin_headers)
        missing = await async_client.put("/api/admin/users/ghost", json={"plan": "PRO"}, headers=admin_headers)

        assert empty.status_code == 400
        assert empty.json()["detail"] == "Nothing to update"
        assert bad_plan.status_code == 400
        assert missing.status_code == 404

    async def test_delete_cascades(self, async_client, storage, user, admin_headers, domain, cf_delete):
        sub = storage.subdomains.create("blog", domain["id"], user["id"], "cf-rec-1")
        storage.dns_records.create("A", "1.2.3.4", sub["id"], user["id"])

        response = await async_client.delete(f"/api/admin/users/{user['id']}", headers=admin_headers)

        assert response.status_code == 200
        cf_delete.assert_awaited_once_with("zone-123", "cf-token-abcdef", "cf-rec-1")
        assert storage.users.find_by_id(user["id"]) is None
        assert storage.subdomains.find_all() == []
        assert storage.dns_records.count_all() == 0

    async def test_cannot_delete_self(self, async_client, admin_user, admin_headers):
        response = await async_client.delete(f"/api/admin/users/{admin_user['id']}", headers=admin_headers)
        assert response.status_code == 400

    async def test_delete_unknown(self, async_client, admin_headers):
        response = await async_client.delete("/api/admin/users/ghost", headers=admin_headers)
        assert response.status_code == 404


class TestDomains:
    async def test_list_masks_api_key(self, async_client, storage, user, admin_headers, domain):
        storage.subdomains.create("blog", domain["id"], user["id"])
        storage.domains.create("retired.tech", "zone-9", "key-9999", active=False)

        body = (await async_client.get("/api/admin/domains", headers=admin_headers)).json()

        assert len(body) == 2
        listed = next(d for d in body if d["id"] == domain["id"])
        assert listed["cloudflare_api_key"] == "***********cdef"
        assert listed["subdomain_count"] == 1

    async def test_create_checks_credentials(self, async_client, storage, admin_headers):
        payload = {"name": "New.Tech", "cloudflare_zone_id": "zone-new", "cloudflare_api_key": "token-new"}

        with _cloudflare_check(True) as check:
            response = await async_client.post("/api/admin/domains", json=payload, headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["name"] == "new.tech"
        assert response.json()["cloudflare_api_key"] != "token-new"
        check.assert_awaited_once_with("zone-new", "token-new")
        assert storage.domains.find_by_name("new.tech")["cloudflare_api_key"] == "token-new"

    async def test_create_rejects_bad_credentials(self, async_client, storage, admin_headers):
        payload = {"name": "new.tech", "cloudflare_zone_id": "zone-new", "cloudflare_api_key": "wrong"}

        with _cloudflare_check(False):
            response = await async_client.post("/api/admin/domains", json=payload, headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid Cloudflare credentials"
        assert storage.domains.find_by_name("new.tech") is None

    async def test_create_duplicate(self, async_client, admin_headers, domain):
        payload = {"name": "example.tech", "cloudflare_zone_id": "z", "cloudflare_api_key": "k"}

        with _cloudflare_check(True) as check:
            response = await async_client.post("/api/admin/domains", json=payload, headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["detail"] == "Domain already exists"
        check.assert_not_called()

    async def test_create_invalid_name(self, async_client, admin_headers):
        payload = {"name": "not a domain", "cloudflare_zone_id": "z", "cloudflare_api_key": "k"}
        with _cloudflare_check(True):
            response = await async_client.post("/api/admin/domains", json=payload, headers=admin_headers)
        assert response.status_code == 400

    async def test_test_credentials(self, async_client, admin_headers):
        payload = {"cloudflare_zone_id": "z", "cloudflare_api_key": "k"}
        with _cloudflare_check(False):
            response = await async_client.post("/api/admin/domains/test", json=payload, headers=admin_headers)
        assert response.json() == {"success": False, "error": "Connection failed"}

    async def test_delete_releases_subdomains(self, async_client, storage, user, admin_headers, domain, cf_delete):
        storage.subdomains.create("blog", domain["id"], user["id"], "cf-rec-1")
        storage.subdomains.create("shop", domain["id"], user["id"], "cf-rec-2")

        response = await async_client.delete(f"/api/admin/domains/{domain['id']}", headers=admin_headers)

        assert response.status_code == 200
        assert cf_delete.await_count == 2
        assert storage.domains.find_by_id(domain["id"]) is None
        assert storage.subdomains.find_all() == []

    async def test_delete_unknown(self, async_client, admin_headers):
        response = await async_client.delete("/api/admin/domains/ghost", headers=admin_headers)
        assert response.status_code == 404


class TestSubdomains:
    async def test_list_includes_owner(self, async_client, storage, user, admin_headers, domain):
        sub = storage.subdomains.create("blog", domain["id"], user["id"])
        storage.dns_records.create("CNAME", "target.example.net", sub["id"], user["id"])

        body = (await async_client.get("/api/admin/subdomains", headers=admin_headers)).json()

        assert body[0]["user_email"] == "user@example.com"
        assert body[0]["user_name"] == "Regular User"
        assert body[0]["record_type"] == "CNAME"
        assert body[0]["full_name"] == "blog.example.tech"

    async def test_delete_any(self, async_client, storage, user, admin_headers, domain, cf_delete):
        sub = storage.subdomains.create("blog", domain["id"], user["id"], "cf-rec-1")

        response = await async_client.delete(f"/api/admin/subdomains/{sub['id']}", headers=admin_headers)

        assert response.json() == {"success": True, "message": "Subdomain deleted successfully"}
        assert storage.subdomains.find_by_id(sub["id"]) is None

    async def test_delete_unknown(self, async_client, admin_headers, cf_delete):
        response = await async_client.delete("/api/admin/subdomains/ghost", headers=admin_headers)
        assert response.status_code == 404


class TestOverview:
    async def test_stats(self, async_client, storage, user, other_user, admin_headers, domain):
        sub = storage.subdomains.create("blog", domain["id"], user["id"])
        storage.dns_records.create("A", "1.2.3.4", sub["id"], user["id"])
        service = TransactionService(storage)
        service.create_transaction(user["id"], user["email"], user["name"], "order_1", 8, 1)
        service.update_transaction_status("order_1", "paid", "pay_1")

        body = (await async_client.get("/api/admin/stats", headers=admin_headers)).json()

        assert body["total_users"] == 2
        assert body["total_domains"] == 1
        assert body["total_subdomains"] == 1
        assert body["total_records"] == 1
        assert body["transactions"]["total_revenue"] == 8

    async def test_debug_hides_secrets(self, async_client, admin_headers):
        response = await async_client.get("/api/admin/debug", headers=admin_headers)

        body = response.json()
        assert body["status"] == "success"
        assert body["storage"]["backend"] == "file"
        assert body["admin_limit"] == 2
        assert body["environment"]["razorpay_key_secret_set"] is True
        assert "rzp_test_secret" not in response.text

    async def test_debug_admin_only(self, async_client, user_headers):
        response = await async_client.get("/api/admin/debug", headers=user_headers)
        assert response.status_code == 403


async def test_health(async_client):
    response = await async_client.get("/api/health")
    assert response.json() == {"status": "ok", "storage_backend": "file"}
