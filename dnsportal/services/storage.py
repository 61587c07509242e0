# dnsportal/services/storage.py

import json
import logging
import os
import threading
import uuid
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Dict, List, Optional

from dnsportal.core.config import settings
from dnsportal.utils.validators import normalize_email

logger = logging.getLogger(__name__)

TABLES = ("users", "domains", "subdomains", "dns_records", "transactions")

Row = Dict[str, Any]


class DuplicateError(Exception):
    """Raised when a create/update would break a uniqueness rule."""


def generate_id() -> str:
    return uuid.uuid4().hex


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _matches(row: Row, filters: Dict[str, Any]) -> bool:
    return all(row.get(key) == value for key, value in filters.items())

# -------------------------------------------------
# BACKENDS
# -------------------------------------------------

class JsonFileBackend:
    """
    Whole-file JSON store: every operation reads the entire file, mutates the
    table list in memory and writes the entire file back.

    The lock only serialises writers inside one process; several worker
    processes sharing the same file can still overwrite each other.
    """

    name = "file"

    def __init__(self, path: str):
        self.path = path
        self._lock = threading.RLock()

    def _empty(self) -> Dict[str, List[Row]]:
        return {table: [] for table in TABLES}

    def _read(self) -> Dict[str, List[Row]]:
        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except FileNotFoundError:
            return self._empty()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.error(f"Corrupt database file {self.path}, starting empty: {e}")
            return self._empty()

        if not isinstance(data, dict):
            logger.error(f"Unexpected database layout in {self.path}, starting empty")
            return self._empty()
        for table in TABLES:
            if not isinstance(data.get(table), list):
                data[table] = []
        return data

    def _write(self, data: Dict[str, List[Row]]) -> None:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as fh:
            json.dump(data, fh, indent=2)
        os.replace(tmp_path, self.path)

    def all(self, table: str) -> List[Row]:
        with self._lock:
            return list(self._read()[table])

    def find(self, table: str, **filters) -> List[Row]:
        with self._lock:
            return [row for row in self._read()[table] if _matches(row, filters)]

    def insert(self, table: str, row: Row) -> Row:
        with self._lock:
            data = self._read()
            data[table].append(row)
            self._write(data)
        return row

    def update(self, table: str, row_id: str, changes: Row) -> Optional[Row]:
        with self._lock:
            data = self._read()
            for index, row in enumerate(data[table]):
                if row.get("id") == row_id:
                    data[table][index] = {**row, **changes}
                    self._write(data)
                    return data[table][index]
        return None

    def delete(self, table: str, **filters) -> int:
        if not filters:
            raise ValueError("Refusing to delete without filters.")
        with self._lock:
            data = self._read()
            kept = [row for row in data[table] if not _matches(row, filters)]
            removed = len(data[table]) - len(kept)
            if removed:
                data[table] = kept
                self._write(data)
        return removed

    def describe(self) -> Dict[str, Any]:
        exists = os.path.exists(self.path)
        return {
            "backend": self.name,
            "file_path": os.path.abspath(self.path),
            "file_exists": exists,
            "file_size_bytes": os.path.getsize(self.path) if exists else 0,
        }


class SupabaseBackend:
    """Same primitives against Supabase tables (service-role client)."""

    name = "supabase"

    def __init__(self, client):
        self.client = client

    def all(self, table: str) -> List[Row]:
        res = self.client.table(table).select("*").execute()
        return res.data or []

    def find(self, table: str, **filters) -> List[Row]:
        query = self.client.table(table).select("*")
        for key, value in filters.items():
            query = query.eq(key, value)
        res = query.execute()
        return res.data or []

    def insert(self, table: str, row: Row) -> Row:
        res = self.client.table(table).insert(row).execute()
        return res.data[0] if res.data else row

    def update(self, table: str, row_id: str, changes: Row) -> Optional[Row]:
        res = self.client.table(table).update(changes).eq("id", row_id).execute()
        return res.data[0] if res.data else None

    def delete(self, table: str, **filters) -> int:
        if not filters:
            raise ValueError("Refusing to delete without filters.")
        res = self.client.table(table).delete().match(filters).execute()
        return len(res.data or [])

    def describe(self) -> Dict[str, Any]:
        return {"backend": self.name, "url": settings.SUPABASE_URL}

# -------------------------------------------------
# REPOSITORIES
# -------------------------------------------------

class _Repository:
    table = ""

    def __init__(self, backend):
        self.backend = backend

    def find_by_id(self, row_id: str) -> Optional[Row]:
        rows = self.backend.find(self.table, id=row_id)
        return rows[0] if rows else None

    def find_all(self) -> List[Row]:
        return self.backend.all(self.table)

    def _insert(self, fields: Row) -> Row:
        now = utcnow_iso()
        row = {"id": generate_id(), **fields, "created_at": now, "updated_at": now}
        return self.backend.insert(self.table, row)

    def update(self, row_id: str, updates: Row) -> Optional[Row]:
        changes = {k: v for k, v in updates.items() if k not in ("id", "created_at")}
        changes["updated_at"] = utcnow_iso()
        return self.backend.update(self.table, row_id, changes)


class UserRepository(_Repository):
    table = "users"

    def find_by_email(self, email: str) -> Optional[Row]:
        rows = self.backend.find(self.table, email=normalize_email(email))
        return rows[0] if rows else None

    def create(self, email: str, name: str = "", image: Optional[str] = None,
               plan: str = "FREE", subdomain_limit: Optional[int] = None) -> Row:
        email = normalize_email(email)
        if self.find_by_email(email):
            raise DuplicateError("User email already exists")
        user = self._insert({
            "email": email,
            "name": name or email.split("@")[0],
            "image": image,
            "plan": plan or "FREE",
            "subdomain_limit": settings.FREE_SUBDOMAIN_LIMIT if subdomain_limit is None else subdomain_limit,
            "purchased_slots": 0,
            "is_admin": email == normalize_email(settings.ADMIN_EMAIL),
        })
        logger.info(f"Created user {user['id']} ({email})")
        return user

    def delete(self, user_id: str) -> bool:
        if not self.backend.delete(self.table, id=user_id):
            return False
        self.backend.delete("subdomains", user_id=user_id)
        self.backend.delete("dns_records", user_id=user_id)
        logger.info(f"Deleted user {user_id} with its subdomains and DNS records")
        return True


class DomainRepository(_Repository):
    table = "domains"

    def find_all(self, include_inactive: bool = False) -> List[Row]:
        if include_inactive:
            return self.backend.all(self.table)
        return self.backend.find(self.table, active=True)

    def find_by_name(self, name: str) -> Optional[Row]:
        rows = self.backend.find(self.table, name=name.strip().lower())
        return rows[0] if rows else None

    def create(self, name: str, cloudflare_zone_id: str, cloudflare_api_key: str, active: bool = True) -> Row:
        name = name.strip().lower()
        if self.find_by_name(name):
            raise DuplicateError("Domain name already exists")
        domain = self._insert({
            "name": name,
            "cloudflare_zone_id": cloudflare_zone_id,
            "cloudflare_api_key": cloudflare_api_key,
            "active": active,
        })
        logger.info(f"Created domain {domain['id']} ({name})")
        return domain

    def delete(self, domain_id: str) -> bool:
        if not self.backend.delete(self.table, id=domain_id):
            return False
        for subdomain in self.backend.find("subdomains", domain_id=domain_id):
            self.backend.delete("dns_records", subdomain_id=subdomain["id"])
        self.backend.delete("subdomains", domain_id=domain_id)
        logger.info(f"Deleted domain {domain_id} with its subdomains")
        return True


class SubdomainRepository(_Repository):
    table = "subdomains"

    def find_by_user_id(self, user_id: str) -> List[Row]:
        return self.backend.find(self.table, user_id=user_id)

    def find_by_domain_id(self, domain_id: str) -> List[Row]:
        return self.backend.find(self.table, domain_id=domain_id)

    def find_by_name_and_domain(self, name: str, domain_id: str) -> Optional[Row]:
        rows = self.backend.find(self.table, name=name, domain_id=domain_id)
        return rows[0] if rows else None

    def create(self, name: str, domain_id: str, user_id: str,
               cloudflare_record_id: Optional[str] = None, active: bool = True) -> Row:
        if self.find_by_name_and_domain(name, domain_id):
            raise DuplicateError("Subdomain already exists for this domain")
        return self._insert({
            "name": name,
            "domain_id": domain_id,
            "user_id": user_id,
            "active": active,
            "cloudflare_record_id": cloudflare_record_id,
        })

    def delete(self, subdomain_id: str) -> bool:
        if not self.backend.delete(self.table, id=subdomain_id):
            return False
        self.backend.delete("dns_records", subdomain_id=subdomain_id)
        return True

    def count_by_user_id(self, user_id: str) -> int:
        return len(self.find_by_user_id(user_id))


class DnsRecordRepository(_Repository):
    table = "dns_records"

    def find_by_subdomain_id(self, subdomain_id: str) -> List[Row]:
        return self.backend.find(self.table, subdomain_id=subdomain_id)

    def find_by_user_id(self, user_id: str) -> List[Row]:
        return self.backend.find(self.table, user_id=user_id)

    def create(self, type: str, value: str, subdomain_id: str, user_id: str, name: str = "@",
               ttl: Optional[int] = None, priority: Optional[int] = None, weight: Optional[int] = None,
               port: Optional[int] = None, cloudflare_record_id: Optional[str] = None) -> Row:
        srv = type == "SRV"
        return self._insert({
            "type": type,
            "name": name,
            "value": value,
            "ttl": ttl or settings.DEFAULT_DNS_TTL,
            "priority": priority if srv else None,
            "weight": weight if srv else None,
            "port": port if srv else None,
            "subdomain_id": subdomain_id,
            "user_id": user_id,
            "cloudflare_record_id": cloudflare_record_id,
        })

    def delete(self, record_id: str) -> bool:
        return bool(self.backend.delete(self.table, id=record_id))

    def count_by_user_id(self, user_id: str) -> int:
        return len(self.find_by_user_id(user_id))

    def count_all(self) -> int:
        return len(self.backend.all(self.table))


class TransactionRepository(_Repository):
    table = "transactions"

    def find_by_order_id(self, order_id: str) -> Optional[Row]:
        rows = self.backend.find(self.table, order_id=order_id)
        return rows[0] if rows else None

    def find_by_user(self, user_id: str) -> List[Row]:
        return _newest_first(self.backend.find(self.table, user_id=user_id))

    def find_all(self) -> List[Row]:
        return _newest_first(self.backend.all(self.table))

    def create(self, **fields) -> Row:
        fields.setdefault("payment_id", "")
        fields.setdefault("paid_at", None)
        return self._insert(fields)


def _newest_first(rows: List[Row]) -> List[Row]:
    return sorted(rows, key=lambda row: row.get("created_at") or "", reverse=True)

# -------------------------------------------------
# STORAGE FACADE
# -------------------------------------------------

class Storage:
    def __init__(self, backend):
        self.backend = backend
        self.users = UserRepository(backend)
        self.domains = DomainRepository(backend)
        self.subdomains = SubdomainRepository(backend)
        self.dns_records = DnsRecordRepository(backend)
        self.transactions = TransactionRepository(backend)

    def describe(self) -> Dict[str, Any]:
        return self.backend.describe()


@lru_cache()
def get_storage() -> Storage:
    """FastAPI dependency; tests override it with a temp-file store."""
    if settings.STORAGE_BACKEND == "supabase":
        from supabase import create_client

        client = create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY)
        logger.info("Using Supabase storage backend")
        return Storage(SupabaseBackend(client))

    path = os.path.join(settings.DATA_DIR, "database.json")
    logger.info(f"Using JSON file storage backend at {path}")
    return Storage(JsonFileBackend(path))

"""
--------------------------------------------------------------------
Purpose:
    All persistence for users, parent domains, subdomains, DNS records and
    payment transactions.

What It Does:
    - Two backends with identical primitives (all/find/insert/update/delete):
      a whole-file JSON store and Supabase tables.
    - Repositories add ids/timestamps, uniqueness checks (user email,
      domain name, subdomain name per domain) and cascade deletes.

Used By:
    - Auth dependency (user provisioning), dashboard/admin/payment routes,
      TransactionService.
--------------------------------------------------------------------
"""
