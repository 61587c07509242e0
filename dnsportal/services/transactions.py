# dnsportal/services/transactions.py

import logging
from typing import Any, Dict, List, Optional

from dnsportal.core.config import settings
from dnsportal.services.quota import effective_subdomain_limit
from dnsportal.services.storage import Storage, utcnow_iso

logger = logging.getLogger(__name__)

TRANSACTION_STATUSES = ("created", "paid", "failed")


class TransactionService:
    """
    Bookkeeping for slot purchases and per-user subdomain limits.
    A transaction becoming `paid` credits its slots to the owner exactly once.
    """

    def __init__(self, storage: Storage):
        self.storage = storage

    # -------------------------------------------------
    # TRANSACTIONS
    # -------------------------------------------------

    def create_transaction(self, user_id: str, user_email: str, user_name: str, order_id: str,
                           amount: float, subdomain_slots: int, currency: Optional[str] = None,
                           payment_id: str = "", status: str = "created") -> Dict[str, Any]:
        if status not in TRANSACTION_STATUSES:
            raise ValueError(f"Unknown transaction status: {status}")
        transaction = self.storage.transactions.create(
            user_id=user_id,
            user_email=user_email,
            user_name=user_name,
            order_id=order_id,
            payment_id=payment_id,
            amount=amount,
            currency=currency or settings.CURRENCY,
            subdomain_slots=subdomain_slots,
            status=status,
        )
        logger.info(f"Transaction {transaction['id']} created for order {order_id} (user {user_id})")
        return transaction

    def get_transaction(self, transaction_id: str) -> Optional[Dict[str, Any]]:
        return self.storage.transactions.find_by_id(transaction_id)

    def get_transaction_by_order_id(self, order_id: str) -> Optional[Dict[str, Any]]:
        return self.storage.transactions.find_by_order_id(order_id)

    def get_user_transactions(self, user_id: str) -> List[Dict[str, Any]]:
        return self.storage.transactions.find_by_user(user_id)

    def get_all_transactions(self) -> List[Dict[str, Any]]:
        return self.storage.transactions.find_all()

    def update_transaction_status(self, order_id: str, status: str,
                                  payment_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
        if status not in TRANSACTION_STATUSES:
            raise ValueError(f"Unknown transaction status: {status}")

        transaction = self.storage.transactions.find_by_order_id(order_id)
        if not transaction:
            logger.warning(f"No transaction found for order {order_id}")
            return None

        already_paid = transaction.get("status") == "paid"
        if already_paid and status != "paid":
            logger.warning(f"Ignoring status change {status} on paid order {order_id}")
            return transaction

        changes: Dict[str, Any] = {"status": status}
        if payment_id:
            changes["payment_id"] = payment_id
        if status == "paid" and not already_paid:
            changes["paid_at"] = utcnow_iso()

        updated = self.storage.transactions.update(transaction["id"], changes)

        if status == "paid" and not already_paid:
            self._credit_slots(transaction["user_id"], int(transaction.get("subdomain_slots") or 0))

        logger.info(f"Order {order_id} marked {status}")
        return updated

    def _credit_slots(self, user_id: str, slots: int) -> None:
        user = self.storage.users.find_by_id(user_id)
        if not user:
            logger.error(f"Paid order for unknown user {user_id}; {slots} slot(s) not credited")
            return
        purchased = int(user.get("purchased_slots") or 0) + slots
        self.storage.users.update(user_id, {"purchased_slots": purchased})
        logger.info(f"Credited {slots} slot(s) to user {user_id} (purchased total {purchased})")

    # -------------------------------------------------
    # LIMITS
    # -------------------------------------------------

    def get_user_subdomain_limit(self, user_id: str) -> int:
        return effective_subdomain_limit(self.storage.users.find_by_id(user_id))

    def set_user_subdomain_limit(self, user_id: str, limit: int) -> Optional[Dict[str, Any]]:
        if limit < 0:
            raise ValueError("Limit must be zero or more.")
        if not self.storage.users.find_by_id(user_id):
            return None
        return self.storage.users.update(user_id, {"subdomain_limit": limit})

    def reset_user_limit(self, user_id: str) -> Optional[Dict[str, Any]]:
        if not self.storage.users.find_by_id(user_id):
            return None
        return self.storage.users.update(user_id, {
            "subdomain_limit": settings.FREE_SUBDOMAIN_LIMIT,
            "purchased_slots": 0,
        })

    # -------------------------------------------------
    # STATS
    # -------------------------------------------------

    def get_transaction_stats(self) -> Dict[str, Any]:
        transactions = self.storage.transactions.find_all()
        paid = [t for t in transactions if t.get("status") == "paid"]
        failed = [t for t in transactions if t.get("status") == "failed"]
        return {
            "total_transactions": len(transactions),
            "total_revenue": sum(t.get("amount") or 0 for t in paid),
            "paid_transactions": len(paid),
            "failed_transactions": len(failed),
        }
