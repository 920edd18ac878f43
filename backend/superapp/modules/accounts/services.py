"""
Linked account persistence.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional, List, Dict, Any
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from superapp.core.database import commit
from superapp.core.errors import NotFoundError, StoreConflict, StoreError
from superapp.core.timezone import format_datetime_for_api
from superapp.modules.accounts.models import LinkedAccount

logger = logging.getLogger(__name__)


def _to_decimal(value) -> Optional[Decimal]:
    if value is None:
        return None
    return Decimal(str(value))


def account_to_dict(account: LinkedAccount) -> Dict[str, Any]:
    """API representation of a linked account (access token excluded)."""
    return {
        "id": account.id,
        "user_id": account.user_id,
        "account_id": account.account_id,
        "item_id": account.item_id,
        "account_name": account.account_name,
        "official_name": account.official_name,
        "account_type": account.account_type,
        "account_subtype": account.account_subtype,
        "account_number_masked": account.account_number_masked,
        "balance": float(account.balance) if account.balance is not None else None,
        "available_balance": float(account.available_balance) if account.available_balance is not None else None,
        "currency": account.currency,
        "is_active": account.is_active,
        "last_synced_at": format_datetime_for_api(account.last_synced_at),
        "created_at": format_datetime_for_api(account.created_at),
    }


class AccountStore:
    """Upsert and read linked accounts for a user."""

    def __init__(self, db: Session):
        self.db = db

    def _find(self, user_id: str, provider_account_id: str) -> Optional[LinkedAccount]:
        return self.db.query(LinkedAccount).filter(
            LinkedAccount.user_id == user_id,
            LinkedAccount.account_id == provider_account_id,
        ).first()

    def _apply_sync(self, account: LinkedAccount, provider_account: Dict[str, Any], access_token: str, item_id: Optional[str]):
        balances = provider_account.get("balances") or {}
        current = balances.get("current")
        available = balances.get("available")

        account.account_name = provider_account.get("name")
        account.official_name = provider_account.get("official_name")
        # Current balance falls back to available, then zero
        account.balance = _to_decimal(current if current is not None else (available if available is not None else 0))
        account.available_balance = _to_decimal(available if available is not None else 0)
        account.access_token = access_token
        if item_id:
            account.item_id = item_id
        account.last_synced_at = datetime.utcnow()
        account.is_active = True

    def upsert_account(
        self,
        user_id: str,
        provider_account: Dict[str, Any],
        access_token: str,
        item_id: Optional[str] = None,
    ) -> LinkedAccount:
        """
        Insert or update the account keyed by (user_id, Plaid account_id).

        Existing rows keep their internal id and Plaid account id; name,
        balances, access token and sync time are refreshed.
        """
        provider_account_id = provider_account["account_id"]

        try:
            existing = self._find(user_id, provider_account_id)
        except SQLAlchemyError as e:
            raise StoreError(details=str(e)) from e

        if existing is None:
            balances = provider_account.get("balances") or {}
            account = LinkedAccount(
                user_id=user_id,
                account_id=provider_account_id,
                account_type=provider_account.get("type"),
                account_subtype=provider_account.get("subtype"),
                account_number_masked=provider_account.get("mask"),
                currency=balances.get("iso_currency_code") or "CAD",
            )
            self._apply_sync(account, provider_account, access_token, item_id)
            self.db.add(account)
            try:
                commit(self.db)
                self.db.refresh(account)
                logger.info(f"Created linked account {provider_account_id} for user {user_id}")
                return account
            except StoreConflict:
                # Another request inserted the same account first
                logger.info(f"Account {provider_account_id} already linked for user {user_id}, updating")
                existing = self._find(user_id, provider_account_id)
                if existing is None:
                    raise StoreError(f"Could not save account {provider_account_id}")

        self._apply_sync(existing, provider_account, access_token, item_id)
        try:
            commit(self.db)
        except StoreConflict as e:
            raise StoreError(details=str(e)) from e
        self.db.refresh(existing)
        logger.info(f"Updated linked account {provider_account_id} for user {user_id}")
        return existing

    def list_active_accounts(self, user_id: str) -> List[LinkedAccount]:
        """Active accounts for a user, newest first."""
        return self.db.query(LinkedAccount).filter(
            LinkedAccount.user_id == user_id,
            LinkedAccount.is_active == True,  # noqa: E712
        ).order_by(LinkedAccount.created_at.desc(), LinkedAccount.id.desc()).all()

    def deactivate(self, user_id: str, provider_account_id: str) -> LinkedAccount:
        """Unlink an account. Its transactions stay in place."""
        account = self._find(user_id, provider_account_id)
        if account is None:
            raise NotFoundError("Account not found")

        account.deactivate()
        try:
            commit(self.db)
        except StoreConflict as e:
            raise StoreError(details=str(e)) from e
        self.db.refresh(account)
        logger.info(f"Deactivated account {provider_account_id} for user {user_id}")
        return account
