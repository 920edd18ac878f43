"""
Plaid link-and-import pipeline.

Exchanges a Plaid Link public token, saves every account the item exposes,
then pulls each saved account's recent transactions into the transaction
store. Only the token exchange and the account fetch are fatal; failures for
individual accounts are logged and left out of the summary.
"""

from datetime import timedelta
from typing import Optional, List, Dict, Any
import logging

from superapp.core.errors import ValidationError
from superapp.core.timezone import today_utc
from superapp.modules.accounts.models import LinkedAccount
from superapp.modules.accounts.services import AccountStore
from superapp.modules.transactions.services import TransactionStore

logger = logging.getLogger(__name__)


class IngestionOrchestrator:
    """Coordinates Plaid, the account store and the transaction store."""

    def __init__(
        self,
        plaid_service,
        accounts: AccountStore,
        transactions: TransactionStore,
        import_days: int = 30,
    ):
        self.plaid = plaid_service
        self.accounts = accounts
        self.transactions = transactions
        self.import_days = import_days

    def _save_accounts(self, user_id: str, provider_accounts: List[Dict[str, Any]], access_token: str, item_id: Optional[str]) -> List[LinkedAccount]:
        saved = []
        for account in provider_accounts:
            name = account.get("name")
            try:
                row = self.accounts.upsert_account(user_id, account, access_token, item_id)
                saved.append(row)
                logger.info(f"Saved account \"{name}\" with ID={row.id}")
            except Exception as e:
                self.accounts.db.rollback()
                logger.error(f"Error saving account \"{name}\": {e}")
        return saved

    def _import_transactions(self, saved_accounts: List[LinkedAccount], access_token: str) -> int:
        end_date = today_utc()
        start_date = end_date - timedelta(days=self.import_days)

        total = 0
        for account in saved_accounts:
            label = account.account_name
            try:
                # Fetch per Plaid account_id so rows always land on the right account
                raw = self.plaid.get_transactions(access_token, account.account_id, start_date, end_date)
                if not raw:
                    logger.info(f"No new transactions to save for \"{label}\"")
                    continue
                created = self.transactions.bulk_insert(account.id, raw)
                total += created
                logger.info(f"Imported {created} of {len(raw)} transactions for \"{label}\"")
            except Exception as e:
                self.transactions.db.rollback()
                logger.error(f"Error importing transactions for \"{label}\": {e}")
        return total

    def link_and_import(self, user_id: str, public_token: str) -> Dict[str, Any]:
        """
        Link a Plaid item for a user and import its recent transactions.

        Returns:
            Dict with saved_accounts (LinkedAccount rows), transactions_imported
            (newly stored rows), user_id and item_id.
        """
        if not user_id:
            raise ValidationError("Authenticated user is required")
        if not public_token:
            raise ValidationError("public_token is required")

        logger.info(f"Exchanging public token for user {user_id}")
        exchange = self.plaid.exchange_public_token(public_token)
        access_token = exchange["access_token"]
        item_id = exchange.get("item_id")

        provider_accounts = self.plaid.get_accounts(access_token)
        logger.info(f"Retrieved {len(provider_accounts)} accounts from Plaid")

        saved_accounts = self._save_accounts(user_id, provider_accounts, access_token, item_id)
        imported = self._import_transactions(saved_accounts, access_token)

        return {
            "saved_accounts": saved_accounts,
            "transactions_imported": imported,
            "user_id": user_id,
            "item_id": item_id,
        }
