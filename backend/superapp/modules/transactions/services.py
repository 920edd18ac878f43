"""
Transaction persistence, search and categorization edits.

Transactions are deduplicated on the Plaid transaction_id: inserting one that
already exists is a silent skip, which makes re-imports safe.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, List, Dict, Any, Iterable
import logging

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from superapp.core.database import commit
from superapp.core.errors import NotFoundError, StoreConflict, StoreError, ValidationError
from superapp.core.timezone import format_date_for_api, format_datetime_for_api
from superapp.modules.accounts.models import LinkedAccount
from superapp.modules.categories.mapper import map_provider_category, provider_subcategory
from superapp.modules.transactions.models import Transaction

logger = logging.getLogger(__name__)

# Flag name accepted by update_flag -> column
FLAG_COLUMNS = {
    "recurring": "is_recurring",
    "manual": "is_manual",
}


@dataclass
class TransactionFilters:
    limit: int = 50
    offset: int = 0
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    search: Optional[str] = None
    category: Optional[str] = None
    is_recurring: Optional[bool] = None
    is_manual: Optional[bool] = None


def _parse_date(value) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.strptime(str(value), "%Y-%m-%d").date()


def _escape_like(text: str) -> str:
    """Make LIKE metacharacters match literally (escape character is backslash)."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def transaction_to_dict(
    txn: Transaction,
    account_name: Optional[str] = None,
    account_type: Optional[str] = None,
) -> Dict[str, Any]:
    """API representation of a transaction, optionally with its account."""
    result = {
        "id": txn.id,
        "account_id": txn.account_id,
        "transaction_id": txn.transaction_id,
        "amount": float(txn.amount) if txn.amount is not None else None,
        "description": txn.description,
        "merchant_name": txn.merchant_name,
        "date": format_date_for_api(txn.date),
        "posted_date": format_date_for_api(txn.posted_date),
        "category": txn.category,
        "subcategory": txn.subcategory,
        "is_recurring": txn.is_recurring,
        "is_manual": txn.is_manual,
        "created_at": format_datetime_for_api(txn.created_at),
        "updated_at": format_datetime_for_api(txn.updated_at),
    }
    if account_name is not None or account_type is not None:
        result["account"] = {
            "id": txn.account_id,
            "account_name": account_name,
            "account_type": account_type,
        }
    return result


class TransactionStore:
    """Insert, query and edit transactions."""

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def _build_row(self, account_id: int, raw: Dict[str, Any]) -> Transaction:
        provider_category = raw.get("category")
        txn_date = _parse_date(raw.get("date"))
        if txn_date is None:
            raise ValueError(f"Transaction {raw.get('transaction_id')} has no date")

        return Transaction(
            account_id=account_id,
            transaction_id=raw["transaction_id"],
            amount=Decimal(str(raw.get("amount") or 0)),
            description=raw.get("name"),
            merchant_name=raw.get("merchant_name") or None,
            date=txn_date,
            posted_date=_parse_date(raw.get("authorized_date")) or txn_date,
            category=map_provider_category(provider_category),
            subcategory=provider_subcategory(provider_category),
            is_recurring=False,
            is_manual=False,
        )

    def insert_if_absent(self, account_id: int, raw: Dict[str, Any]) -> bool:
        """
        Insert a Plaid transaction unless its transaction_id is already stored.

        Returns True only when a new row was created.
        """
        provider_id = raw.get("transaction_id")
        if not provider_id:
            raise ValueError("Transaction is missing transaction_id")

        exists = self.db.query(Transaction.id).filter(
            Transaction.transaction_id == provider_id
        ).first()
        if exists:
            return False

        self.db.add(self._build_row(account_id, raw))
        try:
            commit(self.db)
        except StoreConflict:
            # Inserted concurrently by another import
            logger.debug(f"Transaction {provider_id} already stored, skipping")
            return False
        return True

    def bulk_insert(self, account_id: int, raw_transactions: Iterable[Dict[str, Any]]) -> int:
        """
        Insert every transaction that is not stored yet.

        A failing element is logged and skipped; the rest are still
        attempted. Returns the number of rows created.
        """
        created = 0
        for raw in raw_transactions:
            try:
                if self.insert_if_absent(account_id, raw):
                    created += 1
            except Exception as e:
                self.db.rollback()
                provider_id = raw.get("transaction_id") if isinstance(raw, dict) else None
                logger.error(f"Error saving transaction {provider_id}: {e}", exc_info=True)

        logger.info(f"Saved {created} new transactions for account {account_id}")
        return created

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _active_account_ids(self, user_id: str) -> List[int]:
        rows = self.db.query(LinkedAccount.id).filter(
            LinkedAccount.user_id == user_id,
            LinkedAccount.is_active == True,  # noqa: E712
        ).all()
        return [r[0] for r in rows]

    def query(self, user_id: str, filters: Optional[TransactionFilters] = None) -> List[Dict[str, Any]]:
        """
        Transactions across the user's active accounts, newest first.

        Date bounds are inclusive; search matches description OR merchant
        name case-insensitively; other filters are exact and combine with AND.
        """
        filters = filters or TransactionFilters()
        if filters.limit < 1:
            raise ValidationError("limit must be at least 1")
        if filters.offset < 0:
            raise ValidationError("offset must not be negative")

        account_ids = self._active_account_ids(user_id)
        if not account_ids:
            logger.info(f"No active accounts for user {user_id}")
            return []

        query = self.db.query(
            Transaction,
            LinkedAccount.account_name,
            LinkedAccount.account_type,
        ).join(LinkedAccount, Transaction.account_id == LinkedAccount.id).filter(
            Transaction.account_id.in_(account_ids)
        )

        if filters.start_date:
            query = query.filter(Transaction.date >= filters.start_date)
        if filters.end_date:
            query = query.filter(Transaction.date <= filters.end_date)
        if filters.search:
            pattern = f"%{_escape_like(filters.search)}%"
            query = query.filter(or_(
                Transaction.description.ilike(pattern, escape="\\"),
                Transaction.merchant_name.ilike(pattern, escape="\\"),
            ))
        if filters.category:
            query = query.filter(Transaction.category == filters.category)
        if filters.is_recurring is not None:
            query = query.filter(Transaction.is_recurring == filters.is_recurring)
        if filters.is_manual is not None:
            query = query.filter(Transaction.is_manual == filters.is_manual)

        rows = query.order_by(
            Transaction.date.desc(),
            Transaction.id.asc(),
        ).offset(filters.offset).limit(filters.limit).all()

        return [transaction_to_dict(txn, name, acc_type) for txn, name, acc_type in rows]

    # ------------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------------

    def _get(self, transaction_id: str) -> Transaction:
        txn = self.db.query(Transaction).filter(
            Transaction.transaction_id == transaction_id
        ).first()
        if txn is None:
            raise NotFoundError(f"Transaction {transaction_id} not found")
        return txn

    def owner_of(self, transaction_id: str) -> str:
        """User id of the account a transaction belongs to."""
        row = self.db.query(LinkedAccount.user_id).join(
            Transaction, Transaction.account_id == LinkedAccount.id
        ).filter(Transaction.transaction_id == transaction_id).first()
        if row is None:
            raise NotFoundError(f"Transaction {transaction_id} not found")
        return row[0]

    def _save(self, txn: Transaction) -> Transaction:
        try:
            commit(self.db)
        except StoreConflict as e:
            raise StoreError(details=str(e)) from e
        self.db.refresh(txn)
        return txn

    def update_category(self, transaction_id: str, category: str, subcategory: Optional[str] = None) -> Transaction:
        txn = self._get(transaction_id)
        txn.category = category
        txn.subcategory = subcategory
        txn.updated_at = datetime.utcnow()
        return self._save(txn)

    def bulk_update_category(
        self,
        transaction_ids: List[str],
        category: str,
        subcategory: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> List[Transaction]:
        """
        Recategorize many transactions in one statement.

        Unknown ids (or ids outside the user's accounts when user_id is
        given) are simply absent from the result.
        """
        ids = list(dict.fromkeys(transaction_ids or []))
        if not ids:
            raise ValidationError("transactionIds must be a non-empty array")

        condition = [Transaction.transaction_id.in_(ids)]
        if user_id is not None:
            owned = select(LinkedAccount.id).where(LinkedAccount.user_id == user_id)
            condition.append(Transaction.account_id.in_(owned))

        self.db.query(Transaction).filter(*condition).update(
            {
                Transaction.category: category,
                Transaction.subcategory: subcategory,
                Transaction.updated_at: datetime.utcnow(),
            },
            synchronize_session=False,
        )
        try:
            commit(self.db)
        except StoreConflict as e:
            raise StoreError(details=str(e)) from e

        updated = self.db.query(Transaction).filter(*condition).order_by(Transaction.id).all()
        logger.info(f"Recategorized {len(updated)} of {len(ids)} transactions as {category}")
        return updated

    def update_flag(self, transaction_id: str, flag: str, value: bool) -> Transaction:
        column = FLAG_COLUMNS.get(flag)
        if column is None:
            raise ValidationError(f"Unknown flag '{flag}'")

        txn = self._get(transaction_id)
        setattr(txn, column, bool(value))
        txn.updated_at = datetime.utcnow()
        return self._save(txn)
