"""
Transaction API routes: search, recategorization and flags.

Transaction ids in paths and bodies are Plaid transaction ids.
"""

from datetime import date
from typing import Optional, List

from fastapi import APIRouter, Depends, Query
from pydantic import Field
from sqlalchemy.orm import Session

from superapp.core.auth import CurrentUser, ensure_user_access, optional_auth
from superapp.core.database import get_db
from superapp.modules.transactions.services import TransactionFilters, TransactionStore, transaction_to_dict
from superapp.shared.schemas import RequestModel, ok

router = APIRouter()


# Request Models

class CategoryUpdate(RequestModel):
    category: str = Field(min_length=1)
    subcategory: Optional[str] = None


class BulkCategoryUpdate(RequestModel):
    transaction_ids: List[str] = Field(default_factory=list)
    category: str = Field(min_length=1)
    subcategory: Optional[str] = None


class RecurringUpdate(RequestModel):
    is_recurring: bool


class ManualUpdate(RequestModel):
    is_manual: bool


def get_transaction_store(db: Session = Depends(get_db)) -> TransactionStore:
    return TransactionStore(db)


def ensure_owner(store: TransactionStore, transaction_id: str, current_user: Optional[CurrentUser]) -> None:
    """A supplied token must belong to the owner of the transaction."""
    if current_user is not None:
        ensure_user_access(store.owner_of(transaction_id), current_user)


# Routes

@router.get("/users/{user_id}/transactions")
async def list_transactions(
    user_id: str,
    limit: int = Query(50, ge=1, le=500, description="Max results"),
    offset: int = Query(0, ge=0),
    start_date: Optional[date] = Query(None, description="Start date (YYYY-MM-DD), inclusive"),
    end_date: Optional[date] = Query(None, description="End date (YYYY-MM-DD), inclusive"),
    search: Optional[str] = Query(None, description="Matches description or merchant name"),
    category: Optional[str] = Query(None),
    recurring: Optional[bool] = Query(None),
    is_manual: Optional[bool] = Query(None),
    store: TransactionStore = Depends(get_transaction_store),
    current_user: Optional[CurrentUser] = Depends(optional_auth),
):
    """Search a user's transactions across their active accounts."""
    ensure_user_access(user_id, current_user)
    filters = TransactionFilters(
        limit=limit,
        offset=offset,
        start_date=start_date,
        end_date=end_date,
        search=search or None,
        category=category or None,
        is_recurring=recurring,
        is_manual=is_manual,
    )
    transactions = store.query(user_id, filters)
    return ok(transactions=transactions, count=len(transactions))


@router.put("/transactions/{transaction_id}/category")
async def update_transaction_category(
    transaction_id: str,
    request: CategoryUpdate,
    store: TransactionStore = Depends(get_transaction_store),
    current_user: Optional[CurrentUser] = Depends(optional_auth),
):
    ensure_owner(store, transaction_id, current_user)
    txn = store.update_category(transaction_id, request.category, request.subcategory)
    return ok(transaction=transaction_to_dict(txn))


@router.post("/users/{user_id}/transactions/bulk-category")
async def bulk_update_transaction_category(
    user_id: str,
    request: BulkCategoryUpdate,
    store: TransactionStore = Depends(get_transaction_store),
    current_user: Optional[CurrentUser] = Depends(optional_auth),
):
    """Recategorize several of the user's transactions at once."""
    ensure_user_access(user_id, current_user)
    rows = store.bulk_update_category(
        request.transaction_ids,
        request.category,
        request.subcategory,
        user_id=user_id,
    )
    return ok(updatedCount=len(rows), updatedRows=[transaction_to_dict(t) for t in rows])


@router.put("/transactions/{transaction_id}/recurring")
async def update_transaction_recurring(
    transaction_id: str,
    request: RecurringUpdate,
    store: TransactionStore = Depends(get_transaction_store),
    current_user: Optional[CurrentUser] = Depends(optional_auth),
):
    ensure_owner(store, transaction_id, current_user)
    txn = store.update_flag(transaction_id, "recurring", request.is_recurring)
    return ok(transaction=transaction_to_dict(txn))


@router.put("/transactions/{transaction_id}/manual")
async def update_transaction_manual(
    transaction_id: str,
    request: ManualUpdate,
    store: TransactionStore = Depends(get_transaction_store),
    current_user: Optional[CurrentUser] = Depends(optional_auth),
):
    ensure_owner(store, transaction_id, current_user)
    txn = store.update_flag(transaction_id, "manual", request.is_manual)
    return ok(transaction=transaction_to_dict(txn))
