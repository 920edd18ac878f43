"""
Linked account API routes.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from superapp.core.auth import CurrentUser, ensure_user_access, optional_auth
from superapp.core.database import get_db
from superapp.modules.accounts.services import AccountStore, account_to_dict
from superapp.shared.schemas import ok

router = APIRouter()


def get_account_store(db: Session = Depends(get_db)) -> AccountStore:
    return AccountStore(db)


@router.get("/users/{user_id}/accounts")
async def list_accounts(
    user_id: str,
    store: AccountStore = Depends(get_account_store),
    current_user: Optional[CurrentUser] = Depends(optional_auth),
):
    """Active linked accounts for a user, newest first."""
    ensure_user_access(user_id, current_user)
    accounts = store.list_active_accounts(user_id)
    return ok(accounts=[account_to_dict(a) for a in accounts])


@router.delete("/users/{user_id}/accounts/{account_id}")
async def unlink_account(
    user_id: str,
    account_id: str,
    store: AccountStore = Depends(get_account_store),
    current_user: Optional[CurrentUser] = Depends(optional_auth),
):
    """
    Unlink an account. The row and its transactions are kept but the
    account no longer appears in listings, searches or budgets.
    """
    ensure_user_access(user_id, current_user)
    account = store.deactivate(user_id, account_id)
    return ok(account=account_to_dict(account))
