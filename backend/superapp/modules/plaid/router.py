"""
Plaid API routes for linking bank accounts.
"""

from datetime import datetime
from typing import Optional
import time
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from superapp.core.auth import CurrentUser, get_current_user
from superapp.core.config import settings
from superapp.core.database import get_db
from superapp.core.errors import ValidationError
from superapp.core.timezone import format_datetime_for_api
from superapp.ingestion.services import IngestionOrchestrator
from superapp.modules.accounts.services import AccountStore, account_to_dict
from superapp.modules.plaid.service import get_plaid_service, PlaidService
from superapp.modules.transactions.services import TransactionStore
from superapp.shared.schemas import RequestModel, ok

logger = logging.getLogger(__name__)

router = APIRouter()


# Request Models

class LinkTokenRequest(RequestModel):
    """Request body for creating a link token."""
    user_id: Optional[str] = None


class PublicTokenRequest(RequestModel):
    """Request body for exchanging a public token."""
    public_token: Optional[str] = None


def get_ingestion_orchestrator(
    db: Session = Depends(get_db),
    plaid_service: PlaidService = Depends(get_plaid_service),
) -> IngestionOrchestrator:
    return IngestionOrchestrator(
        plaid_service,
        AccountStore(db),
        TransactionStore(db),
        import_days=settings.PLAID_IMPORT_DAYS,
    )


# Routes

@router.post("/link-token")
async def create_link_token(
    request: Optional[LinkTokenRequest] = None,
    plaid_service: PlaidService = Depends(get_plaid_service),
):
    """
    Create a Plaid Link token for initializing Plaid Link in the frontend.
    A fallback client user id is generated when none is supplied.
    """
    user_id = request.user_id if request else None
    if not user_id:
        logger.warning("No userId provided, generating fallback")
        user_id = f"user_{int(time.time() * 1000)}"

    result = plaid_service.create_link_token(user_id)
    expiration = result["expiration"]
    if isinstance(expiration, datetime):
        expiration = format_datetime_for_api(expiration)

    logger.info(f"Link token created for client_user_id={user_id}")
    return ok(linkToken=result["link_token"], expiration=expiration)


@router.post("/exchange-token")
async def exchange_public_token(
    request: PublicTokenRequest,
    current_user: CurrentUser = Depends(get_current_user),
    orchestrator: IngestionOrchestrator = Depends(get_ingestion_orchestrator),
):
    """
    Exchange a public token from Plaid Link, save the item's accounts and
    import their recent transactions.
    """
    if not request.public_token:
        raise ValidationError("public_token is required")

    summary = orchestrator.link_and_import(current_user.id, request.public_token)

    return ok(
        savedAccounts=[account_to_dict(a) for a in summary["saved_accounts"]],
        transactionsImported=summary["transactions_imported"],
        userId=summary["user_id"],
        itemId=summary["item_id"],
    )
