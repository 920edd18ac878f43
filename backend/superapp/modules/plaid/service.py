"""
Plaid API service for linking bank accounts and fetching transactions.

Responses are converted to plain dicts shaped like Plaid's JSON so the
stores never depend on plaid-python model classes.
"""

import json

import plaid
from plaid.api import plaid_api
from plaid.model.link_token_create_request import LinkTokenCreateRequest
from plaid.model.link_token_create_request_user import LinkTokenCreateRequestUser
from plaid.model.item_public_token_exchange_request import ItemPublicTokenExchangeRequest
from plaid.model.accounts_get_request import AccountsGetRequest
from plaid.model.transactions_get_request import TransactionsGetRequest
from plaid.model.transactions_get_request_options import TransactionsGetRequestOptions
from plaid.model.products import Products
from plaid.model.country_code import CountryCode

from datetime import date, datetime, timedelta
from typing import Optional, List, Dict, Any
import logging

from superapp.core.config import Settings, settings as default_settings
from superapp.core.errors import ExternalProviderError, ProviderNotConfigured

logger = logging.getLogger(__name__)

TRANSACTIONS_PAGE_SIZE = 500


def _enum_value(value) -> Optional[str]:
    if value is None:
        return None
    return getattr(value, "value", value)


def _float_or_none(value) -> Optional[float]:
    return float(value) if value is not None else None


def _provider_error(action: str, error: Exception) -> ExternalProviderError:
    """Wrap a plaid-python failure, keeping Plaid's error body as details."""
    details: Any = str(error)
    body = getattr(error, "body", None)
    if body:
        try:
            details = json.loads(body)
        except (TypeError, ValueError):
            details = body
    logger.error(f"Plaid {action} failed: {details}")
    return ExternalProviderError(f"Failed to {action}", details=details)


class PlaidService:
    """Service for interacting with the Plaid API."""

    def __init__(self, config: Optional[Settings] = None, client: Optional[plaid_api.PlaidApi] = None):
        """Initialize Plaid client based on environment settings."""
        self.settings = config or default_settings

        if client is not None:
            self.client = client
            return

        if not self.settings.PLAID_CLIENT_ID or not self.settings.PLAID_SECRET:
            raise ProviderNotConfigured(
                "Plaid credentials not configured. Set PLAID_CLIENT_ID and PLAID_SECRET in .env"
            )

        # Plaid SDK only has Sandbox and Production. "development" is mapped to Sandbox.
        env_map = {
            "sandbox": plaid.Environment.Sandbox,
            "development": plaid.Environment.Sandbox,
            "production": plaid.Environment.Production,
        }
        plaid_env = env_map.get(self.settings.PLAID_ENV.lower(), plaid.Environment.Sandbox)

        configuration = plaid.Configuration(
            host=plaid_env,
            api_key={
                "clientId": self.settings.PLAID_CLIENT_ID,
                "secret": self.settings.PLAID_SECRET,
            }
        )

        api_client = plaid.ApiClient(configuration)
        self.client = plaid_api.PlaidApi(api_client)
        logger.info(f"Plaid client initialized for environment: {self.settings.PLAID_ENV}")

    def _country_codes(self) -> List[CountryCode]:
        return [CountryCode(code) for code in self.settings.PLAID_COUNTRY_CODES]

    def create_link_token(self, client_user_id: str) -> Dict[str, Any]:
        """
        Create a link token for Plaid Link initialization.

        Returns:
            Dict containing link_token and expiration
        """
        request = LinkTokenCreateRequest(
            user=LinkTokenCreateRequestUser(client_user_id=client_user_id),
            client_name=self.settings.APP_NAME,
            products=[Products("transactions"), Products("auth")],
            country_codes=self._country_codes(),
            language="en",
        )

        try:
            response = self.client.link_token_create(request)
        except plaid.ApiException as e:
            raise _provider_error("create link token", e) from e

        return {
            "link_token": response.link_token,
            "expiration": response.expiration,
        }

    def exchange_public_token(self, public_token: str) -> Dict[str, str]:
        """Exchange a Plaid Link public token for a durable access token."""
        request = ItemPublicTokenExchangeRequest(public_token=public_token)
        try:
            response = self.client.item_public_token_exchange(request)
        except plaid.ApiException as e:
            raise _provider_error("exchange public token", e) from e

        return {
            "access_token": response.access_token,
            "item_id": response.item_id,
        }

    def get_accounts(self, access_token: str) -> List[Dict[str, Any]]:
        """Accounts attached to an access token."""
        try:
            response = self.client.accounts_get(AccountsGetRequest(access_token=access_token))
        except plaid.ApiException as e:
            raise _provider_error("fetch accounts", e) from e

        accounts = []
        for account in response.accounts:
            balances = account.balances
            accounts.append({
                "account_id": account.account_id,
                "name": account.name,
                "official_name": getattr(account, "official_name", None),
                "type": _enum_value(getattr(account, "type", None)),
                "subtype": _enum_value(getattr(account, "subtype", None)),
                "mask": getattr(account, "mask", None),
                "balances": {
                    "current": _float_or_none(getattr(balances, "current", None)),
                    "available": _float_or_none(getattr(balances, "available", None)),
                    "iso_currency_code": getattr(balances, "iso_currency_code", None),
                },
            })
        return accounts

    def get_transactions(
        self,
        access_token: str,
        account_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[Dict[str, Any]]:
        """
        Transactions for one account, paging until Plaid's total is reached.

        Args:
            access_token: Plaid access token
            account_id: Plaid account_id to restrict the request to
            start_date: Start of date range (default: 30 days ago)
            end_date: End of date range (default: today)
        """
        if not end_date:
            end_date = datetime.now().date()
        if not start_date:
            start_date = end_date - timedelta(days=self.settings.PLAID_IMPORT_DAYS)

        transactions: List[Dict[str, Any]] = []
        total = None
        while total is None or len(transactions) < total:
            request = TransactionsGetRequest(
                access_token=access_token,
                start_date=start_date,
                end_date=end_date,
                options=TransactionsGetRequestOptions(
                    account_ids=[account_id],
                    count=TRANSACTIONS_PAGE_SIZE,
                    offset=len(transactions),
                ),
            )
            try:
                response = self.client.transactions_get(request)
            except plaid.ApiException as e:
                raise _provider_error("fetch transactions", e) from e

            total = response.total_transactions
            page = response.transactions
            if not page:
                break
            transactions.extend(self._transaction_to_dict(txn) for txn in page)

        logger.info(f"Fetched {len(transactions)} transactions for account {account_id}")
        return transactions

    @staticmethod
    def _transaction_to_dict(txn) -> Dict[str, Any]:
        category = getattr(txn, "category", None)
        return {
            "transaction_id": txn.transaction_id,
            "account_id": txn.account_id,
            "amount": float(txn.amount),
            "name": txn.name,
            "merchant_name": getattr(txn, "merchant_name", None),
            "date": txn.date,
            "authorized_date": getattr(txn, "authorized_date", None),
            "category": list(category) if category else None,
        }


# Process-wide instance, built on first use
_plaid_service: Optional[PlaidService] = None


def get_plaid_service() -> PlaidService:
    """Get or create Plaid service instance (FastAPI dependency)."""
    global _plaid_service
    if _plaid_service is None:
        _plaid_service = PlaidService()
    return _plaid_service
