"""
Tests for the Plaid link-and-import pipeline.
"""

from datetime import timedelta
from unittest.mock import MagicMock, patch

import pytest

from superapp.core.errors import ExternalProviderError, StoreError, ValidationError
from superapp.ingestion.services import IngestionOrchestrator
from superapp.modules.accounts.models import LinkedAccount
from superapp.modules.transactions.models import Transaction

from conftest import plaid_account, plaid_transaction


@pytest.fixture
def plaid():
    service = MagicMock()
    service.exchange_public_token.return_value = {"access_token": "access-1", "item_id": "item-1"}
    service.get_accounts.return_value = [
        plaid_account("acc-1", "Chequing"),
        plaid_account("acc-2", "Savings"),
        plaid_account("acc-3", "Visa"),
    ]
    transactions_by_account = {
        "acc-1": [plaid_transaction("t1"), plaid_transaction("t2")],
        "acc-2": [plaid_transaction("t3")],
        "acc-3": [plaid_transaction("t4"), plaid_transaction("t5"), plaid_transaction("t6")],
    }
    service.get_transactions.side_effect = lambda token, account_id, start, end: transactions_by_account[account_id]
    return service


@pytest.fixture
def orchestrator(plaid, account_store, transaction_store):
    return IngestionOrchestrator(plaid, account_store, transaction_store, import_days=30)


class TestLinkAndImport:

    def test_saves_accounts_and_imports_transactions(self, orchestrator, db_session):
        summary = orchestrator.link_and_import("user-1", "public-sandbox-1")

        assert [a.account_id for a in summary["saved_accounts"]] == ["acc-1", "acc-2", "acc-3"]
        assert summary["transactions_imported"] == 6
        assert summary["user_id"] == "user-1"
        assert summary["item_id"] == "item-1"
        assert all(a.item_id == "item-1" for a in summary["saved_accounts"])
        assert db_session.query(Transaction).count() == 6

    def test_transactions_land_on_their_own_account(self, orchestrator, db_session):
        summary = orchestrator.link_and_import("user-1", "public-sandbox-1")
        visa = summary["saved_accounts"][2]

        visa_ids = {
            t.transaction_id
            for t in db_session.query(Transaction).filter(Transaction.account_id == visa.id)
        }
        assert visa_ids == {"t4", "t5", "t6"}

    def test_import_window(self, orchestrator, plaid):
        orchestrator.link_and_import("user-1", "public-sandbox-1")

        for call in plaid.get_transactions.call_args_list:
            token, account_id, start, end = call.args
            assert token == "access-1"
            assert end - start == timedelta(days=30)

    def test_relinking_is_idempotent(self, orchestrator, db_session):
        orchestrator.link_and_import("user-1", "public-sandbox-1")
        summary = orchestrator.link_and_import("user-1", "public-sandbox-2")

        assert len(summary["saved_accounts"]) == 3
        assert summary["transactions_imported"] == 0
        assert db_session.query(LinkedAccount).count() == 3
        assert db_session.query(Transaction).count() == 6

    def test_failed_account_is_left_out(self, orchestrator, account_store, plaid, db_session):
        original = account_store.upsert_account

        def flaky_upsert(user_id, provider_account, access_token, item_id=None):
            if provider_account["account_id"] == "acc-2":
                raise StoreError("disk full")
            return original(user_id, provider_account, access_token, item_id)

        with patch.object(account_store, "upsert_account", side_effect=flaky_upsert):
            summary = orchestrator.link_and_import("user-1", "public-sandbox-1")

        assert [a.account_id for a in summary["saved_accounts"]] == ["acc-1", "acc-3"]
        assert summary["transactions_imported"] == 5
        assert db_session.query(LinkedAccount).count() == 2
        fetched = [call.args[1] for call in plaid.get_transactions.call_args_list]
        assert "acc-2" not in fetched

    def test_failed_transaction_fetch_keeps_other_accounts(self, orchestrator, plaid, db_session):
        previous = plaid.get_transactions.side_effect

        def flaky_fetch(token, account_id, start, end):
            if account_id == "acc-1":
                raise ExternalProviderError("Failed to fetch transactions")
            return previous(token, account_id, start, end)

        plaid.get_transactions.side_effect = flaky_fetch

        summary = orchestrator.link_and_import("user-1", "public-sandbox-1")

        assert len(summary["saved_accounts"]) == 3
        assert summary["transactions_imported"] == 4

    def test_exchange_failure_is_fatal(self, orchestrator, plaid, db_session):
        plaid.exchange_public_token.side_effect = ExternalProviderError("Failed to exchange public token")

        with pytest.raises(ExternalProviderError):
            orchestrator.link_and_import("user-1", "public-sandbox-1")

        assert db_session.query(LinkedAccount).count() == 0

    def test_account_fetch_failure_is_fatal(self, orchestrator, plaid, db_session):
        plaid.get_accounts.side_effect = ExternalProviderError("Failed to fetch accounts")

        with pytest.raises(ExternalProviderError):
            orchestrator.link_and_import("user-1", "public-sandbox-1")

        assert db_session.query(LinkedAccount).count() == 0

    @pytest.mark.parametrize("user_id,public_token", [("", "public-1"), ("user-1", ""), ("user-1", None)])
    def test_missing_inputs(self, orchestrator, plaid, user_id, public_token):
        with pytest.raises(ValidationError):
            orchestrator.link_and_import(user_id, public_token)

        plaid.exchange_public_token.assert_not_called()
