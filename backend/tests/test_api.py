"""
End-to-end tests of the HTTP surface: envelopes, status codes and auth.
"""

from datetime import datetime

from superapp.modules.users.models import UserProfile

from conftest import auth_headers, plaid_account, plaid_transaction


API = "/api/v1"


class TestHealth:

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "running"

    def test_unknown_route_uses_failure_envelope(self, client):
        response = client.get(f"{API}/does-not-exist")

        assert response.status_code == 404
        assert response.json()["success"] is False


class TestPlaidRoutes:

    def test_link_token(self, plaid_client, plaid_mock):
        response = client_post(plaid_client, "/link-token", {"userId": "user-1"})

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "linkToken": "link-sandbox-abc",
            "expiration": "2026-10-19T14:00:00Z",
        }
        plaid_mock.create_link_token.assert_called_once_with("user-1")

    def test_link_token_generates_fallback_user(self, plaid_client, plaid_mock):
        response = plaid_client.post(f"{API}/link-token")

        assert response.status_code == 200
        client_user_id = plaid_mock.create_link_token.call_args.args[0]
        assert client_user_id.startswith("user_")

    def test_link_token_formats_datetime_expiration(self, plaid_client, plaid_mock):
        plaid_mock.create_link_token.return_value = {
            "link_token": "link-sandbox-abc",
            "expiration": datetime(2026, 10, 19, 14, 0, 0),
        }

        response = client_post(plaid_client, "/link-token", {"userId": "user-1"})

        assert response.json()["expiration"] == "2026-10-19T14:00:00Z"

    def test_link_token_without_credentials(self, client):
        response = client_post(client, "/link-token", {"userId": "user-1"})

        assert response.status_code == 503
        body = response.json()
        assert body["success"] is False
        assert "Plaid credentials not configured" in body["error"]

    def test_exchange_requires_token(self, plaid_client):
        response = client_post(plaid_client, "/exchange-token", {"publicToken": "public-1"})

        assert response.status_code == 401
        assert response.json()["success"] is False

    def test_exchange_rejects_invalid_token(self, plaid_client):
        response = plaid_client.post(
            f"{API}/exchange-token",
            json={"publicToken": "public-1"},
            headers={"Authorization": "Bearer not-a-jwt"},
        )

        assert response.status_code == 401
        assert response.json()["error"] == "Invalid token"

    def test_exchange_requires_public_token(self, plaid_client, plaid_mock):
        response = plaid_client.post(f"{API}/exchange-token", json={}, headers=auth_headers())

        assert response.status_code == 400
        assert response.json()["success"] is False
        plaid_mock.exchange_public_token.assert_not_called()

    def test_exchange_links_and_imports(self, plaid_client, plaid_mock):
        plaid_mock.get_accounts.return_value = [plaid_account("acc-1"), plaid_account("acc-2", "Visa")]
        plaid_mock.get_transactions.return_value = [plaid_transaction("t1"), plaid_transaction("t2")]

        response = plaid_client.post(
            f"{API}/exchange-token", json={"publicToken": "public-1"}, headers=auth_headers("user-1")
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["userId"] == "user-1"
        assert body["itemId"] == "item-123"
        # Both accounts return the same ids; the second fetch is all duplicates
        assert body["transactionsImported"] == 2
        assert [a["account_id"] for a in body["savedAccounts"]] == ["acc-1", "acc-2"]
        assert all("access_token" not in a for a in body["savedAccounts"])


class TestAccountRoutes:

    def test_list_and_unlink(self, client, linked_account):
        linked_account("user-1", "acc-1")
        linked_account("user-1", "acc-2")

        response = client.get(f"{API}/users/user-1/accounts")
        assert response.status_code == 200
        assert len(response.json()["accounts"]) == 2

        response = client.delete(f"{API}/users/user-1/accounts/acc-1", headers=auth_headers("user-1"))
        assert response.status_code == 200
        assert response.json()["account"]["is_active"] is False

        accounts = client.get(f"{API}/users/user-1/accounts").json()["accounts"]
        assert [a["account_id"] for a in accounts] == ["acc-2"]

    def test_token_for_other_user_rejected(self, client, linked_account):
        linked_account("user-1", "acc-1")

        response = client.get(f"{API}/users/user-1/accounts", headers=auth_headers("user-2"))

        assert response.status_code == 401

    def test_unlink_missing_account(self, client):
        response = client.delete(f"{API}/users/user-1/accounts/missing")

        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Account not found"}


class TestTransactionRoutes:

    def _seed(self, linked_account, transaction_store):
        account = linked_account("user-1", "acc-1")
        transaction_store.bulk_insert(account.id, [
            plaid_transaction("t1", 4.75, "2026-01-10", "STARBUCKS", "Starbucks", ["Food and Drink"]),
            plaid_transaction("t2", 85.20, "2026-01-12", "GROCERY OUTLET", None, ["Shops"]),
        ])

    def test_list_with_filters(self, client, linked_account, transaction_store):
        self._seed(linked_account, transaction_store)

        response = client.get(f"{API}/users/user-1/transactions", params={"search": "grocery"})

        body = response.json()
        assert response.status_code == 200
        assert body["count"] == 1
        assert body["transactions"][0]["transaction_id"] == "t2"
        assert body["transactions"][0]["category"] == "Shopping"

    def test_invalid_limit(self, client):
        response = client.get(f"{API}/users/user-1/transactions", params={"limit": 0})

        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_recategorize_and_flags(self, client, linked_account, transaction_store):
        self._seed(linked_account, transaction_store)

        response = client.put(f"{API}/transactions/t1/category", json={"category": "Coffee"})
        assert response.json()["transaction"]["category"] == "Coffee"

        response = client.put(f"{API}/transactions/t1/recurring", json={"isRecurring": True})
        assert response.json()["transaction"]["is_recurring"] is True

        response = client.put(f"{API}/transactions/t1/manual", json={"isManual": True})
        assert response.json()["transaction"]["is_manual"] is True

    def test_edits_check_token_owner(self, client, linked_account, transaction_store):
        self._seed(linked_account, transaction_store)
        edits = [
            ("category", {"category": "Coffee"}),
            ("recurring", {"isRecurring": True}),
            ("manual", {"isManual": True}),
        ]

        for path, body in edits:
            response = client.put(f"{API}/transactions/t1/{path}", json=body, headers=auth_headers("user-2"))
            assert response.status_code == 401, path

            response = client.put(f"{API}/transactions/t1/{path}", json=body, headers=auth_headers("user-1"))
            assert response.status_code == 200, path

        txn = client.get(f"{API}/users/user-1/transactions", params={"search": "starbucks"}).json()["transactions"][0]
        assert txn["category"] == "Coffee"
        assert txn["is_recurring"] is True
        assert txn["is_manual"] is True

    def test_recategorize_missing(self, client):
        response = client.put(f"{API}/transactions/missing/category", json={"category": "Coffee"})

        assert response.status_code == 404

    def test_bulk_category(self, client, linked_account, transaction_store):
        self._seed(linked_account, transaction_store)

        response = client.post(
            f"{API}/users/user-1/transactions/bulk-category",
            json={"transactionIds": ["t1", "t2", "missing"], "category": "Groceries"},
        )

        body = response.json()
        assert response.status_code == 200
        assert body["updatedCount"] == 2
        assert {t["category"] for t in body["updatedRows"]} == {"Groceries"}

    def test_bulk_category_empty_list(self, client):
        response = client.post(
            f"{API}/users/user-1/transactions/bulk-category",
            json={"transactionIds": [], "category": "Groceries"},
        )

        assert response.status_code == 400


class TestBudgetRoutes:

    BUDGET = {
        "name": "Food",
        "categoryName": "Food & Dining",
        "budgetType": "monthly",
        "amount": 100,
        "periodStart": "2026-01-01",
        "periodEnd": "2026-01-31",
        "alertThreshold": 80,
    }

    def test_budget_lifecycle(self, client, linked_account, transaction_store):
        account = linked_account("user-1", "acc-1")
        transaction_store.bulk_insert(account.id, [
            plaid_transaction("t1", 85.00, "2026-01-10", category=["Food and Drink"]),
        ])

        created = client.post(f"{API}/users/user-1/budgets", json=self.BUDGET)
        assert created.status_code == 200
        budget_id = created.json()["budget"]["id"]

        [budget] = client.get(f"{API}/users/user-1/budgets").json()["budgets"]
        assert budget["percentage_used"] == 85.0
        assert budget["remaining_amount"] == 15.0
        assert budget["is_near_limit"] is True

        updated = client.put(f"{API}/budgets/{budget_id}", json={"userId": "user-1", "amount": 200})
        assert updated.json()["budget"]["amount"] == 200.0

        deleted = client.delete(f"{API}/budgets/{budget_id}", params={"user_id": "user-1"})
        assert deleted.json() == {"success": True}
        assert client.get(f"{API}/users/user-1/budgets").json()["budgets"] == []

    def test_invalid_budget(self, client):
        response = client.post(f"{API}/users/user-1/budgets", json=dict(self.BUDGET, amount=0))

        assert response.status_code == 400

    def test_delete_uses_token_user(self, client):
        budget_id = client.post(f"{API}/users/user-1/budgets", json=self.BUDGET).json()["budget"]["id"]

        response = client.delete(f"{API}/budgets/{budget_id}", headers=auth_headers("user-1"))

        assert response.status_code == 200

    def test_delete_without_owner(self, client):
        response = client.delete(f"{API}/budgets/1")

        assert response.status_code == 400

    def test_categories(self, client):
        created = client.post(f"{API}/users/user-1/categories", json={"name": "Pets", "isIncome": False})
        assert created.status_code == 200

        duplicate = client.post(f"{API}/users/user-1/categories", json={"name": "Pets"})
        assert duplicate.status_code == 409

        body = client.get(f"{API}/users/user-1/categories").json()
        assert [c["name"] for c in body["custom"]] == ["Pets"]

    def test_insights(self, client):
        response = client.get(f"{API}/users/user-1/insights")
        assert response.json() == {"success": True, "insights": [], "months": 3}

        response = client.get(f"{API}/users/user-1/insights", params={"months": 0})
        assert response.status_code == 400


class TestUserRoutes:

    def test_save_user_is_idempotent(self, client, db_session):
        for _ in range(2):
            response = client.post(f"{API}/users/save", headers=auth_headers("user-1", "me@example.com"))
            assert response.status_code == 200
            assert response.json() == {
                "success": True,
                "message": "User saved",
                "id": "user-1",
                "email": "me@example.com",
            }

        assert db_session.query(UserProfile).count() == 1

    def test_save_user_requires_token(self, client):
        response = client.post(f"{API}/users/save")

        assert response.status_code == 401
        assert response.json()["error"] == "Missing access token"


def client_post(client, path, body):
    return client.post(f"{API}{path}", json=body)
