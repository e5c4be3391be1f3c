"""End-to-end tests through the HTTP API."""

import json
from datetime import date


def tx_body(**overrides):
    body = {
        "type": "income",
        "category": "Salary",
        "amount": 1000,
        "sender": "Employer",
        "receiver": "Me",
        "date": date.today().isoformat(),
    }
    body.update(overrides)
    return body


class TestHealthAndAuth:

    def test_root_and_health(self, client):
        assert client.get("/").json() == {"message": "Personal Finance Backend is running"}
        health = client.get("/health").json()
        assert health["database"] == "available"
        assert health["using_sqlite_fallback"] is True

    def test_register_login_me(self, client, auth_headers):
        me = client.get("/auth/me", headers=auth_headers)
        assert me.status_code == 200
        assert me.json()["email"] == "alice@example.com"

    def test_duplicate_email_rejected(self, client, auth_headers):
        resp = client.post(
            "/auth/register",
            json={"name": "Other", "email": "ALICE@example.com", "password": "password123"},
        )
        assert resp.status_code == 400

    def test_wrong_password(self, client, auth_headers):
        resp = client.post("/auth/login", data={"username": "alice@example.com", "password": "nope-nope"})
        assert resp.status_code == 400

    def test_requests_without_token_are_unauthorized(self, client):
        assert client.get("/transactions").status_code == 401
        assert client.get("/summary/dashboard").status_code == 401
        resp = client.get("/account", headers={"Authorization": "Bearer not-a-token"})
        assert resp.status_code == 401


class TestTransactionsApi:

    def test_record_returns_transaction_and_account(self, client, auth_headers):
        resp = client.post("/transactions", json=tx_body(description="March pay"), headers=auth_headers)

        assert resp.status_code == 201
        data = resp.json()
        assert data["transaction"]["amount"] == 1000
        assert data["transaction"]["note"] == "March pay"
        assert data["account"] == {"balance": 1000, "total_income": 1000, "total_expenses": 0}

    def test_overdraft_is_insufficient_balance(self, client, auth_headers):
        client.post("/transactions", json=tx_body(amount=10), headers=auth_headers)
        resp = client.post(
            "/transactions", json=tx_body(type="expense", category="Food", amount=11), headers=auth_headers
        )

        assert resp.status_code == 422
        assert resp.json()["error"] == "insufficient_balance"
        assert client.get("/account", headers=auth_headers).json()["balance"] == 10
        assert len(client.get("/transactions", headers=auth_headers).json()) == 1

    def test_invalid_payloads_are_validation_errors(self, client, auth_headers):
        bad = [
            tx_body(amount=0),
            tx_body(amount=-5),
            tx_body(type="transfer"),
            tx_body(sender="   "),
            tx_body(unexpected="field"),
        ]
        for body in bad:
            resp = client.post("/transactions", json=body, headers=auth_headers)
            assert resp.status_code == 422, body
            assert resp.json()["error"] == "validation_error"

    def test_non_finite_amount_is_rejected(self, client, auth_headers):
        client.post("/transactions", json=tx_body(amount=100), headers=auth_headers)
        headers = {**auth_headers, "Content-Type": "application/json"}

        for literal in ("Infinity", "NaN"):
            body = json.dumps(tx_body(amount=0)).replace(": 0,", ": %s," % literal, 1)
            resp = client.post("/transactions", content=body, headers=headers)
            assert resp.status_code == 422, literal
            assert resp.json()["error"] == "validation_error"

        limit = client.post("/limit", content='{"monthly_limit": Infinity}', headers=headers)
        assert limit.status_code == 422
        assert client.get("/limit", headers=auth_headers).json() == {"monthly_limit": None}
        assert client.get("/account", headers=auth_headers).json() == {
            "balance": 100, "total_income": 100, "total_expenses": 0,
        }

    def test_get_update_delete(self, client, auth_headers):
        created = client.post("/transactions", json=tx_body(amount=500), headers=auth_headers).json()
        expense = client.post(
            "/transactions", json=tx_body(type="expense", category="Food", amount=100), headers=auth_headers
        ).json()
        tx_id = expense["transaction"]["id"]

        assert client.get(f"/transactions/{tx_id}", headers=auth_headers).json()["category"] == "Food"

        updated = client.put(
            f"/transactions/{tx_id}",
            json=tx_body(type="expense", category="Food", amount=40),
            headers=auth_headers,
        )
        assert updated.status_code == 200
        assert updated.json()["account"]["balance"] == 460

        deleted = client.delete(f"/transactions/{tx_id}", headers=auth_headers)
        assert deleted.status_code == 200
        assert deleted.json() == {"balance": 500, "total_income": 500, "total_expenses": 0}
        assert client.get(f"/transactions/{tx_id}", headers=auth_headers).status_code == 404
        assert created["account"]["balance"] == 500

    def test_users_cannot_see_each_others_transactions(self, client, login):
        alice = login()
        bob = login(email="bob@example.com", name="Bob")
        tx_id = client.post("/transactions", json=tx_body(), headers=alice).json()["transaction"]["id"]

        assert client.get(f"/transactions/{tx_id}", headers=bob).status_code == 404
        assert client.delete(f"/transactions/{tx_id}", headers=bob).json()["error"] == "not_found"
        assert client.get("/transactions", headers=bob).json() == []

    def test_list_filters(self, client, auth_headers):
        client.post("/transactions", json=tx_body(amount=100, date="2024-01-15"), headers=auth_headers)
        client.post(
            "/transactions",
            json=tx_body(type="expense", category="Food", amount=10, date="2024-02-01"),
            headers=auth_headers,
        )

        food = client.get("/transactions", params={"category": "Food"}, headers=auth_headers).json()
        assert [t["amount"] for t in food] == [10]
        january = client.get(
            "/transactions", params={"start_date": "2024-01-01", "end_date": "2024-01-31"}, headers=auth_headers
        ).json()
        assert [t["category"] for t in january] == ["Salary"]


class TestCategoriesApi:

    def test_bootstrap_is_idempotent(self, client, auth_headers):
        first = client.post("/categories/init", headers=auth_headers).json()
        second = client.post("/categories/init", headers=auth_headers).json()

        assert first["created"] is True
        assert second["created"] is False
        assert len(client.get("/categories", headers=auth_headers).json()) == 15
        assert len(client.get("/categories", params={"type": "income"}, headers=auth_headers).json()) == 5

    def test_create_conflict_update_delete(self, client, auth_headers):
        resp = client.post("/categories", json={"name": "Pets", "emoji": "🐶"}, headers=auth_headers)
        assert resp.status_code == 201
        category_id = resp.json()["id"]

        dup = client.post("/categories", json={"name": "Pets", "emoji": "🐱"}, headers=auth_headers)
        assert dup.status_code == 409
        assert dup.json()["error"] == "conflict"

        patched = client.patch(
            f"/categories/{category_id}", json={"name": "Pet Care", "monthly_budget": 80}, headers=auth_headers
        )
        assert patched.status_code == 200
        assert patched.json()["monthly_budget"] == 80

        assert client.delete(f"/categories/{category_id}", headers=auth_headers).status_code == 200
        assert client.delete(f"/categories/{category_id}", headers=auth_headers).status_code == 404

    def test_in_use_category_cannot_be_deleted(self, client, auth_headers):
        category_id = client.post(
            "/categories", json={"name": "Bonus", "emoji": "🎉", "type": "income"}, headers=auth_headers
        ).json()["id"]
        client.post("/transactions", json=tx_body(category="Bonus"), headers=auth_headers)

        resp = client.delete(f"/categories/{category_id}", headers=auth_headers)
        assert resp.status_code == 409
        assert [c["name"] for c in client.get("/categories", headers=auth_headers).json()] == ["Bonus"]


class TestSummaryApi:

    def test_budget_limit_and_status(self, client, auth_headers):
        assert client.get("/limit", headers=auth_headers).json() == {"monthly_limit": None}
        assert client.post("/limit", json={"monthly_limit": 0}, headers=auth_headers).status_code == 422

        client.post("/transactions", json=tx_body(amount=1000), headers=auth_headers)
        client.post("/transactions", json=tx_body(type="expense", category="Rent", amount=250), headers=auth_headers)

        status = client.get("/summary", headers=auth_headers).json()
        assert status == {"monthly_limit": None, "total_expenses": 250, "over_limit": False}

        assert client.post("/limit", json={"monthly_limit": 200}, headers=auth_headers).json() == {
            "monthly_limit": 200
        }
        assert client.get("/summary", headers=auth_headers).json()["over_limit"] is True

    def test_summaries(self, client, auth_headers):
        client.post("/transactions", json=tx_body(amount=500), headers=auth_headers)
        client.post("/transactions", json=tx_body(type="expense", category="Food", amount=30), headers=auth_headers)
        client.post("/transactions", json=tx_body(type="expense", category="Food", amount=20), headers=auth_headers)

        categories = client.get("/summary/categories", headers=auth_headers).json()
        assert categories == [{"category": "Food", "total": 50, "count": 2}]

        this_month = client.get("/summary/category-monthly", params={"type": "income"}, headers=auth_headers)
        assert this_month.json() == [{"category": "Salary", "total": 500, "count": 1}]

        bad_month = client.get("/summary/category-monthly", params={"month": "2024-13"}, headers=auth_headers)
        assert bad_month.status_code == 400
        assert bad_month.json()["error"] == "validation_error"

        trend = client.get("/summary/monthly", headers=auth_headers).json()
        assert len(trend) == 6
        assert trend[-1] == {"month": date.today().strftime("%Y-%m"), "income": 500, "expense": 50}

        dashboard = client.get("/summary/dashboard", headers=auth_headers).json()
        assert dashboard["totals"] == {"total_income": 500, "total_expenses": 50, "net_balance": 450}

        report = client.get("/reports/summary", params={"period": "yearly"}, headers=auth_headers).json()
        assert report == [{"label": str(date.today().year), "income": 500, "expense": 50, "balance": 450}]
