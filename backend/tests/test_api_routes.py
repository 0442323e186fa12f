# Overview: Pytest coverage for the HTTP API: request parsing, status codes and response shapes.

import pytest

from conftest import BUSINESS_DAY, seed_business_day


DAY = BUSINESS_DAY.isoformat()


class TestMobileServicesApi:

    def test_create_uses_suggested_commission(self, client, worker_headers):
        resp = client.post("/api/mobile-services", json={
            "service_type": "MOBILE_LOAD",
            "load_provider": "jazz",
            "amount_cents": 100_000,
            "transaction_date": f"{DAY}T14:30:00",
        }, headers=worker_headers)

        assert resp.status_code == 201
        tx = resp.get_json()["transaction"]
        assert tx["load_provider"] == "JAZZ"
        assert tx["commission_cents"] == 2_600
        assert tx["net_commission_cents"] == 2_600
        assert tx["commission_mode"] == "FLAT"
        assert tx["commission_source"] == "CALCULATED"

    def test_validation_error_is_400(self, client, worker_headers):
        resp = client.post("/api/mobile-services", json={
            "service_type": "MOBILE_LOAD",
            "amount_cents": 100_000,
        }, headers=worker_headers)
        assert resp.status_code == 400
        assert "load_provider" in resp.get_json()["error"]

    def test_quote(self, client, worker_headers):
        resp = client.post("/api/mobile-services/quote", json={
            "service_type": "EASYPAISA_CASHIN",
            "amount_cents": 1_000_000,
        }, headers=worker_headers)

        assert resp.status_code == 200
        assert resp.get_json() == {
            "service_type": "EASYPAISA_CASHIN",
            "amount_cents": 1_000_000,
            "commission_cents": 10_000,
            "commission_mode": "FLAT",
            "commission_rate_hundredths": 1_000,
        }

    def test_list_update_delete(self, client, owner_headers):
        created = client.post("/api/mobile-services", json={
            "service_type": "BILL_PAYMENT",
            "amount_cents": 500_000,
            "customer_name": "Hamza",
        }, headers=owner_headers).get_json()["transaction"]

        listing = client.get("/api/mobile-services?search=hamza", headers=owner_headers).get_json()
        assert listing["pagination"]["total"] == 1
        assert listing["items"][0]["id"] == created["id"]

        resp = client.patch(
            f"/api/mobile-services/{created['id']}",
            json={"discount_cents": 100},
            headers=owner_headers,
        )
        assert resp.status_code == 200
        updated = resp.get_json()["transaction"]
        assert updated["net_commission_cents"] == updated["commission_cents"] - 100

        resp = client.delete(f"/api/mobile-services/{created['id']}", headers=owner_headers)
        assert resp.status_code == 200
        assert client.get(f"/api/mobile-services/{created['id']}", headers=owner_headers).status_code == 404


class TestDailyClosingApi:

    def test_end_to_end_closing(self, client, owner_headers, shop_a, owner_a):
        seed_business_day(shop_a.id, owner_a.id)

        preview = client.get(f"/api/daily-closing?date={DAY}", headers=owner_headers).get_json()
        assert preview["sales_data"]["total_sales_cents"] == 28_000_000
        assert preview["service_fee_data"]["jazz_load_fees_cents"] == 500_000
        assert preview["purchase_data"]["total_purchase_expenses_cents"] == 5_000_000
        assert preview["loan_data"]["total_remaining_loans_cents"] == 1_200_000

        resp = client.post("/api/daily-closing", json={
            "date": DAY,
            "bank_transfer_cents": 0,
            "cash_cents": 0,
            "credit_cents": 0,
            "receiving_cents": 100_000,
        }, headers=owner_headers)
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["created"] is True
        assert body["closing"]["total_income_cents"] == 30_550_000
        assert body["closing"]["total_expenses_cents"] == 5_000_000
        assert body["closing"]["net_amount_cents"] == 25_550_000
        assert body["field_provenance"]["inventory_cents"]["source"] == "auto"

        resp = client.post("/api/daily-closing", json={"date": DAY, "cash_cents": 1}, headers=owner_headers)
        assert resp.status_code == 200
        assert resp.get_json()["closing"]["revision"] == 2

        history = client.get("/api/daily-closing/history?limit=5", headers=owner_headers).get_json()
        assert history["count"] == 1
        assert history["closings"][0]["closing_date"] == DAY

    def test_future_date_is_400(self, client, owner_headers):
        resp = client.post("/api/daily-closing", json={"date": "2999-01-01"}, headers=owner_headers)
        assert resp.status_code == 400

    def test_unknown_field_is_400(self, client, owner_headers):
        resp = client.post(
            "/api/daily-closing",
            json={"date": DAY, "net_amount_cents": 5},
            headers=owner_headers,
        )
        assert resp.status_code == 400

    def test_bad_date_is_400(self, client, owner_headers):
        resp = client.get("/api/daily-closing?date=yesterday", headers=owner_headers)
        assert resp.status_code == 400

    def test_array_body_is_400(self, client, owner_headers):
        resp = client.post("/api/daily-closing", json=[1, 2], headers=owner_headers)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Request body must be a JSON object"


class TestFeeSettingsApi:

    def test_get_and_replace(self, client, owner_headers):
        rules = client.get("/api/settings/fees", headers=owner_headers).get_json()["rules"]
        assert len(rules) == 7

        resp = client.put("/api/settings/fees", json={"rules": [
            {"service_type": "BANK_TRANSFER", "is_percentage": True, "rate": "1.50"},
        ]}, headers=owner_headers)
        assert resp.status_code == 200
        bank = next(r for r in resp.get_json()["rules"] if r["service_type"] == "BANK_TRANSFER")
        assert bank["is_percentage"] is True
        assert bank["rate_hundredths"] == 150

        quote = client.post("/api/mobile-services/quote", json={
            "service_type": "BANK_TRANSFER", "amount_cents": 1_000_000,
        }, headers=owner_headers).get_json()
        assert quote["commission_cents"] == 15_000
        assert quote["commission_mode"] == "PERCENTAGE"

    def test_overlapping_slabs_rejected(self, client, owner_headers):
        resp = client.put("/api/settings/fees", json={"rules": [{
            "service_type": "EASYPAISA_CASHOUT",
            "use_slabs": True,
            "slabs": [
                {"min_amount_cents": 0, "max_amount_cents": 100_000, "fee_cents": 2_000},
                {"min_amount_cents": 100_000, "max_amount_cents": 200_000, "fee_cents": 3_000},
            ],
        }]}, headers=owner_headers)
        assert resp.status_code == 400

    def test_slab_rule_without_rate(self, client, owner_headers):
        resp = client.put("/api/settings/fees", json={"rules": [{
            "service_type": "EASYPAISA_CASHOUT",
            "use_slabs": True,
            "slabs": [{"min_amount_cents": 0, "max_amount_cents": 100_000, "fee_cents": 2_000}],
        }]}, headers=owner_headers)
        assert resp.status_code == 200, resp.get_json()
        cashout = next(r for r in resp.get_json()["rules"] if r["service_type"] == "EASYPAISA_CASHOUT")
        assert cashout["mode"] == "SLAB"
        assert cashout["slabs"][0]["fee_cents"] == 2_000


class TestLedgerApis:

    def test_sales(self, client, worker_headers):
        resp = client.post("/api/sales", json={
            "total_amount_cents": 15_000, "sale_date": f"{DAY}T12:00:00",
        }, headers=worker_headers)
        assert resp.status_code == 201

        listing = client.get(f"/api/sales?date={DAY}", headers=worker_headers).get_json()
        assert listing["count"] == 1

    def test_purchases_and_payments(self, client, owner_headers, shop_a):
        from shopledger.services import purchase_service

        supplier = purchase_service.create_supplier(shop_a.id, "Paktel Wholesale")

        resp = client.post("/api/purchases", json={
            "supplier_id": supplier.id,
            "total_amount_cents": 500_000,
            "initial_payment_cents": 200_000,
            "purchase_date": f"{DAY}T09:00:00",
        }, headers=owner_headers)
        assert resp.status_code == 201
        purchase = resp.get_json()["purchase"]
        assert purchase["due_amount_cents"] == 300_000
        assert len(purchase["payments"]) == 1

        resp = client.post(
            f"/api/purchases/{purchase['id']}/payments",
            json={"amount_cents": 300_001},
            headers=owner_headers,
        )
        assert resp.status_code == 400

        resp = client.post(
            f"/api/purchases/{purchase['id']}/payments",
            json={"amount_cents": 300_000},
            headers=owner_headers,
        )
        assert resp.status_code == 201
        assert resp.get_json()["purchase"]["due_amount_cents"] == 0

    def test_loans(self, client, owner_headers, worker_headers, shop_a):
        from shopledger.services import loan_service

        customer = loan_service.create_customer(shop_a.id, "Usman")

        resp = client.post("/api/loans", json={
            "customer_id": customer.id,
            "loan_number": "L-0100",
            "principal_cents": 300_000,
            "total_installments": 3,
            "start_date": "2025-01-01",
        }, headers=owner_headers)
        assert resp.status_code == 201
        loan = resp.get_json()["loan"]
        assert [i["amount_cents"] for i in loan["installments"]] == [100_000] * 3

        duplicate = client.post("/api/loans", json={
            "customer_id": customer.id,
            "loan_number": "L-0100",
            "principal_cents": 300_000,
            "total_installments": 3,
        }, headers=owner_headers)
        assert duplicate.status_code == 409

        first = loan["installments"][0]["id"]
        resp = client.post(
            f"/api/loans/{loan['id']}/installments/{first}/payments",
            json={"amount_cents": 100_000},
            headers=worker_headers,
        )
        assert resp.status_code == 200
        assert resp.get_json()["loan"]["paid_installments"] == 1

        resp = client.post(
            f"/api/loans/{loan['id']}/installments/{first}/payments",
            json={"amount_cents": 1},
            headers=worker_headers,
        )
        assert resp.status_code == 409

        assert client.delete(f"/api/loans/{loan['id']}", headers=owner_headers).status_code == 409

        listing = client.get("/api/loans?page=1&limit=10", headers=worker_headers).get_json()
        assert listing["pagination"] == {"page": 1, "limit": 10, "total": 1, "pages": 1}
        assert listing["stats"]["total_paid_cents"] == 100_000
        assert listing["stats"]["total_remaining_cents"] == 200_000
        assert listing["stats"]["status_breakdown"]["ACTIVE"] == {"count": 1, "remaining_amount_cents": 200_000}

        assert client.get("/api/loans?limit=0", headers=owner_headers).status_code == 400


class TestReportsApi:

    def test_summary_and_csv(self, client, owner_headers, shop_a):
        seed_business_day(shop_a.id)

        resp = client.get(f"/api/reports/summary?start_date={DAY}&end_date={DAY}", headers=owner_headers)
        assert resp.status_code == 200
        assert resp.get_json()["totals"]["sales_cents"] == 28_000_000

        resp = client.get(f"/api/reports/summary.csv?start_date={DAY}&end_date={DAY}", headers=owner_headers)
        assert resp.status_code == 200
        assert resp.mimetype == "text/csv"
        assert "attachment" in resp.headers["Content-Disposition"]
        assert resp.get_data(as_text=True).splitlines()[0] == (
            "section,key,count,amount_cents,commission_cents,net_commission_cents"
        )

    def test_invalid_range_is_400(self, client, owner_headers):
        resp = client.get("/api/reports/summary?start_date=2025-02-01&end_date=2025-01-01", headers=owner_headers)
        assert resp.status_code == 400


class TestJsonBodies:

    @pytest.mark.parametrize("method, path", [
        ("post", "/api/mobile-services"),
        ("post", "/api/mobile-services/quote"),
        ("patch", "/api/mobile-services/1"),
        ("post", "/api/sales"),
        ("post", "/api/purchases"),
        ("post", "/api/purchases/1/payments"),
        ("post", "/api/loans"),
        ("post", "/api/loans/1/installments/1/payments"),
        ("put", "/api/settings/fees"),
    ])
    @pytest.mark.parametrize("body", [[1, 2], "cash", 42])
    def test_non_object_body_is_400(self, client, owner_headers, method, path, body):
        resp = getattr(client, method)(path, json=body, headers=owner_headers)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Request body must be a JSON object"

    def test_login_with_array_body_is_400(self, client):
        resp = client.post("/api/auth/login", json=["owner_a", "Password123!"])
        assert resp.status_code == 400
