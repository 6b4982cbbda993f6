"""
Routes wallets : provenance _metadata, cache, bypass, invalidation après écriture.
"""
import httpx


def _driver_wallet(fake_tookan, balance="125.50"):
    fake_tookan.reply("get_fleet_wallet", {
        "status": 200,
        "data": {"fleet_id": 42, "fleet_name": "Youssef", "wallet_balance": balance},
    })


class TestDriverWallet:

    def test_second_read_within_ttl_is_cached(self, client, fake_tookan, clock, user_headers):
        _driver_wallet(fake_tookan)

        first = client.get("/api/wallets/drivers/D42", headers=user_headers)
        clock.advance(50)
        second = client.get("/api/wallets/drivers/D42", headers=user_headers)

        assert first.status_code == second.status_code == 200
        assert first.json()["data"]["_metadata"]["cached"] is False
        assert second.json()["data"]["_metadata"]["cached"] is True
        assert second.json()["data"]["_metadata"]["source"] == "provider"
        assert second.json()["data"]["balance"] == first.json()["data"]["balance"] == "125.50"
        assert len(fake_tookan.calls_to("get_fleet_wallet")) == 1

    def test_fresh_flag_bypasses_cache(self, client, fake_tookan, user_headers):
        _driver_wallet(fake_tookan)
        client.get("/api/wallets/drivers/D42", headers=user_headers)

        res = client.get("/api/wallets/drivers/D42", params={"fresh": "true"}, headers=user_headers)

        assert res.json()["data"]["_metadata"]["cached"] is False
        assert len(fake_tookan.calls_to("get_fleet_wallet")) == 2

    def test_outage_after_ttl_returns_error_not_stale_data(self, client, fake_tookan, clock, user_headers):
        _driver_wallet(fake_tookan)
        client.get("/api/wallets/drivers/D42", headers=user_headers)

        clock.advance(301)
        fake_tookan.fail("get_fleet_wallet", httpx.ConnectError("connexion refusée"))
        res = client.get("/api/wallets/drivers/D42", headers=user_headers)

        assert res.status_code == 500
        assert res.json()["status"] == "error"
        assert "data" not in res.json()

    def test_unauthenticated_read_is_403(self, client, fake_tookan):
        res = client.get("/api/wallets/drivers/D42")
        assert res.status_code == 403
        assert fake_tookan.calls == []


class TestDriverWalletTransaction:

    def test_credit_invalidates_cached_balance(self, client, fake_tookan, fake_db, admin_headers):
        _driver_wallet(fake_tookan, "100")
        client.get("/api/wallets/drivers/D42", headers=admin_headers)

        fake_tookan.reply("fleet/wallet/create_transaction", {"status": 200, "data": {}})
        res = client.post(
            "/api/wallets/drivers/D42/transactions",
            json={"amount": "20", "transaction_type": "credit", "description": "Prime week-end"},
            headers=admin_headers,
        )
        assert res.status_code == 200

        _driver_wallet(fake_tookan, "120")
        after = client.get("/api/wallets/drivers/D42", headers=admin_headers)
        assert after.json()["data"]["_metadata"]["cached"] is False
        assert after.json()["data"]["balance"] == "120"

        [entry] = fake_db.audit_logs.docs
        assert entry["action"] == "driver_wallet_credit"
        assert entry["user_id"] == "usr_ops"
        assert entry["new_value"]["amount"] == "20"

    def test_rejection_detail_is_logged_not_returned(self, client, fake_tookan, fake_db, admin_headers, caplog):
        fake_tookan.reply("fleet/wallet/create_transaction", {"status": 201, "message": "Insufficient balance"})
        res = client.post(
            "/api/wallets/drivers/D42/transactions",
            json={"amount": "500", "transaction_type": "debit", "description": "Avance"},
            headers=admin_headers,
        )

        assert res.status_code == 400
        assert res.json() == {"status": "error", "message": "Insufficient balance"}
        assert any("Refus Tookan" in r.getMessage() and "'status': 201" in r.getMessage() for r in caplog.records)
        assert fake_db.audit_logs.docs == []

    def test_requires_admin_role(self, client, fake_tookan, user_headers):
        res = client.post(
            "/api/wallets/drivers/D42/transactions",
            json={"amount": "20", "transaction_type": "credit", "description": "x"},
            headers=user_headers,
        )
        assert res.status_code == 403
        assert fake_tookan.calls == []

    def test_non_positive_amount_is_400(self, client, fake_tookan, admin_headers):
        res = client.post(
            "/api/wallets/drivers/D42/transactions",
            json={"amount": "0", "transaction_type": "debit", "description": "x"},
            headers=admin_headers,
        )
        assert res.status_code == 400
        assert fake_tookan.calls == []

    def test_no_write_route_for_merchant_wallets(self, client, admin_headers):
        res = client.post("/api/wallets/merchants/3/transactions", json={}, headers=admin_headers)
        assert res.status_code in (404, 405)


class TestVendorWallets:

    WALLETS = {"status": 200, "data": [
        {"vendor_id": 3, "customer_name": "Atlas Shop", "wallet_balance": 40},
        {"vendor_id": 12, "customer_name": "Souk Market", "wallet_balance": "12.25"},
    ]}

    def test_same_ids_in_any_order_hit_the_same_slot(self, client, fake_tookan, user_headers):
        fake_tookan.reply("fetch_customers_wallet", self.WALLETS)

        first = client.get("/api/wallets/merchants", params={"vendor_ids": "12,3"}, headers=user_headers)
        second = client.get("/api/wallets/merchants", params={"vendor_ids": "3, 12"}, headers=user_headers)

        assert first.json()["data"]["_metadata"]["cached"] is False
        assert second.json()["data"]["_metadata"]["cached"] is True
        assert len(second.json()["data"]["wallets"]) == 2
        assert len(fake_tookan.calls_to("fetch_customers_wallet")) == 1

    def test_paging_is_part_of_the_key(self, client, fake_tookan, user_headers):
        fake_tookan.reply("fetch_customers_wallet", self.WALLETS)

        client.get("/api/wallets/customers", params={"vendor_ids": "3"}, headers=user_headers)
        res = client.get("/api/wallets/customers", params={"vendor_ids": "3", "offset": 50}, headers=user_headers)

        assert res.json()["data"]["_metadata"]["cached"] is False
        assert len(fake_tookan.calls_to("fetch_customers_wallet")) == 2

    def test_customer_and_merchant_do_not_share_entries(self, client, fake_tookan, user_headers):
        fake_tookan.reply("fetch_customers_wallet", self.WALLETS)

        client.get("/api/wallets/customers", params={"vendor_ids": "3"}, headers=user_headers)
        res = client.get("/api/wallets/merchants", params={"vendor_ids": "3"}, headers=user_headers)

        assert res.json()["data"]["entity_type"] == "merchant"
        assert res.json()["data"]["_metadata"]["cached"] is False

    def test_vendor_ids_are_required(self, client, user_headers):
        res = client.get("/api/wallets/customers", headers=user_headers)
        assert res.status_code == 400
