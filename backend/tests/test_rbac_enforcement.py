"""
RBAC Enforcement Tests

Actor-type gates on the HTTP surface. Ownership checks live in the services
and are covered by the lifecycle tests.
"""

from decimal import Decimal

from app.models.domain import ActorType


def test_platform_settings_are_admin_only(client, act_as, world):
    act_as(ActorType.EMPLOYEE, world.guarantor_id)
    r = client.get("/api/admin/platform-settings")
    assert r.status_code == 403
    assert r.json()["detail"] == "Insufficient role"


def test_admin_reads_default_settings(client, act_as):
    act_as(ActorType.ADMIN, 1)
    r = client.get("/api/admin/platform-settings")
    assert r.status_code == 200
    body = r.json()
    assert body["is_default"] is True
    assert body["method"] == "PERCENTAGE"
    assert Decimal(body["platform_rate"]) == Decimal("2.5")


def test_cbm_method_requires_cbm_rate(client, act_as):
    act_as(ActorType.ADMIN, 1)
    r = client.put("/api/admin/platform-settings", json={"commissionMethod": "CBM"})
    assert r.status_code == 400
    assert r.json()["code"] == "VALIDATION_FAILED"


def test_admin_switches_to_both_with_rate(client, act_as):
    act_as(ActorType.ADMIN, 1)
    r = client.put(
        "/api/admin/platform-settings",
        json={"commissionMethod": "both", "cbmRate": "200"},
    )
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["method"] == "BOTH"
    assert Decimal(body["cbm_rate"]) == Decimal("200")
    assert body["is_default"] is False

    again = client.get("/api/admin/platform-settings").json()
    assert again["method"] == "BOTH"


def test_clients_cannot_read_financial_records(client, act_as, world):
    act_as(ActorType.CLIENT, world.client_id)
    assert client.get("/api/financial/transactions").status_code == 403
    assert client.get("/api/financial/ledger").status_code == 403


def test_ledger_is_admin_only_but_transactions_allow_employees(client, act_as, world):
    act_as(ActorType.EMPLOYEE, world.guarantor_id)
    assert client.get("/api/financial/transactions").status_code == 200
    assert client.get("/api/financial/ledger").status_code == 403


def test_only_clients_request_deals(client, act_as, world):
    act_as(ActorType.TRADER, world.trader_id)
    r = client.post(f"/api/offers/{world.offer_id}/deals", json={"items": []})
    assert r.status_code == 403


def test_clients_cannot_approve_or_verify(client, act_as, world):
    act_as(ActorType.CLIENT, world.client_id)
    created = client.post(f"/api/offers/{world.offer_id}/deals", json={"items": []}).json()

    assert client.post(f"/api/deals/{created['id']}/approve").status_code == 403
    assert client.post("/api/payments/any/verify", json={"verified": True}).status_code == 403
