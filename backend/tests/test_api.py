from decimal import Decimal

from app.api import deps
from app.core.security import create_actor_token
from app.main import app
from app.models.domain import ActorType


class _BrokenInvoiceRenderer:
    def render_deal_code(self, deal):
        return f"https://verify.test/deals/{deal.deal_number}"

    def render_invoice(self, invoice, deal_snapshot, platform_info):
        raise RuntimeError("renderer offline")


def _create_deal(client, act_as, world, items=True):
    act_as(ActorType.CLIENT, world.client_id)
    body = {"items": [{"offerItemId": world.profiles_id}, {"offerItemId": world.sheets_id}]}
    resp = client.post(f"/api/offers/{world.offer_id}/deals", json=body if items else {"items": []})
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_full_deal_flow_from_request_to_settlement(client, act_as, world):
    deal = _create_deal(client, act_as, world)
    deal_id = deal["id"]
    assert deal["status"] == "NEGOTIATION"
    assert deal["resolved_amount"] == "1000.00"
    assert len(deal["items"]) == 2

    act_as(ActorType.TRADER, world.trader_id)
    resp = client.post(
        f"/api/deals/{deal_id}/approve",
        headers={"X-Negotiated-Amount": "12345"},
        json={"shippingType": "SEA"},
    )
    assert resp.status_code == 200, resp.text
    approved = resp.json()
    assert approved["status"] == "APPROVED"
    # Item totals win over any hint.
    assert Decimal(approved["negotiated_amount"]) == Decimal("1000.00")
    assert approved["shipping_type"] == "SEA"

    act_as(ActorType.CLIENT, world.client_id)
    quote = client.get(f"/api/deals/{deal_id}/payment-quote").json()
    assert Decimal(quote["breakdown"]["total_buyer_paid"]) == Decimal("1085.00")
    assert quote["breakdown"]["applied_method"] == "PERCENTAGE"

    resp = client.post(
        f"/api/deals/{deal_id}/payments",
        json={"amount": "1085.00", "method": "BANK_TRANSFER", "transactionId": "TRX-9"},
    )
    assert resp.status_code == 201, resp.text
    payment = resp.json()
    assert payment["status"] == "PENDING"
    assert payment["transaction_ref"] == "TRX-9"

    act_as(ActorType.EMPLOYEE, world.guarantor_id)
    resp = client.post(f"/api/payments/{payment['id']}/verify", json={"verified": True})
    assert resp.status_code == 200, resp.text
    verification = resp.json()
    assert verification["payment"]["status"] == "COMPLETED"
    assert verification["deal"]["status"] == "PAID"
    assert Decimal(verification["transaction"]["platform_commission"]) == Decimal("25.00")
    assert verification["invoice"]["status"] == "SENT"

    again = client.post(f"/api/payments/{payment['id']}/verify", json={"verified": True})
    assert again.status_code == 409
    assert again.json() == {"detail": "Payment already processed", "code": "INVALID_STATE"}

    resp = client.post(f"/api/deals/{deal_id}/settle")
    assert resp.status_code == 200, resp.text
    assert resp.json()["status"] == "SETTLED"
    assert [h["status"] for h in resp.json()["history"]] == [
        "NEGOTIATION",
        "APPROVED",
        "PAID",
        "SETTLED",
    ]

    invoices = client.get(f"/api/deals/{deal_id}/invoices").json()
    assert len(invoices) == 1
    assert invoices[0]["invoice_number"] == approved["invoice_number"]

    act_as(ActorType.ADMIN, 1)
    ledger = client.get("/api/financial/ledger").json()
    assert len(ledger) == 5
    debits = sum(Decimal(e["amount"]) for e in ledger if e["entry_type"] == "DEBIT")
    credits = sum(Decimal(e["amount"]) for e in ledger if e["entry_type"] == "CREDIT")
    assert debits == credits == Decimal("1085.00")


def test_approve_reads_amount_from_query_or_body(client, act_as, world):
    by_query = _create_deal(client, act_as, world, items=False)
    by_body = _create_deal(client, act_as, world, items=False)

    act_as(ActorType.TRADER, world.trader_id)
    resp = client.post(f"/api/deals/{by_query['id']}/approve?negotiatedAmount=750")
    assert resp.status_code == 200, resp.text
    assert Decimal(resp.json()["negotiated_amount"]) == Decimal("750.00")

    resp = client.post(f"/api/deals/{by_body['id']}/approve", json={"negotiatedAmount": "820.5"})
    assert resp.status_code == 200, resp.text
    assert Decimal(resp.json()["negotiated_amount"]) == Decimal("820.50")


def test_approve_without_amount_returns_400(client, act_as, world):
    deal = _create_deal(client, act_as, world, items=False)

    act_as(ActorType.TRADER, world.trader_id)
    resp = client.post(
        f"/api/deals/{deal['id']}/approve", headers={"X-Negotiated-Amount": "abc"}
    )

    assert resp.status_code == 400
    body = resp.json()
    assert body["code"] == "INVALID_AMOUNT"
    assert "header='abc'" in body["detail"]

    act_as(ActorType.CLIENT, world.client_id)
    assert client.get(f"/api/deals/{deal['id']}").json()["status"] == "NEGOTIATION"


def test_unparseable_body_amount_falls_back_to_query(client, act_as, world):
    deal = _create_deal(client, act_as, world, items=False)

    act_as(ActorType.TRADER, world.trader_id)
    resp = client.post(
        f"/api/deals/{deal['id']}/approve?negotiatedAmount=500",
        json={"negotiatedAmount": "", "notes": "Agreed by phone"},
    )

    assert resp.status_code == 200, resp.text
    approved = resp.json()
    assert Decimal(approved["negotiated_amount"]) == Decimal("500.00")
    assert approved["notes"] == "Agreed by phone"


def test_invalid_body_amount_is_echoed_when_nothing_resolves(client, act_as, world):
    deal = _create_deal(client, act_as, world, items=False)

    act_as(ActorType.TRADER, world.trader_id)
    resp = client.post(f"/api/deals/{deal['id']}/approve", json={"negotiatedAmount": "abc"})

    assert resp.status_code == 400
    assert "body='abc'" in resp.json()["detail"]


def _approved_and_submitted(client, act_as, world):
    deal = _create_deal(client, act_as, world)
    act_as(ActorType.TRADER, world.trader_id)
    assert client.post(f"/api/deals/{deal['id']}/approve").status_code == 200
    act_as(ActorType.CLIENT, world.client_id)
    resp = client.post(
        f"/api/deals/{deal['id']}/payments", json={"amount": "1085.00", "method": "CARD"}
    )
    assert resp.status_code == 201, resp.text
    return deal, resp.json()


def test_invoice_regeneration_after_failed_render(client, act_as, world):
    deal, payment = _approved_and_submitted(client, act_as, world)
    url = f"/api/deals/{deal['id']}/invoices/regenerate"

    app.dependency_overrides[deps.get_renderer] = lambda: _BrokenInvoiceRenderer()
    act_as(ActorType.EMPLOYEE, world.guarantor_id)
    resp = client.post(f"/api/payments/{payment['id']}/verify", json={"verified": True})
    assert resp.status_code == 200, resp.text
    assert resp.json()["deal"]["status"] == "PAID"
    assert resp.json()["invoice"]["status"] == "DRAFT"
    del app.dependency_overrides[deps.get_renderer]

    act_as(ActorType.EMPLOYEE, world.other_employee_id)
    denied = client.post(url)
    assert denied.status_code == 403
    assert denied.json()["code"] == "FORBIDDEN"

    act_as(ActorType.EMPLOYEE, world.guarantor_id)
    resp = client.post(url)
    assert resp.status_code == 200, resp.text
    invoice = resp.json()
    assert invoice["status"] == "SENT"
    assert invoice["invoice_url"].endswith(f"/invoices/{invoice['invoice_number']}.pdf")

    invoices = client.get(f"/api/deals/{deal['id']}/invoices").json()
    assert [i["status"] for i in invoices] == ["SENT"]


def test_invoice_regeneration_requires_paid_deal(client, act_as, world):
    deal, _ = _approved_and_submitted(client, act_as, world)

    act_as(ActorType.EMPLOYEE, world.guarantor_id)
    resp = client.post(f"/api/deals/{deal['id']}/invoices/regenerate")

    assert resp.status_code == 409
    assert resp.json()["code"] == "INVALID_STATE"


def test_stranger_cannot_read_deal(client, act_as, world):
    deal = _create_deal(client, act_as, world)

    act_as(ActorType.CLIENT, world.stranger_id)
    resp = client.get(f"/api/deals/{deal['id']}")

    assert resp.status_code == 403
    assert resp.json()["code"] == "FORBIDDEN"


def test_unknown_deal_is_404(client, act_as, world):
    act_as(ActorType.ADMIN, 1)

    resp = client.get("/api/deals/does-not-exist")

    assert resp.status_code == 404
    assert resp.json()["code"] == "NOT_FOUND"


def test_negotiation_thread_over_http(client, act_as, world):
    deal = _create_deal(client, act_as, world, items=False)
    url = f"/api/deals/{deal['id']}/negotiations"

    resp = client.post(url, json={"message": "Would 900 work?", "proposedPrice": "900"})
    assert resp.status_code == 201, resp.text

    act_as(ActorType.TRADER, world.trader_id)
    messages = client.get(url).json()
    assert [m["sender_type"] for m in messages] == ["CLIENT"]
    assert client.post(f"{url}/read").json() == {"updated": 1}


def test_bearer_token_is_required(client, world):
    assert client.get("/api/deals").status_code == 401

    bad = client.get("/api/deals", headers={"Authorization": "Bearer not-a-jwt"})
    assert bad.status_code == 401

    token = create_actor_token(world.client_id, "client")
    resp = client.get("/api/deals", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 200
    assert resp.json() == []


def test_healthchecks(client):
    for path in ("/health", "/healthz", "/api/health"):
        resp = client.get(path)
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"

    db_resp = client.get("/api/health/db")
    assert db_resp.status_code == 200
