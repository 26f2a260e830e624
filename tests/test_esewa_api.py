import pytest
import requests

from app import models
from app.esewa import EsewaStatusClient
from app.errors import GatewayError
from conftest import callback_payload, encode


def test_root(client):
    r = client.get("/")
    assert r.status_code == 200


def test_login_rejects_bad_password(client, user):
    r = client.post("/login", data={"username": "asha", "password": "wrong"})
    assert r.status_code == 403


def test_login_rejects_unknown_user(client, user):
    r = client.post("/login", data={"username": "ghost", "password": "s3cret"})
    assert r.status_code == 403
    assert r.json()["detail"] == "Invalid Credentials"


def test_bad_token_rejected(client):
    r = client.post("/esewa/verify", json={"encodedData": "x"}, headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401


def test_endpoints_require_auth(client):
    assert client.post("/esewa/initiate", json={"orderId": "ORD123", "amount": 1000}).status_code == 401
    assert client.post("/esewa/verify", json={"encodedData": "x"}).status_code == 401


def test_initiate(client, auth_headers):
    r = client.post("/esewa/initiate", json={"orderId": "ORD123", "amount": 1000}, headers=auth_headers)
    assert r.status_code == 200
    body = r.json()
    assert len(body["signature"]) == 44
    assert body["transaction_uuid"].startswith("ORD123_")
    assert body["transaction_uuid"].split("_")[1].isdigit()
    assert body["product_code"] == "EPAYTEST"
    assert body["total_amount"] == 1000
    assert body["signed_field_names"] == "total_amount,transaction_uuid,product_code"


@pytest.mark.parametrize("body", [{"amount": 1000}, {"orderId": "ORD123"}, {}])
def test_initiate_missing_fields(client, auth_headers, body):
    r = client.post("/esewa/initiate", json=body, headers=auth_headers)
    assert r.status_code == 400
    assert r.json()["detail"] == "Order ID and Amount required"


def test_end_to_end_payment(client, auth_headers, make_order, db):
    order = make_order("1000")
    init = client.post("/esewa/initiate", json={"orderId": order.id, "amount": 1000}, headers=auth_headers).json()

    # what eSewa sends back after a successful payment
    payload = callback_payload(init["transaction_uuid"], total_amount=str(init["total_amount"]))
    r = client.post("/esewa/verify", json={"encodedData": encode(payload)}, headers=auth_headers)

    assert r.status_code == 200
    body = r.json()
    assert body["id"] == order.id
    assert body["isPaid"] is True
    assert body["paidAt"] is not None
    assert body["paymentResult"]["transactionCode"] == "000AWEO"
    assert body["paymentResult"]["status"] == "COMPLETE"
    assert body["paymentResult"]["payerEmail"] == ""


def test_end_to_end_tampered_amount(client, auth_headers, make_order, db):
    order = make_order("1000")
    init = client.post("/esewa/initiate", json={"orderId": order.id, "amount": 1000}, headers=auth_headers).json()

    payload = callback_payload(init["transaction_uuid"], total_amount="1000")
    payload["total_amount"] = "1009"
    r = client.post("/esewa/verify", json={"encodedData": encode(payload)}, headers=auth_headers)

    assert r.status_code == 400
    assert r.json()["detail"] == "Integrity error: Signature mismatch"
    db.expire_all()
    assert db.get(models.Order, order.id).is_paid is False


def test_verify_error_codes(client, auth_headers, make_order):
    order = make_order()

    r = client.post("/esewa/verify", json={}, headers=auth_headers)
    assert r.status_code == 400

    r = client.post("/esewa/verify", json={"encodedData": "%%%"}, headers=auth_headers)
    assert r.status_code == 400

    pending = callback_payload(f"{order.id}_1", status="PENDING")
    r = client.post("/esewa/verify", json={"encodedData": encode(pending)}, headers=auth_headers)
    assert r.status_code == 400
    assert r.json()["detail"].startswith("Transaction not complete")

    missing = callback_payload("ffffffff_1")
    r = client.post("/esewa/verify", json={"encodedData": encode(missing)}, headers=auth_headers)
    assert r.status_code == 404

    client.post("/esewa/verify", json={"encodedData": encode(callback_payload(f"{order.id}_1"))}, headers=auth_headers)
    other = callback_payload(f"{order.id}_2", transaction_code="000CCCC")
    r = client.post("/esewa/verify", json={"encodedData": encode(other)}, headers=auth_headers)
    assert r.status_code == 409


#------------------------STATUS------------------------
class FakeResponse:
    def __init__(self, status_code, data=None):
        self.status_code = status_code
        self._data = data

    def json(self):
        if self._data is None:
            raise ValueError("no json")
        return self._data


def test_status_lookup(client, auth_headers, monkeypatch):
    calls = {}

    def fake_get(url, params=None, timeout=None):
        calls.update(url=url, params=params, timeout=timeout)
        return FakeResponse(200, {
            "product_code": "EPAYTEST", "transaction_uuid": "ORD1_1",
            "total_amount": 100.0, "status": "COMPLETE", "ref_id": "0001TS9",
        })

    monkeypatch.setattr(requests, "get", fake_get)
    r = client.get("/esewa/status", params={"transaction_uuid": "ORD1_1", "total_amount": "100"}, headers=auth_headers)

    assert r.status_code == 200
    assert r.json()["status"] == "COMPLETE"
    assert calls["url"] == "https://rc-epay.esewa.com.np/api/epay/transaction/status/"
    assert calls["params"] == {"product_code": "EPAYTEST", "total_amount": "100", "transaction_uuid": "ORD1_1"}
    assert calls["timeout"] == 10


def test_status_lookup_gateway_errors(settings):
    class Down:
        def get(self, *args, **kwargs):
            raise requests.ConnectionError("boom")

    class Broken:
        def get(self, *args, **kwargs):
            return FakeResponse(503)

    with pytest.raises(GatewayError):
        EsewaStatusClient(settings, session=Down()).check("ORD1_1", "100")
    with pytest.raises(GatewayError):
        EsewaStatusClient(settings, session=Broken()).check("ORD1_1", "100")
