import base64
import json
import os
from decimal import Decimal

# must be set before the app modules are imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ESEWA_SECRET_KEY"] = "test-esewa-secret"
os.environ["SECRET_KEY"] = "test-jwt-secret"
for name in ("ESEWA_PRODUCT_CODE", "ESEWA_MERCHANT_ID", "FRONTEND_URL"):
    os.environ.pop(name, None)

import pytest
from fastapi.testclient import TestClient

from app import models, utils
from app.config import get_settings
from app.database import SessionLocal, engine
from app.esewa import CALLBACK_SIGNED_FIELDS, canonical_message, compute_signature
from app.main import app

SECRET = "test-esewa-secret"


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def db():
    models.Base.metadata.drop_all(bind=engine)
    models.Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def user(db):
    u = models.User(username="asha", email="asha@example.com", hashed_password=utils.hash_password("s3cret"))
    db.add(u)
    db.commit()
    db.refresh(u)
    return u


@pytest.fixture
def make_order(db, user):
    def _make(total="1000", order_id=None):
        order = models.Order(user_id=user.id, total_price=Decimal(total))
        if order_id:
            order.id = order_id
        db.add(order)
        db.commit()
        db.refresh(order)
        return order
    return _make


@pytest.fixture
def client(db):
    return TestClient(app)


@pytest.fixture
def auth_headers(client, user):
    r = client.post("/login", data={"username": "asha", "password": "s3cret"})
    assert r.status_code == 200
    return {"Authorization": f"Bearer {r.json()['access_token']}"}


def callback_payload(transaction_uuid, total_amount="1000", status="COMPLETE",
                     transaction_code="000AWEO", product_code="EPAYTEST", secret=SECRET):
    payload = {
        "transaction_code": transaction_code,
        "status": status,
        "total_amount": total_amount,
        "transaction_uuid": transaction_uuid,
        "product_code": product_code,
        "signed_field_names": ",".join(CALLBACK_SIGNED_FIELDS),
    }
    payload["signature"] = compute_signature(secret, canonical_message(CALLBACK_SIGNED_FIELDS, payload))
    return payload


def encode(payload):
    return base64.b64encode(json.dumps(payload).encode("utf-8")).decode("utf-8")
