"""eSewa ePay v2 signing and callback verification.

The gateway signs two different canonical strings depending on direction:

* the payment form we post to eSewa is signed over
  ``total_amount,transaction_uuid,product_code``
* the base64 JSON eSewa sends back on success is signed over
  ``transaction_code,status,total_amount,transaction_uuid,product_code,signed_field_names``

Both orders are fixed by the gateway; reordering either one breaks every signature.
"""
import base64
import binascii
import hashlib
import hmac
import json
import logging
import time
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation

import requests
from sqlalchemy import update
from sqlalchemy.orm import Session

from . import models
from .config import Settings
from .errors import (
    ValidationError, MalformedPayloadError, MalformedTransactionIdError, PaymentIncompleteError,
    SignatureMismatchError, OrderNotFoundError, OrderAlreadyPaidError, GatewayError,
)

logger = logging.getLogger("handicraft.esewa")

# --- Canonical field orders (gateway defined) ---
INITIATE_SIGNED_FIELDS = ("total_amount", "transaction_uuid", "product_code")
CALLBACK_SIGNED_FIELDS = (
    "transaction_code", "status", "total_amount",
    "transaction_uuid", "product_code", "signed_field_names",
)

STATUS_COMPLETE = "COMPLETE"
TRANSACTION_SEPARATOR = "_"


def canonical_message(field_names, values) -> str:
    return ",".join(f"{name}={values[name]}" for name in field_names)


def compute_signature(secret: str, message: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).digest()
    return base64.b64encode(digest).decode("utf-8")


def format_amount(amount) -> str:
    """Render an amount the way it is posted to the gateway: 1000 -> "1000", 10.50 -> "10.5"."""
    try:
        value = Decimal(str(amount))
    except InvalidOperation:
        raise ValidationError(f"Invalid amount: {amount!r}")
    if not value.is_finite():
        raise ValidationError(f"Invalid amount: {amount!r}")
    if value == value.to_integral_value():
        return str(int(value))
    return format(value.normalize(), "f")


#------------------------TRANSACTION UUID------------------------
def make_transaction_uuid(order_id: str, epoch_millis: int) -> str:
    return f"{order_id}{TRANSACTION_SEPARATOR}{epoch_millis}"


def parse_transaction_uuid(transaction_uuid) -> str:
    """Return the order id encoded in ``<orderId>_<epochMillis>``.

    Order ids never contain an underscore, so anything after the first one
    must be the millisecond timestamp alone.
    """
    if not isinstance(transaction_uuid, str):
        raise MalformedTransactionIdError()

    order_id, sep, millis = transaction_uuid.partition(TRANSACTION_SEPARATOR)
    if not sep or not order_id or not millis.isdigit():
        raise MalformedTransactionIdError(f"Invalid transaction identifier: {transaction_uuid!r}")
    return order_id


def _now_millis():
    return time.time_ns() // 1_000_000


#------------------------SIGNER------------------------
class EsewaSigner:
    def __init__(self, settings: Settings, clock=_now_millis):
        self.settings = settings
        self.clock = clock

    def initiate(self, order_id, amount) -> dict:
        if not order_id or amount is None or amount == "":
            raise ValidationError()

        order_id = str(order_id)
        if TRANSACTION_SEPARATOR in order_id:
            raise ValidationError(f"Order ID must not contain '{TRANSACTION_SEPARATOR}'")

        total_amount = format_amount(amount)
        if Decimal(total_amount) <= 0:
            raise ValidationError("Amount must be positive")

        # total_amount goes back as a JSON number, it must render as the signed text
        if total_amount.isdigit():
            numeric = int(total_amount)
        else:
            numeric = float(total_amount)
            if format_amount(numeric) != total_amount:
                raise ValidationError(f"Amount has too many significant digits: {total_amount}")

        fields = {
            "total_amount": total_amount,
            "transaction_uuid": make_transaction_uuid(order_id, self.clock()),
            "product_code": self.settings.esewa_product_code,
        }
        signature = compute_signature(
            self.settings.esewa_secret_key, canonical_message(INITIATE_SIGNED_FIELDS, fields)
        )

        return {
            "signature": signature,
            "signed_field_names": ",".join(INITIATE_SIGNED_FIELDS),
            "transaction_uuid": fields["transaction_uuid"],
            "product_code": fields["product_code"],
            "total_amount": numeric,
            "success_url": self.settings.success_url,
            "failure_url": self.settings.failure_url,
        }


#------------------------VERIFIER------------------------
def decode_callback(encoded_data) -> dict:
    if not encoded_data or not isinstance(encoded_data, str):
        raise MalformedPayloadError("No data received")

    try:
        raw = base64.b64decode(encoded_data, validate=True).decode("utf-8")
        # keep numbers as the literal text the gateway signed
        payload = json.loads(raw, parse_float=str, parse_int=str)
    except (binascii.Error, UnicodeDecodeError, ValueError):
        raise MalformedPayloadError()

    if not isinstance(payload, dict):
        raise MalformedPayloadError()

    missing = [key for key in CALLBACK_SIGNED_FIELDS + ("signature",) if payload.get(key) is None]
    if missing:
        raise MalformedPayloadError(f"Missing fields: {', '.join(missing)}")

    for key, value in payload.items():
        if isinstance(value, bool):
            payload[key] = "true" if value else "false"
    return payload


class EsewaVerifier:
    def __init__(self, settings: Settings):
        self.settings = settings

    def check_signature(self, payload: dict):
        expected = compute_signature(
            self.settings.esewa_secret_key, canonical_message(CALLBACK_SIGNED_FIELDS, payload)
        )
        if not hmac.compare_digest(expected.encode("utf-8"), str(payload["signature"]).encode("utf-8")):
            logger.warning(
                "eSewa signature mismatch for transaction %s (code %s)",
                payload.get("transaction_uuid"), payload.get("transaction_code"),
            )
            raise SignatureMismatchError()

    def verify(self, encoded_data, db: Session) -> models.Order:
        # 1. Decode
        payload = decode_callback(encoded_data)

        # 2. Gateway status
        if payload["status"] != STATUS_COMPLETE:
            raise PaymentIncompleteError(f"Transaction not complete: {payload['status']}")

        # 3. Integrity
        self.check_signature(payload)

        # 4. Order
        order_id = parse_transaction_uuid(payload["transaction_uuid"])
        return mark_order_paid(db, order_id, str(payload["transaction_code"]), str(payload["status"]))


def mark_order_paid(db: Session, order_id: str, transaction_code: str, payment_status: str) -> models.Order:
    now = datetime.now(timezone.utc)

    # single conditional write so duplicate callbacks cannot both flip the order
    result = db.execute(
        update(models.Order)
        .where(models.Order.id == order_id, models.Order.is_paid.is_(False))
        .values(
            is_paid=True,
            paid_at=now,
            payment_transaction_code=transaction_code,
            payment_status=payment_status,
            payment_update_time=now,
            payment_payer_email="",     # eSewa never reports the payer email
        )
        .execution_options(synchronize_session=False)
    )
    updated = result.rowcount
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise

    order = db.query(models.Order).filter(models.Order.id == order_id).populate_existing().first()
    if not order:
        raise OrderNotFoundError()

    if updated == 0:
        if order.payment_transaction_code != transaction_code:
            logger.warning(
                "Order %s already paid by %s, rejecting %s",
                order_id, order.payment_transaction_code, transaction_code,
            )
            raise OrderAlreadyPaidError()
        logger.info("Duplicate eSewa callback for order %s (%s)", order_id, transaction_code)
        return order

    logger.info("Order %s paid via eSewa (%s)", order_id, transaction_code)
    return order


#------------------------STATUS LOOKUP------------------------
class EsewaStatusClient:
    def __init__(self, settings: Settings, session=None):
        self.settings = settings
        self.http = session or requests

    def check(self, transaction_uuid: str, total_amount) -> dict:
        params = {
            "product_code": self.settings.esewa_product_code,
            "total_amount": total_amount,
            "transaction_uuid": transaction_uuid,
        }
        try:
            resp = self.http.get(self.settings.status_url, params=params, timeout=self.settings.esewa_status_timeout)
        except requests.RequestException as e:
            logger.error("eSewa status lookup failed for %s: %s", transaction_uuid, e)
            raise GatewayError()

        if resp.status_code != 200:
            logger.error("eSewa status lookup for %s returned %s", transaction_uuid, resp.status_code)
            raise GatewayError(f"Payment Gateway returned {resp.status_code}")

        try:
            return resp.json()
        except ValueError:
            raise GatewayError("Invalid response from Payment Gateway")
