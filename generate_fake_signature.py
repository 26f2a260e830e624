import base64
import json
import sys
import uuid

from app.config import load_settings
from app.esewa import CALLBACK_SIGNED_FIELDS, canonical_message, compute_signature

# Usage: python generate_fake_signature.py <transaction_uuid from /esewa/initiate> <total_amount>
if len(sys.argv) != 3:
    sys.exit("usage: generate_fake_signature.py TRANSACTION_UUID TOTAL_AMOUNT")

settings = load_settings()     # needs ESEWA_SECRET_KEY and SECRET_KEY, same as the server

payload = {
    "transaction_code": uuid.uuid4().hex[:7].upper(),
    "status": "COMPLETE",
    "total_amount": sys.argv[2],
    "transaction_uuid": sys.argv[1],
    "product_code": settings.esewa_product_code,
    "signed_field_names": ",".join(CALLBACK_SIGNED_FIELDS),
}
payload["signature"] = compute_signature(
    settings.esewa_secret_key, canonical_message(CALLBACK_SIGNED_FIELDS, payload)
)

encoded = base64.b64encode(json.dumps(payload).encode("utf-8")).decode("utf-8")

print("--- COPY THIS INTO POSTMAN /esewa/verify ---")
print(json.dumps({"encodedData": encoded}))
