from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from .. import schemas
from ..config import Settings, get_settings
from ..database import get_db
from ..errors import PaymentError
from ..esewa import EsewaSigner, EsewaVerifier, EsewaStatusClient
from ..oauth2 import get_current_user

router = APIRouter(prefix="/esewa", tags=["eSewa"])


def _to_http(e: PaymentError):
    return HTTPException(status_code=e.status_code, detail=e.message)


# --- ACT 1: SIGN THE PAYMENT FORM ---
@router.post("/initiate", status_code=status.HTTP_200_OK, response_model=schemas.EsewaInitiateResponse)
def initiate_payment(
    request: schemas.EsewaInitiate,
    settings: Settings = Depends(get_settings),
    current_user = Depends(get_current_user)
):
    try:
        return EsewaSigner(settings).initiate(request.order_id, request.amount)
    except PaymentError as e:
        raise _to_http(e)


# --- ACT 2: VERIFY THE GATEWAY CALLBACK ---
@router.post("/verify", status_code=status.HTTP_200_OK, response_model=schemas.OrderResponse)
def verify_payment(
    request: schemas.EsewaVerify,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    current_user = Depends(get_current_user)
):
    try:
        return EsewaVerifier(settings).verify(request.encoded_data, db)
    except PaymentError as e:
        raise _to_http(e)


@router.get("/status", status_code=status.HTTP_200_OK, response_model=schemas.EsewaStatusResponse)
def payment_status(
    transaction_uuid: str,
    total_amount: str,
    settings: Settings = Depends(get_settings),
    current_user = Depends(get_current_user)
):
    try:
        return EsewaStatusClient(settings).check(transaction_uuid, total_amount)
    except PaymentError as e:
        raise _to_http(e)
