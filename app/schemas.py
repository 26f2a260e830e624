from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, Union
from datetime import datetime
from decimal import Decimal


#------------------------TOKEN------------------------

class Token(BaseModel):
    access_token : str
    token_type : str

class TokenData(BaseModel):
    id : int


#------------------------ESEWA------------------------
class EsewaInitiate(BaseModel):
    # Both optional here so a missing field reaches the signer as a ValidationError (400)
    order_id : Optional[str] = Field(default=None, alias="orderId")
    amount : Optional[Decimal] = None

    model_config = ConfigDict(populate_by_name=True)


class EsewaInitiateResponse(BaseModel):
    signature : str
    signed_field_names : str
    transaction_uuid : str
    product_code : str
    total_amount : Union[int, float]
    success_url : str
    failure_url : str


class EsewaVerify(BaseModel):
    encoded_data : Optional[str] = Field(default=None, alias="encodedData")

    model_config = ConfigDict(populate_by_name=True)


class EsewaStatusResponse(BaseModel):
    product_code : Optional[str] = None
    transaction_uuid : Optional[str] = None
    total_amount : Optional[Union[float, str]] = None
    status : Optional[str] = None
    ref_id : Optional[str] = None


#------------------------ORDER------------------------
class PaymentResult(BaseModel):
    transaction_code : str = Field(serialization_alias="transactionCode")
    status : str
    update_time : datetime = Field(serialization_alias="updateTime")
    payer_email : str = Field(serialization_alias="payerEmail")


class OrderResponse(BaseModel):
    id : str
    total_price : Optional[float] = Field(default=None, serialization_alias="totalPrice")
    is_paid : bool = Field(serialization_alias="isPaid")
    paid_at : Optional[datetime] = Field(default=None, serialization_alias="paidAt")
    payment_result : Optional[PaymentResult] = Field(default=None, serialization_alias="paymentResult")

    model_config = ConfigDict(from_attributes=True)     # read values from the SQLAlchemy object
