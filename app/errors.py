from fastapi import status


class ConfigurationError(RuntimeError):
    """Raised at startup when a required setting is missing or invalid."""


#------------------------PAYMENT------------------------
class PaymentError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Payment error"

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(PaymentError):
    default_message = "Order ID and Amount required"


class MalformedPayloadError(PaymentError):
    default_message = "Invalid payment data"


class MalformedTransactionIdError(MalformedPayloadError):
    default_message = "Invalid transaction identifier"


class PaymentIncompleteError(PaymentError):
    default_message = "Transaction not complete"


class SignatureMismatchError(PaymentError):
    default_message = "Integrity error: Signature mismatch"


class OrderNotFoundError(PaymentError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Order not found"


class OrderAlreadyPaidError(PaymentError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Order already paid by another transaction"


class GatewayError(PaymentError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Error connecting to Payment Gateway"
