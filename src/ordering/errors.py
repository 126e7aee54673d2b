"""Checkout errors surfaced to the caller.

Every client-facing failure of the checkout flow is a ``CheckoutError``
subclass carrying a stable machine-readable ``code`` and the HTTP status the
API layer responds with. Domain rule violations inside aggregates stay
Protean ``ValidationError``s; repositories and the checkout service translate
the ones the caller can act on into these.
"""


class CheckoutError(Exception):
    code = "CheckoutError"
    http_status = 400

    def __init__(self, message, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self):
        return {"error": self.code, "message": self.message, **self.details}


class InvalidCart(CheckoutError):
    code = "InvalidCart"


class ProductNotFound(CheckoutError):
    code = "ProductNotFound"

    def __init__(self, product_id):
        super().__init__(f"Product {product_id} not found", product_id=str(product_id))


class InsufficientStock(CheckoutError):
    code = "InsufficientStock"

    def __init__(self, product_id, product_name, available, requested):
        super().__init__(
            f"Insufficient stock for {product_name}",
            product_id=str(product_id),
            available=available,
            requested=requested,
        )


class GiftCardNotFound(CheckoutError):
    code = "GiftCardNotFound"

    def __init__(self, code):
        super().__init__("Invalid or inactive gift card", gift_card_code=code)


class InsufficientGiftCardBalance(CheckoutError):
    code = "InsufficientGiftCardBalance"

    def __init__(self, available, requested):
        super().__init__(
            "Insufficient gift card balance",
            available=available,
            requested=requested,
        )


class PaymentInformationRequired(CheckoutError):
    code = "PaymentInformationRequired"

    def __init__(self):
        super().__init__("Payment information required")


class PaymentMethodNotFound(CheckoutError):
    code = "PaymentMethodNotFound"
    http_status = 404

    def __init__(self, saved_card_id):
        super().__init__("Payment method not found", saved_card_id=str(saved_card_id))


class CvvMismatch(CheckoutError):
    code = "CvvMismatch"

    def __init__(self):
        super().__init__("CVV does not match")


class InvalidCardDetails(CheckoutError):
    code = "InvalidCardDetails"

    def __init__(self):
        super().__init__("Invalid card details. Please check your card number and try again.")


class PaymentProcessingFailed(CheckoutError):
    code = "PaymentProcessingFailed"
    http_status = 402

    def __init__(self, order_id, reason):
        super().__init__("Payment processing failed", order_id=str(order_id), reason=reason)
