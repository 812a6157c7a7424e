"""
Erreurs métier du tunnel de commande et de paiement.

Chaque erreur porte un message destiné à l'acheteur, un code court et le
statut HTTP utilisé par le gestionnaire d'exceptions de l'application
(voir storefront.app_setup.exceptions).
"""


class CheckoutError(Exception):
    status_code = 400
    default_message = "Checkout failed"

    def __init__(self, message: str | None = None, code: str = "invalid"):
        self.message = message or self.default_message
        super().__init__(self.message)
        self.code = code


class ValidationFailed(CheckoutError):
    status_code = 400
    default_message = "Invalid request"


class ProductsNotFound(CheckoutError):
    status_code = 400
    default_message = "One or more products not found"

    def __init__(self, message: str | None = None, code: str = "products_not_found"):
        super().__init__(message, code)


class OrderCreationFailed(CheckoutError):
    status_code = 500
    default_message = "Failed to process checkout. Please try again."

    def __init__(self, message: str | None = None, code: str = "order_creation_failed"):
        super().__init__(message, code)


class OrderNotFound(CheckoutError):
    status_code = 404
    default_message = "Order not found"

    def __init__(self, message: str | None = None, code: str = "order_not_found"):
        super().__init__(message, code)


class PaymentError(CheckoutError):
    status_code = 402
    default_message = "Payment failed"

    def __init__(self, message: str | None = None, code: str = "payment_failed"):
        super().__init__(message, code)


class PaymentDeclined(PaymentError):
    default_message = "Your card was declined."

    def __init__(self, message: str | None = None, code: str = "card_declined"):
        super().__init__(message, code)


class PaymentTimeout(PaymentError):
    default_message = "Payment timed out. Please try again."

    def __init__(self, message: str | None = None, code: str = "timeout"):
        super().__init__(message, code)


class GatewayNotConfigured(PaymentError):
    status_code = 503
    default_message = "Payment gateway not configured"

    def __init__(self, message: str | None = None, code: str = "gateway_not_configured"):
        super().__init__(message, code)


class SubscriptionFailed(PaymentError):
    status_code = 502
    default_message = "Failed to complete subscription. Please try again."

    def __init__(self, message: str | None = None, code: str = "subscription_failed"):
        super().__init__(message, code)
