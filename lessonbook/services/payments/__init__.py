from .gateway import BasePaymentGateway, PaymentCapture, PaymentOrder, get_gateway
from .paypal import PayPalGateway
from .stub import StubGateway

__all__ = [
    "BasePaymentGateway",
    "PaymentCapture",
    "PaymentOrder",
    "get_gateway",
    "PayPalGateway",
    "StubGateway",
]
