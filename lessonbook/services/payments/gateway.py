from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from urllib.parse import parse_qsl, urlsplit

from ...config import Settings
from ...core.errors import PaymentGatewayError


@dataclass(frozen=True, slots=True)
class PaymentOrder:
    order_id: str
    approval_url: str | None


@dataclass(frozen=True, slots=True)
class PaymentCapture:
    order_id: str
    transaction_id: str | None


class BasePaymentGateway(ABC):
    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    @abstractmethod
    def create_order(
        self, amount: Decimal, booking_number: str, description: str
    ) -> PaymentOrder:
        raise NotImplementedError

    @abstractmethod
    def handle_return_url(self, url: str) -> PaymentCapture:
        raise NotImplementedError

    def order_id_from_return_url(self, url: str) -> str:
        """Extract the order id (``token`` query parameter) from a success return URL."""
        expected = urlsplit(self.settings.payment_return_url)
        received = urlsplit(url)
        if (received.scheme, received.netloc, received.path) != (
            expected.scheme,
            expected.netloc,
            expected.path,
        ):
            raise PaymentGatewayError("Unexpected payment return URL")
        params = {key.lower(): value for key, value in parse_qsl(received.query)}
        order_id = params.get("token")
        if not order_id:
            raise PaymentGatewayError("Payment return URL carries no order token")
        return order_id


def format_amount(amount: Decimal) -> str:
    return f"{amount.quantize(Decimal('0.01'))}"


def get_gateway(settings: Settings) -> BasePaymentGateway:
    if settings.payment_provider == "stub":
        from .stub import StubGateway

        return StubGateway(settings)
    if settings.payment_provider == "paypal":
        from .paypal import PayPalGateway

        return PayPalGateway(settings)
    raise ValueError(f"Unsupported payment provider {settings.payment_provider}")
