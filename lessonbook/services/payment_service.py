from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
import logging

from ..core.errors import PaymentGatewayError
from ..domain import Booking
from .payments import BasePaymentGateway, PaymentCapture, PaymentOrder

logger = logging.getLogger(__name__)


class PaymentService:
    """Runs gateway calls off the caller's thread, bounded by a timeout."""

    def __init__(
        self,
        gateway: BasePaymentGateway,
        timeout_seconds: float = 10.0,
        executor: ThreadPoolExecutor | None = None,
    ) -> None:
        self.gateway = gateway
        self.timeout_seconds = timeout_seconds
        self._executor = executor or ThreadPoolExecutor(
            max_workers=4, thread_name_prefix="payment-gateway"
        )

    def create_order(self, booking: Booking) -> PaymentOrder | None:
        """Ask the gateway for an order; ``None`` means "arrange payment manually"."""
        future = self._executor.submit(
            self.gateway.create_order,
            booking.price,
            booking.booking_number,
            booking.payment_description,
        )
        try:
            return future.result(timeout=self.timeout_seconds)
        except FutureTimeoutError:
            future.cancel()
            logger.warning(
                "Payment order creation timed out",
                extra={"booking_number": booking.booking_number},
            )
        except PaymentGatewayError as exc:
            logger.warning(
                "Payment order creation failed",
                extra={"booking_number": booking.booking_number, "reason": str(exc)},
            )
        except Exception:
            logger.exception(
                "Payment gateway crashed while creating an order",
                extra={"booking_number": booking.booking_number},
            )
        return None

    def order_id_for_return_url(self, url: str) -> str:
        return self.gateway.order_id_from_return_url(url)

    def resolve_return_url(self, url: str) -> PaymentCapture:
        future = self._executor.submit(self.gateway.handle_return_url, url)
        try:
            return future.result(timeout=self.timeout_seconds)
        except FutureTimeoutError as exc:
            future.cancel()
            raise PaymentGatewayError("Payment provider did not answer in time") from exc
        except PaymentGatewayError:
            raise
        except Exception as exc:
            logger.exception("Payment gateway crashed while capturing", extra={"url": url})
            raise PaymentGatewayError("Payment provider returned an unexpected response") from exc

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)
