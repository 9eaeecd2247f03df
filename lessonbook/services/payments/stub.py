from __future__ import annotations

from decimal import Decimal
import uuid

from .gateway import BasePaymentGateway, PaymentCapture, PaymentOrder


class StubGateway(BasePaymentGateway):
    """Simple payment gateway stub that pretends every payment succeeds."""

    def create_order(
        self, amount: Decimal, booking_number: str, description: str
    ) -> PaymentOrder:
        order_id = f"STUB-{uuid.uuid4().hex[:12].upper()}"
        return PaymentOrder(
            order_id=order_id,
            approval_url=f"{self.settings.payment_return_url}?token={order_id}",
        )

    def handle_return_url(self, url: str) -> PaymentCapture:
        order_id = self.order_id_from_return_url(url)
        return PaymentCapture(order_id=order_id, transaction_id=f"TX-{order_id}")
