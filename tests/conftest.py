from datetime import datetime, timedelta, timezone
from decimal import Decimal
import threading

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from lessonbook.config import Settings
from lessonbook.core.clock import ManualClock
from lessonbook.core.errors import PaymentGatewayError
from lessonbook.db import models  # noqa: F401
from lessonbook.db.session import Base
from lessonbook.domain import Actor, TrainerSettings, UserRole
from lessonbook.services.container import build_container
from lessonbook.services.directory import InMemoryUserDirectory
from lessonbook.services.notification_service import NotificationPort
from lessonbook.services.payments import BasePaymentGateway, PaymentCapture, PaymentOrder

START = datetime(2030, 3, 4, 9, 0, tzinfo=timezone.utc)


class RecordingNotifier(NotificationPort):
    def __init__(self) -> None:
        self.sent = []

    def send(self, notification) -> None:
        self.sent.append(notification)

    def titles_for(self, recipient_id: str) -> list[str]:
        return [n.title for n in self.sent if n.recipient_id == recipient_id]


class FakeGateway(BasePaymentGateway):
    def __init__(self, settings: Settings) -> None:
        super().__init__(settings)
        self.fail = False
        self.block: threading.Event | None = None
        self.orders = 0
        self.captures = 0
        self.capture_error: Exception | None = None
        self.before_capture = None

    def create_order(self, amount, booking_number, description) -> PaymentOrder:
        if self.block is not None:
            self.block.wait(5)
        if self.fail:
            raise PaymentGatewayError("gateway down")
        self.orders += 1
        order_id = f"ORDER-{self.orders}"
        return PaymentOrder(order_id=order_id, approval_url=f"https://pay.example/{order_id}")

    def handle_return_url(self, url: str) -> PaymentCapture:
        order_id = self.order_id_from_return_url(url)
        if self.before_capture is not None:
            self.before_capture(order_id)
        if self.capture_error is not None:
            raise self.capture_error
        self.captures += 1
        return PaymentCapture(order_id=order_id, transaction_id=f"CAP-{order_id}")


@pytest.fixture()
def settings():
    return Settings(payment_timeout_seconds=1.0, payment_provider="stub")


@pytest.fixture()
def clock():
    return ManualClock(START)


@pytest.fixture()
def trainer():
    return Actor(id="trainer-1", name="Anna Trainer", email="anna@example.com", role=UserRole.trainer)


@pytest.fixture()
def student():
    return Actor(id="student-1", name="Ben Student", email="ben@example.com")


@pytest.fixture()
def other_student():
    return Actor(id="student-2", name="Cleo Student", email="cleo@example.com")


@pytest.fixture()
def admin():
    return Actor(id="admin-1", name="Admin", role=UserRole.admin)


@pytest.fixture()
def directory(trainer, student, other_student, admin):
    return InMemoryUserDirectory([trainer, student, other_student, admin])


@pytest.fixture()
def notifier():
    return RecordingNotifier()


@pytest.fixture()
def gateway(settings):
    return FakeGateway(settings)


@pytest.fixture()
def container(settings, clock, gateway, notifier, directory, trainer):
    services = build_container(
        settings, clock=clock, gateway=gateway, notifier=notifier, directory=directory
    )
    services.store.put_trainer_settings(
        TrainerSettings(trainer_id=trainer.id, price_per_hour=Decimal("60"))
    )
    yield services
    services.close()


@pytest.fixture()
def make_slot(container, clock, trainer):
    def factory(starts_in: timedelta = timedelta(days=3), duration: int = 60) -> str:
        result = container.slots.create_slot(trainer, trainer.id, clock.now() + starts_in, duration)
        assert result.success, result.message
        return result.entity_id

    return factory


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)
    yield factory
    engine.dispose()
