from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.orm import sessionmaker

from ..config import Settings
from ..core.clock import Clock, SystemClock
from ..core.locks import EntityLocks
from .booking_service import BookingLifecycleManager
from .directory import InMemoryUserDirectory
from .messaging import MessagingThread
from .notification_service import NotificationPort, get_notifier
from .payment_service import PaymentService
from .payments import BasePaymentGateway, get_gateway
from .persistence import LocalCache, PersistenceGateway, SqlPersistenceGateway, StateSynchronizer
from .slot_registry import TimeSlotRegistry
from .state_store import StateStore
from .trainer_settings_service import TrainerSettingsService


@dataclass
class ServiceContainer:
    settings: Settings
    clock: Clock
    store: StateStore
    directory: InMemoryUserDirectory
    trainer_settings: TrainerSettingsService
    slots: TimeSlotRegistry
    payments: PaymentService
    bookings: BookingLifecycleManager
    messaging: MessagingThread
    synchronizer: StateSynchronizer | None

    def close(self) -> None:
        self.payments.shutdown()


def build_container(
    settings: Settings,
    *,
    clock: Clock | None = None,
    gateway: BasePaymentGateway | None = None,
    notifier: NotificationPort | None = None,
    directory: InMemoryUserDirectory | None = None,
    persistence: PersistenceGateway | None = None,
    session_factory: sessionmaker | None = None,
    cache: LocalCache | None = None,
) -> ServiceContainer:
    """Wire every service with explicit collaborators; nothing here is global."""
    clock = clock or SystemClock()
    store = StateStore()
    locks = EntityLocks()
    directory = directory or InMemoryUserDirectory()
    trainer_settings = TrainerSettingsService(store, settings.default_hourly_rate)
    slots = TimeSlotRegistry(store, locks, clock, trainer_settings)
    payments = PaymentService(
        gateway or get_gateway(settings), timeout_seconds=settings.payment_timeout_seconds
    )
    bookings = BookingLifecycleManager(
        store,
        locks,
        clock,
        slots,
        payments,
        notifier or get_notifier(settings),
        directory,
        trainer_settings,
    )
    messaging = MessagingThread(store, locks, clock)

    if persistence is None and session_factory is not None:
        persistence = SqlPersistenceGateway(session_factory)
    synchronizer = StateSynchronizer(store, persistence, cache) if persistence else None

    return ServiceContainer(
        settings=settings,
        clock=clock,
        store=store,
        directory=directory,
        trainer_settings=trainer_settings,
        slots=slots,
        payments=payments,
        bookings=bookings,
        messaging=messaging,
        synchronizer=synchronizer,
    )
