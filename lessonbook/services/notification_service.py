from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
import logging
from zoneinfo import ZoneInfo

import httpx

from ..config import Settings, get_settings

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Notification:
    recipient_id: str
    title: str
    body: str


class NotificationPort(ABC):
    @abstractmethod
    def send(self, notification: Notification) -> None:
        raise NotImplementedError


class LoggingNotifier(NotificationPort):
    def send(self, notification: Notification) -> None:
        logger.info(
            "Notification",
            extra={
                "recipient_id": notification.recipient_id,
                "title": notification.title,
            },
        )


class HttpPushNotifier(NotificationPort):
    """Posts notifications to a push relay endpoint."""

    def __init__(self, endpoint: str, api_key: str = "", timeout: float = 10) -> None:
        self.endpoint = endpoint
        self.api_key = api_key
        self.timeout = timeout

    def send(self, notification: Notification) -> None:
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
        with httpx.Client(timeout=self.timeout) as client:
            try:
                response = client.post(
                    self.endpoint,
                    json={
                        "recipient_id": notification.recipient_id,
                        "title": notification.title,
                        "body": notification.body,
                    },
                    headers=headers,
                )
                response.raise_for_status()
            except httpx.HTTPError:
                logger.exception(
                    "Failed to deliver push notification",
                    extra={"recipient_id": notification.recipient_id},
                )


def get_notifier(settings: Settings) -> NotificationPort:
    if settings.push_endpoint:
        return HttpPushNotifier(settings.push_endpoint, settings.push_api_key)
    logger.warning("Push endpoint is not configured; notifications are only logged")
    return LoggingNotifier()


def format_local(value: datetime) -> str:
    settings = get_settings()
    return value.astimezone(ZoneInfo(settings.timezone)).strftime("%d.%m.%Y %H:%M")


def booking_created(
    *, trainer_id: str, booking_number: str, student_name: str, starts_at: datetime
) -> Notification:
    return Notification(
        recipient_id=trainer_id,
        title=f"New booking {booking_number}",
        body=f"{student_name} booked a private lesson on {format_local(starts_at)}",
    )


def booking_requested(*, trainer_id: str, student_name: str) -> Notification:
    return Notification(
        recipient_id=trainer_id,
        title="New private lesson request",
        body=f"{student_name} would like to book a private lesson",
    )


def awaiting_payment(
    *, student_id: str, trainer_name: str, deadline: datetime, has_link: bool
) -> Notification:
    if has_link:
        return Notification(
            recipient_id=student_id,
            title="Private lesson confirmed - payment required",
            body=(
                f"Please pay for your private lesson with {trainer_name} "
                f"by {format_local(deadline)}"
            ),
        )
    return Notification(
        recipient_id=student_id,
        title="Private lesson confirmed",
        body=(
            f"Your private lesson with {trainer_name} was confirmed. Please contact "
            f"the trainer for payment details before {format_local(deadline)}."
        ),
    )


def payment_received(*, trainer_id: str, student_name: str) -> Notification:
    return Notification(
        recipient_id=trainer_id,
        title="Payment received",
        body=f"The private lesson of {student_name} has been paid.",
    )


def booking_expired(*, student_id: str) -> Notification:
    return Notification(
        recipient_id=student_id,
        title="Booking cancelled",
        body="Your private lesson was cancelled because the payment deadline passed",
    )


def booking_cancelled(
    *, trainer_id: str, student_name: str, starts_at: datetime
) -> Notification:
    return Notification(
        recipient_id=trainer_id,
        title="Booking cancelled",
        body=f"{student_name} cancelled the private lesson on {format_local(starts_at)}",
    )


def paid_booking_cancelled(*, student_id: str) -> Notification:
    return Notification(
        recipient_id=student_id,
        title="Booking cancelled",
        body="The private lesson was cancelled. The refund will be arranged shortly.",
    )


def lesson_starting_soon(*, trainer_id: str, student_name: str) -> Notification:
    return Notification(
        recipient_id=trainer_id,
        title="Private lesson in 10 minutes",
        body=(
            f"Your private lesson with {student_name} starts soon. "
            "You can start the video call now."
        ),
    )
