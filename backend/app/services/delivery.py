"""Outbound message delivery (Telegram, SMS, ...) behind one small interface."""

import logging

from app.models.notification import Notification
from app.models.user import User

logger = logging.getLogger(__name__)


class MessageDelivery:
    """Hands a durable notification to an external channel. Called after commit."""

    async def deliver(self, user: User, notification: Notification) -> None:
        raise NotImplementedError


class LogDelivery(MessageDelivery):
    """Default channel: log the formatted payload."""

    async def deliver(self, user: User, notification: Notification) -> None:
        logger.info(
            "Delivering %s to %s (telegram_id=%s): %s - %s",
            notification.type,
            user.email,
            user.telegram_id,
            notification.title,
            notification.message,
        )
