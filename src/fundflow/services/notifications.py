#!/usr/bin/env python3
"""
Transaction notifications.

Delivery (push tokens, service workers) is outside this package; a
NotificationDispatcher receives the finished payload. Notifications are
best-effort: failures are logged and never reach the caller.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Protocol

from ..core.currency import Amount, format_vnd
from ..core.datastore import StoreError
from ..core.models import now_millis
from .users import UserDirectory

logger = logging.getLogger(__name__)

DEFAULT_CREATOR_NAME = "Thành viên"
DEFAULT_ICON = "/pwa-512x512.png"


@dataclass
class TransactionNotification:
    """Push payload announcing a new transaction to fund members."""

    title: str
    body: str
    icon: str
    click_action: str
    recipients: list[str]
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "notification": {
                "title": self.title,
                "body": self.body,
                "icon": self.icon,
                "clickAction": self.click_action,
            },
            "data": self.data,
            "recipients": list(self.recipients),
        }


class NotificationDispatcher(Protocol):
    """Delivers notification payloads."""

    async def dispatch(self, notification: TransactionNotification) -> None: ...


class LoggingNotificationDispatcher:
    """Dispatcher that only logs; the default when no delivery is configured."""

    def __init__(self):
        self.sent: list[TransactionNotification] = []

    async def dispatch(self, notification: TransactionNotification) -> None:
        self.sent.append(notification)
        logger.info(
            "Notification %r to %d recipient(s): %s",
            notification.title,
            len(notification.recipients),
            notification.body,
        )


def build_transaction_notification(
    creator_id: str,
    creator_name: str,
    creator_photo: str,
    fund_id: str,
    transaction_id: str,
    description: str,
    amount: Amount,
    recipient_ids: Iterable[str],
) -> TransactionNotification | None:
    """Payload for everyone but the creator; None if nobody is left."""
    recipients = [user_id for user_id in dict.fromkeys(recipient_ids) if user_id and user_id != creator_id]
    if not recipients:
        return None

    url = f"/funds/{fund_id}?transaction={transaction_id}"
    return TransactionNotification(
        title=f"Giao dịch mới từ {creator_name}",
        body=f"{description}: {format_vnd(amount)}",
        icon=creator_photo,
        click_action=url,
        recipients=recipients,
        data={
            "fundId": fund_id,
            "transactionId": transaction_id,
            "creatorId": creator_id,
            "description": description,
            "amount": str(amount),
            "creatorName": creator_name,
            "timestamp": str(now_millis()),
            "url": url,
        },
    )


async def send_transaction_notification(
    dispatcher: NotificationDispatcher,
    users: UserDirectory,
    creator_id: str,
    fund_id: str,
    transaction_id: str,
    description: str,
    amount: Amount,
    recipient_ids: Iterable[str],
) -> TransactionNotification | None:
    """
    Notify fund members about a new transaction.

    Returns the dispatched payload, or None when nothing was sent.
    """
    creator_name = DEFAULT_CREATOR_NAME
    creator_photo = DEFAULT_ICON
    try:
        creator = await users.ensure_loaded(creator_id)
        if creator is not None:
            creator_name = creator.display_name or DEFAULT_CREATOR_NAME
            creator_photo = creator.photo_url or DEFAULT_ICON
    except StoreError as e:
        logger.warning("Error getting creator data for %s: %s", creator_id, e)

    notification = build_transaction_notification(
        creator_id, creator_name, creator_photo, fund_id, transaction_id, description, amount, recipient_ids
    )
    if notification is None:
        logger.debug("No recipients to notify for transaction %s", transaction_id)
        return None

    try:
        await dispatcher.dispatch(notification)
    except Exception as e:
        logger.error("Error sending transaction notification for %s: %s", transaction_id, e)
        return None
    return notification
