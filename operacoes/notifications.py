from __future__ import annotations

import logging
from datetime import timedelta

from django.utils import timezone

from .models import Notification, NotificationType

logger = logging.getLogger(__name__)


def notify(
    recipient,
    title: str,
    message: str = "",
    notification_type: str = NotificationType.INFO,
    sender=None,
    link: str = "",
) -> Notification | None:
    if recipient is None:
        logger.info("Notificacao ignorada sem destinatario: %s", title)
        return None
    return Notification.objects.create(
        recipient=recipient,
        sender=sender,
        title=title,
        message=message,
        notification_type=notification_type,
        link=link,
    )


def recent_similar_exists(
    recipient,
    title_fragment: str,
    hours: int = 24,
    now=None,
    message_fragment: str | None = None,
) -> bool:
    now = now or timezone.now()
    queryset = Notification.objects.filter(
        recipient=recipient,
        title__icontains=title_fragment,
        created_at__gte=now - timedelta(hours=hours),
    )
    if message_fragment:
        queryset = queryset.filter(message__icontains=message_fragment)
    return queryset.exists()


def mark_read(notification: Notification) -> Notification:
    if notification.read_at is None:
        notification.read_at = timezone.now()
        notification.save(update_fields=["read_at", "updated_at"])
    return notification


def mark_all_read(user) -> int:
    return Notification.objects.filter(recipient=user, read_at__isnull=True).update(
        read_at=timezone.now(),
        updated_at=timezone.now(),
    )


def unread_count(user) -> int:
    return Notification.objects.filter(recipient=user, read_at__isnull=True).count()
