"""
Notification delivery for engine side effects

Handles:
- The one-way notifier contract used by the assignment services
- Recording notifications in the repository (unread inbox per user)
- Logging-only delivery for embedding without an inbox
"""

import logging
from abc import ABC, abstractmethod

from conference_engine.models import Collection, Notification, NotificationKind
from conference_engine.repository import Repository

logger = logging.getLogger(__name__)


class Notifier(ABC):
    """Fire-and-forget message delivery to a user"""

    @abstractmethod
    def notify(
        self,
        user_id: str,
        kind: NotificationKind,
        title: str,
        message: str,
        link: str | None = None,
    ) -> None:
        """Deliver one message. Return values are never consumed."""


class LoggingNotifier(Notifier):
    """Notifier that only writes to the log"""

    def notify(self, user_id, kind, title, message, link=None) -> None:
        logger.info(f"Notify {user_id} [{kind.value}] {title}: {message}")


class RepositoryNotifier(Notifier):
    """Notifier storing messages in the notifications collection"""

    def __init__(self, repository: Repository):
        self.repository = repository

    def notify(self, user_id, kind, title, message, link=None) -> None:
        notification = Notification(
            id=self.repository.new_id(),
            user_id=user_id,
            kind=kind,
            title=title,
            message=message,
            link=link,
        )
        self.repository.add(Collection.NOTIFICATIONS, notification)
        logger.debug(f"Stored notification {notification.id} for user {user_id}")

    def get_by_user(self, user_id: str) -> list[Notification]:
        """Notifications for a user, newest first"""
        notifications = [
            n
            for n in self.repository.get_all(Collection.NOTIFICATIONS)
            if n.user_id == user_id
        ]
        return sorted(notifications, key=lambda n: n.created_at, reverse=True)

    def get_unread_count(self, user_id: str) -> int:
        return sum(1 for n in self.get_by_user(user_id) if not n.read)

    def mark_all_as_read(self, user_id: str) -> int:
        """Mark every notification of a user as read. Returns how many changed."""
        notifications = self.repository.get_all(Collection.NOTIFICATIONS)
        changed = 0
        for notification in notifications:
            if notification.user_id == user_id and not notification.read:
                notification.read = True
                changed += 1
        if changed:
            self.repository.replace_all(Collection.NOTIFICATIONS, notifications)
        return changed
