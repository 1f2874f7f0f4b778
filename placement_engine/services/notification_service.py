"""
Notification Service

NotificationSink is the outbound collaborator the job matcher talks to:
one `send` per qualifying candidate. NotificationService is the default
sink; it stores notifications so students can read them in their inbox.
Delivery beyond the inbox (email, push) belongs to other sinks.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from placement_engine.core.exceptions import NotFound, PermissionDenied
from placement_engine.core.logger import get_logger
from placement_engine.db.mongodb import COLLECTIONS
from placement_engine.db.store import RecordStore
from placement_engine.schemas.schemas import Notification, NotificationType

logger = get_logger()

NOTIFICATIONS = COLLECTIONS["notifications"]


class NotificationSink(ABC):
    @abstractmethod
    def send(
        self,
        recipient: str,
        job_id: str,
        job_title: str,
        company_name: str,
        message: str,
        match_score: Optional[float] = None,
    ) -> str:
        """Deliver one job-match notification. Returns a delivery id."""


class NotificationService(NotificationSink):
    """Inbox-backed sink plus the student-facing inbox operations."""

    def __init__(self, store: RecordStore):
        self.store = store

    def send(self, recipient, job_id, job_title, company_name, message, match_score=None) -> str:
        notification = Notification(
            user_id=recipient,
            type=NotificationType.job_match,
            job_id=job_id,
            job_title=job_title,
            company_name=company_name,
            message=message,
            match_score=match_score,
            created_at=datetime.utcnow(),
            read=False,
        )
        notification_id = self.store.insert(NOTIFICATIONS, notification.model_dump(exclude={"id"}))
        logger.record_notification()
        return notification_id

    def list_for(self, user_id: str) -> List[Notification]:
        """User's notifications, newest first."""
        docs = self.store.find(NOTIFICATIONS, where={"user_id": user_id})
        notifications = [Notification(**doc) for doc in docs]
        return sorted(notifications, key=lambda n: n.created_at, reverse=True)

    def _owned(self, user_id: str, notification_id: str) -> dict:
        doc = self.store.get(NOTIFICATIONS, notification_id)
        if doc is None:
            raise NotFound("Notification", notification_id)
        if doc["user_id"] != user_id:
            raise PermissionDenied()
        return doc

    def mark_read(self, user_id: str, notification_id: str):
        self._owned(user_id, notification_id)
        self.store.update(NOTIFICATIONS, notification_id, {
            "read": True,
            "read_at": datetime.utcnow(),
        })

    def delete(self, user_id: str, notification_id: str):
        self._owned(user_id, notification_id)
        self.store.delete(NOTIFICATIONS, notification_id)
