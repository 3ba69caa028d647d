"""
User notifications emitted at terminal pipeline states.

Delivery is owned by an external transport; the pipeline only depends on
the Notifier interface below.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import structlog

logger = structlog.get_logger()


def build_notification(
    kind: str, title: str, message: str, data: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    return {"type": kind, "title": title, "message": message, "data": data or {}}


class Notifier(ABC):
    """Abstract base class for notification delivery."""

    @abstractmethod
    async def notify(self, user_id: str, payload: Dict[str, Any]) -> None:
        """Deliver ``payload`` to ``user_id``. May raise NotificationError."""
        pass


class LogNotifier(Notifier):
    """Writes notifications to the structured log."""

    async def notify(self, user_id: str, payload: Dict[str, Any]) -> None:
        logger.info(
            "notification",
            user_id=user_id,
            notification_type=payload.get("type"),
            title=payload.get("title"),
            message=payload.get("message"),
        )
