"""
Persistence contract for deployment records.

A record is the dict produced by ``Deployment.to_dict()``. Implementations
raise PersistenceError for any storage failure.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


class DeploymentStore(ABC):
    """Abstract base class for deployment record storage."""

    @abstractmethod
    def create(self, record: Dict[str, Any]) -> None:
        """Store a new deployment record."""
        pass

    @abstractmethod
    def update(self, deployment_id: str, fields: Dict[str, Any]) -> None:
        """Merge ``fields`` into an existing record."""
        pass

    @abstractmethod
    def get(self, deployment_id: str) -> Optional[Dict[str, Any]]:
        """Return the record, or None when it does not exist."""
        pass

    @abstractmethod
    def list_by_user(self, user_id: str) -> List[Dict[str, Any]]:
        """Return a user's records, newest first."""
        pass
