"""
SQLAlchemy models for TrapForge.
"""

from typing import Any, Dict

from sqlalchemy import JSON, Column, DateTime, Enum, Index, String
from sqlalchemy.sql import func

from .base import Base

DEPLOYMENT_STATUSES = ("analyzing", "deploying", "deployed", "failed")


class DeploymentModel(Base):
    """
    Stored deployment record.

    The full aggregate lives in ``record``; the columns next to it are
    copies kept for filtering and ordering.
    """

    __tablename__ = "deployments"

    id = Column(String(26), primary_key=True)
    user_id = Column(String(128), nullable=False, index=True)
    status = Column(
        Enum(*DEPLOYMENT_STATUSES, name="deployment_status"),
        nullable=False,
        default="analyzing",
        index=True,
    )
    address = Column(String(64), nullable=True)
    tx_id = Column(String(80), nullable=True)
    record = Column(JSON, nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), nullable=False, default=func.now())
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=func.now(), onupdate=func.now()
    )
    completed_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_deployments_user_created", "user_id", "created_at"),
    )

    def to_dict(self) -> Dict[str, Any]:
        """Return the stored aggregate record."""
        return dict(self.record or {})
