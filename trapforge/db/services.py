"""
Database services for TrapForge.
"""

from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import desc
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import PersistenceError
from .models import DeploymentModel
from .store import DeploymentStore

UNFINISHED_STATUSES = ("analyzing", "deploying")


def _parse_dt(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _sync_columns(db_deployment: DeploymentModel, record: Dict[str, Any]) -> None:
    """Copy the indexed fields of ``record`` onto their columns."""
    if "status" in record:
        db_deployment.status = record["status"]
    if "address" in record:
        db_deployment.address = record["address"] or None
    if "tx_id" in record:
        db_deployment.tx_id = record["tx_id"] or None
    if "completed_at" in record:
        db_deployment.completed_at = _parse_dt(record["completed_at"])


class SqlDeploymentStore(DeploymentStore):
    """Deployment records stored through SQLAlchemy, one session per call."""

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def create(self, record: Dict[str, Any]) -> None:
        db_deployment = DeploymentModel(
            id=record["id"], user_id=record["user_id"], record=dict(record)
        )
        if record.get("created_at"):
            db_deployment.created_at = _parse_dt(record["created_at"])
        _sync_columns(db_deployment, record)
        with self.session_factory() as db:
            try:
                db.add(db_deployment)
                db.commit()
            except SQLAlchemyError as e:
                db.rollback()
                raise PersistenceError(
                    message=f"Could not create deployment {record['id']}: {e}"
                ) from e

    def update(self, deployment_id: str, fields: Dict[str, Any]) -> None:
        with self.session_factory() as db:
            try:
                db_deployment = db.get(DeploymentModel, deployment_id)
                if db_deployment is None:
                    raise PersistenceError(
                        code="NOT_FOUND",
                        message=f"Deployment {deployment_id} does not exist",
                    )
                # Reassign so the JSON column is flagged as changed
                db_deployment.record = {**(db_deployment.record or {}), **fields}
                _sync_columns(db_deployment, fields)
                db.commit()
            except SQLAlchemyError as e:
                db.rollback()
                raise PersistenceError(
                    message=f"Could not update deployment {deployment_id}: {e}"
                ) from e

    def get(self, deployment_id: str) -> Optional[Dict[str, Any]]:
        with self.session_factory() as db:
            try:
                db_deployment = db.get(DeploymentModel, deployment_id)
            except SQLAlchemyError as e:
                raise PersistenceError(
                    message=f"Could not read deployment {deployment_id}: {e}"
                ) from e
            return db_deployment.to_dict() if db_deployment else None

    def list_by_user(self, user_id: str) -> List[Dict[str, Any]]:
        return self._list(user_id=user_id)

    def list_unfinished(self) -> List[Dict[str, Any]]:
        """Records still analyzing or deploying, oldest first."""
        return self._list(statuses=UNFINISHED_STATUSES, newest_first=False)

    def _list(
        self,
        user_id: Optional[str] = None,
        statuses: Optional[tuple] = None,
        newest_first: bool = True,
        limit: int = 100,
    ) -> List[Dict[str, Any]]:
        with self.session_factory() as db:
            try:
                query = db.query(DeploymentModel)
                if user_id:
                    query = query.filter(DeploymentModel.user_id == user_id)
                if statuses:
                    query = query.filter(DeploymentModel.status.in_(statuses))
                order = (
                    desc(DeploymentModel.created_at)
                    if newest_first
                    else DeploymentModel.created_at
                )
                return [row.to_dict() for row in query.order_by(order).limit(limit).all()]
            except SQLAlchemyError as e:
                raise PersistenceError(message=f"Could not list deployments: {e}") from e
