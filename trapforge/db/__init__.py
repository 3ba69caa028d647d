"""
Database package for TrapForge.
"""

from .base import Base, get_engine, get_session_local, init_database
from .models import DeploymentModel
from .services import SqlDeploymentStore
from .store import DeploymentStore

__all__ = [
    "Base",
    "DeploymentModel",
    "DeploymentStore",
    "SqlDeploymentStore",
    "get_engine",
    "get_session_local",
    "init_database",
]
