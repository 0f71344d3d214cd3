"""Database model type definitions."""

from src.models.activity import Activity
from src.models.contact import Contact
from src.models.discovery_session import DiscoverySession, RapportNote
from src.models.setting import Setting
from src.models.task import Task

__all__ = [
    "Activity",
    "Contact",
    "DiscoverySession",
    "RapportNote",
    "Setting",
    "Task",
]
