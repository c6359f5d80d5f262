"""Scheduling backends for the sync engine."""

from .apsched_adapter import APSchedulerAdapter
from .base import BaseScheduler

__all__ = ["APSchedulerAdapter", "BaseScheduler"]
