"""Persistence port and its adapters."""

from portal_schedule.store.base import ScheduleStore
from portal_schedule.store.memory import InMemoryStore
from portal_schedule.store.rest import RestStore

__all__ = [
    "ScheduleStore",
    "InMemoryStore",
    "RestStore",
]
