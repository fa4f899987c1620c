"""Utility modules."""

from seedbot.utils.async_utils import AsyncioScheduler, Scheduler, create_safe_task
from seedbot.utils.http_client import AsyncHttpClient

__all__ = [
    "AsyncHttpClient",
    "AsyncioScheduler",
    "Scheduler",
    "create_safe_task",
]
