"""
SISCOCA tasks: roles and capabilities, task routing, chat/inbox polling.
"""

from .polling import ChatMessage, PollScheduler, Poller, unread_count
from .roles import Capabilities, Role, capabilities
from .routing import (
    InMemoryTaskGateway,
    Task,
    TaskRouter,
    TaskType,
    expected_tasks,
    visible_tasks,
)

__all__ = [
    "ChatMessage",
    "PollScheduler",
    "Poller",
    "unread_count",
    "Capabilities",
    "Role",
    "capabilities",
    "InMemoryTaskGateway",
    "Task",
    "TaskRouter",
    "TaskType",
    "expected_tasks",
    "visible_tasks",
]
