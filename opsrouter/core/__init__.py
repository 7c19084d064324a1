# Core package
"""Core settings, constants and shared models for the operational query router."""

from .config import Config, Task
from .exceptions import (
    ConfigurationError,
    DatabaseError,
    QueryProcessingError,
    RoutingError,
)
from .models import ConversationTurn, FeedbackEntry
from .settings import settings

__all__ = [
    "Config",
    "Task",
    "ConversationTurn",
    "FeedbackEntry",
    "RoutingError",
    "ConfigurationError",
    "DatabaseError",
    "QueryProcessingError",
    "settings",
]
