# Data package
"""Data layer for classification feedback."""

from .base_repository import BaseFeedbackSink
from .database import DatabaseInitializer, init_database
from .feedback_repository import InMemoryFeedbackSink, SQLAlchemyFeedbackRepository
from .models import DatabaseManager, FeedbackModel, db_manager

__all__ = [
    "BaseFeedbackSink",
    "InMemoryFeedbackSink",
    "SQLAlchemyFeedbackRepository",
    "FeedbackModel",
    "DatabaseManager",
    "db_manager",
    "DatabaseInitializer",
    "init_database",
]
