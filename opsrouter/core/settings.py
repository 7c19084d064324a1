# settings.py
"""Centralized settings and configuration management."""

import os
from datetime import date
from pathlib import Path


class Settings:
    """Application settings and configuration"""

    # Base paths
    BASE_DIR = Path(__file__).parent.parent
    DATA_DIR = BASE_DIR / "data"
    CONFIG_DIR = BASE_DIR / "query_handlers" / "config"

    # Database (feedback sink)
    DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{DATA_DIR}/feedback.db")

    # Application settings
    ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
    DEBUG = os.getenv("DEBUG", "false").lower() == "true"

    # Intent definitions
    INTENTS_CONFIG_PATH = os.getenv(
        "INTENTS_CONFIG_PATH", str(CONFIG_DIR / "intents.yaml")
    )

    # All relative date math is anchored to this day, not the wall clock
    REFERENCE_DATE = date.fromisoformat(os.getenv("REFERENCE_DATE", "2025-11-14"))

    # Conversation context
    CONTEXT_TTL_SECONDS = int(os.getenv("CONTEXT_TTL_SECONDS", "300"))

    # Feedback log
    FEEDBACK_MAX_ENTRIES = int(os.getenv("FEEDBACK_MAX_ENTRIES", "1000"))

    # Web configuration
    RATE_LIMIT = os.getenv("RATE_LIMIT", "60/minute")

    @classmethod
    def ensure_directories(cls):
        """Ensure required directories exist"""
        cls.DATA_DIR.mkdir(exist_ok=True)


# Global settings instance
settings = Settings()
settings.ensure_directories()
