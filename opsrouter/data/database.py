# database.py
"""Setup and status reporting for the feedback database."""

import logging
from pathlib import Path

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from opsrouter.core.exceptions import DatabaseError
from .models import DatabaseManager, db_manager

logger = logging.getLogger(__name__)


def _sqlite_path(database_url: str):
    if not database_url.startswith("sqlite:///"):
        return None
    return Path(database_url[len("sqlite:///"):])


class DatabaseInitializer:
    """Prepares and inspects the feedback store"""

    def __init__(self, manager: DatabaseManager = None):
        self.manager = manager or db_manager

    def initialize(self) -> dict:
        """Create the feedback table and its indexes, returning table stats"""
        db_path = _sqlite_path(self.manager.database_url)
        if db_path is not None:
            db_path.parent.mkdir(parents=True, exist_ok=True)

        logger.info(f"Preparing feedback store at {self.manager.engine.url!r}")
        try:
            self.manager.create_tables()
        except SQLAlchemyError as e:
            logger.error(f"Failed to create feedback tables: {e}")
            raise DatabaseError(f"Failed to create feedback tables: {e}") from e

        stats = self.manager.get_table_stats()
        logger.info(f"Feedback store ready: {stats}")
        return stats

    def ping(self) -> bool:
        try:
            with self.manager.engine.connect() as connection:
                connection.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.warning(f"Feedback store unreachable: {e}")
            return False

    def info(self) -> dict:
        """Connection status and row counts for the health endpoint"""
        connected = self.ping()
        info = {
            "database_type": self.manager.engine.dialect.name,
            "connection_status": "Connected" if connected else "Failed",
        }
        if connected:
            info["stats"] = self.manager.get_table_stats()
        return info

    @staticmethod
    def initialize_database() -> dict:
        return DatabaseInitializer().initialize()

    @staticmethod
    def get_database_info() -> dict:
        return DatabaseInitializer().info()


def init_database() -> dict:
    return DatabaseInitializer.initialize_database()
