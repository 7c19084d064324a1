# models.py
"""SQLAlchemy database models for classification feedback."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Float, Index, Integer, String, Text, create_engine, or_
from sqlalchemy.orm import declarative_base, sessionmaker

from opsrouter.core import settings

Base = declarative_base()


class FeedbackModel(Base):
    """SQLAlchemy model for one logged classification"""

    __tablename__ = "intent_feedback"

    id = Column(Integer, primary_key=True, autoincrement=True)

    query = Column(Text, nullable=False)
    detected_intent = Column(String(64), nullable=False)
    confidence = Column(Float, nullable=False)
    corrected_intent = Column(String(64), nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("idx_feedback_intent", "detected_intent"),
        Index("idx_feedback_confidence", "confidence"),
        Index("idx_feedback_created_at", "created_at"),
    )

    def __repr__(self):
        return (
            f"<FeedbackModel(id={self.id}, intent='{self.detected_intent}', "
            f"confidence={self.confidence})>"
        )

    def to_dict(self):
        """Convert to dictionary for API responses"""
        return {
            "id": self.id,
            "query": self.query,
            "detected_intent": self.detected_intent,
            "confidence": self.confidence,
            "corrected_intent": self.corrected_intent,
            "notes": self.notes,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class DatabaseManager:
    """Manages database connections and sessions"""

    def __init__(self, database_url: str = None):
        self.database_url = database_url or settings.DATABASE_URL
        self.engine = None
        self.SessionLocal = None
        self._initialize()

    def _initialize(self):
        """Initialize database engine and session factory"""
        connect_args = {}
        if "sqlite" in self.database_url:
            connect_args = {
                "check_same_thread": False,
                "timeout": 20,
            }

        self.engine = create_engine(
            self.database_url,
            connect_args=connect_args,
            echo=settings.DEBUG,
            pool_pre_ping=True,
        )

        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def create_tables(self):
        """Create all tables with indexes"""
        Base.metadata.create_all(bind=self.engine)

    def get_session(self):
        """Get a database session"""
        return self.SessionLocal()

    def drop_tables(self):
        """Drop all tables - USE WITH CAUTION"""
        Base.metadata.drop_all(bind=self.engine)

    def get_table_stats(self):
        """Get database statistics for monitoring"""
        with self.get_session() as session:
            try:
                feedback_count = session.query(FeedbackModel).count()
                flagged = (
                    session.query(FeedbackModel)
                    .filter(
                        or_(
                            FeedbackModel.confidence < 0.6,
                            FeedbackModel.detected_intent == "UNKNOWN",
                        )
                    )
                    .count()
                )
                latest = (
                    session.query(FeedbackModel)
                    .order_by(FeedbackModel.created_at.desc())
                    .first()
                )

                return {
                    "total_feedback": feedback_count,
                    "needs_review": flagged,
                    "latest_feedback": latest.created_at.isoformat() if latest else None,
                    "database_url": self.database_url.split("@")[-1]
                    if "@" in self.database_url
                    else self.database_url,
                }
            except Exception as e:
                return {"error": str(e)}


# Global database manager instance
db_manager = DatabaseManager()
