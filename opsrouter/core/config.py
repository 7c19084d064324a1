# config.py
import os
from enum import Enum


class Task(Enum):
    """Downstream engines a question can be routed to"""

    SQL = "sql"
    RAG = "rag"
    OPTIMIZE = "optimize"


class Config:
    """Routing constants and thresholds"""

    # Fixed decision confidences (policy values, not measurements)
    CONFIDENCE_THRESHOLDS = {
        "VERY_HIGH": 0.99,
        "HIGH": 0.95,
        "GOOD": 0.90,
        "MEDIUM": 0.75,
        "LOW": 0.5,
    }

    # Ambiguity calibration
    AMBIGUITY_RATIO = 0.7
    AMBIGUOUS_MAX = 0.75
    AMBIGUITY_PENALTY_BASE = 0.6
    AMBIGUITY_PENALTY_SCALE = 0.4

    # Score normalisation per intent tier
    TIER_MAX_SCORES = {1: 18, 2: 20, 3: 25}

    # Keyword scoring
    FUZZY_DISCOUNT = 0.95
    MATCH_RATIO_BOOST = 1.2
    MATCH_RATIO_THRESHOLD = 0.3
    STATISTICAL_BOOST = 2.5

    # Fuzzy matching thresholds by keyword length (min length, threshold)
    FUZZY_THRESHOLDS = ((10, 0.70), (7, 0.78), (5, 0.82))
    FUZZY_DEFAULT_THRESHOLD = 0.85

    # Longer questions are truncated before matching
    MAX_QUESTION_LENGTH = 2000

    # Follow-up resolution
    FOLLOW_UP_THRESHOLD = 0.5
    FOLLOW_UP_MIN_INTENT_CONFIDENCE = 0.8

    # Optimization defaults
    DEFAULT_FORECAST_DAYS = 7

    # Namespaces searched by the document answerer
    DEFAULT_RAG_NAMESPACES = ["combined"]

    # Environment configuration
    IS_DEVELOPMENT = os.getenv("ENVIRONMENT", "development") == "development"

    @classmethod
    def load_env_for_development(cls):
        """Load .env file only for local development"""
        if cls.IS_DEVELOPMENT:
            from dotenv import load_dotenv

            load_dotenv()
