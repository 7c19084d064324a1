import logging
import os
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request
from pydantic import BaseModel, Field
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from opsrouter.core import Config, ConversationTurn, DatabaseError, FeedbackEntry, settings

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

Config.load_env_for_development()

# Rate limiting setup
limiter = Limiter(key_func=get_remote_address)

app = FastAPI(
    title="Operational Query Router",
    docs_url="/docs" if os.environ.get("ENVIRONMENT") != "production" else None,
    redoc_url="/redoc" if os.environ.get("ENVIRONMENT") != "production" else None,
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


class TurnIn(BaseModel):
    question: str
    detected_intent: Optional[str] = None
    parameters: Dict[str, Any] = Field(default_factory=dict)
    answer: Optional[str] = None


class QuestionIn(BaseModel):
    question: str = Field(default="", max_length=Config.MAX_QUESTION_LENGTH)


class RouteIn(BaseModel):
    question: str = Field(default="", max_length=Config.MAX_QUESTION_LENGTH)
    user_id: Optional[str] = None
    history: List[TurnIn] = Field(default_factory=list)


class FeedbackIn(BaseModel):
    query: str
    detected_intent: str
    confidence: float = Field(ge=0.0, le=1.0)
    corrected_intent: Optional[str] = None
    notes: Optional[str] = None


# --- Lazy initialization for feedback repository and query router ---
_feedback_repository = None
_query_router = None


def get_feedback_repository():
    global _feedback_repository
    if _feedback_repository is None:
        from opsrouter.data import SQLAlchemyFeedbackRepository

        _feedback_repository = SQLAlchemyFeedbackRepository()
        logger.info("Feedback repository initialized successfully")
    return _feedback_repository


def get_query_router():
    global _query_router
    if _query_router is None:
        logger.info("Initializing query router...")
        from opsrouter.query_handlers import SmartQueryRouter

        _query_router = SmartQueryRouter(feedback_sink=get_feedback_repository())
        logger.info("Query router initialized successfully")
    return _query_router


@app.on_event("startup")
async def startup_event():
    logger.info("FastAPI app starting up...")

    try:
        from opsrouter.data import init_database

        init_database()
        logger.info("Feedback database initialized with SQLAlchemy and indexes")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise

    from opsrouter.query_handlers import initialize_intent_config

    initialize_intent_config(settings.INTENTS_CONFIG_PATH)


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("FastAPI app shutting down...")
    if _feedback_repository is not None:
        _feedback_repository.session.close()


@app.get("/health")
async def health_check():
    return {"status": "healthy", "timestamp": datetime.now().isoformat()}


@app.get("/health/database")
async def database_health_check():
    try:
        from opsrouter.data import DatabaseInitializer

        db_info = DatabaseInitializer.get_database_info()
        return {
            "status": "healthy" if db_info["connection_status"] == "Connected" else "unhealthy",
            "database_info": db_info,
            "timestamp": datetime.now().isoformat(),
        }
    except Exception as e:
        return {
            "status": "unhealthy",
            "error": str(e),
            "timestamp": datetime.now().isoformat(),
        }


@app.post("/classify_query")
@limiter.limit(settings.RATE_LIMIT)
async def classify_query(request: Request, payload: QuestionIn):
    """Classify a question without routing it"""
    try:
        router = get_query_router()
        result = router.classify_query(payload.question)

        return {
            "question": payload.question,
            "classification": result.to_dict(),
            "status": "success",
        }

    except Exception as e:
        logger.error(f"Query classification error: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Classification failed: {str(e)}")


@app.post("/route")
@limiter.limit(settings.RATE_LIMIT)
async def route_question(request: Request, payload: RouteIn):
    """Classify a question and decide which engine should answer it"""
    try:
        router = get_query_router()
        history = [
            ConversationTurn(
                question=turn.question,
                detected_intent=turn.detected_intent,
                parameters=turn.parameters,
                answer=turn.answer,
            )
            for turn in payload.history
        ]
        decision = router.classify_and_route(
            payload.question, conversation_history=history, user_id=payload.user_id
        )

        return {
            "question": payload.question,
            "decision": decision.to_dict(),
            "status": "success",
        }

    except Exception as e:
        logger.error(f"Routing error: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Routing failed: {str(e)}")


@app.post("/feedback")
@limiter.limit(settings.RATE_LIMIT)
async def submit_feedback(request: Request, payload: FeedbackIn):
    """Record a reviewed classification, optionally with the correct intent"""
    try:
        get_feedback_repository().log(
            FeedbackEntry(
                query=payload.query,
                detected_intent=payload.detected_intent,
                confidence=payload.confidence,
                corrected_intent=payload.corrected_intent,
                notes=payload.notes,
            )
        )
        return {"status": "success"}

    except DatabaseError as e:
        logger.error(f"Feedback error: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Could not store feedback: {str(e)}")


@app.get("/feedback/review")
async def feedback_review(limit: int = 100):
    """Classifications that need a human look"""
    try:
        entries = get_feedback_repository().get_needs_review(limit=limit)
        return {
            "count": len(entries),
            "entries": [entry.to_dict() for entry in entries],
        }

    except DatabaseError as e:
        logger.error(f"Feedback review error: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Could not read feedback: {str(e)}")


@app.get("/feedback/export")
async def feedback_export():
    """Full feedback log with summary counts and misspelling suggestions"""
    from opsrouter.query_handlers.matcher import COMMON_MISSPELLINGS, MISSPELLING_CORRECTIONS

    try:
        repository = get_feedback_repository()
        export = repository.export()
        export["misspelling_suggestions"] = [
            {"word": word, "suggested": suggested, "occurrences": occurrences}
            for word, suggested, occurrences in repository.suggest_misspellings(
                COMMON_MISSPELLINGS.keys(), MISSPELLING_CORRECTIONS.keys()
            )
        ]
        export["exported_at"] = datetime.now().isoformat()
        return export

    except DatabaseError as e:
        logger.error(f"Feedback export error: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Could not export feedback: {str(e)}")
