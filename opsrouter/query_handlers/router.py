# router.py
"""Main orchestrating router for operational questions.

Flow per question:
1. Follow-up resolution against history or the user's cached context
2. Intent classification (parameter extraction runs inside)
3. Follow-ups inherit the previous intent and merge parameters
4. Deterministic rules, then the fallback router
5. Decision is decorated with intent, parameters, query type and tables
"""

import dataclasses
import logging
import uuid
from typing import Any, Dict, Iterable, Optional, Union

from opsrouter.core import Config, ConversationTurn, Task
from opsrouter.data.feedback_repository import InMemoryFeedbackSink
from .classifier import IntentClassifier
from .context_cache import ConversationContextStore
from .extractor import ParameterExtractor
from .fallback import FallbackRouter
from .followup import CONTEXT_CONTINUATION, FollowUpDetector, merge_parameters
from .intent_config import IntentConfigLoader
from .query_type import detect_query_type, determine_table
from .rules import DeterministicTaskRouter
from .types import FollowUpContext, IntentResult, RoutingDecision

logger = logging.getLogger(__name__)

HistoryItem = Union[ConversationTurn, Dict[str, Any]]


class SmartQueryRouter:
    """Routes questions to the sql, rag or optimize engine"""

    def __init__(
        self,
        extractor: Optional[ParameterExtractor] = None,
        intent_config: Optional[IntentConfigLoader] = None,
        feedback_sink=None,
        context_store: Optional[ConversationContextStore] = None,
        rule_router: Optional[DeterministicTaskRouter] = None,
        fallback_router: Optional[FallbackRouter] = None,
    ):
        self.extractor = extractor or ParameterExtractor()
        self.feedback_sink = (
            feedback_sink if feedback_sink is not None else InMemoryFeedbackSink()
        )
        self.classifier = IntentClassifier(
            self.extractor, intent_config, self.feedback_sink
        )
        self.context_store = context_store or ConversationContextStore()
        self.follow_up_detector = FollowUpDetector()
        self.rule_router = rule_router or DeterministicTaskRouter()
        self.fallback_router = fallback_router or FallbackRouter()

    def classify_query(self, text: str) -> IntentResult:
        """Intent only, no routing"""
        return self.classifier.classify(text)

    def classify_and_route(
        self,
        text: str,
        conversation_history: Optional[Iterable[HistoryItem]] = None,
        user_id: Optional[str] = None,
    ) -> RoutingDecision:
        """Classify a question and decide which engine answers it"""
        text = (text or "")[: Config.MAX_QUESTION_LENGTH]
        correlation_id = str(uuid.uuid5(uuid.NAMESPACE_URL, f"opsrouter:{text}"))
        history = [self._as_turn(item) for item in conversation_history or []]

        follow_up = self._resolve_follow_up(text, history, user_id)

        intent_result = self.classifier.classify(text)
        if follow_up and follow_up.is_follow_up and follow_up.previous_intent:
            intent_result = self._inherit(text, intent_result, follow_up)

        decision = self.rule_router.route(text, intent_result)
        if decision is None:
            decision = self.fallback_router.route(text)

        if decision.confidence < Config.CONFIDENCE_THRESHOLDS["MEDIUM"]:
            logger.warning(
                f"[{correlation_id}] Low routing confidence {decision.confidence} "
                f"for '{text[:100]}' (intent {intent_result.intent})"
            )

        if decision.statistical_template is None:
            decision.intent = intent_result.intent
        decision.intent_confidence = intent_result.confidence
        decision.intent_keywords = list(intent_result.matched_keywords)
        decision.parameters = {**decision.parameters, **intent_result.parameters}
        decision.query_type = detect_query_type(text)
        decision.tables = determine_table(text)
        decision.correlation_id = correlation_id
        decision.is_follow_up = bool(follow_up and follow_up.is_follow_up)

        if decision.task == Task.OPTIMIZE.value:
            optimization = self.extractor.extract_optimization_parameters(text)
            for key, value in optimization.items():
                decision.parameters.setdefault(key, value)

        logger.info(
            f"[{correlation_id}] '{text[:100]}' -> {decision.task} "
            f"(intent {decision.intent}, confidence {decision.confidence}, "
            f"template {decision.template_used})"
        )

        if user_id:
            self.record_turn(user_id, text, decision)

        return decision

    def record_turn(
        self,
        user_id: str,
        question: str,
        decision: RoutingDecision,
        answer: Optional[str] = None,
    ) -> None:
        """Remember the latest turn so short follow-ups can build on it"""
        self.context_store.set(
            user_id,
            last_question=question,
            last_intent=decision.intent,
            last_answer=answer,
            last_parameters=decision.parameters,
            route_taken=decision.task,
        )

    def _resolve_follow_up(
        self, text: str, history, user_id: Optional[str]
    ) -> Optional[FollowUpContext]:
        if history:
            context = self.follow_up_detector.detect(text, history)
            if context.is_follow_up and user_id:
                cached = self.context_store.get(user_id)
                if cached and (not context.previous_parameters or not context.previous_intent):
                    if not context.previous_intent and cached.last_intent:
                        context.previous_intent = cached.last_intent
                    if not context.previous_parameters and cached.last_parameters:
                        context.previous_parameters = dict(cached.last_parameters)
                    logger.debug(f"Follow-up for {user_id} filled from cached context")
            return context

        # A cached context with a leading continuation word is a follow-up
        # outright; standalone patterns only apply when history is given.
        if user_id:
            cached = self.context_store.get(user_id)
            if cached and CONTEXT_CONTINUATION.search(text.strip()):
                logger.debug(f"Follow-up for {user_id} detected from cached context")
                return FollowUpContext(
                    is_follow_up=True,
                    confidence=0.8,
                    previous_intent=cached.last_intent,
                    previous_question=cached.last_question,
                    previous_parameters=dict(cached.last_parameters),
                    follow_up_type="modification",
                )
        return None

    def _inherit(
        self, text: str, intent_result: IntentResult, follow_up: FollowUpContext
    ) -> IntentResult:
        constraints = self.follow_up_detector.extract_constraints(text)
        parameters = merge_parameters(
            {**intent_result.parameters, **constraints}, follow_up.previous_parameters
        )
        definition = self.classifier.intent_config.get(follow_up.previous_intent)

        logger.info(
            f"Intent inherited from follow-up: {intent_result.intent} -> "
            f"{follow_up.previous_intent}"
        )
        return dataclasses.replace(
            intent_result,
            intent=follow_up.previous_intent,
            confidence=max(
                intent_result.confidence, Config.FOLLOW_UP_MIN_INTENT_CONFIDENCE
            ),
            parameters=parameters,
            tier=definition.tier if definition else None,
        )

    @staticmethod
    def _as_turn(item: HistoryItem) -> ConversationTurn:
        if isinstance(item, ConversationTurn):
            return item
        return ConversationTurn.from_dict(item)


# Global router instance
_default_router = None


def get_router() -> SmartQueryRouter:
    """Get the shared router, building it on first use"""
    global _default_router
    if _default_router is None:
        _default_router = SmartQueryRouter()
    return _default_router


def classify_and_route(
    text: str,
    conversation_history: Optional[Iterable[HistoryItem]] = None,
    user_id: Optional[str] = None,
) -> RoutingDecision:
    """Route a question with the shared router"""
    return get_router().classify_and_route(text, conversation_history, user_id)
