# Query package
"""Query understanding and routing for operational questions."""

from .classifier import IntentClassifier
from .context_cache import ConversationContextStore
from .dates import DateParser
from .extractor import ParameterExtractor
from .fallback import FallbackRouter
from .followup import FollowUpDetector, merge_parameters
from .intent_config import IntentConfigLoader, get_intent_config, initialize_intent_config
from .matcher import PatternMatcher
from .query_type import detect_query_type, determine_table
from .router import SmartQueryRouter, classify_and_route, get_router
from .rules import DeterministicTaskRouter, RoutingRule
from .types import (
    ConversationContext,
    FollowUpContext,
    IntentCandidate,
    IntentResult,
    ParsedDate,
    RoutingDecision,
    TableSelection,
)

__all__ = [
    # Pipeline components
    "DateParser",
    "ParameterExtractor",
    "PatternMatcher",
    "IntentClassifier",
    "DeterministicTaskRouter",
    "RoutingRule",
    "FallbackRouter",
    "FollowUpDetector",
    "merge_parameters",
    "ConversationContextStore",
    "SmartQueryRouter",
    "classify_and_route",
    "get_router",
    "detect_query_type",
    "determine_table",
    # Configuration
    "IntentConfigLoader",
    "get_intent_config",
    "initialize_intent_config",
    # Types
    "ParsedDate",
    "IntentCandidate",
    "IntentResult",
    "RoutingDecision",
    "TableSelection",
    "FollowUpContext",
    "ConversationContext",
]
