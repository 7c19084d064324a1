# intent_config.py
import logging
import os
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterator, Optional, Tuple

import yaml

from opsrouter.core import ConfigurationError, settings

logger = logging.getLogger(__name__)

VALID_TIERS = (1, 2, 3)


@dataclass(frozen=True)
class IntentDefinition:
    """Configuration for one intent"""

    name: str
    tier: int
    keywords: Tuple[str, ...]
    description: str = ""


class IntentConfigLoader:
    """Loads and validates intent definitions from a YAML file"""

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path or settings.INTENTS_CONFIG_PATH
        self.intents: Tuple[IntentDefinition, ...] = ()
        self._by_name: Dict[str, IntentDefinition] = {}

        self._load_config()

    def _load_config(self) -> None:
        """Load configuration from YAML file"""
        if not os.path.exists(self.config_path):
            raise ConfigurationError(
                f"Intent config file not found at {self.config_path}"
            )

        try:
            with open(self.config_path, encoding="utf-8") as file:
                config = yaml.safe_load(file)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(
                f"Could not read intent config {self.config_path}: {e}"
            ) from e

        if not isinstance(config, dict) or not isinstance(config.get("intents"), list):
            raise ConfigurationError(
                f"Intent config {self.config_path} must contain an 'intents' list"
            )

        intents = [self._build_intent(entry) for entry in config["intents"]]
        by_name = {}
        for intent in intents:
            if intent.name in by_name:
                raise ConfigurationError(f"Duplicate intent name: {intent.name}")
            by_name[intent.name] = intent

        self.intents = tuple(intents)
        self._by_name = MappingProxyType(by_name)

        logger.info(
            f"Loaded intent config: {len(self.intents)} intents, "
            f"{sum(len(i.keywords) for i in self.intents)} keywords"
        )

    @staticmethod
    def _build_intent(entry) -> IntentDefinition:
        if not isinstance(entry, dict) or not entry.get("name"):
            raise ConfigurationError(f"Intent entry without a name: {entry!r}")

        name = str(entry["name"])
        tier = entry.get("tier")
        if tier not in VALID_TIERS:
            raise ConfigurationError(
                f"Intent {name} has tier {tier!r}; expected one of {VALID_TIERS}"
            )

        keywords = tuple(
            str(keyword).strip().lower()
            for keyword in entry.get("keywords") or []
            if str(keyword).strip()
        )
        if not keywords:
            raise ConfigurationError(f"Intent {name} has no keywords")

        return IntentDefinition(
            name=name,
            tier=tier,
            keywords=keywords,
            description=entry.get("description", ""),
        )

    def __iter__(self) -> Iterator[IntentDefinition]:
        return iter(self.intents)

    def get(self, name: str) -> Optional[IntentDefinition]:
        return self._by_name.get(name)

    def keyword_count(self, name: str) -> int:
        intent = self._by_name.get(name)
        return len(intent.keywords) if intent else 1

    def all_keywords(self) -> Tuple[str, ...]:
        """Every distinct keyword, in definition order"""
        seen = {}
        for intent in self.intents:
            for keyword in intent.keywords:
                seen.setdefault(keyword, None)
        return tuple(seen)


# Global instance
_intent_config = None


def get_intent_config() -> IntentConfigLoader:
    """Get global intent configuration instance"""
    global _intent_config
    if _intent_config is None:
        _intent_config = IntentConfigLoader()
    return _intent_config


def initialize_intent_config(config_path: Optional[str] = None) -> IntentConfigLoader:
    """Initialize intent configuration with custom path"""
    global _intent_config
    _intent_config = IntentConfigLoader(config_path)
    return _intent_config
