"""Optional relabelling of extracted line items.

A classifier sees ``(description, category, cost)`` per item and may answer
with a replacement category and/or a cleaned description. It never sees or
changes quantities or prices, and cost is read-only context. Results are
applied after extraction with :func:`apply_classifications`.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, replace
from typing import List, Mapping, Optional, Protocol, Sequence

import openai
from openai import OpenAI

from .cells import contains_any_phrase, normalize_text
from .config import ClassifierConfig, ParserConfig
from .models import Category, ExtractionResult

LOGGER = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = (
    "You are an experienced construction estimator cleaning up budget line items. "
    "For each item decide the best category from: subcontractor, materials, "
    "labor_internal, equipment, management, other. Optionally return a cleaned, "
    "title-cased description without typos. Never return amounts. Answer with JSON "
    'of the form {"items": [{"index": 0, "category": "...", "description": "..."}]}.'
)


@dataclass(frozen=True)
class ClassificationRequest:
    description: str
    category: Category
    cost: str


@dataclass(frozen=True)
class ItemClassification:
    category: Optional[Category] = None
    description: Optional[str] = None


class LineItemClassifier(Protocol):
    def classify(self, requests: Sequence[ClassificationRequest]) -> List[Optional[ItemClassification]]:
        ...


def requests_for(result: ExtractionResult) -> List[ClassificationRequest]:
    return [
        ClassificationRequest(description=item.description, category=item.category, cost=str(item.cost))
        for item in result.items
    ]


def apply_classifications(
    result: ExtractionResult,
    classifications: Sequence[Optional[ItemClassification]],
) -> ExtractionResult:
    """Return a copy of ``result`` with categories and descriptions relabelled.

    Cost, price, quantity and totals are carried over untouched.
    """

    if len(classifications) != len(result.items):
        raise ValueError(
            f"Expected {len(result.items)} classifications, got {len(classifications)}"
        )
    items = []
    for item, classification in zip(result.items, classifications):
        if classification is None:
            items.append(item)
            continue
        description = (classification.description or "").strip() or item.description
        category = classification.category or item.category
        items.append(replace(item, category=category, description=description))
    return replace(result, items=tuple(items))


class KeywordClassifier:
    """Deterministic fallback: management keywords in the description win."""

    def __init__(self, config: ParserConfig | None = None) -> None:
        self.config = config or ParserConfig()

    def classify(self, requests: Sequence[ClassificationRequest]) -> List[Optional[ItemClassification]]:
        answers: List[Optional[ItemClassification]] = []
        for request in requests:
            keyword = contains_any_phrase(normalize_text(request.description), self.config.management_keywords)
            if keyword and request.category is not Category.MANAGEMENT:
                answers.append(ItemClassification(category=Category.MANAGEMENT))
            else:
                answers.append(None)
        return answers


class OpenAIClassifier:
    """Asks an OpenAI chat model for categories and cleaned descriptions.

    Any failure (missing key, API error, malformed answer) is logged and
    leaves every item unchanged.
    """

    def __init__(
        self,
        config: ClassifierConfig,
        client: object | None = None,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self.config = config
        self._client = client
        self._env = env

    def _get_client(self):
        if self._client is not None:
            return self._client
        api_key = self.config.resolve_api_key(self._env)
        if not api_key:
            LOGGER.warning("Classification enabled but %s is not set; skipping", self.config.api_key_env)
            return None
        try:
            self._client = OpenAI(api_key=api_key)
        except openai.OpenAIError as exc:
            LOGGER.error("Failed to initialise OpenAI client: %s", exc)
            return None
        return self._client

    def classify(self, requests: Sequence[ClassificationRequest]) -> List[Optional[ItemClassification]]:
        answers: List[Optional[ItemClassification]] = [None] * len(requests)
        if not requests:
            return answers
        client = self._get_client()
        if client is None:
            return answers

        batch = list(requests[: self.config.max_items])
        if len(batch) < len(requests):
            LOGGER.warning("Classifying first %d of %d items", len(batch), len(requests))
        payload = [
            {"index": i, "description": r.description, "category": r.category.value, "cost": r.cost}
            for i, r in enumerate(batch)
        ]
        try:
            response = client.chat.completions.create(
                model=self.config.model,
                messages=[
                    {"role": "system", "content": self.config.system_prompt or DEFAULT_SYSTEM_PROMPT},
                    {"role": "user", "content": json.dumps({"items": payload})},
                ],
                response_format={"type": "json_object"},
            )
        except openai.OpenAIError as exc:
            LOGGER.warning("Classification request failed; items left unchanged: %s", exc)
            return answers

        text = self._extract_response_text(response)
        if not text:
            LOGGER.warning("Classification response contained no text")
            return answers
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            LOGGER.warning("Classification response was not JSON: %s", exc)
            return answers

        for entry in data.get("items", []) if isinstance(data, dict) else []:
            if not isinstance(entry, dict):
                continue
            index = entry.get("index")
            if not isinstance(index, int) or not 0 <= index < len(batch):
                continue
            answers[index] = self._parse_entry(entry)
        return answers

    @staticmethod
    def _parse_entry(entry: Mapping[str, object]) -> Optional[ItemClassification]:
        category: Optional[Category] = None
        raw_category = str(entry.get("category") or "").strip().lower()
        if raw_category:
            try:
                category = Category(raw_category)
            except ValueError:
                LOGGER.debug("Ignoring unknown category %r", raw_category)
        description = str(entry.get("description") or "").strip() or None
        if category is None and description is None:
            return None
        return ItemClassification(category=category, description=description)

    @staticmethod
    def _extract_response_text(response: object) -> Optional[str]:
        text: Optional[str] = None
        if hasattr(response, "output_text"):
            text = getattr(response, "output_text")
        elif hasattr(response, "choices"):
            choices = getattr(response, "choices")
            if choices:
                choice = choices[0]
                if isinstance(choice, dict):
                    text = choice.get("message", {}).get("content")
                else:
                    message = getattr(choice, "message", None)
                    if message and isinstance(message, dict):
                        text = message.get("content")
                    elif message and hasattr(message, "content"):
                        text = message.content
        return text.strip() if isinstance(text, str) and text.strip() else None


def build_classifier(
    classifier_config: ClassifierConfig,
    parser_config: ParserConfig | None = None,
) -> Optional[LineItemClassifier]:
    if not classifier_config.enabled:
        return None
    if classifier_config.provider == "openai":
        return OpenAIClassifier(classifier_config)
    if classifier_config.provider == "keywords":
        return KeywordClassifier(parser_config)
    LOGGER.warning("Unknown classifier provider %r; classification disabled", classifier_config.provider)
    return None


def enrich_result(
    result: ExtractionResult,
    classifier: Optional[LineItemClassifier],
    enabled: bool = True,
) -> ExtractionResult:
    if not enabled or classifier is None or not result.items:
        return result
    classifications = classifier.classify(requests_for(result))
    return apply_classifications(result, classifications)


__all__ = [
    "ClassificationRequest",
    "ItemClassification",
    "KeywordClassifier",
    "LineItemClassifier",
    "OpenAIClassifier",
    "apply_classifications",
    "build_classifier",
    "enrich_result",
    "requests_for",
]
