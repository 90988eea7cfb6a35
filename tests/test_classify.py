from __future__ import annotations

import json
from decimal import Decimal
from types import SimpleNamespace

import openai
import pytest

from budgetsheet import extract_budget_sheet
from budgetsheet.classify import (
    ItemClassification,
    KeywordClassifier,
    OpenAIClassifier,
    apply_classifications,
    build_classifier,
    enrich_result,
    requests_for,
)
from budgetsheet.config import ClassifierConfig, ParserConfig
from budgetsheet.models import Category


class _FakeCompletions:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _client(completions: _FakeCompletions):
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


@pytest.fixture
def result(grid_factory):
    grid = grid_factory(
        [
            ["demo n haul", 1500, 300],
            ["Project manager", 2000],
        ]
    )
    return extract_budget_sheet(grid)


def test_apply_classifications_changes_only_labels(result):
    relabelled = apply_classifications(
        result,
        [ItemClassification(description="Demo and Haul (Labor)"), None, ItemClassification(category=Category.OTHER)],
    )
    assert relabelled.items[0].description == "Demo and Haul (Labor)"
    assert relabelled.items[2].category is Category.OTHER
    for before, after in zip(result.items, relabelled.items):
        assert after.cost == before.cost
        assert after.price == before.price
        assert after.quantity == before.quantity
    assert relabelled.total_cost == result.total_cost
    assert relabelled.total_price == result.total_price


def test_apply_classifications_rejects_wrong_length(result):
    with pytest.raises(ValueError):
        apply_classifications(result, [None])


def test_keyword_classifier_marks_management(result):
    answers = KeywordClassifier(ParserConfig()).classify(requests_for(result))
    assert answers[:2] == [None, None]
    assert answers[2] == ItemClassification(category=Category.MANAGEMENT)


def test_openai_classifier_parses_json_answer(result):
    content = json.dumps(
        {
            "items": [
                {"index": 0, "description": "Demo & Haul (Labor)"},
                {"index": 2, "category": "management"},
                {"index": 7, "category": "materials"},
                {"index": 1, "category": "not-a-category"},
            ]
        }
    )
    completions = _FakeCompletions(content=content)
    classifier = OpenAIClassifier(ClassifierConfig(enabled=True, provider="openai"), client=_client(completions))

    enriched = enrich_result(result, classifier)

    assert enriched.items[0].description == "Demo & Haul (Labor)"
    assert enriched.items[1] == result.items[1]
    assert enriched.items[2].category is Category.MANAGEMENT
    assert enriched.items[2].cost == Decimal("2000")
    sent = json.loads(completions.calls[0]["messages"][1]["content"])
    assert [entry["index"] for entry in sent["items"]] == [0, 1, 2]
    assert completions.calls[0]["model"] == "gpt-4o-mini"


@pytest.mark.parametrize(
    "completions",
    [
        _FakeCompletions(content="not json"),
        _FakeCompletions(content=""),
        _FakeCompletions(error=openai.OpenAIError("boom")),
    ],
)
def test_openai_failures_leave_items_unchanged(result, completions):
    classifier = OpenAIClassifier(ClassifierConfig(enabled=True, provider="openai"), client=_client(completions))
    assert enrich_result(result, classifier) == result


def test_openai_classifier_without_key_is_a_no_op(result):
    classifier = OpenAIClassifier(ClassifierConfig(enabled=True, provider="openai"), env={})
    assert enrich_result(result, classifier) == result


def test_build_classifier():
    assert build_classifier(ClassifierConfig(enabled=False)) is None
    assert isinstance(build_classifier(ClassifierConfig(enabled=True, provider="keywords")), KeywordClassifier)
    assert isinstance(build_classifier(ClassifierConfig(enabled=True, provider="openai")), OpenAIClassifier)
    assert build_classifier(ClassifierConfig(enabled=True, provider="magic")) is None


def test_enrich_disabled_returns_same_result(result):
    assert enrich_result(result, KeywordClassifier(), enabled=False) is result
