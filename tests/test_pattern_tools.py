import os

os.environ.setdefault("DB_BACKEND", "sqlite")
os.environ.setdefault("SHELF_GIT_SNAPSHOTS", "false")

import pytest

import shelf.config as config
from shelf.entities import Outcome, PatternExample
from shelf.errors import StorageUnavailableError
from shelf.services import pattern_tools
from shelf.services.shared import bind_store, resolve_store


def test_search_patterns_payload(json_store):
    result = pattern_tools.shelf_search_patterns(context="a complex topic for a beginner", store=json_store)
    assert result["status"] == "ok"
    assert result["count"] == 1
    assert result["results"][0]["pattern"]["id"] == "progressive-disclosure"
    assert result["results"][0]["reason"] == "Matches contexts: complex topic"


def test_search_patterns_limit(json_store):
    result = pattern_tools.shelf_search_patterns(
        context="complex topic and an abstract idea",
        limit=1,
        store=json_store,
    )
    assert result["count"] == 1


@pytest.mark.parametrize("limit", [0, -1, True, 101])
def test_search_patterns_rejects_bad_limit(json_store, limit):
    result = pattern_tools.shelf_search_patterns(context="anything", limit=limit, store=json_store)
    assert result["status"] == "error"
    assert result["field"] == "limit"


def test_validation_errors_are_payloads(json_store):
    result = pattern_tools.shelf_search_patterns(context="   ", store=json_store)
    assert result == {
        "status": "error",
        "error_type": "validation_error",
        "tool": "shelf_search_patterns",
        "field": "context",
        "message": "context must be a non-empty string",
    }


def test_apply_pattern(json_store):
    result = pattern_tools.shelf_apply_pattern(pattern_id="progressive-disclosure", store=json_store)
    assert result["status"] == "applied"
    assert result["pattern"]["usageCount"] == 1
    assert result["example"]["input"] == "Explain recursion"

    missing = pattern_tools.shelf_apply_pattern(pattern_id="missing", store=json_store)
    assert missing["status"] == "not_found"
    assert missing["pattern_id"] == "missing"


def test_reinforce_pattern(json_store):
    result = pattern_tools.shelf_reinforce_pattern(
        pattern_id="progressive-disclosure",
        success=True,
        notes="worked well",
        store=json_store,
    )
    assert result["status"] == "reinforced"
    assert result["outcome"] == "successful"
    assert result["confidence"] == pytest.approx(0.9)

    missing = pattern_tools.shelf_reinforce_pattern(pattern_id="missing", success=False, store=json_store)
    assert missing["status"] == "not_found"

    invalid = pattern_tools.shelf_reinforce_pattern(pattern_id="progressive-disclosure", success="yes", store=json_store)
    assert invalid["field"] == "success"


def test_list_and_get_patterns(json_store):
    listed = pattern_tools.shelf_list_patterns(store=json_store)
    assert listed["count"] == 2
    assert listed["results"][0]["id"] == "concrete-before-abstract"

    found = pattern_tools.shelf_get_pattern(pattern_id="concrete-before-abstract", store=json_store)
    assert found["status"] == "found"
    assert found["pattern"]["relations"][0]["patternId"] == "progressive-disclosure"


def test_save_pattern_create_then_update_keeps_usage(json_store):
    created = pattern_tools.shelf_save_pattern(
        pattern_id="retry-backoff",
        name="Retry With Backoff",
        context=["flaky network"],
        problem="Transient failures",
        solution="Retry with exponential backoff",
        examples=[{"input": "timeout", "output": "retried", "outcome": "success"}],
        store=json_store,
    )
    assert created["status"] == "created"
    assert created["pattern"]["confidence"] == 0.5

    pattern_tools.shelf_apply_pattern(pattern_id="retry-backoff", store=json_store)
    updated = pattern_tools.shelf_save_pattern(
        pattern_id="retry-backoff",
        name="Retry With Backoff",
        context=["flaky network", "rate limits"],
        problem="Transient failures",
        solution="Retry with jittered exponential backoff",
        confidence=0.7,
        store=json_store,
    )
    assert updated["status"] == "updated"
    assert updated["pattern"]["usageCount"] == 1
    assert updated["pattern"]["lastUsedAt"] is not None
    assert json_store.get_pattern("retry-backoff").confidence == 0.7


def test_save_pattern_validation(json_store):
    low = pattern_tools.shelf_save_pattern(
        pattern_id="p",
        name="n",
        context=["c"],
        problem="p",
        solution="s",
        confidence=0.05,
        store=json_store,
    )
    assert low["field"] == "confidence"

    no_context = pattern_tools.shelf_save_pattern(
        pattern_id="p", name="n", context=[], problem="p", solution="s", store=json_store
    )
    assert no_context["field"] == "context"

    bad_relation = pattern_tools.shelf_save_pattern(
        pattern_id="p",
        name="n",
        context=["c"],
        problem="p",
        solution="s",
        relations=[{"type": "depends_on", "patternId": "x", "strength": 0.5}],
        store=json_store,
    )
    assert bad_relation["field"] == "relations"


def test_save_episode_and_find_similar(json_store):
    saved = pattern_tools.shelf_save_episode(
        context="debugging a flaky test",
        actions=["rerun", "bisect"],
        outcome="solved",
        pattern_ids=["progressive-disclosure"],
        store=json_store,
    )
    assert saved["status"] == "stored"
    assert saved["episode"]["id"].startswith("ep-")
    assert saved["episode"]["patternIds"] == ["progressive-disclosure"]

    similar = pattern_tools.shelf_find_similar(context="flaky test", store=json_store)
    assert similar["count"] == 1
    assert similar["results"][0]["id"] == saved["episode"]["id"]


def test_extract_pattern(json_store):
    for episode_id in ("e1", "e2"):
        pattern_tools.shelf_save_episode(
            context="onboarding walkthrough",
            actions=["demo", "exercise"],
            outcome="success",
            episode_id=episode_id,
            store=json_store,
        )

    extracted = pattern_tools.shelf_extract_pattern(
        episode_ids=["e1", "e2"],
        pattern_name="Demo Then Exercise",
        problem_statement="New users forget steps",
        store=json_store,
    )
    assert extracted["status"] == "extracted"
    assert extracted["pattern"]["id"] == "demo-then-exercise"
    assert extracted["pattern"]["context"] == ["onboarding", "walkthrough"]

    insufficient = pattern_tools.shelf_extract_pattern(
        episode_ids=["e1"],
        pattern_name="Too Few",
        problem_statement="one episode",
        store=json_store,
    )
    assert insufficient["status"] == "insufficient_episodes"


def test_store_markdown_pattern_tool(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "PATTERNS_DIR", str(tmp_path / "patterns"))
    monkeypatch.setattr(config, "GIT_SNAPSHOTS_ENABLED", False)

    result = pattern_tools.shelf_store_markdown_pattern(category="caching", pattern="# Cache aside")
    assert result["status"] == "written"
    assert result["message"] == "Pattern stored in caching.md"
    assert result["committed"] is False

    rejected = pattern_tools.shelf_store_markdown_pattern(category="../escape", pattern="# nope")
    assert rejected["status"] == "error"
    assert rejected["field"] == "category"


def test_tools_use_bound_store(json_store):
    bind_store(json_store)
    try:
        assert resolve_store() is json_store
        assert pattern_tools.shelf_list_patterns()["count"] == 2
    finally:
        bind_store(None)

    with pytest.raises(StorageUnavailableError):
        pattern_tools.shelf_list_patterns()


def test_example_outcome_defaults_to_partial():
    assert PatternExample(input="in", output="out").outcome == Outcome.partial
    assert PatternExample.from_dict({"input": "in", "output": "out"}).outcome == Outcome.partial
