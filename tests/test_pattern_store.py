from datetime import timedelta

import pytest

from shelf.entities import (
    Episode,
    Outcome,
    Pattern,
    PatternExample,
    PatternRelation,
    RelationType,
    utcnow,
)


def test_initialize_seeds_sample_patterns_once(store):
    ids = {pattern.id for pattern in store.get_all_patterns()}
    assert ids == {"progressive-disclosure", "concrete-before-abstract"}

    store.initialize()
    assert len(store.get_all_patterns()) == 2


def test_save_and_get_pattern_round_trip(store):
    pattern = Pattern(
        id="cache-aside",
        name="Cache Aside",
        context=["caching", "read heavy"],
        problem="Database overloaded by reads",
        solution="Read through the cache, fill on miss",
        examples=[PatternExample(input="slow page", output="added redis", outcome=Outcome.success)],
        relations=[
            PatternRelation(type=RelationType.requires, pattern_id="progressive-disclosure", strength=0.4)
        ],
        confidence=0.7,
    )
    store.save_pattern(pattern)

    loaded = store.get_pattern("cache-aside")
    assert loaded.to_dict() == pattern.to_dict()
    assert store.get_pattern("missing") is None


def test_save_pattern_replaces_existing(store):
    pattern = store.get_pattern("progressive-disclosure")
    pattern.solution = "One idea at a time"
    store.save_pattern(pattern)

    assert store.get_pattern("progressive-disclosure").solution == "One idea at a time"
    assert len(store.get_all_patterns()) == 2


def test_returned_patterns_are_copies(store):
    pattern = store.get_pattern("progressive-disclosure")
    pattern.context.append("mutated")
    assert "mutated" not in store.get_pattern("progressive-disclosure").context


def test_search_patterns(store):
    results = store.search_patterns("explaining a complex topic")
    assert [result.pattern.id for result in results] == ["progressive-disclosure"]
    assert results[0].relevance == pytest.approx(0.3 * 0.85)
    assert results[0].reason == "Matches contexts: complex topic"

    assert store.search_patterns("kubernetes networking") == []


def test_apply_pattern_tracks_usage(store):
    applied = store.apply_pattern("concrete-before-abstract")
    assert applied.usage_count == 1
    assert applied.last_used_at is not None

    again = store.apply_pattern("concrete-before-abstract")
    assert again.usage_count == 2
    assert again.last_used_at >= applied.last_used_at
    assert store.get_pattern("concrete-before-abstract").usage_count == 2


def test_apply_unknown_pattern_returns_none(store):
    assert store.apply_pattern("missing") is None


def test_reinforce_pattern_adjusts_confidence(store):
    store.reinforce_pattern("progressive-disclosure", True)
    assert store.get_pattern("progressive-disclosure").confidence == pytest.approx(0.9)

    store.reinforce_pattern("progressive-disclosure", False)
    assert store.get_pattern("progressive-disclosure").confidence == pytest.approx(0.88)


def test_reinforce_pattern_clamps_confidence(store):
    for _ in range(5):
        store.reinforce_pattern("concrete-before-abstract", True)
    assert store.get_pattern("concrete-before-abstract").confidence == pytest.approx(1.0)

    for _ in range(60):
        store.reinforce_pattern("progressive-disclosure", False)
    assert store.get_pattern("progressive-disclosure").confidence == pytest.approx(0.1)


def test_reinforce_unknown_pattern_is_ignored(store):
    store.reinforce_pattern("missing", True)
    assert store.get_pattern("missing") is None


def test_find_similar_episodes(store):
    now = utcnow()
    store.save_episode(
        Episode(id="e1", context="debugging flaky test", actions=["rerun"], outcome="solved",
                timestamp=now - timedelta(minutes=2))
    )
    store.save_episode(
        Episode(id="e2", context="writing release notes", actions=["draft"], outcome="done",
                timestamp=now - timedelta(minutes=1))
    )
    store.save_episode(
        Episode(id="e3", context="flaky test", actions=["quarantine"], outcome="partial",
                timestamp=now)
    )

    similar = store.find_similar_episodes("flaky test")
    assert [episode.id for episode in similar] == ["e3", "e1"]
    assert store.find_similar_episodes("flaky test", limit=1)[0].id == "e3"
    assert store.find_similar_episodes("quantum computing") == []


def test_extract_pattern_from_episodes_links_related_patterns(store):
    store.save_episode(
        Episode(id="e1", context="complex topic explanation", actions=["outline", "example"], outcome="understood")
    )
    store.save_episode(
        Episode(id="e2", context="complex topic review", actions=["outline", "example"], outcome="success")
    )

    pattern = store.extract_pattern_from_episodes(["e1", "e2"], "Outline First", "Complex topics lose people")

    assert pattern.id == "outline-first"
    assert pattern.confidence == pytest.approx(0.9)
    assert pattern.solution == "Apply the following action sequence: outline → example"
    assert [(relation.type, relation.pattern_id, relation.strength) for relation in pattern.relations] == [
        (RelationType.leads_to, "progressive-disclosure", 0.5)
    ]
    assert store.get_pattern("outline-first").to_dict() == pattern.to_dict()


def test_extract_pattern_skips_unknown_episodes(store):
    store.save_episode(Episode(id="e1", context="complex topic", actions=["outline"], outcome="success"))

    assert store.extract_pattern_from_episodes(["e1", "missing"], "Nope", "not enough") is None
    assert store.extract_pattern_from_episodes(["e1", "e1"], "Nope", "duplicates") is None
    assert len(store.get_all_patterns()) == 2


def test_search_patterns_for_new_learner(store):
    results = store.search_patterns("user is learning something new")

    assert [result.pattern.id for result in results] == ["progressive-disclosure"]
    assert results[0].relevance == pytest.approx(0.3 * 0.85)
    assert results[0].reason == "Matches contexts: user is learning"
