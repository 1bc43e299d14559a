"""Tests for services/score_aggregator.py - batch rescoring with failure isolation."""

from __future__ import annotations

import pytest

from tablecast.errors import FetchError, ScoringError
from tablecast.services.records import StandingsEntry
from tablecast.services.score_aggregator import ScoreAggregator
from tablecast.utils.scoring import ScoringPolicy
from tests.fakes import (
    InMemoryParticipantStore,
    make_result,
    make_standings,
    participant,
)

STANDINGS = make_standings("A", "B", "C")
RESULTS = [
    make_result(1, "A", "B", 2, 0),
    make_result(2, "B", "C", 1, 1),
    make_result(3, "C", "A", status="SCHEDULED"),
]


def build(participants, **kwargs):
    store = InMemoryParticipantStore(participants, **kwargs)
    return store, ScoreAggregator(store)


class TestRecomputeAll:
    def test_scores_every_participant(self):
        store, aggregator = build(
            [
                participant(
                    "alice",
                    ["A", "B", "C"],
                    {"1": {"home_score": 2, "away_score": 0}, "2": {"home_score": 0, "away_score": 0}},
                ),
                participant("bob", ["C", "B", "A"], {"1": {"home_score": 0, "away_score": 1}}),
            ]
        )

        outcome = aggregator.recompute_all(store.list_participants(), STANDINGS, RESULTS)

        assert outcome.count == 2
        assert outcome.failures == []
        assert store.scores() == {"alice": (60, 4, 64), "bob": (56, 0, 56)}

    def test_total_is_table_plus_fixture(self):
        store, aggregator = build(
            [
                participant("p1", ["B", "A", "C"], {"1": "HOME"}),
                participant("p2", ["A", "C", "B"], {"2": {"home_score": 1, "away_score": 1}}),
                participant("p3", [], {}),
            ]
        )

        outcome = aggregator.recompute_all(store.list_participants(), STANDINGS, RESULTS)

        for score in outcome.updated:
            assert score.total_points == score.table_points + score.fixture_points
        for p in store.participants.values():
            assert p.total_points == p.table_points + p.fixture_points

    def test_malformed_participant_does_not_block_others(self):
        store, aggregator = build(
            [
                participant("good-1", ["A", "B", "C"]),
                participant("short", ["A", "B"], table_points=7, fixture_points=3, total_points=10),
                participant("good-2", ["C", "B", "A"]),
            ]
        )

        outcome = aggregator.recompute_all(store.list_participants(), STANDINGS, RESULTS)

        assert outcome.count == 2
        assert outcome.total == 3
        assert [f.participant_id for f in outcome.failures] == ["short"]
        assert outcome.failures[0].kind == "scoring"
        assert store.writes == ["good-1", "good-2"]
        # Previous scores are left alone for the failing participant
        assert store.scores()["short"] == (7, 3, 10)

    def test_malformed_fixture_prediction_isolated(self):
        store, aggregator = build(
            [
                participant("bad", ["A", "B", "C"], {"1": {"home_score": "two", "away_score": 0}}),
                participant("ok", ["A", "B", "C"]),
            ]
        )

        outcome = aggregator.recompute_all(store.list_participants(), STANDINGS, RESULTS)

        assert outcome.count == 1
        assert outcome.failures[0].participant_id == "bad"

    def test_persistence_failure_isolated(self):
        store, aggregator = build(
            [participant("a", ["A", "B", "C"]), participant("b", ["A", "B", "C"])],
            fail_for={"a"},
        )

        outcome = aggregator.recompute_all(store.list_participants(), STANDINGS, RESULTS)

        assert outcome.count == 1
        assert outcome.failures[0].kind == "persistence"
        assert store.writes == ["b"]

    def test_unexpected_error_isolated(self):
        store, aggregator = build(
            [participant("a", ["A", "B", "C"]), participant("b", ["A", "B", "C"])],
            crash_for={"a"},
        )

        outcome = aggregator.recompute_all(store.list_participants(), STANDINGS, RESULTS)

        assert outcome.count == 1
        assert outcome.failures[0].kind == "unexpected"
        assert "connection reset" in outcome.failures[0].message

    def test_missing_table_prediction_scores_zero(self):
        store, aggregator = build(
            [participant("fixtures-only", None, {"1": {"home_score": 2, "away_score": 0}})]
        )

        outcome = aggregator.recompute_all(store.list_participants(), STANDINGS, RESULTS)

        assert outcome.count == 1
        assert store.scores()["fixtures-only"] == (0, 3, 3)

    def test_configured_league_size_enforced(self):
        store = InMemoryParticipantStore([participant("p", ["A", "B", "C"])])
        aggregator = ScoreAggregator(store, league_size=20)

        outcome = aggregator.recompute_all(store.list_participants(), STANDINGS, RESULTS)

        assert outcome.count == 0
        assert "expected 20" in outcome.failures[0].message

    def test_policy_applies(self):
        store = InMemoryParticipantStore(
            [participant("p", ["A", "B", "C"], {"1": {"home_score": 2, "away_score": 0}})]
        )
        aggregator = ScoreAggregator(store, policy=ScoringPolicy(table_max_points=10, exact_points=5))

        aggregator.recompute_all(store.list_participants(), STANDINGS, RESULTS)

        assert store.scores()["p"] == (30, 5, 35)

    def test_rerun_with_same_inputs_is_idempotent(self):
        store, aggregator = build(
            [participant("p", ["B", "C", "A"], {"2": {"home_score": 1, "away_score": 1}})]
        )

        aggregator.recompute_all(store.list_participants(), STANDINGS, RESULTS)
        first = store.scores()
        aggregator.recompute_all(store.list_participants(), STANDINGS, RESULTS)

        assert store.scores() == first

    def test_new_result_raises_fixture_score(self):
        store, aggregator = build(
            [participant("p", ["A", "B", "C"], {"3": {"home_score": 0, "away_score": 2}})]
        )

        aggregator.recompute_all(store.list_participants(), STANDINGS, RESULTS)
        before = store.scores()["p"][1]

        played = RESULTS[:2] + [make_result(3, "C", "A", 0, 2)]
        aggregator.recompute_all(store.list_participants(), STANDINGS, played)

        assert before == 0
        assert store.scores()["p"][1] == 3

    def test_scores_move_with_the_snapshot(self):
        store, aggregator = build([participant("p", ["A", "B", "C"])])

        aggregator.recompute_all(store.list_participants(), STANDINGS, [])
        assert store.scores()["p"][0] == 60

        aggregator.recompute_all(store.list_participants(), make_standings("C", "B", "A"), [])
        assert store.scores()["p"][0] == 56


class TestRecomputeParticipant:
    def test_returns_and_persists_score(self):
        store, aggregator = build([participant("p", ["A", "B", "C"], {"1": "HOME"})])

        score = aggregator.recompute_participant(store.participants["p"], STANDINGS, RESULTS)

        assert score.to_dict() == {
            "participant_id": "p",
            "table_points": 60,
            "fixture_points": 1,
            "total_points": 61,
            "exact_predictions": 0,
            "result_predictions": 1,
        }
        assert store.writes == ["p"]

    def test_scoring_error_propagates_with_participant_id(self):
        store, aggregator = build([participant("p", ["A", "A", "B"])])

        with pytest.raises(ScoringError) as excinfo:
            aggregator.recompute_participant(store.participants["p"], STANDINGS, RESULTS)

        assert excinfo.value.participant_id == "p"
        assert store.writes == []

    @pytest.mark.parametrize(
        "standings",
        [[], [StandingsEntry("A", 1), StandingsEntry("C", 3)]],
        ids=["empty", "gap"],
    )
    def test_unusable_snapshot_leaves_scores_alone(self, standings):
        store, aggregator = build(
            [participant("p", ["A", "B", "C"], table_points=60, total_points=60)]
        )

        with pytest.raises(FetchError):
            aggregator.recompute_participant(store.participants["p"], standings, RESULTS)

        assert store.writes == []
        assert store.scores()["p"] == (60, 0, 60)
