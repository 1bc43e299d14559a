"""
Score aggregation for Tablecast

Scores every participant against one standings snapshot and one set of
finished fixtures, then writes the results one participant at a time.
A bad participant never stops the rest of the batch: its failure is logged,
recorded in the RecomputeResult and its stored scores are left as they were.
"""

import logging

from tablecast.errors import PersistenceError, ScoringError
from tablecast.services.records import (
    ParticipantScore,
    RecomputeResult,
    ScoreFailure,
    results_by_fixture,
    standings_lookup,
    validate_standings,
)
from tablecast.utils.scoring import (
    ScoringPolicy,
    calculate_table_points,
    score_fixtures,
)

logger = logging.getLogger(__name__)


class ScoreAggregator:
    """Combines table and fixture scores and persists the totals"""

    def __init__(self, store, policy=None, league_size=None):
        self.store = store
        self.policy = policy or ScoringPolicy()
        self.league_size = league_size

    @classmethod
    def from_config(cls, store, config):
        return cls(
            store,
            policy=ScoringPolicy.from_config(config),
            league_size=config.get("LEAGUE_SIZE"),
        )

    def _expected_size(self, lookup):
        if self.league_size:
            return self.league_size
        return len(lookup) or None

    def score_participant(self, participant, lookup, results):
        """
        Compute scores for one participant without side effects.

        Args:
            participant: ParticipantRecord
            lookup: mapping team id -> position
            results: mapping fixture id -> FixtureResult (finalized only)

        Raises:
            ScoringError: the participant's prediction data is malformed
        """
        try:
            # An unsubmitted table prediction scores nothing rather than failing
            if participant.table_prediction:
                table_points = calculate_table_points(
                    participant.table_prediction,
                    lookup,
                    max_points=self.policy.table_max_points,
                    expected_size=self._expected_size(lookup),
                )
            else:
                table_points = 0

            fixture_score = score_fixtures(
                participant.fixture_predictions, results, self.policy
            )
        except ScoringError as e:
            e.participant_id = participant.participant_id
            raise

        return ParticipantScore(
            participant_id=participant.participant_id,
            table_points=table_points,
            fixture_points=fixture_score.points,
            exact_predictions=fixture_score.exact,
            result_predictions=fixture_score.result,
        )

    def _persist(self, score):
        self.store.update_scores(
            score.participant_id,
            score.table_points,
            score.fixture_points,
            score.total_points,
            exact_predictions=score.exact_predictions,
            result_predictions=score.result_predictions,
        )

    def recompute_all(self, participants, standings, results):
        """
        Rescore and persist every participant.

        Args:
            participants: iterable of ParticipantRecord
            standings: sequence of StandingsEntry (the snapshot for this run)
            results: sequence of FixtureResult

        Returns:
            RecomputeResult: successful scores and per-participant failures
        """
        lookup = standings_lookup(standings)
        finished = results_by_fixture(results)
        outcome = RecomputeResult()

        for participant in participants:
            participant_id = participant.participant_id
            try:
                score = self.score_participant(participant, lookup, finished)
                self._persist(score)

            except ScoringError as e:
                logger.warning(f"Skipping {participant.label}: {e}")
                outcome.failures.append(ScoreFailure(participant_id, "scoring", str(e)))
                continue

            except PersistenceError as e:
                logger.error(f"Failed to save scores for {participant.label}: {e}")
                outcome.failures.append(
                    ScoreFailure(participant_id, "persistence", str(e))
                )
                continue

            except Exception as e:
                logger.error(
                    f"Unexpected error scoring {participant.label}: {e}", exc_info=True
                )
                outcome.failures.append(
                    ScoreFailure(participant_id, "unexpected", str(e))
                )
                continue

            logger.debug(
                f"{participant.label}: table {score.table_points}, "
                f"fixture {score.fixture_points}, total {score.total_points}"
            )
            outcome.updated.append(score)

        logger.info(
            f"Recalculated scores for {outcome.count}/{outcome.total} participants"
            + (f", {len(outcome.failures)} failed" if outcome.failures else "")
        )
        return outcome

    def recompute_participant(self, participant, standings, results):
        """Rescore and persist a single participant; errors propagate to the caller

        Raises:
            FetchError: the standings snapshot is empty or incomplete
            ScoringError: the participant's prediction data is malformed
            PersistenceError: the write failed
        """
        validate_standings(standings)
        score = self.score_participant(
            participant, standings_lookup(standings), results_by_fixture(results)
        )
        self._persist(score)
        logger.info(
            f"Recalculated {participant.label}: table {score.table_points}, "
            f"fixture {score.fixture_points}, total {score.total_points}"
        )
        return score
