"""
Scoring functions for Tablecast

Table predictions are scored by position difference against the current
standings; fixture predictions by comparing scorelines and result classes
against finished matches. Both are pure functions of their inputs.
For the per-participant orchestration see tablecast/services/score_aggregator.py.
"""

from collections import namedtuple
from collections.abc import Mapping, Sequence

from tablecast.errors import ScoringError

DEFAULT_TABLE_MAX_POINTS = 20
DEFAULT_EXACT_POINTS = 3
DEFAULT_RESULT_POINTS = 1

HOME = "HOME"
DRAW = "DRAW"
AWAY = "AWAY"
RESULT_CLASSES = (HOME, DRAW, AWAY)

FixtureScore = namedtuple("FixtureScore", ["points", "exact", "result"])


class ScoringPolicy:
    """Point values used by the scorers"""

    def __init__(
        self,
        table_max_points=DEFAULT_TABLE_MAX_POINTS,
        exact_points=DEFAULT_EXACT_POINTS,
        result_points=DEFAULT_RESULT_POINTS,
    ):
        if table_max_points < 0 or exact_points < 0 or result_points < 0:
            raise ValueError("Point values must not be negative")
        if result_points > exact_points:
            raise ValueError(
                f"Result points ({result_points}) cannot exceed exact points ({exact_points})"
            )

        self.table_max_points = table_max_points
        self.exact_points = exact_points
        self.result_points = result_points

    @classmethod
    def from_config(cls, config):
        return cls(
            table_max_points=config.get(
                "TABLE_MAX_POINTS_PER_TEAM", DEFAULT_TABLE_MAX_POINTS
            ),
            exact_points=config.get("FIXTURE_EXACT_POINTS", DEFAULT_EXACT_POINTS),
            result_points=config.get("FIXTURE_RESULT_POINTS", DEFAULT_RESULT_POINTS),
        )

    def __repr__(self):
        return (
            f"<ScoringPolicy table_max={self.table_max_points} "
            f"exact={self.exact_points} result={self.result_points}>"
        )


def validate_table_prediction(table_prediction, expected_size=None):
    """
    Check that a table prediction is a proper ordering of distinct team ids.

    Raises:
        ScoringError: not a sequence, blank or duplicate team, or wrong length
    """
    if isinstance(table_prediction, (str, bytes)) or not isinstance(
        table_prediction, Sequence
    ):
        raise ScoringError(
            f"Table prediction must be a list of team ids, got {type(table_prediction).__name__}"
        )

    seen = set()
    for rank, team_id in enumerate(table_prediction, start=1):
        if not isinstance(team_id, str) or not team_id:
            raise ScoringError(f"Invalid team id at position {rank}: {team_id!r}")
        if team_id in seen:
            raise ScoringError(f"Team {team_id} predicted more than once")
        seen.add(team_id)

    if expected_size is not None and len(table_prediction) != expected_size:
        raise ScoringError(
            f"Table prediction has {len(table_prediction)} teams, expected {expected_size}"
        )


def calculate_table_points(
    table_prediction,
    standings,
    max_points=DEFAULT_TABLE_MAX_POINTS,
    expected_size=None,
):
    """
    Calculate table score for one predicted ordering.

    Each team earns max(0, max_points - |predicted rank - actual position|);
    teams missing from the standings earn nothing.

    Args:
        table_prediction: team ids, first place first
        standings: mapping team id -> current position (1 = top)
        max_points: points for a team placed exactly right
        expected_size: required prediction length, if known

    Returns:
        int: summed points over all predicted ranks
    """
    validate_table_prediction(table_prediction, expected_size)

    total_points = 0
    for rank, team_id in enumerate(table_prediction, start=1):
        position = standings.get(team_id)
        if position is None:
            continue

        total_points += max(0, max_points - abs(rank - position))

    return total_points


def classify_result(home_score, away_score):
    """Reduce a scoreline to HOME, DRAW or AWAY"""
    if home_score > away_score:
        return HOME
    if home_score < away_score:
        return AWAY
    return DRAW


def _parse_goals(value, fixture_id, side):
    # bool is an int subclass; True is not a goal count
    if isinstance(value, bool):
        raise ScoringError(f"Fixture {fixture_id}: invalid {side} score {value!r}")
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value)
    if not isinstance(value, int) or value < 0:
        raise ScoringError(f"Fixture {fixture_id}: invalid {side} score {value!r}")
    return value


def parse_fixture_prediction(fixture_id, prediction):
    """
    Normalize one predicted outcome.

    Accepts a scoreline mapping {"home_score": int, "away_score": int} or a
    result class string ("HOME", "DRAW", "AWAY").

    Returns:
        tuple: (home_score, away_score, result_class); scores are None for
        result-class predictions
    """
    if isinstance(prediction, str):
        result_class = prediction.strip().upper()
        if result_class not in RESULT_CLASSES:
            raise ScoringError(
                f"Fixture {fixture_id}: unknown result class {prediction!r}"
            )
        return None, None, result_class

    if not isinstance(prediction, Mapping):
        raise ScoringError(
            f"Fixture {fixture_id}: prediction must be a scoreline or result class"
        )

    if "home_score" not in prediction or "away_score" not in prediction:
        raise ScoringError(f"Fixture {fixture_id}: prediction is missing a score")

    home_score = _parse_goals(prediction["home_score"], fixture_id, "home")
    away_score = _parse_goals(prediction["away_score"], fixture_id, "away")
    return home_score, away_score, classify_result(home_score, away_score)


def score_fixture_prediction(fixture_id, prediction, result, policy):
    """
    Score a single prediction against a finished fixture.

    Returns:
        tuple: (points, is_exact, is_result)
    """
    home_score, away_score, predicted_class = parse_fixture_prediction(
        fixture_id, prediction
    )

    if home_score == result.home_score and away_score == result.away_score:
        return policy.exact_points, True, False

    if predicted_class == classify_result(result.home_score, result.away_score):
        return policy.result_points, False, True

    return 0, False, False


def score_fixtures(fixture_predictions, results, policy=None):
    """
    Score all fixture predictions of one participant.

    Args:
        fixture_predictions: mapping fixture id -> predicted outcome
        results: mapping fixture id -> FixtureResult
        policy: ScoringPolicy, defaults apply when omitted

    Returns:
        FixtureScore: points plus exact and result-only hit counts
    """
    policy = policy or ScoringPolicy()

    if not fixture_predictions:
        return FixtureScore(0, 0, 0)
    if not isinstance(fixture_predictions, Mapping):
        raise ScoringError("Fixture predictions must be a mapping of fixture id to outcome")

    points = exact = result_only = 0
    for fixture_id, prediction in fixture_predictions.items():
        result = results.get(str(fixture_id))
        # Unplayed or unknown fixtures score nothing
        if result is None or not result.is_final:
            continue

        earned, is_exact, is_result = score_fixture_prediction(
            fixture_id, prediction, result, policy
        )
        points += earned
        exact += int(is_exact)
        result_only += int(is_result)

    return FixtureScore(points, exact, result_only)


def calculate_fixture_points(fixture_predictions, results, policy=None):
    """Fixture score as a plain integer"""
    return score_fixtures(fixture_predictions, results, policy).points
