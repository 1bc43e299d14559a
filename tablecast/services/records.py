"""
Plain value records passed between the providers, the scorers and the
aggregator. They carry only the fields scoring reads or writes, so the
scoring code never touches ORM sessions.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from tablecast.errors import FetchError

FINISHED = "FINISHED"


@dataclass(frozen=True)
class StandingsEntry:
    team_id: str
    position: int
    season: Optional[str] = None


@dataclass(frozen=True)
class FixtureResult:
    fixture_id: str
    home_team_id: str
    away_team_id: str
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    status: str = FINISHED
    season: Optional[str] = None

    @property
    def is_final(self):
        """A result counts only once the match is finished and both scores are known"""
        return (
            self.status == FINISHED
            and self.home_score is not None
            and self.away_score is not None
        )


@dataclass
class ParticipantRecord:
    participant_id: str
    table_prediction: List[str] = field(default_factory=list)
    fixture_predictions: Dict[str, Any] = field(default_factory=dict)
    display_name: Optional[str] = None
    table_points: int = 0
    fixture_points: int = 0
    total_points: int = 0

    @property
    def label(self):
        return self.display_name or self.participant_id


@dataclass(frozen=True)
class ParticipantScore:
    participant_id: str
    table_points: int
    fixture_points: int
    exact_predictions: int = 0
    result_predictions: int = 0

    @property
    def total_points(self):
        return self.table_points + self.fixture_points

    def to_dict(self):
        return {
            "participant_id": self.participant_id,
            "table_points": self.table_points,
            "fixture_points": self.fixture_points,
            "total_points": self.total_points,
            "exact_predictions": self.exact_predictions,
            "result_predictions": self.result_predictions,
        }


@dataclass(frozen=True)
class ScoreFailure:
    participant_id: str
    kind: str  # "scoring" | "persistence" | "unexpected"
    message: str

    def to_dict(self):
        return {
            "participant_id": self.participant_id,
            "kind": self.kind,
            "message": self.message,
        }


@dataclass
class RecomputeResult:
    updated: List[ParticipantScore] = field(default_factory=list)
    failures: List[ScoreFailure] = field(default_factory=list)

    @property
    def count(self):
        return len(self.updated)

    @property
    def total(self):
        return len(self.updated) + len(self.failures)


@dataclass
class RefreshResult:
    success: bool
    count: int = 0
    total: int = 0
    error: Optional[str] = None
    failures: List[ScoreFailure] = field(default_factory=list)

    def to_dict(self):
        payload = {"success": self.success, "count": self.count}
        if self.error:
            payload["error"] = self.error
        return payload


def standings_lookup(standings):
    """Map team id -> position for a sequence of StandingsEntry"""
    return {entry.team_id: entry.position for entry in standings}


def results_by_fixture(results):
    """Map fixture id (as string) -> FixtureResult, keeping only finalized results"""
    return {str(result.fixture_id): result for result in results if result.is_final}


def validate_standings(standings):
    """Reject snapshots that must not be scored against

    A usable snapshot lists each team once and its positions run 1..N with no
    gaps, so a table missing a team is refused rather than scored.
    """
    if not standings:
        raise FetchError("Standings snapshot is empty")

    teams = set()
    positions = set()
    for entry in standings:
        if entry.team_id in teams:
            raise FetchError(f"Standings list {entry.team_id} more than once")
        if (
            isinstance(entry.position, bool)
            or not isinstance(entry.position, int)
            or entry.position < 1
        ):
            raise FetchError(f"Invalid position {entry.position!r} for {entry.team_id}")
        if entry.position in positions:
            raise FetchError(f"Position {entry.position} is held by more than one team")
        teams.add(entry.team_id)
        positions.add(entry.position)

    if sorted(positions) != list(range(1, len(standings) + 1)):
        missing = sorted(set(range(1, len(standings) + 1)) - positions)
        raise FetchError(f"Standings snapshot is incomplete, missing positions {missing}")
