"""
External collaborators of the scoring core.

The scheduler and aggregator only see the three protocols below; the
concrete database and football-data.org implementations are built in one
place, build_providers(), from application config.
"""

import logging
from typing import List, Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError

from tablecast import db
from tablecast.errors import FetchError, PersistenceError
from tablecast.models import Fixture, Standing, UserProfile
from tablecast.services.records import FixtureResult, ParticipantRecord, StandingsEntry
from tablecast.utils.data_sync import DataSync

logger = logging.getLogger(__name__)


class StandingsProvider(Protocol):
    def get_standings(self, season: str) -> List[StandingsEntry]:
        ...


class ResultsProvider(Protocol):
    def get_fixture_results(self, season: str) -> List[FixtureResult]:
        ...


class ParticipantStore(Protocol):
    def list_participants(self) -> List[ParticipantRecord]:
        ...

    def update_scores(
        self,
        participant_id: str,
        table_points: int,
        fixture_points: int,
        total_points: int,
        exact_predictions: Optional[int] = None,
        result_predictions: Optional[int] = None,
    ) -> None:
        ...


class DatabaseStandingsProvider:
    """Reads the standings table kept current by another process"""

    def get_standings(self, season):
        try:
            return [row.to_entry() for row in Standing.get_for_season(season)]
        except SQLAlchemyError as e:
            raise FetchError(f"Could not read standings for season {season}: {e}") from e


class DatabaseResultsProvider:
    """Reads finished fixtures already stored in the database"""

    def get_fixture_results(self, season):
        try:
            return [fixture.to_result() for fixture in Fixture.get_finished(season)]
        except SQLAlchemyError as e:
            raise FetchError(f"Could not read fixtures for season {season}: {e}") from e


class FootballDataStandingsProvider:
    """Pulls a fresh table from football-data.org and stores it before returning it"""

    def __init__(self, data_sync):
        self.data_sync = data_sync

    def get_standings(self, season):
        return [row.to_entry() for row in self.data_sync.sync_standings(season)]


class FootballDataResultsProvider:
    """Pulls fixtures from football-data.org, stores them, returns the finished ones"""

    def __init__(self, data_sync):
        self.data_sync = data_sync

    def get_fixture_results(self, season):
        fixtures = self.data_sync.sync_fixtures(season)
        return [fixture.to_result() for fixture in fixtures if fixture.is_final]


class SqlParticipantStore:
    """Participant profiles in the application database, one commit per write"""

    def list_participants(self):
        try:
            return [profile.to_record() for profile in UserProfile.query.all()]
        except SQLAlchemyError as e:
            raise FetchError(f"Could not list participants: {e}") from e

    def get_participant(self, participant_id):
        profile = UserProfile.get_by_user_id(participant_id)
        return profile.to_record() if profile else None

    def update_scores(
        self,
        participant_id,
        table_points,
        fixture_points,
        total_points,
        exact_predictions=None,
        result_predictions=None,
    ):
        try:
            profile = UserProfile.get_by_user_id(participant_id)
            if not profile:
                raise PersistenceError(
                    f"Participant {participant_id} not found", participant_id
                )

            profile.apply_scores(
                table_points,
                fixture_points,
                total_points,
                exact_predictions=exact_predictions,
                result_predictions=result_predictions,
            )
            db.session.commit()

        except SQLAlchemyError as e:
            db.session.rollback()
            raise PersistenceError(
                f"Could not update scores for {participant_id}: {e}", participant_id
            ) from e


def build_providers(config, data_sync=None):
    """
    Construct the standings provider, results provider and participant store.

    Returns:
        tuple: (standings_provider, results_provider, participant_store)
    """
    source = config.get("STANDINGS_SOURCE", "api")

    if source == "api":
        data_sync = data_sync or DataSync.from_config(config)
        standings_provider = FootballDataStandingsProvider(data_sync)
        results_provider = FootballDataResultsProvider(data_sync)
    elif source == "database":
        standings_provider = DatabaseStandingsProvider()
        results_provider = DatabaseResultsProvider()
    else:
        raise ValueError(f"Unknown STANDINGS_SOURCE: {source}")

    logger.info(f"Using '{source}' standings source")
    return standings_provider, results_provider, SqlParticipantStore()
