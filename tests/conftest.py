"""Pytest fixtures: a Flask app on in-memory SQLite and seeding helpers."""

from __future__ import annotations

import pytest

from tablecast import create_app, db
from tablecast.models import Fixture, Standing, UserProfile


@pytest.fixture
def app():
    """Provide a testing app with an active app context and empty tables."""
    app = create_app("testing")

    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def season(app) -> str:
    return app.config["CURRENT_SEASON"]


@pytest.fixture
def seed(app, season):
    """Return helpers that insert standings, fixtures and profiles."""

    class Seeder:
        @staticmethod
        def standings(*team_ids, season=season):
            for position, team_id in enumerate(team_ids, start=1):
                db.session.add(
                    Standing(season=season, team_id=team_id, position=position)
                )
            db.session.commit()

        @staticmethod
        def fixture(external_id, home, away, home_score=None, away_score=None, status="FINISHED"):
            db.session.add(
                Fixture(
                    external_id=str(external_id),
                    season=season,
                    home_team_id=home,
                    away_team_id=away,
                    home_score=home_score,
                    away_score=away_score,
                    status=status,
                )
            )
            db.session.commit()

        @staticmethod
        def profile(user_id, table_prediction=None, fixture_predictions=None, **fields):
            profile = UserProfile(
                user_id=user_id,
                display_name=fields.pop("display_name", user_id.title()),
                table_prediction=table_prediction or [],
                fixture_predictions=fixture_predictions or {},
                **fields,
            )
            db.session.add(profile)
            db.session.commit()
            return profile

    return Seeder()
