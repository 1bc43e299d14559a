#!/usr/bin/env python3
"""
Tablecast Management CLI

This script provides command-line management functionality for Tablecast.
"""

import logging
import os

# Commands drive refreshes themselves; keep the background timer off here.
# Must be set before config is imported.
os.environ.setdefault("SCHEDULER_ENABLED", "False")

import click  # noqa: E402
from flask.cli import with_appcontext  # noqa: E402
from sqlalchemy.exc import SQLAlchemyError  # noqa: E402

from tablecast import create_app, db  # noqa: E402
from tablecast.errors import FetchError, TablecastError  # noqa: E402
from tablecast.models import Standing, UserProfile  # noqa: E402
from tablecast.services.providers import (  # noqa: E402
    DatabaseResultsProvider,
    DatabaseStandingsProvider,
)
from tablecast.utils.data_sync import DataSync  # noqa: E402

app = create_app()


def _scheduler():
    return app.extensions["scheduler_service"]


@click.group()
def cli():
    """Tablecast Management CLI"""
    pass


# Database Commands
@cli.group(name="db")
def db_cmd():
    """Database commands"""
    pass


@db_cmd.command()
@with_appcontext
def init():
    """Create all tables"""
    try:
        db.create_all()
        click.echo("✅ Database tables created")
    except SQLAlchemyError as e:
        click.echo(f"❌ Database error: {str(e)}")
        logging.error(f"Database init failed: {e}")


# Data Sync Commands
@cli.group()
def sync():
    """Data synchronization commands"""
    pass


@sync.command()
@click.option("--season", default=None, help="Season to sync (defaults to CURRENT_SEASON)")
@with_appcontext
def standings(season):
    """Fetch and store the league table"""
    season = season or app.config["CURRENT_SEASON"]
    try:
        rows = DataSync.from_config(app.config).sync_standings(season)
        click.echo(f"✅ Stored {len(rows)} standings for season {season}")
    except FetchError as e:
        click.echo(f"❌ Error syncing standings: {str(e)}")


@sync.command()
@click.option("--season", default=None, help="Season to sync (defaults to CURRENT_SEASON)")
@with_appcontext
def fixtures(season):
    """Fetch and store fixtures and results"""
    season = season or app.config["CURRENT_SEASON"]
    try:
        rows = DataSync.from_config(app.config).sync_fixtures(season)
        finished = sum(1 for fixture in rows if fixture.is_final)
        click.echo(f"✅ Stored {len(rows)} fixtures ({finished} finished) for season {season}")
    except FetchError as e:
        click.echo(f"❌ Error syncing fixtures: {str(e)}")


# Score Commands
@cli.group()
def scores():
    """Score calculation commands"""
    pass


@scores.command()
@with_appcontext
def refresh():
    """Run one full refresh cycle now"""
    result = _scheduler().trigger_refresh()

    if result["success"]:
        click.echo(f"✅ Rescored {result['count']} participants")
        return

    click.echo(f"❌ Refresh failed: {result.get('error')}")
    if result.get("count"):
        click.echo(f"   {result['count']} of {result['total']} participants were rescored")
    for failure in result.get("failures", []):
        click.echo(f"   {failure['participant_id']} ({failure['kind']}): {failure['message']}")


@scores.command()
@click.argument("participant_id")
@with_appcontext
def recalculate(participant_id):
    """Rescore one participant against stored standings"""
    service = _scheduler()
    participant = service.participant_store.get_participant(participant_id)
    if participant is None:
        click.echo(f"❌ Participant {participant_id} not found!")
        return

    try:
        score = service.aggregator.recompute_participant(
            participant,
            DatabaseStandingsProvider().get_standings(service.season),
            DatabaseResultsProvider().get_fixture_results(service.season),
        )
    except TablecastError as e:
        click.echo(f"❌ Could not rescore {participant_id}: {str(e)}")
        return

    click.echo(
        f"✅ {participant_id}: table {score.table_points}, "
        f"fixture {score.fixture_points}, total {score.total_points}"
    )


@scores.command()
@click.option("--limit", default=20, help="Number of participants to show")
@with_appcontext
def leaderboard(limit):
    """Show the top participants"""
    profiles = UserProfile.get_leaderboard(limit)
    if not profiles:
        click.echo("No participants found.")
        return

    for rank, profile in enumerate(profiles, start=1):
        click.echo(
            f"{rank:>3}. {profile.display_name or profile.user_id:<24} "
            f"{profile.total_points:>4} (table {profile.table_points}, "
            f"fixtures {profile.fixture_points})"
        )


@cli.command()
@with_appcontext
def status():
    """Show application status"""
    season = app.config["CURRENT_SEASON"]
    click.echo(f"Season: {season}")
    click.echo(f"Standings source: {app.config['STANDINGS_SOURCE']}")
    click.echo(f"Refresh interval: {app.config['STANDINGS_REFRESH_INTERVAL']}s")
    click.echo(f"Participants: {UserProfile.query.count()}")
    click.echo(f"Standings rows: {len(Standing.get_for_season(season))}")

    stats = _scheduler().get_status()["stats"]
    click.echo(f"Refresh runs this process: {stats['total_runs']}")


if __name__ == "__main__":
    with app.app_context():
        cli()
