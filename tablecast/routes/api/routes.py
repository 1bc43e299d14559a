import logging

from flask import current_app, jsonify, request

from tablecast.errors import FetchError, PersistenceError, ScoringError
from tablecast.models import Standing, UserProfile
from tablecast.routes.api import bp
from tablecast.services.providers import (
    DatabaseResultsProvider,
    DatabaseStandingsProvider,
)

logger = logging.getLogger(__name__)


def _scheduler():
    return current_app.extensions["scheduler_service"]


@bp.route("/scores/refresh", methods=["POST"])
def refresh_scores():
    """Run a refresh cycle now and report how many participants were rescored"""
    result = _scheduler().trigger_refresh()

    if result.get("queued"):
        status = 409
    elif result["success"]:
        status = 200
    elif result.get("total"):
        status = 207  # some participants failed
    else:
        status = 502  # nothing fetched, nothing written

    return jsonify(result), status


@bp.route("/scores/recalculate/<participant_id>", methods=["POST"])
def recalculate_participant(participant_id):
    """Rescore one participant against the stored standings and results"""
    service = _scheduler()
    participant = service.participant_store.get_participant(participant_id)
    if participant is None:
        return jsonify({"success": False, "error": "Participant not found"}), 404

    try:
        standings = DatabaseStandingsProvider().get_standings(service.season)
        results = DatabaseResultsProvider().get_fixture_results(service.season)
        score = service.aggregator.recompute_participant(participant, standings, results)
    except ScoringError as e:
        return jsonify({"success": False, "error": str(e)}), 422
    except FetchError as e:
        logger.error(f"Recalculation of {participant_id} aborted, scores left unchanged: {e}")
        return jsonify({"success": False, "error": str(e)}), 502
    except PersistenceError as e:
        logger.error(f"Recalculation failed for {participant_id}: {e}")
        return jsonify({"success": False, "error": str(e)}), 500

    return jsonify({"success": True, "scores": score.to_dict()})


@bp.route("/scores/<participant_id>")
def participant_scores(participant_id):
    """Stored scores for one participant"""
    profile = UserProfile.get_by_user_id(participant_id)
    if not profile:
        return jsonify({"success": False, "error": "Participant not found"}), 404

    return jsonify({"success": True, "scores": profile.to_dict()})


@bp.route("/leaderboard")
def leaderboard():
    """Participants ordered by total points"""
    default_limit = current_app.config.get("LEADERBOARD_LIMIT", 50)
    limit = request.args.get("limit", default_limit, type=int)
    limit = max(1, min(limit, 500))

    entries = []
    for rank, profile in enumerate(UserProfile.get_leaderboard(limit), start=1):
        entry = profile.to_dict()
        entry["rank"] = rank
        entries.append(entry)

    return jsonify({"success": True, "leaderboard": entries})


@bp.route("/standings")
def standings():
    """Stored standings for the current season"""
    season = request.args.get("season") or _scheduler().season
    rows = Standing.get_for_season(season)
    return jsonify(
        {
            "success": True,
            "season": season,
            "count": len(rows),
            "standings": [row.to_dict() for row in rows],
        }
    )


@bp.route("/scheduler/status")
def scheduler_status():
    return jsonify(_scheduler().get_status())
