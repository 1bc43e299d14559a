"""
Tablecast Refresh Scheduler Service

Periodically pulls the latest standings and fixture results, then rescores
every participant. One APScheduler interval job drives the cycle; the first
run fires immediately at startup.

A cycle never overlaps another on the same service: the service is either
IDLE or REFRESHING, and a tick or manual trigger that arrives mid-cycle is
queued to run once the current cycle finishes.
"""

import atexit
import contextlib
import logging
import threading
from datetime import datetime, timezone
from enum import Enum

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from flask import current_app, has_app_context

from tablecast.errors import FetchError
from tablecast.services.providers import build_providers
from tablecast.services.records import RefreshResult, validate_standings
from tablecast.services.score_aggregator import ScoreAggregator

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 3600  # seconds


class RefreshState(str, Enum):
    IDLE = "idle"
    REFRESHING = "refreshing"


def _utcnow():
    return datetime.now(timezone.utc)


class SchedulerService:
    """Owns the refresh timer and runs fetch-and-recompute cycles"""

    JOB_ID = "refresh_scores"

    def __init__(
        self,
        app=None,
        standings_provider=None,
        results_provider=None,
        participant_store=None,
        aggregator=None,
        season=None,
        interval=DEFAULT_INTERVAL,
        clock=None,
        scheduler=None,
    ):
        self.app = app
        self.standings_provider = standings_provider
        self.results_provider = results_provider
        self.participant_store = participant_store
        self.aggregator = aggregator
        self.season = season
        self.interval = interval
        self.clock = clock or _utcnow
        self.scheduler = scheduler
        self.is_running = False

        self._state_lock = threading.Lock()
        self._reset_state()

        if app:
            self.init_app(app)

    def _reset_state(self):
        self.state = RefreshState.IDLE
        self._rerun_requested = False
        self._stop_requested = False
        self.sync_stats = {
            "last_run": None,
            "last_success": None,
            "total_runs": 0,
            "successful_runs": 0,
            "failed_runs": 0,
            "last_error": None,
            "participants_updated": 0,
            "last_duration_seconds": None,
        }

    def init_app(self, app):
        """Wire providers, store and aggregator from Flask config"""
        if self.is_running:
            self.stop()

        self.app = app
        config = app.config

        with app.app_context():
            (
                self.standings_provider,
                self.results_provider,
                self.participant_store,
            ) = build_providers(config)

        self.aggregator = ScoreAggregator.from_config(self.participant_store, config)
        self.season = str(config.get("CURRENT_SEASON"))
        self.interval = config.get("STANDINGS_REFRESH_INTERVAL") or DEFAULT_INTERVAL
        self.scheduler = BackgroundScheduler(daemon=True, timezone="UTC")
        self._reset_state()

        app.extensions["scheduler_service"] = self

        # Register shutdown
        atexit.register(self.shutdown)

        # Start scheduler if enabled
        if config.get("SCHEDULER_ENABLED", True):
            self.start()

    def _app_context(self):
        # Reuse the caller's context (e.g. an HTTP request) when there is one
        if self.app is None or (
            has_app_context() and current_app._get_current_object() is self.app
        ):
            return contextlib.nullcontext()
        return self.app.app_context()

    def start(self):
        """Start the background scheduler; the first cycle runs immediately"""
        if self.is_running:
            return

        if self.scheduler is None:
            self.scheduler = BackgroundScheduler(daemon=True, timezone="UTC")

        try:
            self.scheduler.remove_all_jobs()

            self.scheduler.add_job(
                func=self.run_cycle,
                trigger=IntervalTrigger(seconds=self.interval),
                id=self.JOB_ID,
                name="Refresh Standings and Scores",
                max_instances=1,
                coalesce=True,
                misfire_grace_time=max(60, self.interval // 2),
                next_run_time=self.clock(),
            )

            self.scheduler.start()
            self._stop_requested = False
            self.is_running = True

            logger.info(
                f"Scheduler started, refreshing every {self.interval / 60:g} minutes"
            )

        except Exception as e:
            logger.error(f"Failed to start scheduler: {e}")
            raise

    def stop(self):
        """Stop scheduling further cycles; a cycle already running completes"""
        self._stop_requested = True
        if not self.is_running:
            return

        try:
            self.scheduler.shutdown(wait=False)
            self.is_running = False
            logger.info("Scheduler stopped")

        except Exception as e:
            logger.error(f"Error stopping scheduler: {e}")

    def shutdown(self):
        """Graceful shutdown"""
        self.stop()

    def run_cycle(self, trigger="scheduled"):
        """
        Run one refresh cycle unless one is already in progress.

        Returns:
            RefreshResult of the last cycle run, or None when the request was
            queued behind a running cycle
        """
        with self._state_lock:
            if self.state is RefreshState.REFRESHING:
                self._rerun_requested = True
                logger.info(f"Refresh in progress, queued {trigger} refresh")
                return None
            self.state = RefreshState.REFRESHING

        try:
            while True:
                result = self.refresh_cycle(trigger)

                with self._state_lock:
                    if not self._rerun_requested or self._stop_requested:
                        self._rerun_requested = False
                        self.state = RefreshState.IDLE
                        return result
                    self._rerun_requested = False

                trigger = "queued"

        except BaseException:
            with self._state_lock:
                self.state = RefreshState.IDLE
            raise

    def refresh_cycle(self, trigger="scheduled"):
        """
        Fetch the latest standings and results, then rescore everyone.

        A fetch failure aborts the cycle before any score is written.
        Never raises; failures are logged and reported in the result.
        """
        started = self.clock()
        logger.info(f"Starting {trigger} refresh for season {self.season}")

        with self._app_context():
            try:
                standings = self.standings_provider.get_standings(self.season)
                validate_standings(standings)
                results = self.results_provider.get_fixture_results(self.season)
                participants = self.participant_store.list_participants()

            except FetchError as e:
                logger.error(f"Refresh aborted, scores left unchanged: {e}")
                return self._finish(RefreshResult(success=False, error=str(e)), started)

            except Exception as e:
                logger.error(f"Unexpected error fetching refresh data: {e}", exc_info=True)
                return self._finish(RefreshResult(success=False, error=str(e)), started)

            logger.info(
                f"Fetched {len(standings)} standings, {len(results)} results, "
                f"{len(participants)} participants"
            )

            try:
                outcome = self.aggregator.recompute_all(participants, standings, results)
            except Exception as e:
                logger.error(f"Error recalculating scores: {e}", exc_info=True)
                return self._finish(RefreshResult(success=False, error=str(e)), started)

        error = None
        if outcome.failures:
            error = (
                f"{len(outcome.failures)} of {outcome.total} participants "
                f"could not be rescored"
            )

        result = RefreshResult(
            success=not outcome.failures,
            count=outcome.count,
            total=outcome.total,
            error=error,
            failures=outcome.failures,
        )
        return self._finish(result, started)

    def _finish(self, result, started):
        self._update_stats(result, started)

        if result.success:
            logger.info(f"Refresh completed: {result.count} participants updated")
        elif result.total:
            logger.warning(f"Refresh completed with errors: {result.error}")

        return result

    def trigger_refresh(self):
        """
        Run a cycle on demand and report the outcome.

        Returns:
            dict: success, count (participants rescored) and, when relevant,
            total, error, failures and queued
        """
        result = self.run_cycle(trigger="manual")

        if result is None:
            return {
                "success": False,
                "count": 0,
                "error": "A refresh is already in progress; queued to run next",
                "queued": True,
            }

        payload = result.to_dict()
        payload["total"] = result.total
        if result.failures:
            payload["failures"] = [failure.to_dict() for failure in result.failures]
        return payload

    def _update_stats(self, result, started):
        """Update refresh statistics"""
        finished = self.clock()
        self.sync_stats["last_run"] = finished
        self.sync_stats["total_runs"] += 1
        self.sync_stats["last_duration_seconds"] = (finished - started).total_seconds()
        self.sync_stats["participants_updated"] += result.count

        if result.success:
            self.sync_stats["successful_runs"] += 1
            self.sync_stats["last_success"] = finished
            self.sync_stats["last_error"] = None
        else:
            self.sync_stats["failed_runs"] += 1
            self.sync_stats["last_error"] = result.error

    def get_status(self):
        """Get scheduler status information"""
        jobs = []
        if self.scheduler and self.is_running:
            for job in self.scheduler.get_jobs():
                next_run = job.next_run_time
                jobs.append(
                    {
                        "id": job.id,
                        "name": job.name,
                        "next_run": next_run.isoformat() if next_run else None,
                        "trigger": str(job.trigger),
                    }
                )

        stats = dict(self.sync_stats)
        for key in ("last_run", "last_success"):
            if stats[key]:
                stats[key] = stats[key].isoformat()

        return {
            "state": self.state.value,
            "is_running": self.is_running,
            "season": self.season,
            "interval_seconds": self.interval,
            "jobs": jobs,
            "stats": stats,
        }


# Global scheduler instance
scheduler_service = SchedulerService()
