import logging
import time
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from functools import wraps

import requests

from tablecast import db
from tablecast.errors import FetchError
from tablecast.models import Fixture, Standing
from tablecast.services.records import StandingsEntry, validate_standings
from tablecast.utils.teams import team_id_for

logger = logging.getLogger(__name__)


def _retry_after(value, default):
    """Seconds to wait from a Retry-After header, given as seconds or an HTTP date"""
    if not value:
        return default
    try:
        return max(0.0, float(value))
    except ValueError:
        pass
    try:
        retry_at = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return default
    if retry_at.tzinfo is None:
        retry_at = retry_at.replace(tzinfo=timezone.utc)
    return max(0.0, (retry_at - datetime.now(timezone.utc)).total_seconds())


def rate_limit_decorator(max_retries=3, base_delay=1.0, backoff_factor=2.0):
    """
    Decorator to handle API rate limiting with exponential backoff
    """

    def decorator(func):
        @wraps(func)
        def wrapper(self, *args, **kwargs):
            for attempt in range(max_retries):
                try:
                    return func(self, *args, **kwargs)

                except requests.exceptions.HTTPError as e:
                    status = e.response.status_code if e.response is not None else None
                    retryable = status == 429 or (status is not None and status >= 500)
                    if not retryable or attempt == max_retries - 1:
                        raise

                    delay = base_delay * (backoff_factor**attempt)
                    if status == 429:
                        delay = _retry_after(e.response.headers.get("Retry-After"), delay)
                    logger.warning(
                        f"HTTP {status}. Waiting {delay}s before retry {attempt + 1}/{max_retries}"
                    )
                    self._sleep(delay)

                except (
                    requests.exceptions.ConnectionError,
                    requests.exceptions.Timeout,
                ) as e:
                    if attempt == max_retries - 1:
                        raise
                    delay = base_delay * (backoff_factor**attempt)
                    logger.warning(
                        f"Request failed: {e}. Waiting {delay}s before retry {attempt + 1}/{max_retries}"
                    )
                    self._sleep(delay)

        return wrapper

    return decorator


def _parse_utc_date(value):
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


class DataSync:
    """
    Fetches standings and fixtures from football-data.org and stores them.

    Every failure, whether network, HTTP, payload or database, surfaces as
    FetchError so a refresh cycle can abort before scoring anything.
    """

    def __init__(
        self,
        api_key=None,
        api_base_url=None,
        competition="PL",
        session=None,
        sleep=time.sleep,
    ):
        self.api_key = api_key
        self.api_base_url = (api_base_url or "https://api.football-data.org/v4").rstrip(
            "/"
        )
        self.competition = competition
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": "Tablecast/1.0"})
        if api_key:
            self.session.headers.update({"X-Auth-Token": api_key})

        self._sleep = sleep

        # Rate limiting configuration (free tier allows 10 requests/minute)
        self.request_count = 0
        self.last_request_time = 0
        self.min_request_interval = 0.5
        self.max_requests_per_minute = 10
        self.request_timestamps = []

    @classmethod
    def from_config(cls, config):
        return cls(
            api_key=config.get("FOOTBALL_DATA_API_KEY"),
            api_base_url=config.get("FOOTBALL_DATA_API_URL"),
            competition=config.get("COMPETITION_CODE", "PL"),
        )

    def _enforce_rate_limit(self):
        """Enforce rate limiting before making requests"""
        current_time = time.time()

        # Remove timestamps older than 1 minute
        self.request_timestamps = [
            ts for ts in self.request_timestamps if current_time - ts < 60
        ]

        if len(self.request_timestamps) >= self.max_requests_per_minute:
            sleep_time = 60 - (current_time - self.request_timestamps[0])
            if sleep_time > 0:
                logger.info(f"Rate limit reached. Sleeping for {sleep_time:.1f}s")
                self._sleep(sleep_time)
                self.request_timestamps = []

        time_since_last = current_time - self.last_request_time
        if time_since_last < self.min_request_interval:
            self._sleep(self.min_request_interval - time_since_last)

        self.last_request_time = time.time()
        self.request_timestamps.append(self.last_request_time)
        self.request_count += 1

    @rate_limit_decorator(max_retries=3, base_delay=2.0)
    def _make_api_request(self, path, params=None):
        """Make API request with rate limiting and retry logic"""
        self._enforce_rate_limit()

        url = f"{self.api_base_url}/{path.lstrip('/')}"
        response = self.session.get(url, params=params, timeout=30)
        response.raise_for_status()
        return response

    def _get_json(self, path, params=None):
        if not self.api_key:
            raise FetchError("No football-data.org API key configured")

        try:
            response = self._make_api_request(path, params=params)
            return response.json()
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else "?"
            raise FetchError(f"API request to {path} failed with status {status}") from e
        except requests.exceptions.RequestException as e:
            raise FetchError(f"API request to {path} failed: {e}") from e
        except ValueError as e:
            raise FetchError(f"API response from {path} is not valid JSON") from e

    def fetch_standings(self, season):
        """
        Fetch the overall league table for a season.

        Returns:
            list of dicts ready for Standing.replace_season()
        """
        data = self._get_json(
            f"competitions/{self.competition}/standings", params={"season": season}
        )

        tables = data.get("standings") or []
        table = next(
            (t.get("table", []) for t in tables if t.get("type", "TOTAL") == "TOTAL"),
            None,
        )
        if not table:
            raise FetchError(f"No standings table in response for season {season}")

        rows = []
        for team in table:
            team_name = team.get("team", {}).get("name")
            team_id = team_id_for(team_name)
            if not team_id:
                # A dropped team would leave a gap in the table
                raise FetchError(f"Unknown team in standings: {team_name}")

            rows.append(
                {
                    "team_id": team_id,
                    "team_name": team_name,
                    "position": team.get("position"),
                    "played": team.get("playedGames", 0),
                    "wins": team.get("won", 0),
                    "draws": team.get("draw", 0),
                    "losses": team.get("lost", 0),
                    "goals_for": team.get("goalsFor", 0),
                    "goals_against": team.get("goalsAgainst", 0),
                    "goal_difference": team.get("goalDifference", 0),
                    "points": team.get("points", 0),
                }
            )

        logger.info(f"Fetched {len(rows)} standings for season {season}")
        return rows

    def fetch_fixtures(self, season):
        """
        Fetch all fixtures for a season.

        Returns:
            list of dicts ready for Fixture.upsert()
        """
        data = self._get_json(
            f"competitions/{self.competition}/matches", params={"season": season}
        )

        rows = []
        for match in data.get("matches", []):
            home_name = match.get("homeTeam", {}).get("name")
            away_name = match.get("awayTeam", {}).get("name")
            home_team_id = team_id_for(home_name)
            away_team_id = team_id_for(away_name)

            if not home_team_id or not away_team_id:
                logger.warning(
                    f"Skipping match: {home_name} vs {away_name} - team not found in mapping"
                )
                continue

            full_time = (match.get("score") or {}).get("fullTime") or {}
            rows.append(
                {
                    "external_id": str(match["id"]),
                    "home_team_id": home_team_id,
                    "away_team_id": away_team_id,
                    "home_team_name": home_name,
                    "away_team_name": away_name,
                    "matchday": match.get("matchday"),
                    "status": match.get("status"),
                    "scheduled_date": _parse_utc_date(match.get("utcDate")),
                    "home_score": full_time.get("home"),
                    "away_score": full_time.get("away"),
                }
            )

        logger.info(f"Fetched {len(rows)} fixtures for season {season}")
        return rows

    def sync_standings(self, season):
        """Fetch standings and replace the stored table for the season

        The fetched table is validated first; an unusable one never replaces
        the stored table.
        """
        rows = self.fetch_standings(season)
        validate_standings(
            [StandingsEntry(team_id=row["team_id"], position=row["position"]) for row in rows]
        )

        try:
            standings = Standing.replace_season(season, rows)
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            logger.error(f"Error storing standings for season {season}: {e}")
            raise FetchError(f"Could not store standings for season {season}") from e

        logger.info(f"Stored {len(standings)} standings for season {season}")
        return standings

    def sync_fixtures(self, season):
        """Fetch fixtures and upsert them by provider id"""
        rows = self.fetch_fixtures(season)

        try:
            fixtures = [Fixture.upsert(season, row) for row in rows]
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            logger.error(f"Error storing fixtures for season {season}: {e}")
            raise FetchError(f"Could not store fixtures for season {season}") from e

        logger.info(f"Stored {len(fixtures)} fixtures for season {season}")
        return fixtures

