import os
import warnings

from dotenv import load_dotenv

basedir = os.path.abspath(os.path.dirname(__file__))
load_dotenv(os.path.join(basedir, ".env"))


def _env_flag(name, default):
    return os.environ.get(name, default).lower() in ["true", "on", "1"]


def _env_int(name, default=None):
    value = os.environ.get(name)
    if value in (None, ""):
        return default
    return int(value)


class Config:
    # Database configuration - built from environment at initialization
    def __init__(self):
        """Initialize configuration with dynamic database URI"""
        self.SQLALCHEMY_DATABASE_URI = self._build_database_uri()

    def _build_database_uri(self):
        """Build database URI from environment variables"""
        database_url = os.environ.get("DATABASE_URL")

        if database_url:
            return database_url

        db_type = os.environ.get("DB_TYPE", "sqlite")

        if db_type.lower() == "postgresql":
            db_host = os.environ.get("DB_HOST") or "localhost"
            db_port = os.environ.get("DB_PORT") or "5432"
            db_name = os.environ.get("DB_NAME") or "tablecast_db"
            db_user = os.environ.get("DB_USER") or "tablecast"
            db_password = os.environ.get("DB_PASSWORD") or "tablecast"

            return f"postgresql+psycopg://{db_user}:{db_password}@{db_host}:{db_port}/{db_name}"
        else:
            # Default to SQLite for development
            return "sqlite:///" + os.path.join(basedir, "tablecast.db")

    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Competition settings
    CURRENT_SEASON = os.environ.get("CURRENT_SEASON", "2025")
    COMPETITION_CODE = os.environ.get("COMPETITION_CODE", "PL")

    # Standings/results provider
    FOOTBALL_DATA_API_URL = (
        os.environ.get("FOOTBALL_DATA_API_URL") or "https://api.football-data.org/v4"
    )
    FOOTBALL_DATA_API_KEY = os.environ.get("FOOTBALL_DATA_API_KEY") or os.environ.get(
        "LEAGUE_STANDINGS_API_KEY"
    )
    STANDINGS_SOURCE = os.environ.get("STANDINGS_SOURCE", "api")  # api | database

    # Scoring policy
    TABLE_MAX_POINTS_PER_TEAM = _env_int("TABLE_MAX_POINTS_PER_TEAM", 20)
    LEAGUE_SIZE = _env_int("LEAGUE_SIZE")  # None = size of the standings snapshot
    FIXTURE_EXACT_POINTS = _env_int("FIXTURE_EXACT_POINTS", 3)
    FIXTURE_RESULT_POINTS = _env_int("FIXTURE_RESULT_POINTS", 1)

    # Scheduler configuration
    SCHEDULER_ENABLED = _env_flag("SCHEDULER_ENABLED", "True")
    STANDINGS_REFRESH_INTERVAL = _env_int("STANDINGS_REFRESH_INTERVAL", 3600)  # seconds

    # Application settings
    LEADERBOARD_LIMIT = _env_int("LEADERBOARD_LIMIT", 50)

    # Logging configuration
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    LOG_TO_CONSOLE = _env_flag("LOG_TO_CONSOLE", "True")
    LOG_TO_FILE = _env_flag("LOG_TO_FILE", "True")
    LOG_DIR = os.environ.get("LOG_DIR", "logs")

    # Environment detection
    FLASK_ENV = os.environ.get("FLASK_ENV", "development")
    DEBUG = FLASK_ENV == "development"
    TESTING = False


class DevelopmentConfig(Config):
    """Development configuration with helpful defaults"""

    DEBUG = True
    SQLALCHEMY_ECHO = _env_flag("SQLALCHEMY_ECHO", "False")


class ProductionConfig(Config):
    """Production configuration with security focus"""

    DEBUG = False

    # In production, require explicit environment variables
    def __init__(self):
        super().__init__()  # Call parent __init__ to build database URI

        if self.STANDINGS_SOURCE == "api" and not self.FOOTBALL_DATA_API_KEY:
            warnings.warn(
                "🚨 PRODUCTION WARNING: FOOTBALL_DATA_API_KEY not set! "
                "Standings refreshes will fail until it is configured.",
                UserWarning,
            )


class TestingConfig(Config):
    """Testing configuration"""

    TESTING = True
    SCHEDULER_ENABLED = False
    STANDINGS_SOURCE = "database"
    LEAGUE_SIZE = None
    LOG_TO_CONSOLE = False
    LOG_TO_FILE = False

    def __init__(self):
        super().__init__()
        self.SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"


# Configuration mapping
config = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
    "default": DevelopmentConfig,
}
