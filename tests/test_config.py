"""Tests for config.py - environment-driven configuration classes."""

from __future__ import annotations

from config import DevelopmentConfig, TestingConfig


class TestConfig:
    def test_testing_config_uses_memory_database(self):
        cfg = TestingConfig()

        assert cfg.SQLALCHEMY_DATABASE_URI == "sqlite:///:memory:"
        assert cfg.SCHEDULER_ENABLED is False
        assert cfg.STANDINGS_SOURCE == "database"

    def test_database_url_wins(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql+psycopg://u:p@db/tablecast")

        assert DevelopmentConfig().SQLALCHEMY_DATABASE_URI == "postgresql+psycopg://u:p@db/tablecast"

    def test_scoring_defaults(self):
        cfg = DevelopmentConfig()

        assert cfg.TABLE_MAX_POINTS_PER_TEAM == 20
        assert cfg.FIXTURE_EXACT_POINTS == 3
        assert cfg.FIXTURE_RESULT_POINTS == 1
