from datetime import datetime, timezone

from tablecast import db
from tablecast.services.records import FINISHED, FixtureResult


class Fixture(db.Model):
    __tablename__ = "fixtures"

    id = db.Column(db.Integer, primary_key=True)

    # Provider match id; predictions are keyed by it
    external_id = db.Column(db.String(32), nullable=False, unique=True, index=True)
    season = db.Column(db.String(10), nullable=False, index=True)
    matchday = db.Column(db.Integer)

    home_team_id = db.Column(db.String(50), nullable=False)
    away_team_id = db.Column(db.String(50), nullable=False)
    home_team_name = db.Column(db.String(100))
    away_team_name = db.Column(db.String(100))

    status = db.Column(db.String(20), default="SCHEDULED", index=True)
    scheduled_date = db.Column(db.DateTime)

    # Full-time score, set once the match has been played
    home_score = db.Column(db.Integer)
    away_score = db.Column(db.Integer)

    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (db.Index("idx_fixture_season_status", "season", "status"),)

    def __repr__(self):
        return f"<Fixture {self.external_id} {self.home_team_id} v {self.away_team_id}>"

    @property
    def is_final(self):
        return (
            self.status == FINISHED
            and self.home_score is not None
            and self.away_score is not None
        )

    @staticmethod
    def get_finished(season):
        return Fixture.query.filter_by(season=str(season), status=FINISHED).all()

    @staticmethod
    def upsert(season, row):
        """Insert or update a fixture by its provider id"""
        fixture = Fixture.query.filter_by(external_id=str(row["external_id"])).first()
        if not fixture:
            fixture = Fixture(external_id=str(row["external_id"]), season=str(season))
            db.session.add(fixture)

        for key, value in row.items():
            if key != "external_id":
                setattr(fixture, key, value)
        return fixture

    def to_result(self):
        return FixtureResult(
            fixture_id=self.external_id,
            home_team_id=self.home_team_id,
            away_team_id=self.away_team_id,
            home_score=self.home_score,
            away_score=self.away_score,
            status=self.status,
            season=self.season,
        )

    def to_dict(self):
        return {
            "id": self.external_id,
            "season": self.season,
            "matchday": self.matchday,
            "home_team_id": self.home_team_id,
            "away_team_id": self.away_team_id,
            "home_team_name": self.home_team_name,
            "away_team_name": self.away_team_name,
            "status": self.status,
            "scheduled_date": self.scheduled_date.isoformat()
            if self.scheduled_date
            else None,
            "home_score": self.home_score,
            "away_score": self.away_score,
        }
