from datetime import datetime, timezone

from tablecast import db
from tablecast.services.records import StandingsEntry


class Standing(db.Model):
    """One team's real league position for a season"""

    __tablename__ = "standings"

    id = db.Column(db.Integer, primary_key=True)

    season = db.Column(db.String(10), nullable=False, index=True)
    team_id = db.Column(db.String(50), nullable=False)
    team_name = db.Column(db.String(100))
    position = db.Column(db.Integer, nullable=False)

    # Table columns as reported by the provider
    played = db.Column(db.Integer, default=0)
    wins = db.Column(db.Integer, default=0)
    draws = db.Column(db.Integer, default=0)
    losses = db.Column(db.Integer, default=0)
    goals_for = db.Column(db.Integer, default=0)
    goals_against = db.Column(db.Integer, default=0)
    goal_difference = db.Column(db.Integer, default=0)
    points = db.Column(db.Integer, default=0)

    last_updated = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.UniqueConstraint("team_id", "season", name="unique_standing_team_season"),
        db.Index("idx_standing_season_position", "season", "position"),
    )

    def __repr__(self):
        return f"<Standing {self.season} {self.position}. {self.team_id}>"

    @staticmethod
    def get_for_season(season):
        return (
            Standing.query.filter_by(season=str(season))
            .order_by(Standing.position)
            .all()
        )

    @staticmethod
    def replace_season(season, rows):
        """Swap the stored table for a season with a fresh one

        Deletes and inserts inside the current session; the caller commits or
        rolls back, so readers never see a half-written table.
        """
        Standing.query.filter_by(season=str(season)).delete()
        standings = [Standing(season=str(season), **row) for row in rows]
        db.session.add_all(standings)
        return standings

    def to_entry(self):
        return StandingsEntry(
            team_id=self.team_id, position=self.position, season=self.season
        )

    def to_dict(self):
        """Convert standing to dictionary for API responses"""
        return {
            "team_id": self.team_id,
            "team_name": self.team_name,
            "position": self.position,
            "played": self.played,
            "wins": self.wins,
            "draws": self.draws,
            "losses": self.losses,
            "goals_for": self.goals_for,
            "goals_against": self.goals_against,
            "goal_difference": self.goal_difference,
            "points": self.points,
            "season": self.season,
            "last_updated": self.last_updated.isoformat()
            if self.last_updated
            else None,
        }
