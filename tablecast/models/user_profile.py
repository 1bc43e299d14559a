from datetime import datetime, timezone

from tablecast import db
from tablecast.services.records import ParticipantRecord


class UserProfile(db.Model):
    """A participant's predictions and the scores derived from them"""

    __tablename__ = "user_profiles"

    id = db.Column(db.Integer, primary_key=True)

    # Participant identification
    user_id = db.Column(db.String(64), nullable=False, unique=True, index=True)
    display_name = db.Column(db.String(100))
    email = db.Column(db.String(255))

    # Predictions (written by the prediction endpoints, read-only here)
    table_prediction = db.Column(db.JSON, default=list)
    fixture_predictions = db.Column(db.JSON, default=dict)

    # Derived scores (recomputed on every refresh cycle)
    table_points = db.Column(db.Integer, default=0, nullable=False)
    fixture_points = db.Column(db.Integer, default=0, nullable=False)
    total_points = db.Column(db.Integer, default=0, nullable=False)
    exact_predictions = db.Column(db.Integer, default=0, nullable=False)
    result_predictions = db.Column(db.Integer, default=0, nullable=False)
    scored_at = db.Column(db.DateTime)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (db.Index("idx_profile_total_points", "total_points"),)

    def __repr__(self):
        return f"<UserProfile {self.user_id} total={self.total_points}>"

    @staticmethod
    def get_by_user_id(user_id):
        return UserProfile.query.filter_by(user_id=str(user_id)).first()

    @staticmethod
    def get_leaderboard(limit=50):
        """Participants ordered by total points, best first"""
        return (
            UserProfile.query.order_by(
                UserProfile.total_points.desc(), UserProfile.user_id
            )
            .limit(limit)
            .all()
        )

    def apply_scores(
        self,
        table_points,
        fixture_points,
        total_points,
        exact_predictions=None,
        result_predictions=None,
    ):
        self.table_points = table_points
        self.fixture_points = fixture_points
        self.total_points = total_points
        if exact_predictions is not None:
            self.exact_predictions = exact_predictions
        if result_predictions is not None:
            self.result_predictions = result_predictions
        self.scored_at = datetime.now(timezone.utc)

    def to_record(self):
        """Snapshot the prediction state for the scorers"""
        return ParticipantRecord(
            participant_id=self.user_id,
            display_name=self.display_name or self.email,
            table_prediction=self.table_prediction or [],
            fixture_predictions=self.fixture_predictions or {},
            table_points=self.table_points or 0,
            fixture_points=self.fixture_points or 0,
            total_points=self.total_points or 0,
        )

    def scores_dict(self):
        return {
            "table_points": self.table_points,
            "fixture_points": self.fixture_points,
            "total_points": self.total_points,
            "exact_predictions": self.exact_predictions,
            "result_predictions": self.result_predictions,
        }

    def to_dict(self):
        """Convert profile to dictionary for API responses"""
        data = {
            "user_id": self.user_id,
            "display_name": self.display_name,
            "scored_at": self.scored_at.isoformat() if self.scored_at else None,
        }
        data.update(self.scores_dict())
        return data
