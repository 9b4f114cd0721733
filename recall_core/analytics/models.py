"""
SQLAlchemy ORM Models for Calibration Metrics

Defines the daily and per-session metric tables. Both are derived data:
every row can be rebuilt from the review log.
"""

from sqlalchemy import Column, Date, DateTime, Float, Integer, String
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class DailyMetricRow(Base):
    """
    Calibration aggregate for one user on one calendar day.
    """
    __tablename__ = 'user_fsrs_daily_metrics'

    # Primary key: composite of user_id and metric_date
    user_id = Column(String(255), primary_key=True, nullable=False)
    metric_date = Column(Date, primary_key=True, nullable=False)

    # Counts
    review_count = Column(Integer, nullable=False, default=0)
    pass_count = Column(Integer, nullable=False, default=0)
    fail_count = Column(Integer, nullable=False, default=0)
    scored_count = Column(Integer, nullable=False, default=0)  # Reviews with a predicted recall

    # Calibration
    avg_predicted_recall = Column(Float, nullable=True)
    observed_recall_rate = Column(Float, nullable=True)
    brier_score = Column(Float, nullable=True)

    # Timing
    mean_review_duration_ms = Column(Float, nullable=True)
    p50_review_duration_ms = Column(Integer, nullable=True)
    p90_review_duration_ms = Column(Integer, nullable=True)
    avg_elapsed_days = Column(Float, nullable=True)
    avg_scheduled_days = Column(Float, nullable=True)

    session_count = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<DailyMetricRow({self.user_id}, {self.metric_date}, reviews={self.review_count})>"


class SessionMetricRow(Base):
    """
    Calibration aggregate for one study session.
    """
    __tablename__ = 'user_fsrs_session_metrics'

    # Primary key: composite of user_id and session_id
    user_id = Column(String(255), primary_key=True, nullable=False)
    session_id = Column(String(255), primary_key=True, nullable=False)

    session_date = Column(Date, nullable=False)
    session_started_at = Column(DateTime(timezone=True), nullable=True)
    session_ended_at = Column(DateTime(timezone=True), nullable=True)

    # Counts
    review_count = Column(Integer, nullable=False, default=0)
    pass_count = Column(Integer, nullable=False, default=0)
    fail_count = Column(Integer, nullable=False, default=0)

    # Calibration
    avg_predicted_recall = Column(Float, nullable=True)
    observed_recall_rate = Column(Float, nullable=True)
    brier_score = Column(Float, nullable=True)

    mean_review_duration_ms = Column(Float, nullable=True)
    fatigue_slope = Column(Float, nullable=True)  # Outcome vs. review index within the session
    updated_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<SessionMetricRow({self.user_id}, {self.session_id}, reviews={self.review_count})>"
