"""
Pydantic models for the records the core reads.

The persistence layer materializes these from its own tables and hands
them in; the core never queries storage itself.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum, IntEnum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ReviewState(IntEnum):
    """Card lifecycle phase at review time."""
    NEW = 0
    LEARNING = 1
    REVIEW = 2          # Graduated
    RELEARNING = 3


class JourneyEventType(str, Enum):
    """Session-level actions recorded in the journey log."""
    SESSION_STARTED = "session_started"
    CARD_SHOWN = "card_shown"
    ANSWER_REVEALED = "answer_revealed"
    RATING_SUBMITTED = "rating_submitted"
    SESSION_ENDED = "session_ended"


class OperationalMetricType(str, Enum):
    AUTH_REFRESH = "auth_refresh"
    STUDY_API = "study_api"


def _require_aware(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and (value.tzinfo is None or value.utcoffset() is None):
        raise ValueError("timestamp must be timezone-aware")
    return value


# ---- Review log ----

class ReviewOutcome(BaseModel):
    """One row per rating submission. Append-only, immutable."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Review log id")
    user_id: str
    card_id: str
    rating: int = Field(..., ge=1, le=4)
    reviewed_at: datetime
    review_duration_ms: Optional[int] = Field(default=None, ge=0)
    shown_at: Optional[datetime] = None
    elapsed_days: Optional[float] = Field(default=None, ge=0)
    scheduled_days: Optional[float] = Field(default=None, ge=0)
    stability_before: Optional[float] = None
    difficulty_before: Optional[float] = None
    retrievability_before: Optional[float] = Field(default=None, ge=0, le=1)
    session_id: Optional[str] = None
    review_state: Optional[ReviewState] = None

    @field_validator("reviewed_at", "shown_at")
    @classmethod
    def check_timestamps_aware(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _require_aware(value)

    @property
    def passed(self) -> bool:
        return self.rating >= 2


# ---- Journey log ----

class JourneyEvent(BaseModel):
    """Session-level action, deduplicated on (user_id, idempotency_key)."""
    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    card_id: str
    event_type: JourneyEventType
    event_time: datetime
    idempotency_key: str
    session_id: Optional[str] = None
    review_log_id: Optional[str] = None
    sequence: Optional[int] = Field(default=None, ge=0)

    @field_validator("event_time")
    @classmethod
    def check_timestamps_aware(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _require_aware(value)


# ---- Operational events ----

class OperationalEvent(BaseModel):
    """Auth-refresh or study-API timing sample."""
    model_config = ConfigDict(frozen=True)

    user_id: Optional[str] = None
    metric_type: OperationalMetricType
    route: str
    status_code: int
    duration_ms: int = Field(..., ge=0)
    created_at: datetime
    outcome: Optional[str] = None

    @field_validator("created_at")
    @classmethod
    def check_timestamps_aware(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _require_aware(value)


# ---- Categories ----

class Category(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    name: str = ""


class CardCategory(BaseModel):
    """Membership of a card in a category."""
    model_config = ConfigDict(frozen=True)

    card_id: str
    category_id: str
