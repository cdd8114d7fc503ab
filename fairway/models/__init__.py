from fairway.models.base import Base, engine, AsyncSessionFactory
from fairway.models.models import (
    RegistrationRecord,
    LeaderboardRecord,
    ScorecardRecord,
    CheckInRecord,
    RegistrationStatus,
    RegistrationType,
    PaymentStatus,
    PaymentMethod,
    NotificationKind,
    Course,
)
from fairway.models.domain import (
    EmergencyContact,
    PlayerInfo,
    PaymentInfo,
    RegistrationPreferences,
    Registration,
    HoleScore,
    Scorecard,
    LeaderboardEntry,
    CheckIn,
)

__all__ = [
    "Base",
    "engine",
    "AsyncSessionFactory",
    "RegistrationRecord",
    "LeaderboardRecord",
    "ScorecardRecord",
    "CheckInRecord",
    "RegistrationStatus",
    "RegistrationType",
    "PaymentStatus",
    "PaymentMethod",
    "NotificationKind",
    "Course",
    "EmergencyContact",
    "PlayerInfo",
    "PaymentInfo",
    "RegistrationPreferences",
    "Registration",
    "HoleScore",
    "Scorecard",
    "LeaderboardEntry",
    "CheckIn",
]
