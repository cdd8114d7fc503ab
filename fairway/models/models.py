"""
ORM models and domain constants for the Fairway tournament platform.

Domain overview
---------------
Registration      — an individual / foursome / corporate sponsor sign-up
                    moving through the registration workflow
LeaderboardEntry  — one team's running total inside a bracket
Scorecard         — hole-by-hole strokes for one registration
CheckIn           — event-day arrival record; creates the scorecard

The live services work on plain dataclasses (fairway.models.domain);
the tables below are only touched by the storage service.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from fairway.models.base import Base

# ─────────────────────────── Constants ────────────────────────────────────────

class RegistrationStatus:
    DRAFT              = "draft"
    SUBMITTED          = "submitted"
    PAYMENT_PENDING    = "payment_pending"
    PAYMENT_PROCESSING = "payment_processing"
    CONFIRMED          = "confirmed"
    WAITLISTED         = "waitlisted"
    CANCELLED          = "cancelled"

    ALL = (
        DRAFT, SUBMITTED, PAYMENT_PENDING, PAYMENT_PROCESSING,
        CONFIRMED, WAITLISTED, CANCELLED,
    )

    # Allowed state-machine edges
    TRANSITIONS: dict[str, frozenset[str]] = {
        DRAFT:              frozenset({SUBMITTED, CANCELLED}),
        SUBMITTED:          frozenset({PAYMENT_PENDING, WAITLISTED, CANCELLED}),
        PAYMENT_PENDING:    frozenset({PAYMENT_PROCESSING, WAITLISTED, CANCELLED}),
        PAYMENT_PROCESSING: frozenset({CONFIRMED, PAYMENT_PENDING, CANCELLED}),
        CONFIRMED:          frozenset({CANCELLED}),
        WAITLISTED:         frozenset({PAYMENT_PENDING, CANCELLED}),
        CANCELLED:          frozenset(),
    }

    LABELS = {
        DRAFT:              "Draft",
        SUBMITTED:          "Submitted",
        PAYMENT_PENDING:    "Awaiting payment",
        PAYMENT_PROCESSING: "Payment processing",
        CONFIRMED:          "Confirmed",
        WAITLISTED:         "Waitlisted",
        CANCELLED:          "Cancelled",
    }

    @classmethod
    def can_transition(cls, current: str, target: str) -> bool:
        return target in cls.TRANSITIONS.get(current, frozenset())


class RegistrationType:
    INDIVIDUAL        = "individual"
    FOURSOME          = "foursome"
    CORPORATE_SPONSOR = "corporate_sponsor"

    ALL = (INDIVIDUAL, FOURSOME, CORPORATE_SPONSOR)

    PLAYER_COUNT: dict[str, int] = {
        INDIVIDUAL:        1,
        FOURSOME:          4,
        CORPORATE_SPONSOR: 1,
    }

    # Minor units (USD cents)
    BASE_PRICE: dict[str, int] = {
        INDIVIDUAL:        15000,
        FOURSOME:          55000,
        CORPORATE_SPONSOR: 100000,
    }

    LABELS = {
        INDIVIDUAL:        "Individual player",
        FOURSOME:          "Foursome",
        CORPORATE_SPONSOR: "Corporate sponsor",
    }

    @classmethod
    def players_needed(cls, registration_type: str) -> int:
        return cls.PLAYER_COUNT.get(registration_type, 1)


class PaymentStatus:
    PENDING    = "pending"
    PROCESSING = "processing"
    COMPLETED  = "completed"
    FAILED     = "failed"
    REFUNDED   = "refunded"
    CANCELLED  = "cancelled"


class PaymentMethod:
    STRIPE        = "stripe"
    PAYPAL        = "paypal"
    BANK_TRANSFER = "bank_transfer"
    CHECK         = "check"

    ALL = (STRIPE, PAYPAL, BANK_TRANSFER, CHECK)

    LABELS = {
        STRIPE:        "Credit/Debit Card",
        PAYPAL:        "PayPal",
        BANK_TRANSFER: "Bank Transfer",
        CHECK:         "Check Payment",
    }


class NotificationKind:
    REGISTRATION_CONFIRMATION = "registration_confirmation"
    WAITLIST_NOTICE           = "waitlist_notice"
    PAYMENT_CONFIRMATION      = "payment_confirmation"
    SPOT_AVAILABLE            = "spot_available"

    ALL = (
        REGISTRATION_CONFIRMATION, WAITLIST_NOTICE,
        PAYMENT_CONFIRMATION, SPOT_AVAILABLE,
    )


class Course:
    """Hole layout of the host course: (number, par, yardage)."""
    HOLES: list[tuple[int, int, int]] = [
        (1, 4, 380), (2, 3, 165), (3, 5, 520), (4, 4, 395), (5, 3, 180),
        (6, 4, 410), (7, 5, 545), (8, 4, 365), (9, 3, 155), (10, 4, 385),
        (11, 3, 170), (12, 5, 530), (13, 4, 400), (14, 3, 175), (15, 4, 420),
        (16, 5, 555), (17, 4, 375), (18, 4, 390),
    ]

    HOLE_COUNT = 18
    PAR: dict[int, int] = {number: par for number, par, _ in HOLES}
    TOTAL_PAR = sum(PAR.values())                        # 72
    TOTAL_YARDAGE = sum(yards for _, _, yards in HOLES)  # 6615

    @classmethod
    def par_for(cls, hole_number: int) -> int:
        return cls.PAR.get(hole_number, 4)


# ─────────────────────────── Tables ───────────────────────────────────────────

class RegistrationRecord(Base):
    """Persisted registration row. Nested player/preferences data lives in JSON columns."""
    __tablename__ = "registrations"

    id:                 Mapped[str]                = mapped_column(String(64), primary_key=True)
    sequence:           Mapped[int]                = mapped_column(Integer, index=True)
    type:               Mapped[str]                = mapped_column(String(30))     # RegistrationType.*
    status:             Mapped[str]                = mapped_column(String(30), index=True)
    primary_player:     Mapped[dict]               = mapped_column(JSON)
    additional_players: Mapped[list]               = mapped_column(JSON, default=list)
    preferences:        Mapped[dict]               = mapped_column(JSON, default=dict)
    meta:               Mapped[dict]               = mapped_column("metadata", JSON, default=dict)
    amount:             Mapped[int]                = mapped_column(Integer)
    fees:               Mapped[int]                = mapped_column(Integer)
    total:              Mapped[int]                = mapped_column(Integer)
    payment_method:     Mapped[Optional[str]]      = mapped_column(String(30), nullable=True)
    payment_status:     Mapped[str]                = mapped_column(String(30))
    payment_intent_id:  Mapped[Optional[str]]      = mapped_column(String(255), nullable=True)
    paid_at:            Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    checkin_token:      Mapped[Optional[str]]      = mapped_column(String(36), nullable=True, unique=True)
    created_at:         Mapped[datetime]           = mapped_column(DateTime(timezone=True))
    updated_at:         Mapped[datetime]           = mapped_column(DateTime(timezone=True))


class LeaderboardRecord(Base):
    """Running total for one registration inside a bracket."""
    __tablename__ = "leaderboard_entries"
    __table_args__ = (UniqueConstraint("bracket_id", "registration_id"),)

    id:                 Mapped[int]                = mapped_column(Integer, primary_key=True, autoincrement=True)
    bracket_id:         Mapped[int]                = mapped_column(Integer, index=True)
    registration_id:    Mapped[str]                = mapped_column(String(64))
    team_name:          Mapped[str]                = mapped_column(String(255))
    total_strokes:      Mapped[int]                = mapped_column(Integer, default=0)
    total_score_to_par: Mapped[int]                = mapped_column(Integer, default=0)
    holes_completed:    Mapped[int]                = mapped_column(Integer, default=0)
    position:           Mapped[int]                = mapped_column(Integer, default=1)
    is_tied:            Mapped[bool]               = mapped_column(Boolean, default=False)
    players:            Mapped[list]               = mapped_column(JSON, default=list)
    current_hole:       Mapped[Optional[int]]      = mapped_column(Integer, nullable=True)
    last_score:         Mapped[Optional[int]]      = mapped_column(Integer, nullable=True)
    updated_at:         Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)


class ScorecardRecord(Base):
    """Hole-by-hole card. The 18 HoleScores are stored as one JSON list."""
    __tablename__ = "scorecards"
    __table_args__ = (UniqueConstraint("bracket_id", "registration_id"),)

    id:                 Mapped[int]      = mapped_column(Integer, primary_key=True, autoincrement=True)
    bracket_id:         Mapped[int]      = mapped_column(Integer, index=True)
    registration_id:    Mapped[str]      = mapped_column(String(64))
    team_name:          Mapped[str]      = mapped_column(String(255))
    player_name:        Mapped[str]      = mapped_column(String(255))
    holes:              Mapped[list]     = mapped_column(JSON)
    total_strokes:      Mapped[int]      = mapped_column(Integer, default=0)
    total_score_to_par: Mapped[int]      = mapped_column(Integer, default=0)
    holes_completed:    Mapped[int]      = mapped_column(Integer, default=0)


class CheckInRecord(Base):
    """Event-day arrival."""
    __tablename__ = "check_ins"

    id:              Mapped[int]           = mapped_column(Integer, primary_key=True, autoincrement=True)
    bracket_id:      Mapped[int]           = mapped_column(Integer, index=True)
    registration_id: Mapped[str]           = mapped_column(String(64), index=True)
    player_name:     Mapped[str]           = mapped_column(String(255))
    checked_in_at:   Mapped[datetime]      = mapped_column(DateTime(timezone=True))
    cart_number:     Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    starting_hole:   Mapped[int]           = mapped_column(Integer, default=1)
    notes:           Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
