"""
In-memory domain objects used by the registration and live scoring services.

JSON shapes keep the field names the web front-end already consumes:
camelCase for registrations, snake_case for leaderboard / scorecard data.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fairway.models.models import (
    Course,
    PaymentStatus,
    RegistrationStatus,
    RegistrationType,
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


# ─────────────────────────── Registration ─────────────────────────────────────

@dataclass
class EmergencyContact:
    name:  str
    phone: str

    def to_dict(self) -> dict:
        return {"name": self.name, "phone": self.phone}


@dataclass
class PlayerInfo:
    name:                 str
    email:                str
    phone:                str = ""
    company:              Optional[str] = None
    handicap:             Optional[float] = None
    dietary_restrictions: Optional[str] = None
    emergency_contact:    Optional[EmergencyContact] = None
    telegram_chat_id:     Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "name":                self.name,
            "email":               self.email,
            "phone":               self.phone,
            "company":             self.company,
            "handicap":            self.handicap,
            "dietaryRestrictions": self.dietary_restrictions,
            "emergencyContact":    self.emergency_contact.to_dict() if self.emergency_contact else None,
            "telegramChatId":      self.telegram_chat_id,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PlayerInfo":
        contact = data.get("emergencyContact")
        return cls(
            name=data.get("name", ""),
            email=data.get("email", ""),
            phone=data.get("phone", ""),
            company=data.get("company"),
            handicap=data.get("handicap"),
            dietary_restrictions=data.get("dietaryRestrictions"),
            emergency_contact=EmergencyContact(**contact) if contact else None,
            telegram_chat_id=data.get("telegramChatId"),
        )


@dataclass
class PaymentInfo:
    """Amounts in minor units. ``total`` is always ``amount + fees``."""
    amount:            int
    fees:              int
    total:             int
    status:            str = PaymentStatus.PENDING
    method:            Optional[str] = None
    payment_intent_id: Optional[str] = None
    paid_at:           Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "amount":          self.amount,
            "fees":            self.fees,
            "total":           self.total,
            "status":          self.status,
            "method":          self.method,
            "paymentIntentId": self.payment_intent_id,
            "paidAt":          _iso(self.paid_at),
        }


@dataclass
class RegistrationPreferences:
    wants_cart:         bool = False
    wants_caddie:       bool = False
    shirt_size:         Optional[str] = None
    special_requests:   Optional[str] = None
    team_name:          Optional[str] = None
    preferred_tee_time: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "wantsCart":        self.wants_cart,
            "wantsCaddie":      self.wants_caddie,
            "shirtSize":        self.shirt_size,
            "specialRequests":  self.special_requests,
            "teamName":         self.team_name,
            "preferredTeeTime": self.preferred_tee_time,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "RegistrationPreferences":
        return cls(
            wants_cart=bool(data.get("wantsCart", False)),
            wants_caddie=bool(data.get("wantsCaddie", False)),
            shirt_size=data.get("shirtSize"),
            special_requests=data.get("specialRequests"),
            team_name=data.get("teamName"),
            preferred_tee_time=data.get("preferredTeeTime"),
        )


@dataclass
class Registration:
    id:                 str
    type:               str                       # RegistrationType.*
    primary_player:     PlayerInfo
    payment_info:       PaymentInfo
    status:             str = RegistrationStatus.DRAFT
    additional_players: List[PlayerInfo] = field(default_factory=list)
    preferences:        RegistrationPreferences = field(default_factory=RegistrationPreferences)
    metadata:           Dict[str, Any] = field(default_factory=dict)
    sequence:           int = 0                   # creation ordinal, FIFO key
    checkin_token:      Optional[str] = None
    created_at:         datetime = field(default_factory=utcnow)
    updated_at:         datetime = field(default_factory=utcnow)

    @property
    def player_count(self) -> int:
        return RegistrationType.players_needed(self.type)

    @property
    def display_name(self) -> str:
        """Team name when one was chosen, otherwise the primary player's name."""
        return self.preferences.team_name or self.primary_player.name

    @property
    def players(self) -> List[PlayerInfo]:
        return [self.primary_player, *self.additional_players]

    def to_dict(self) -> dict:
        return {
            "id":                self.id,
            "type":              self.type,
            "status":            self.status,
            "primaryPlayer":     self.primary_player.to_dict(),
            "additionalPlayers": [p.to_dict() for p in self.additional_players],
            "paymentInfo":       self.payment_info.to_dict(),
            "preferences":       self.preferences.to_dict(),
            "metadata":          dict(self.metadata),
            "checkinToken":      self.checkin_token,
            "createdAt":         _iso(self.created_at),
            "updatedAt":         _iso(self.updated_at),
        }


# ─────────────────────────── Scoring ──────────────────────────────────────────

@dataclass
class HoleScore:
    hole_number:  int
    par:          int
    strokes:      int = 0                 # 0 = not played yet
    putts:        Optional[int] = None
    penalties:    int = 0
    score_to_par: int = 0
    notes:        Optional[str] = None

    @property
    def is_played(self) -> bool:
        return self.strokes > 0

    def to_dict(self) -> dict:
        return {
            "hole_number":  self.hole_number,
            "par":          self.par,
            "strokes":      self.strokes,
            "putts":        self.putts,
            "penalties":    self.penalties,
            "score_to_par": self.score_to_par,
            "notes":        self.notes,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "HoleScore":
        return cls(
            hole_number=data["hole_number"],
            par=data["par"],
            strokes=data.get("strokes", 0),
            putts=data.get("putts"),
            penalties=data.get("penalties") or 0,
            score_to_par=data.get("score_to_par", 0),
            notes=data.get("notes"),
        )


@dataclass
class Scorecard:
    registration_id:    str
    team_name:          str
    player_name:        str
    holes:              List[HoleScore]
    total_strokes:      int = 0
    total_score_to_par: int = 0
    holes_completed:    int = 0

    @classmethod
    def blank(cls, registration_id: str, team_name: str, player_name: str) -> "Scorecard":
        """All 18 holes pre-populated at strokes=0."""
        holes = [HoleScore(hole_number=number, par=par) for number, par, _ in Course.HOLES]
        return cls(
            registration_id=registration_id,
            team_name=team_name,
            player_name=player_name,
            holes=holes,
        )

    def hole(self, hole_number: int) -> HoleScore:
        return self.holes[hole_number - 1]

    @property
    def is_complete(self) -> bool:
        return self.holes_completed == Course.HOLE_COUNT

    def to_dict(self) -> dict:
        return {
            "registration_id":    self.registration_id,
            "team_name":          self.team_name,
            "player_name":        self.player_name,
            "scores":             [h.to_dict() for h in self.holes],
            "total_strokes":      self.total_strokes,
            "total_score_to_par": self.total_score_to_par,
            "holes_completed":    self.holes_completed,
        }


@dataclass
class LeaderboardEntry:
    registration_id:    str
    team_name:          str
    bracket_id:         int = 1
    total_strokes:      int = 0
    total_score_to_par: int = 0
    holes_completed:    int = 0
    position:           int = 1
    is_tied:            bool = False
    updated_at:         Optional[datetime] = None
    id:                 Optional[int] = None
    players:            List[str] = field(default_factory=list)
    current_hole:       Optional[int] = None
    last_score:         Optional[int] = None

    @property
    def sort_key(self) -> tuple[int, int]:
        """Lower score-to-par wins; fewer strokes breaks equal score-to-par."""
        return (self.total_score_to_par, self.total_strokes)

    def to_dict(self) -> dict:
        return {
            "id":                 self.id,
            "bracket_id":         self.bracket_id,
            "registration_id":    self.registration_id,
            "team_name":          self.team_name,
            "total_strokes":      self.total_strokes,
            "total_score_to_par": self.total_score_to_par,
            "holes_completed":    self.holes_completed,
            "position":           self.position,
            "is_tied":            self.is_tied,
            "updated_at":         _iso(self.updated_at),
            "players":            list(self.players),
            "current_hole":       self.current_hole,
            "last_score":         self.last_score,
        }


@dataclass
class CheckIn:
    registration_id: str
    player_name:     str
    checked_in_at:   datetime = field(default_factory=utcnow)
    cart_number:     Optional[str] = None
    starting_hole:   int = 1
    notes:           Optional[str] = None

