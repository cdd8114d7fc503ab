"""
Input validation for registration forms and score submissions — Pydantic v2 models.

Validates the *shape* of user-supplied payloads (types, ranges, formats)
before they reach the workflow. Policy checks that depend on tournament
state (deadline, capacity, required emergency contact) live in
fairway.services.validation_service.

Empty name / email / phone strings are accepted here on purpose: the
workflow validator reports them together with every other policy problem.
"""
from __future__ import annotations

import re
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from fairway.models.domain import (
    EmergencyContact,
    PlayerInfo,
    RegistrationPreferences,
)

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_PHONE_RE = re.compile(r"^\+?[\d\-()]{10,}$")
_TEAM_NAME_FORBIDDEN = re.compile(r"[<>\"'&]")


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class EmergencyContactData(_CamelModel):
    name:  str
    phone: str


class PlayerData(_CamelModel):
    """
    One golfer on a registration.

    Attributes
    ----------
    name, email, phone   : contact details (emptiness checked by the workflow)
    handicap             : USGA handicap index, 0–54
    emergency_contact    : name + phone
    telegram_chat_id     : where registration notices are delivered
    """

    name:                 str = ""
    email:                str = ""
    phone:                str = ""
    company:              Optional[str] = None
    handicap:             Optional[float] = None
    dietary_restrictions: Optional[str] = None
    emergency_contact:    Optional[EmergencyContactData] = None
    telegram_chat_id:     Optional[int] = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        if v and not _EMAIL_RE.match(v):
            raise ValueError("Invalid email address")
        return v.lower()

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        if v and not _PHONE_RE.match(v.replace(" ", "")):
            raise ValueError("Invalid phone number")
        return v

    @field_validator("handicap")
    @classmethod
    def validate_handicap(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and (v < 0 or v > 54):
            raise ValueError("Handicap must be between 0 and 54")
        return v

    def to_player(self) -> PlayerInfo:
        contact = None
        if self.emergency_contact is not None:
            contact = EmergencyContact(
                name=self.emergency_contact.name,
                phone=self.emergency_contact.phone,
            )
        return PlayerInfo(
            name=self.name,
            email=self.email,
            phone=self.phone,
            company=self.company,
            handicap=self.handicap,
            dietary_restrictions=self.dietary_restrictions,
            emergency_contact=contact,
            telegram_chat_id=self.telegram_chat_id,
        )


class PreferencesData(_CamelModel):
    wants_cart:         bool = False
    wants_caddie:       bool = False
    shirt_size:         Optional[Literal["S", "M", "L", "XL", "XXL"]] = None
    special_requests:   Optional[str] = None
    team_name:          Optional[str] = None
    preferred_tee_time: Optional[Literal["morning", "afternoon", "any"]] = None

    @field_validator("team_name")
    @classmethod
    def validate_team_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        if len(v) < 3 or len(v) > 50:
            raise ValueError("Team name must be 3 to 50 characters")
        if _TEAM_NAME_FORBIDDEN.search(v):
            raise ValueError("Team name contains forbidden characters")
        return v

    def to_preferences(self) -> RegistrationPreferences:
        return RegistrationPreferences(
            wants_cart=self.wants_cart,
            wants_caddie=self.wants_caddie,
            shirt_size=self.shirt_size,
            special_requests=self.special_requests,
            team_name=self.team_name,
            preferred_tee_time=self.preferred_tee_time,
        )


class RegistrationRequest(_CamelModel):
    """
    Registration form payload.

    Accepts both the camelCase field names used by the web front-end
    (``primaryPlayer``, ``additionalPlayers``) and snake_case.
    """

    type:               Literal["individual", "foursome", "corporate_sponsor"]
    primary_player:     PlayerData
    additional_players: List[PlayerData] = Field(default_factory=list)
    preferences:        PreferencesData = Field(default_factory=PreferencesData)
    payment_method:     Optional[Literal["stripe", "paypal", "bank_transfer", "check"]] = None
    metadata:           Dict[str, Any] = Field(default_factory=lambda: {"source": "website"})

    @field_validator("metadata")
    @classmethod
    def validate_source(cls, v: Dict[str, Any]) -> Dict[str, Any]:
        source = v.setdefault("source", "website")
        if source not in ("website", "admin", "import"):
            raise ValueError("Unknown registration source")
        return v


class ScoreSubmission(BaseModel):
    """
    A single hole result entered by a scorer.

    Attributes
    ----------
    hole_number : 1–18
    strokes     : ≥ 0 (0 clears the hole)
    putts       : optional, ≥ 0
    penalties   : ≥ 0, default 0
    """

    registration_id: str = Field(min_length=1)
    hole_number:     int = Field(ge=1, le=18)
    strokes:         int = Field(ge=0)
    putts:           Optional[int] = Field(default=None, ge=0)
    penalties:       int = Field(default=0, ge=0)
    notes:           Optional[str] = Field(default=None, max_length=500)

    @field_validator("penalties", mode="before")
    @classmethod
    def default_penalties(cls, v: Any) -> Any:
        return 0 if v is None else v


def error_messages(exc: ValidationError) -> List[str]:
    """Flatten a pydantic ValidationError into human-readable messages."""
    messages: List[str] = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ()))
        msg = err.get("msg", "invalid value")
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        messages.append(f"{loc}: {msg}" if loc else msg)
    return messages
