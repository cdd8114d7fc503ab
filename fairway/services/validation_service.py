"""
Registration validator — policy checks run at creation time.

Collects every violated rule instead of stopping at the first one, so a
form can highlight all offending fields in one round trip. The same rules
run on a parsed Registration and on a raw form payload that failed shape
validation, so format errors never hide policy errors.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, List, Mapping, Optional, Sequence, Tuple

from fairway.config import WorkflowConfig
from fairway.models.domain import Registration
from fairway.models.models import RegistrationType

FOURSOME_ADDITIONAL_PLAYERS = 3

# (name, email) of each additional player
_Roster = Sequence[Tuple[str, str]]


def validate_registration(
    registration: Registration,
    config: WorkflowConfig,
    now: datetime,
) -> List[str]:
    """
    Return the list of violated rules (empty when the registration is valid).

    ``config`` must be the snapshot taken when validation started.
    Capacity is not checked here: the workflow decides between waitlisting
    and CapacityError once the registration is otherwise valid.
    """
    primary = registration.primary_player
    return _check(
        registration.type,
        primary.name, primary.email, primary.phone,
        primary.emergency_contact is not None,
        [(p.name, p.email) for p in registration.additional_players],
        config, now,
    )


def validate_payload(
    payload: Mapping[str, Any],
    config: WorkflowConfig,
    now: datetime,
) -> List[str]:
    """
    Run the policy rules on a raw form payload (camelCase or snake_case keys).
    Used when the payload could not be parsed, so malformed values are read
    leniently and only their presence is judged.
    """
    primary = _mapping(_get(payload, "primaryPlayer", "primary_player"))
    additional = _get(payload, "additionalPlayers", "additional_players")
    if not isinstance(additional, (list, tuple)):
        additional = []
    roster = [(_text(_get(_mapping(p), "name")), _text(_get(_mapping(p), "email"))) for p in additional]
    contact = _get(primary, "emergencyContact", "emergency_contact")
    return _check(
        payload.get("type"),
        _text(_get(primary, "name")), _text(_get(primary, "email")), _text(_get(primary, "phone")),
        bool(contact),
        roster,
        config, now,
    )


def _check(
    registration_type: Optional[str],
    name: str,
    email: str,
    phone: str,
    has_emergency_contact: bool,
    roster: _Roster,
    config: WorkflowConfig,
    now: datetime,
) -> List[str]:
    errors: List[str] = []

    # Submitting exactly at the deadline instant is still accepted
    if now > config.registration_deadline:
        errors.append("Registration deadline has passed")

    if not name.strip():
        errors.append("Primary player name is required")
    if not email.strip():
        errors.append("Primary player email is required")
    if not phone.strip():
        errors.append("Primary player phone is required")

    if config.require_emergency_contact and not has_emergency_contact:
        errors.append("Emergency contact information is required")

    if registration_type == RegistrationType.FOURSOME:
        errors.extend(_validate_foursome(roster))

    return errors


def _validate_foursome(roster: _Roster) -> List[str]:
    if len(roster) != FOURSOME_ADDITIONAL_PLAYERS:
        return ["Foursome registrations must include 3 additional players"]

    errors: List[str] = []
    # Player numbering starts at 2: the primary player is player 1
    for index, (name, email) in enumerate(roster, start=2):
        if not name.strip():
            errors.append(f"Player {index} name is required")
        if not email.strip():
            errors.append(f"Player {index} email is required")
    return errors


def _get(data: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    return None


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""
