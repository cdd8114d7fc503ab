"""
Unit tests — Input validation (validators.py) and the registration policy
validator (validation_service.py).

All tests are synchronous; no database session required.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from fairway.config import WorkflowConfig
from fairway.models.domain import EmergencyContact, PaymentInfo, PlayerInfo, Registration
from fairway.services.validation_service import validate_payload, validate_registration
from fairway.validators import (
    PlayerData,
    PreferencesData,
    RegistrationRequest,
    ScoreSubmission,
    error_messages,
)

NOW = datetime(2026, 3, 1, tzinfo=timezone.utc)


# ─────────────────────────── PlayerData ───────────────────────────────────────

class TestPlayerData:
    def test_email_is_lowercased(self) -> None:
        p = PlayerData(name="Ann", email="Ann.Lee@Example.COM", phone="555-010-0000")
        assert p.email == "ann.lee@example.com"

    def test_camel_case_aliases(self) -> None:
        p = PlayerData.model_validate({
            "name": "Ann",
            "email": "ann@example.com",
            "phone": "+1 (555) 010-0000",
            "dietaryRestrictions": "vegan",
            "emergencyContact": {"name": "Bo", "phone": "555-999-0000"},
        })
        player = p.to_player()
        assert player.dietary_restrictions == "vegan"
        assert player.emergency_contact.name == "Bo"

    @pytest.mark.parametrize("email", ["no-at-sign", "a@b", "two words@x.com"])
    def test_bad_email(self, email) -> None:
        with pytest.raises(ValidationError):
            PlayerData(name="Ann", email=email)

    def test_short_phone(self) -> None:
        with pytest.raises(ValidationError):
            PlayerData(name="Ann", phone="12345")

    @pytest.mark.parametrize("handicap", [-1, 54.1])
    def test_handicap_range(self, handicap) -> None:
        with pytest.raises(ValidationError):
            PlayerData(name="Ann", handicap=handicap)

    def test_empty_contact_fields_allowed(self) -> None:
        p = PlayerData()
        assert (p.name, p.email, p.phone) == ("", "", "")


# ─────────────────────────── Preferences / request ────────────────────────────

class TestPreferences:
    @pytest.mark.parametrize("name", ["AB", "x" * 51, "Tom & Jerry", "<script>"])
    def test_bad_team_names(self, name) -> None:
        with pytest.raises(ValidationError):
            PreferencesData(team_name=name)

    def test_good_team_name(self) -> None:
        assert PreferencesData(teamName="  Eagles  ").team_name == "Eagles"

    def test_shirt_size_choices(self) -> None:
        with pytest.raises(ValidationError):
            PreferencesData(shirt_size="XS")


class TestRegistrationRequest:
    def test_defaults(self) -> None:
        r = RegistrationRequest.model_validate({"type": "individual", "primaryPlayer": {"name": "A"}})
        assert r.metadata == {"source": "website"}
        assert r.additional_players == []
        assert r.payment_method is None

    def test_unknown_type(self) -> None:
        with pytest.raises(ValidationError):
            RegistrationRequest.model_validate({"type": "twosome", "primaryPlayer": {}})

    def test_unknown_source(self) -> None:
        with pytest.raises(ValidationError) as exc:
            RegistrationRequest.model_validate({
                "type": "individual", "primaryPlayer": {}, "metadata": {"source": "fax"},
            })
        assert error_messages(exc.value) == ["metadata: Unknown registration source"]


# ─────────────────────────── ScoreSubmission ─────────────────────────────────

class TestScoreSubmission:
    def test_valid(self) -> None:
        s = ScoreSubmission(registration_id="reg_a", hole_number=18, strokes=4, putts=2, penalties=None)
        assert s.penalties == 0

    @pytest.mark.parametrize("field, value", [
        ("hole_number", 0), ("hole_number", 19), ("strokes", -1),
        ("putts", -1), ("penalties", -2), ("strokes", 4.5),
    ])
    def test_out_of_range(self, field, value) -> None:
        data = {"registration_id": "reg_a", "hole_number": 1, "strokes": 4}
        data[field] = value
        with pytest.raises(ValidationError):
            ScoreSubmission(**data)

    def test_error_messages_name_the_field(self) -> None:
        with pytest.raises(ValidationError) as exc:
            ScoreSubmission(registration_id="reg_a", hole_number=19, strokes=4)
        [message] = error_messages(exc.value)
        assert message.startswith("hole_number: ")


# ─────────────────────────── validate_registration ───────────────────────────

def _registration(reg_type: str = "individual", extra: int = 0, **player) -> Registration:
    defaults = dict(
        name="Ann", email="ann@example.com", phone="5550100000",
        emergency_contact=EmergencyContact("Bo", "5559990000"),
    )
    defaults.update(player)
    return Registration(
        id="reg_x",
        type=reg_type,
        primary_player=PlayerInfo(**defaults),
        additional_players=[
            PlayerInfo(name=f"P{i}", email=f"p{i}@example.com") for i in range(extra)
        ],
        payment_info=PaymentInfo(amount=0, fees=0, total=0),
    )


class TestValidateRegistration:
    def test_valid_individual(self) -> None:
        assert validate_registration(_registration(), WorkflowConfig(), NOW) == []

    def test_valid_foursome(self) -> None:
        assert validate_registration(_registration("foursome", extra=3), WorkflowConfig(), NOW) == []

    def test_foursome_players_numbered_from_two(self) -> None:
        reg = _registration("foursome", extra=3)
        reg.additional_players[1].name = ""
        reg.additional_players[2].email = " "
        assert validate_registration(reg, WorkflowConfig(), NOW) == [
            "Player 3 name is required",
            "Player 4 email is required",
        ]

    def test_emergency_contact_policy(self) -> None:
        reg = _registration(emergency_contact=None)
        assert validate_registration(reg, WorkflowConfig(), NOW) == [
            "Emergency contact information is required"
        ]
        relaxed = WorkflowConfig(require_emergency_contact=False)
        assert validate_registration(reg, relaxed, NOW) == []

    def test_deadline_is_inclusive(self) -> None:
        config = WorkflowConfig()
        deadline = config.registration_deadline
        assert validate_registration(_registration(), config, deadline) == []
        assert validate_registration(_registration(), config, deadline + timedelta(seconds=1)) == [
            "Registration deadline has passed"
        ]


# ─────────────────────────── validate_payload ────────────────────────────────

class TestValidatePayload:
    def test_malformed_values_only_judged_for_presence(self) -> None:
        payload = {
            "type": "individual",
            "primaryPlayer": {
                "name": "Ann",
                "email": "not-an-email",
                "phone": "",
                "emergencyContact": {"name": "Bo", "phone": "5559990000"},
            },
        }
        assert validate_payload(payload, WorkflowConfig(), NOW) == [
            "Primary player phone is required"
        ]

    def test_snake_case_foursome(self) -> None:
        payload = {
            "type": "foursome",
            "primary_player": {"name": "Ann", "email": "a@x.io", "phone": "5550100000"},
            "additional_players": [{"name": "P2", "email": "p2@x.io"}, {"name": 7}],
        }
        assert validate_payload(payload, WorkflowConfig(), NOW) == [
            "Emergency contact information is required",
            "Foursome registrations must include 3 additional players",
        ]

    def test_garbage_shapes_report_missing_fields(self) -> None:
        errors = validate_payload({"primaryPlayer": "Ann"}, WorkflowConfig(), NOW)
        assert errors == [
            "Primary player name is required",
            "Primary player email is required",
            "Primary player phone is required",
            "Emergency contact information is required",
        ]
