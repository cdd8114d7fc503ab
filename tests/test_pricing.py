"""
Unit tests — Pricing calculator and capacity helpers.

Pure functions; no database, no event loop.
"""
from __future__ import annotations

import pytest

from fairway.models.domain import PaymentInfo, PlayerInfo, Registration
from fairway.models.models import RegistrationStatus
from fairway.services.capacity_service import (
    compute_stats,
    players_in_payment,
    players_needed,
    would_exceed_capacity,
)
from fairway.services.pricing_service import (
    calculate_fees,
    calculate_pricing,
    format_amount,
    validate_amount,
)


# ─────────────────────────── Fees ─────────────────────────────────────────────

class TestCalculateFees:
    @pytest.mark.parametrize("amount, fees", [
        (15000, 465),      # 435 + 30
        (55000, 1625),     # 1595 + 30
        (100000, 2930),    # 2900 + 30
        (0, 30),
    ])
    def test_default_rate(self, amount, fees) -> None:
        assert calculate_fees(amount, 2.9, 30) == fees

    def test_half_cent_rounds_up(self) -> None:
        # 500 × 2.9 % = 14.5
        assert calculate_fees(500, 2.9, 30) == 45

    def test_custom_rate(self) -> None:
        assert calculate_fees(10000, 3.5, 0) == 350


class TestCalculatePricing:
    @pytest.mark.parametrize("reg_type, base", [
        ("individual", 15000),
        ("foursome", 55000),
        ("corporate_sponsor", 100000),
    ])
    def test_total_is_base_plus_fees(self, reg_type, base) -> None:
        p = calculate_pricing(reg_type, 2.9, 30)
        assert p.base_amount == base
        assert p.total == p.base_amount + p.fees

    def test_to_dict(self) -> None:
        assert calculate_pricing("individual", 2.9, 30).to_dict() == {
            "baseAmount": 15000, "fees": 465, "total": 15465,
        }


class TestAmountHelpers:
    def test_format_usd(self) -> None:
        assert format_amount(15465, "usd") == "$154.65"
        assert format_amount(100000, "usd") == "$1,000.00"

    def test_format_other_currency(self) -> None:
        assert format_amount(2500, "eur") == "25.00 EUR"

    @pytest.mark.parametrize("amount, ok", [
        (0, False), (49, False), (50, True), (100_000_000, True), (100_000_001, False),
    ])
    def test_validate_amount(self, amount, ok) -> None:
        assert (validate_amount(amount) is None) is ok


# ─────────────────────────── Capacity ─────────────────────────────────────────

def _reg(rid: str, reg_type: str, status: str) -> Registration:
    return Registration(
        id=rid,
        type=reg_type,
        status=status,
        primary_player=PlayerInfo(name="P", email="p@example.com", phone="5550100000"),
        payment_info=PaymentInfo(amount=15000, fees=465, total=15465),
    )


class TestCapacity:
    def test_players_needed(self) -> None:
        assert players_needed("foursome") == 4
        assert players_needed("individual") == 1
        assert players_needed("corporate_sponsor") == 1

    def test_stats_count_only_confirmed_players(self) -> None:
        regs = [
            _reg("a", "foursome", RegistrationStatus.CONFIRMED),
            _reg("b", "individual", RegistrationStatus.PAYMENT_PROCESSING),
            _reg("c", "individual", RegistrationStatus.WAITLISTED),
            _reg("d", "individual", RegistrationStatus.CANCELLED),
        ]
        stats = compute_stats(regs, max_total_players=10)
        assert stats.confirmed_players == 4
        assert stats.available_spots == 6
        assert stats.pending_payments == 1
        assert stats.waitlisted_registrations == 1
        assert stats.total_registrations == 4
        assert players_in_payment(regs) == 1

    def test_available_spots_never_negative(self) -> None:
        regs = [_reg("a", "foursome", RegistrationStatus.CONFIRMED)]
        assert compute_stats(regs, max_total_players=2).available_spots == 0

    def test_would_exceed_capacity(self) -> None:
        assert would_exceed_capacity(140, "foursome", 144) is False
        assert would_exceed_capacity(141, "foursome", 144) is True
        assert would_exceed_capacity(140, "individual", 144, reserved_players=4) is True
