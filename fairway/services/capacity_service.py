"""
Capacity tracker — derives registration counts and free player spots.

Counts are always recomputed from the full registration set; nothing is
cached between calls so a config change is visible immediately.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from fairway.models.domain import Registration
from fairway.models.models import RegistrationStatus, RegistrationType


@dataclass
class RegistrationStats:
    total_registrations:      int = 0
    confirmed_registrations:  int = 0
    pending_payments:         int = 0
    waitlisted_registrations: int = 0
    total_revenue:            int = 0
    confirmed_players:        int = 0
    available_spots:          int = 0

    def to_dict(self) -> dict:
        return {
            "totalRegistrations":      self.total_registrations,
            "confirmedRegistrations":  self.confirmed_registrations,
            "pendingPayments":         self.pending_payments,
            "waitlistedRegistrations": self.waitlisted_registrations,
            "totalRevenue":            self.total_revenue,
            "confirmedPlayers":        self.confirmed_players,
            "availableSpots":          self.available_spots,
        }


def players_needed(registration_type: str) -> int:
    """4 for a foursome, 1 for everything else."""
    return RegistrationType.players_needed(registration_type)


def compute_stats(
    registrations: Iterable[Registration],
    max_total_players: int,
) -> RegistrationStats:
    stats = RegistrationStats()

    for r in registrations:
        stats.total_registrations += 1
        if r.status == RegistrationStatus.CONFIRMED:
            stats.confirmed_registrations += 1
            stats.confirmed_players += r.player_count
            stats.total_revenue += r.payment_info.amount
        elif r.status in (RegistrationStatus.PAYMENT_PENDING, RegistrationStatus.PAYMENT_PROCESSING):
            stats.pending_payments += 1
        elif r.status == RegistrationStatus.WAITLISTED:
            stats.waitlisted_registrations += 1

    stats.available_spots = max(0, max_total_players - stats.confirmed_players)
    return stats


def players_in_payment(registrations: Iterable[Registration]) -> int:
    """Players held by registrations whose payment is in flight."""
    return sum(
        r.player_count for r in registrations
        if r.status == RegistrationStatus.PAYMENT_PROCESSING
    )


def would_exceed_capacity(
    confirmed_players: int,
    registration_type: str,
    max_total_players: int,
    reserved_players: int = 0,
) -> bool:
    return confirmed_players + reserved_players + players_needed(registration_type) > max_total_players
