"""
Waitlist promoter — decides which waitlisted registrations get a spot.

Strict FIFO by creation order: the queue is walked from the oldest entry
and stops at the first one that does not fit. A smaller registration
further down the line never jumps a larger one ahead of it.
"""
from __future__ import annotations

from typing import Iterable, List

from fairway.models.domain import Registration
from fairway.models.models import RegistrationStatus


def waitlist_queue(registrations: Iterable[Registration]) -> List[Registration]:
    """Waitlisted registrations, oldest first."""
    waiting = [r for r in registrations if r.status == RegistrationStatus.WAITLISTED]
    waiting.sort(key=lambda r: r.sequence)
    return waiting


def select_promotions(
    registrations: Iterable[Registration],
    available_spots: int,
) -> List[Registration]:
    """
    Return the registrations to move from ``waitlisted`` to ``payment_pending``.

    Parameters
    ----------
    registrations   : full registration set (any status)
    available_spots : max_total_players − confirmed players
    """
    promoted: List[Registration] = []
    for r in waitlist_queue(registrations):
        needed = r.player_count
        if available_spots < needed:
            break
        promoted.append(r)
        available_spots -= needed
    return promoted
