"""
Team formation and tee-time pairings.

Both work on confirmed registrations only and group golfers in fours after
sorting them by handicap index, so each group holds players of similar
ability. Golfers without a handicap are left out, and a trailing group of
fewer than four is not formed.

    auto_form_teams   : confirmed individual sign-ups → scramble teams
    generate_pairings : every confirmed golfer → foursomes at fixed tee intervals
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, Optional

from fairway.config import settings
from fairway.models.domain import PlayerInfo, Registration
from fairway.models.models import RegistrationStatus, RegistrationType

GROUP_SIZE = 4


@dataclass
class Team:
    team_id:          str
    team_name:        str
    players:          List[PlayerInfo] = field(default_factory=list)
    average_handicap: float = 0.0

    def to_dict(self) -> dict:
        return {
            "teamId":          self.team_id,
            "teamName":        self.team_name,
            "players":         [p.to_dict() for p in self.players],
            "averageHandicap": self.average_handicap,
        }


@dataclass
class Pairing:
    pairing_id:       str
    tee_time:         datetime
    players:          List[PlayerInfo] = field(default_factory=list)
    average_handicap: float = 0.0

    def to_dict(self) -> dict:
        return {
            "pairingId":       self.pairing_id,
            "teeTime":         self.tee_time.isoformat(),
            "players":         [p.to_dict() for p in self.players],
            "averageHandicap": self.average_handicap,
        }


def average_handicap(players: List[PlayerInfo]) -> float:
    """Mean handicap index rounded half up to one decimal."""
    total = sum(Decimal(str(p.handicap)) for p in players)
    mean = total / Decimal(len(players))
    return float(mean.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def _groups_by_handicap(players: Iterable[PlayerInfo]) -> List[List[PlayerInfo]]:
    # sorted() is stable: equal handicaps keep registration order
    ranked = sorted((p for p in players if p.handicap is not None), key=lambda p: p.handicap)
    return [
        ranked[i:i + GROUP_SIZE]
        for i in range(0, len(ranked) - GROUP_SIZE + 1, GROUP_SIZE)
    ]


def auto_form_teams(registrations: Iterable[Registration]) -> List[Team]:
    """Build four-player teams from confirmed individual registrations."""
    players = [
        r.primary_player
        for r in registrations
        if r.status == RegistrationStatus.CONFIRMED and r.type == RegistrationType.INDIVIDUAL
    ]
    return [
        Team(
            team_id=f"team_{n}",
            team_name=f"Team {n}",
            players=group,
            average_handicap=average_handicap(group),
        )
        for n, group in enumerate(_groups_by_handicap(players), start=1)
    ]


def generate_pairings(
    registrations: Iterable[Registration],
    first_tee_time: Optional[datetime] = None,
    interval_minutes: Optional[int] = None,
) -> List[Pairing]:
    """
    Assign every confirmed golfer (primary and additional players) to a
    foursome. Group N tees off at ``first_tee_time + (N - 1) × interval``.
    """
    start = first_tee_time or settings.FIRST_TEE_TIME
    step = timedelta(minutes=interval_minutes if interval_minutes is not None else settings.TEE_INTERVAL_MINUTES)

    players: List[PlayerInfo] = []
    for r in registrations:
        if r.status == RegistrationStatus.CONFIRMED:
            players.extend(r.players)

    return [
        Pairing(
            pairing_id=f"pairing_{n + 1}",
            tee_time=start + n * step,
            players=group,
            average_handicap=average_handicap(group),
        )
        for n, group in enumerate(_groups_by_handicap(players))
    ]
