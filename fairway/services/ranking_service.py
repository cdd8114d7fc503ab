"""
Leaderboard ranking engine.

Algorithm (per bracket)
-----------------------
1. Sort entries by total_score_to_par ASC, tie-break by total_strokes ASC.
2. Reset every ``is_tied`` flag.
3. Walk the sorted list: the first entry gets position 1. An entry whose
   (score_to_par, strokes) equals its predecessor's shares that position,
   and both are flagged tied. Otherwise position = previous position + 1.

Positions are dense: scores -2, -2, -1 rank as T1, T1, 2.
Re-ranking an already ranked list changes nothing.
"""
from __future__ import annotations

import csv
import io
import json
import math
from dataclasses import dataclass
from typing import Dict, Iterable, List

from fairway.models.domain import LeaderboardEntry
from fairway.models.models import Course

CUT_LINE_MINIMUM = 10


@dataclass
class LeaderboardStats:
    total_teams:      int = 0
    completed_rounds: int = 0
    in_progress:      int = 0
    average_score:    float = 0.0
    best_score:       int = 0
    worst_score:      int = 0
    cut_line:         int = CUT_LINE_MINIMUM

    def to_dict(self) -> dict:
        return {
            "totalTeams":      self.total_teams,
            "completedRounds": self.completed_rounds,
            "inProgress":      self.in_progress,
            "averageScore":    self.average_score,
            "bestScore":       self.best_score,
            "worstScore":      self.worst_score,
            "cutLine":         self.cut_line,
        }


# ─────────────────────────── Main entry point ─────────────────────────────────

def recalculate_positions(entries: Iterable[LeaderboardEntry]) -> List[LeaderboardEntry]:
    """
    Rank entries in place and return them sorted by position.

    Parameters
    ----------
    entries : any iterable of LeaderboardEntry (one bracket)

    Returns
    -------
    New list, best first. The same entry objects are mutated.
    """
    ranked = sorted(entries, key=lambda e: e.sort_key)

    for e in ranked:
        e.is_tied = False

    for i, e in enumerate(ranked):
        if i == 0:
            e.position = 1
            continue
        prev = ranked[i - 1]
        if e.sort_key == prev.sort_key:
            e.position   = prev.position
            e.is_tied    = True
            prev.is_tied = True
        else:
            e.position = prev.position + 1

    return ranked


def leaders_by_position(entries: Iterable[LeaderboardEntry]) -> Dict[int, List[LeaderboardEntry]]:
    """Group ranked entries by position: {1: [A, B], 2: [C], ...}."""
    groups: Dict[int, List[LeaderboardEntry]] = {}
    for e in sorted(entries, key=lambda e: (e.position, e.sort_key)):
        groups.setdefault(e.position, []).append(e)
    return groups


def top_entries(entries: Iterable[LeaderboardEntry], limit: int = 10) -> List[LeaderboardEntry]:
    return sorted(entries, key=lambda e: (e.position, e.sort_key))[:limit]


# ─────────────────────────── Formatting helpers ───────────────────────────────

def format_position(entry: LeaderboardEntry) -> str:
    """'T3' for a shared position, '3' otherwise."""
    return f"T{entry.position}" if entry.is_tied else str(entry.position)


def format_score_to_par(score: int) -> str:
    """
    Golf notation for a relative score.
    Example: 0 → "E", 3 → "+3", -2 → "-2"
    """
    if score == 0:
        return "E"
    return f"+{score}" if score > 0 else str(score)


def format_leaderboard_line(entry: LeaderboardEntry) -> str:
    """
    One leaderboard row for chat display.
    Example: "T1  Eagles — -2 (70) thru 18"
    """
    thru = "F" if entry.holes_completed == Course.HOLE_COUNT else str(entry.holes_completed)
    return (
        f"{format_position(entry):<4}{entry.team_name} — "
        f"{format_score_to_par(entry.total_score_to_par)} "
        f"({entry.total_strokes}) thru {thru}"
    )


def export_leaderboard(entries: Iterable[LeaderboardEntry], fmt: str = "csv") -> str:
    """
    Serialize a leaderboard as CSV (every cell quoted) or indented JSON.
    Raises ValueError for an unknown format.
    """
    entries = list(entries)
    if fmt == "json":
        return json.dumps([e.to_dict() for e in entries], indent=2)
    if fmt != "csv":
        raise ValueError(f"Unsupported export format: {fmt}")

    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow([
        "Position", "Team Name", "Total Strokes",
        "Score to Par", "Holes Completed", "Last Updated",
    ])
    for e in entries:
        writer.writerow([
            format_position(e),
            e.team_name,
            e.total_strokes,
            f"+{e.total_score_to_par}" if e.total_score_to_par > 0 else e.total_score_to_par,
            e.holes_completed,
            e.updated_at.isoformat() if e.updated_at else "",
        ])
    return buf.getvalue().rstrip("\n")


def compute_leaderboard_stats(entries: Iterable[LeaderboardEntry]) -> LeaderboardStats:
    entries = list(entries)
    if not entries:
        return LeaderboardStats()

    scores = [e.total_score_to_par for e in entries]
    return LeaderboardStats(
        total_teams=len(entries),
        completed_rounds=sum(1 for e in entries if e.holes_completed == Course.HOLE_COUNT),
        in_progress=sum(1 for e in entries if 0 < e.holes_completed < Course.HOLE_COUNT),
        average_score=round(sum(scores) / len(scores), 1),
        best_score=min(scores),
        worst_score=max(scores),
        cut_line=max(CUT_LINE_MINIMUM, math.ceil(len(entries) / 2)),
    )
