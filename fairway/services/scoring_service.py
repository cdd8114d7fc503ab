"""
Live scoring — check-in, hole-by-hole score ingestion and results.

One LiveScoringService instance owns one bracket. Every score event:

    validate → overwrite the hole → recompute card totals
             → update the team's leaderboard entry → re-rank the bracket
             → persist → swap in → highlight → notify subscribers

Invalid input raises InvalidScoreError before anything is touched.
"""
from __future__ import annotations

import asyncio
import copy
import csv
import inspect
import io
import json
import logging
import math
from collections import Counter
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Tuple, Union

from pydantic import ValidationError as PydanticValidationError

from fairway.config import settings
from fairway.exceptions import InvalidScoreError
from fairway.models.domain import CheckIn, LeaderboardEntry, Scorecard, utcnow
from fairway.models.models import Course
from fairway.services.ranking_service import (
    LeaderboardStats,
    compute_leaderboard_stats,
    export_leaderboard,
    recalculate_positions,
)
from fairway.services.storage_service import ScoringStorage
from fairway.validators import ScoreSubmission, error_messages

logger = logging.getLogger(__name__)

FLIGHT_NAMES = ("Championship Flight", "First Flight", "Second Flight")


@dataclass(frozen=True)
class LiveScoreUpdate:
    bracket_id:         int
    registration_id:    str
    hole_number:        int
    strokes:            int
    score_to_par:       int
    total_strokes:      int
    total_score_to_par: int
    holes_completed:    int
    timestamp:          datetime


@dataclass(frozen=True)
class PositionChange:
    registration_id: str
    old_position:    int
    new_position:    int


@dataclass
class SubmitResult:
    success: bool
    error:   Optional[str] = None

    def to_dict(self) -> dict:
        data: Dict[str, Any] = {"success": self.success}
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass
class ScoringStats:
    total_scorecards:        int = 0
    completed_rounds:        int = 0
    in_progress:             int = 0
    average_score:           float = 0.0
    best_score:              int = 0
    scoring_completion_rate: float = 0.0

    def to_dict(self) -> dict:
        return {
            "total_scorecards":        self.total_scorecards,
            "completed_rounds":        self.completed_rounds,
            "in_progress":             self.in_progress,
            "average_score":           self.average_score,
            "best_score":              self.best_score,
            "scoring_completion_rate": self.scoring_completion_rate,
        }


@dataclass
class CheckInStats:
    total_registrations: int = 0
    checked_in:          int = 0
    pending_checkin:     int = 0
    check_in_rate:       float = 0.0
    peak_checkin_time:   str = ""

    def to_dict(self) -> dict:
        return {
            "total_registrations": self.total_registrations,
            "checked_in":          self.checked_in,
            "pending_checkin":     self.pending_checkin,
            "check_in_rate":       self.check_in_rate,
            "peak_checkin_time":   self.peak_checkin_time,
        }


@dataclass
class Prize:
    category: str
    winner:   Scorecard
    score:    int


@dataclass
class TournamentResults:
    overall:   List[Scorecard] = field(default_factory=list)
    by_flight: Dict[str, List[Scorecard]] = field(default_factory=dict)
    prizes:    List[Prize] = field(default_factory=list)


ScoreListener = Callable[
    [LiveScoreUpdate, List[PositionChange]], Union[None, Awaitable[None]]
]


# ─────────────────────────── Pure helpers ─────────────────────────────────────

def recompute_totals(card: Scorecard) -> Scorecard:
    """Refresh per-hole score_to_par and card aggregates (in place). Unplayed holes count zero."""
    for h in card.holes:
        h.score_to_par = h.strokes - h.par if h.is_played else 0
    played = [h for h in card.holes if h.is_played]
    card.holes_completed    = len(played)
    card.total_strokes      = sum(h.strokes for h in played)
    card.total_score_to_par = sum(h.score_to_par for h in played)
    return card


def compute_scoring_stats(scorecards: List[Scorecard]) -> ScoringStats:
    total = len(scorecards)
    if total == 0:
        return ScoringStats()

    completed = [c.total_score_to_par for c in scorecards if c.is_complete]
    in_progress = sum(1 for c in scorecards if 0 < c.holes_completed < Course.HOLE_COUNT)
    return ScoringStats(
        total_scorecards=total,
        completed_rounds=len(completed),
        in_progress=in_progress,
        average_score=round(sum(completed) / len(completed), 1) if completed else 0.0,
        best_score=min(completed) if completed else 0,
        scoring_completion_rate=round(len(completed) / total * 100, 2),
    )


def compute_check_in_stats(check_ins: List[CheckIn], total_registrations: int) -> CheckInStats:
    """
    Arrival progress against the expected field.

    ``peak_checkin_time`` is the UTC hour with the most arrivals ("8:00");
    the earliest such hour wins a tie.
    """
    checked_in = len(check_ins)
    hours = Counter(
        f"{c.checked_in_at.astimezone(timezone.utc).hour}:00"
        for c in sorted(check_ins, key=lambda c: c.checked_in_at)
    )
    peak = hours.most_common(1)
    return CheckInStats(
        total_registrations=total_registrations,
        checked_in=checked_in,
        pending_checkin=max(0, total_registrations - checked_in),
        check_in_rate=round(checked_in / total_registrations * 100, 2) if total_registrations > 0 else 0.0,
        peak_checkin_time=peak[0][0] if peak else "",
    )


def generate_results(scorecards: List[Scorecard]) -> TournamentResults:
    """
    Final standings from completed 18-hole cards.

    The field is split into three flights of ceil(n/3) cards, best first.
    Prizes: Overall Champion, Runner-up, then each non-empty flight's winner.
    """
    overall = sorted(
        (c for c in scorecards if c.is_complete),
        key=lambda c: (c.total_score_to_par, c.total_strokes),
    )
    size = math.ceil(len(overall) / len(FLIGHT_NAMES)) if overall else 0
    by_flight = {
        name: overall[i * size:(i + 1) * size]
        for i, name in enumerate(FLIGHT_NAMES)
    }

    prizes: List[Prize] = []
    for category, index in (("Overall Champion", 0), ("Runner-up", 1)):
        if len(overall) > index:
            card = overall[index]
            prizes.append(Prize(category, card, card.total_score_to_par))
    for name, cards in by_flight.items():
        if cards:
            prizes.append(Prize(f"{name} Winner", cards[0], cards[0].total_score_to_par))

    return TournamentResults(overall=overall, by_flight=by_flight, prizes=prizes)


def export_scorecards(scorecards: List[Scorecard], fmt: str = "csv") -> str:
    """Hole-by-hole export: strokes per hole, then score to par per hole."""
    if fmt == "json":
        return json.dumps([c.to_dict() for c in scorecards], indent=2)
    if fmt != "csv":
        raise ValueError(f"Unsupported export format: {fmt}")

    numbers = [number for number, _, _ in Course.HOLES]
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(
        ["Registration ID", "Team Name", "Player Name",
         "Total Strokes", "Score to Par", "Holes Completed"]
        + [f"Hole {n}" for n in numbers]
        + [f"H{n} Par" for n in numbers]
    )
    for c in scorecards:
        writer.writerow(
            [c.registration_id, c.team_name, c.player_name, c.total_strokes,
             f"+{c.total_score_to_par}" if c.total_score_to_par > 0 else c.total_score_to_par,
             c.holes_completed]
            + [h.strokes for h in c.holes]
            + [h.score_to_par for h in c.holes]
        )
    return buf.getvalue().rstrip("\n")


# ─────────────────────────── Service ──────────────────────────────────────────

class LiveScoringService:
    """
    Scorecards and leaderboard of one bracket.

    Parameters
    ----------
    storage           : persistence collaborator
    bracket_id        : bracket this instance owns (DEFAULT_BRACKET_ID)
    highlight_seconds : how long a team stays in recent_updates()
    clock             : returns the current aware UTC datetime
    """

    def __init__(
        self,
        storage: ScoringStorage,
        bracket_id: Optional[int] = None,
        highlight_seconds: Optional[float] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._storage    = storage
        self.bracket_id  = bracket_id if bracket_id is not None else settings.DEFAULT_BRACKET_ID
        self._highlight  = timedelta(
            seconds=highlight_seconds if highlight_seconds is not None else settings.SCORE_HIGHLIGHT_SECONDS
        )
        self._clock      = clock

        self._entries:    Dict[str, LeaderboardEntry] = {}
        self._scorecards: Dict[str, Scorecard] = {}
        self._check_ins:  Dict[str, CheckIn] = {}
        self._recent:     Dict[str, datetime] = {}     # registration_id → highlight expiry
        self._lock        = asyncio.Lock()
        self._listeners:  List[ScoreListener] = []

    async def load(self) -> None:
        async with self._lock:
            entries = await self._storage.load_leaderboard_entries(self.bracket_id)
            cards   = await self._storage.load_scorecards(self.bracket_id)
            checks  = await self._storage.load_check_ins(self.bracket_id)
            self._entries    = {e.registration_id: e for e in recalculate_positions(entries)}
            self._scorecards = {c.registration_id: c for c in cards}
            self._check_ins  = {c.registration_id: c for c in checks}
        logger.info(
            "Bracket %d: loaded %d entries, %d scorecards",
            self.bracket_id, len(self._entries), len(self._scorecards),
        )

    def subscribe(self, listener: ScoreListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # ── Check-in ─────────────────────────────────────────────────────────────

    async def check_in(
        self,
        registration_id: str,
        player_name: str,
        team_name: Optional[str] = None,
        cart_number: Optional[str] = None,
        starting_hole: int = 1,
        notes: Optional[str] = None,
    ) -> CheckIn:
        """
        Record an arrival and open the team's scorecard and leaderboard entry.
        Checking in again keeps any scores already entered.
        """
        if not 1 <= starting_hole <= Course.HOLE_COUNT:
            raise InvalidScoreError(f"Starting hole must be between 1 and {Course.HOLE_COUNT}")
        team_name = team_name or player_name

        async with self._lock:
            now = self._clock()
            record = CheckIn(
                registration_id=registration_id,
                player_name=player_name,
                checked_in_at=now,
                cart_number=cart_number,
                starting_hole=starting_hole,
                notes=notes,
            )
            await self._storage.save_check_in(self.bracket_id, record)
            self._check_ins[registration_id] = record

            if registration_id not in self._scorecards:
                card = Scorecard.blank(registration_id, team_name, player_name)
                await self._storage.save_scorecard(self.bracket_id, card)
                self._scorecards[registration_id] = card

            if registration_id not in self._entries:
                entry = self._new_entry(registration_id, team_name, now)
                entry.players = [player_name]
                self._entries, _ = await self._rerank({**self._entries, registration_id: entry})

        logger.info("Bracket %d: %s checked in (%s)", self.bracket_id, registration_id, player_name)
        return copy.deepcopy(record)

    # ── Scores ───────────────────────────────────────────────────────────────

    async def record_score(
        self,
        registration_id: str,
        hole_number: int,
        strokes: int,
        putts: Optional[int] = None,
        penalties: Optional[int] = 0,
        notes: Optional[str] = None,
    ) -> LeaderboardEntry:
        """
        Set one hole's result (overwriting any earlier value) and re-rank.

        Raises InvalidScoreError for a hole outside 1–18, negative or
        non-integer strokes, or negative putts / penalties.
        """
        try:
            score = ScoreSubmission(
                registration_id=registration_id,
                hole_number=hole_number,
                strokes=strokes,
                putts=putts,
                penalties=penalties,
                notes=notes,
            )
        except PydanticValidationError as e:
            raise InvalidScoreError("; ".join(error_messages(e))) from e

        async with self._lock:
            now = self._clock()

            card = copy.deepcopy(self._scorecards.get(score.registration_id))
            if card is None:
                card = Scorecard.blank(score.registration_id, score.registration_id, score.registration_id)
            hole = card.hole(score.hole_number)
            hole.strokes   = score.strokes
            hole.putts     = score.putts
            hole.penalties = score.penalties
            hole.notes     = score.notes
            recompute_totals(card)

            current = self._entries.get(score.registration_id)
            if current is None:
                current = self._new_entry(score.registration_id, card.team_name, now)
            entry = replace(
                current,
                total_strokes=card.total_strokes,
                total_score_to_par=card.total_score_to_par,
                holes_completed=card.holes_completed,
                current_hole=score.hole_number,
                last_score=score.strokes,
                updated_at=now,
            )

            # Ranked entries first, then the card; memory is swapped only after both are stored
            ranked, changes = await self._rerank({**self._entries, entry.registration_id: entry})
            await self._storage.save_scorecard(self.bracket_id, card)
            self._entries = ranked
            self._scorecards[card.registration_id] = card
            self._recent[card.registration_id] = now + self._highlight

            update = LiveScoreUpdate(
                bracket_id=self.bracket_id,
                registration_id=card.registration_id,
                hole_number=score.hole_number,
                strokes=score.strokes,
                score_to_par=hole.score_to_par,
                total_strokes=card.total_strokes,
                total_score_to_par=card.total_score_to_par,
                holes_completed=card.holes_completed,
                timestamp=now,
            )
            result = copy.deepcopy(self._entries[card.registration_id])

        logger.info(
            "Bracket %d: %s hole %d = %d (total %s, pos %d)",
            self.bracket_id, update.registration_id, update.hole_number,
            update.strokes, update.total_score_to_par, result.position,
        )
        await self._publish(update, changes)
        return result

    async def submit_score(
        self,
        registration_id: str,
        hole_number: int,
        strokes: int,
        putts: Optional[int] = None,
        penalties: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> SubmitResult:
        """Same as record_score, reporting failure in the result instead of raising."""
        try:
            await self.record_score(registration_id, hole_number, strokes, putts, penalties, notes)
        except InvalidScoreError as e:
            return SubmitResult(success=False, error=str(e))
        except Exception:
            logger.exception("Failed to submit score for %s", registration_id)
            return SubmitResult(success=False, error="Failed to submit score")
        return SubmitResult(success=True)

    # ── Queries ──────────────────────────────────────────────────────────────

    def get_scorecard(self, registration_id: str) -> Optional[Scorecard]:
        card = self._scorecards.get(registration_id)
        return copy.deepcopy(card) if card is not None else None

    def entries(self) -> List[LeaderboardEntry]:
        """Leaderboard, best first."""
        ranked = sorted(self._entries.values(), key=lambda e: (e.position, e.sort_key))
        return copy.deepcopy(ranked)

    def check_ins(self) -> List[CheckIn]:
        return copy.deepcopy(sorted(self._check_ins.values(), key=lambda c: c.checked_in_at))

    def recent_updates(self) -> Set[str]:
        """Registrations scored within the highlight window. Expired ids are dropped."""
        now = self._clock()
        for rid in [rid for rid, expiry in self._recent.items() if expiry <= now]:
            del self._recent[rid]
        return set(self._recent)

    def leaderboard_stats(self) -> LeaderboardStats:
        return compute_leaderboard_stats(self._entries.values())

    def scoring_stats(self) -> ScoringStats:
        return compute_scoring_stats(list(self._scorecards.values()))

    def check_in_stats(self, total_registrations: int) -> CheckInStats:
        """Arrivals so far, against ``total_registrations`` expected teams."""
        return compute_check_in_stats(list(self._check_ins.values()), total_registrations)

    def generate_results(self) -> TournamentResults:
        return generate_results(copy.deepcopy(list(self._scorecards.values())))

    def export_leaderboard(self, fmt: str = "csv") -> str:
        return export_leaderboard(self.entries(), fmt)

    def export_scorecards(self, fmt: str = "csv") -> str:
        cards = sorted(self._scorecards.values(), key=lambda c: c.registration_id)
        return export_scorecards(cards, fmt)

    # ── Internals ────────────────────────────────────────────────────────────

    def _new_entry(self, registration_id: str, team_name: str, now: datetime) -> LeaderboardEntry:
        return LeaderboardEntry(
            registration_id=registration_id,
            team_name=team_name,
            bracket_id=self.bracket_id,
            updated_at=now,
        )

    async def _rerank(
        self,
        proposed: Dict[str, LeaderboardEntry],
    ) -> Tuple[Dict[str, LeaderboardEntry], List[PositionChange]]:
        """
        Rank copies of ``proposed`` and persist entries whose row changed.
        Returns the ranked map for the caller to swap in (caller holds the lock).
        """
        ranked = recalculate_positions(replace(e) for e in proposed.values())

        changes: List[PositionChange] = []
        new_map: Dict[str, LeaderboardEntry] = {}
        for e in ranked:
            old = self._entries.get(e.registration_id)
            if old is not None and old.position != e.position:
                changes.append(PositionChange(e.registration_id, old.position, e.position))
            if old is None or old != e:
                e = await self._storage.save_leaderboard_entry(e)
            new_map[e.registration_id] = e

        return new_map, changes

    async def _publish(self, update: LiveScoreUpdate, changes: List[PositionChange]) -> None:
        for listener in list(self._listeners):
            try:
                result = listener(update, list(changes))
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Score listener failed for %s", update.registration_id)
