"""
Live scoring tests — LiveScoringService with in-memory storage.

Coverage:
  - Check-in opens an 18-hole card and a leaderboard entry
  - Score overwrite, aggregate recomputation, invalid input rejection
  - Re-ranking, tie handling and position-change events
  - 30-second highlight window
  - Stats, results (flights + prizes), CSV export, reload
"""
from __future__ import annotations

from datetime import datetime, timezone

import pytest

from fairway.exceptions import InvalidScoreError
from fairway.models.domain import CheckIn
from fairway.models.models import Course
from fairway.services.scoring_service import (
    LiveScoringService,
    compute_check_in_stats,
    compute_scoring_stats,
    generate_results,
)


async def _play_round(scoring, registration_id: str, first_hole_delta: int = 0) -> None:
    """Par on every hole except hole 1, which is par + delta."""
    for number, par, _ in Course.HOLES:
        strokes = par + first_hole_delta if number == 1 else par
        await scoring.record_score(registration_id, number, strokes)


# ─────────────────────────── Check-in ─────────────────────────────────────────

class TestCheckIn:
    async def test_creates_blank_card_and_entry(self, scoring) -> None:
        await scoring.check_in("reg_a", "Alice", team_name="Eagles", cart_number="12")

        card = scoring.get_scorecard("reg_a")
        assert len(card.holes) == 18
        assert all(h.strokes == 0 for h in card.holes)
        assert [h.par for h in card.holes] == [4, 3, 5, 4, 3, 4, 5, 4, 3, 4, 3, 5, 4, 3, 4, 5, 4, 4]

        [entry] = scoring.entries()
        assert entry.team_name == "Eagles"
        assert entry.position == 1
        assert entry.is_tied is False
        assert entry.players == ["Alice"]

    async def test_second_check_in_keeps_scores(self, scoring) -> None:
        await scoring.check_in("reg_a", "Alice")
        await scoring.record_score("reg_a", 1, 4)
        await scoring.check_in("reg_a", "Alice", cart_number="7")
        assert scoring.get_scorecard("reg_a").total_strokes == 4
        assert len(scoring.check_ins()) == 1

    async def test_rejects_bad_starting_hole(self, scoring) -> None:
        with pytest.raises(InvalidScoreError):
            await scoring.check_in("reg_a", "Alice", starting_hole=19)


# ─────────────────────────── Score ingestion ─────────────────────────────────

class TestRecordScore:
    async def test_overwrite_replaces_hole(self, scoring) -> None:
        await scoring.check_in("reg_a", "Alice")
        await scoring.record_score("reg_a", 1, 4)
        await scoring.record_score("reg_a", 1, 5)

        card = scoring.get_scorecard("reg_a")
        assert card.hole(1).strokes == 5
        assert card.hole(1).score_to_par == 1
        assert card.holes_completed == 1
        assert card.total_strokes == 5
        assert card.total_score_to_par == 1

    async def test_entry_tracks_card(self, scoring, clock) -> None:
        await scoring.check_in("reg_a", "Alice")
        entry = await scoring.record_score("reg_a", 2, 2, putts=1)
        assert entry.total_strokes == 2
        assert entry.total_score_to_par == -1
        assert entry.holes_completed == 1
        assert entry.current_hole == 2
        assert entry.last_score == 2
        assert entry.updated_at == clock.now

    async def test_zero_strokes_clears_hole(self, scoring) -> None:
        await scoring.record_score("reg_a", 3, 6)
        await scoring.record_score("reg_a", 3, 0)
        card = scoring.get_scorecard("reg_a")
        assert card.holes_completed == 0
        assert card.total_strokes == 0
        assert card.hole(3).score_to_par == 0

    @pytest.mark.parametrize("hole, strokes", [(19, 4), (0, 4), (1, -1)])
    async def test_invalid_input_changes_nothing(self, scoring, hole, strokes) -> None:
        await scoring.check_in("reg_a", "Alice")
        before = scoring.get_scorecard("reg_a")
        with pytest.raises(InvalidScoreError):
            await scoring.record_score("reg_a", hole, strokes)
        assert scoring.get_scorecard("reg_a") == before

    async def test_negative_penalties_rejected(self, scoring) -> None:
        with pytest.raises(InvalidScoreError):
            await scoring.record_score("reg_a", 1, 4, penalties=-1)
        assert scoring.get_scorecard("reg_a") is None

    async def test_scorecard_created_lazily(self, scoring) -> None:
        await scoring.record_score("reg_walkon", 1, 4)
        assert scoring.get_scorecard("reg_walkon").holes_completed == 1
        assert [e.registration_id for e in scoring.entries()] == ["reg_walkon"]

    async def test_submit_score_reports_errors(self, scoring) -> None:
        bad = await scoring.submit_score("reg_a", 19, 4)
        assert bad.success is False
        assert bad.error
        assert bad.to_dict()["success"] is False

        good = await scoring.submit_score("reg_a", 1, 4)
        assert good.to_dict() == {"success": True}

    async def test_scores_are_persisted(self, scoring, storage) -> None:
        await scoring.record_score("reg_a", 1, 3)
        saved = storage.scorecards[(1, "reg_a")]
        assert saved.hole(1).strokes == 3
        assert storage.entries[(1, "reg_a")].total_score_to_par == -1

    async def test_failed_entry_save_leaves_card_untouched(self, scoring, storage) -> None:
        await scoring.record_score("reg_a", 1, 3)

        async def broken_save(entry):
            raise RuntimeError("database unavailable")

        storage.save_leaderboard_entry = broken_save
        with pytest.raises(RuntimeError):
            await scoring.record_score("reg_a", 1, 6)

        assert storage.scorecards[(1, "reg_a")].hole(1).strokes == 3
        assert scoring.get_scorecard("reg_a").hole(1).strokes == 3
        assert scoring.entries()[0].total_strokes == 3


# ─────────────────────────── Ranking ──────────────────────────────────────────

class TestLiveRanking:
    async def test_tie_example(self, scoring) -> None:
        await scoring.record_score("A", 1, 3)
        await scoring.record_score("B", 1, 3)
        await scoring.record_score("C", 1, 4)

        by_id = {e.registration_id: e for e in scoring.entries()}
        assert (by_id["A"].position, by_id["A"].is_tied) == (1, True)
        assert (by_id["B"].position, by_id["B"].is_tied) == (1, True)
        assert (by_id["C"].position, by_id["C"].is_tied) == (2, False)

    async def test_tie_breaks_on_strokes(self, scoring) -> None:
        # Both at even par, B has played more strokes
        await scoring.record_score("A", 1, 4)
        await scoring.record_score("B", 1, 4)
        await scoring.record_score("B", 2, 3)
        by_id = {e.registration_id: e for e in scoring.entries()}
        assert by_id["A"].position == 1
        assert by_id["B"].position == 2
        assert not by_id["A"].is_tied

    async def test_position_changes_published(self, scoring) -> None:
        events = []

        async def listener(update, changes):
            events.append((update, changes))

        await scoring.record_score("A", 1, 4)
        await scoring.record_score("B", 1, 5)
        scoring.subscribe(listener)
        await scoring.record_score("B", 2, 2)   # B: +1, -1 → E with 7 strokes; A: E with 4

        update, changes = events[-1]
        assert update.registration_id == "B"
        assert update.hole_number == 2
        assert update.total_score_to_par == 0
        assert changes == []

        await scoring.record_score("B", 3, 3)   # eagle, B takes the lead
        update, changes = events[-1]
        moved = {c.registration_id: (c.old_position, c.new_position) for c in changes}
        assert moved == {"B": (2, 1), "A": (1, 2)}

    async def test_failing_listener_does_not_block_scoring(self, scoring) -> None:
        def broken(update, changes):
            raise RuntimeError("socket closed")

        scoring.subscribe(broken)
        entry = await scoring.record_score("A", 1, 4)
        assert entry.total_strokes == 4


# ─────────────────────────── Highlight window ────────────────────────────────

class TestRecentUpdates:
    async def test_expires_after_window(self, scoring, clock) -> None:
        await scoring.record_score("A", 1, 4)
        assert scoring.recent_updates() == {"A"}

        clock.advance(29)
        assert scoring.recent_updates() == {"A"}
        clock.advance(1)
        assert scoring.recent_updates() == set()

    async def test_new_score_extends_window(self, scoring, clock) -> None:
        await scoring.record_score("A", 1, 4)
        clock.advance(20)
        await scoring.record_score("A", 2, 3)
        clock.advance(20)
        assert scoring.recent_updates() == {"A"}


# ─────────────────────────── Stats & results ─────────────────────────────────

class TestResults:
    async def test_scoring_stats(self, scoring) -> None:
        await _play_round(scoring, "A", first_hole_delta=-1)
        await _play_round(scoring, "B", first_hole_delta=2)
        await scoring.record_score("C", 1, 4)
        await scoring.check_in("D", "Dana")

        stats = scoring.scoring_stats().to_dict()
        assert stats == {
            "total_scorecards": 4,
            "completed_rounds": 2,
            "in_progress": 1,
            "average_score": 0.5,
            "best_score": -1,
            "scoring_completion_rate": 50.0,
        }

    def test_empty_stats(self) -> None:
        assert compute_scoring_stats([]).total_scorecards == 0

    async def test_check_in_stats(self, scoring, clock) -> None:
        await scoring.check_in("A", "Ann")
        clock.advance(3600)
        await scoring.check_in("B", "Bo")
        clock.advance(600)
        await scoring.check_in("C", "Cy")

        stats = scoring.check_in_stats(total_registrations=8).to_dict()
        assert stats == {
            "total_registrations": 8,
            "checked_in": 3,
            "pending_checkin": 5,
            "check_in_rate": 37.5,
            "peak_checkin_time": "13:00",
        }

    def test_check_in_stats_tie_goes_to_earliest_hour(self) -> None:
        early = datetime(2026, 6, 12, 7, 45, tzinfo=timezone.utc)
        late = datetime(2026, 6, 12, 9, 5, tzinfo=timezone.utc)
        stats = compute_check_in_stats(
            [CheckIn("B", "Bo", late), CheckIn("A", "Ann", early)], total_registrations=0,
        )
        assert stats.peak_checkin_time == "7:00"
        assert stats.check_in_rate == 0.0
        assert stats.pending_checkin == 0
        assert compute_check_in_stats([], 4).peak_checkin_time == ""

    async def test_generate_results_flights_and_prizes(self, scoring) -> None:
        for i, delta in enumerate([2, -1, 0, 3, 1]):
            await _play_round(scoring, f"T{i}", first_hole_delta=delta)
        await scoring.record_score("unfinished", 1, 1)

        results = scoring.generate_results()
        assert [c.registration_id for c in results.overall] == ["T1", "T2", "T4", "T0", "T3"]
        assert {k: [c.registration_id for c in v] for k, v in results.by_flight.items()} == {
            "Championship Flight": ["T1", "T2"],
            "First Flight": ["T4", "T0"],
            "Second Flight": ["T3"],
        }
        assert [(p.category, p.winner.registration_id, p.score) for p in results.prizes] == [
            ("Overall Champion", "T1", -1),
            ("Runner-up", "T2", 0),
            ("Championship Flight Winner", "T1", -1),
            ("First Flight Winner", "T4", 1),
            ("Second Flight Winner", "T3", 3),
        ]

    def test_no_completed_rounds(self) -> None:
        results = generate_results([])
        assert results.overall == []
        assert results.prizes == []

    async def test_export_scorecards_csv(self, scoring) -> None:
        await scoring.check_in("reg_a", "Alice", team_name="Eagles")
        await scoring.record_score("reg_a", 1, 5)

        lines = scoring.export_scorecards("csv").splitlines()
        header = lines[0].split(",")
        assert header[:6] == [
            '"Registration ID"', '"Team Name"', '"Player Name"',
            '"Total Strokes"', '"Score to Par"', '"Holes Completed"',
        ]
        assert len(header) == 6 + 18 + 18
        assert lines[1].startswith('"reg_a","Eagles","Alice","5","+1","1","5"')

    async def test_export_scorecards_json(self, scoring) -> None:
        await scoring.record_score("reg_a", 1, 5)
        assert '"registration_id": "reg_a"' in scoring.export_scorecards("json")

    async def test_export_rejects_unknown_format(self, scoring) -> None:
        with pytest.raises(ValueError):
            scoring.export_scorecards("xml")


# ─────────────────────────── Reload ───────────────────────────────────────────

class TestReload:
    async def test_load_restores_cards_and_ranking(self, scoring, storage, clock) -> None:
        await scoring.check_in("A", "Alice")
        await scoring.record_score("A", 1, 3)
        await scoring.record_score("B", 1, 5)

        fresh = LiveScoringService(storage, bracket_id=1, highlight_seconds=30, clock=clock)
        await fresh.load()
        assert [e.registration_id for e in fresh.entries()] == ["A", "B"]
        assert fresh.get_scorecard("A").hole(1).strokes == 3
        assert len(fresh.check_ins()) == 1

    async def test_other_bracket_is_isolated(self, scoring, storage, clock) -> None:
        await scoring.record_score("A", 1, 3)
        other = LiveScoringService(storage, bracket_id=2, clock=clock)
        await other.load()
        assert other.entries() == []
