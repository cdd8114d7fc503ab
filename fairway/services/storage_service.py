"""
Persistence service — maps the live domain objects to ORM rows.

The registration and scoring services depend only on the storage
protocols below. SqlAlchemyStorage is the production implementation:
one short-lived AsyncSession per call, committed before returning, so a
save that returns has been durably written.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional, Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from fairway.models.base import AsyncSessionFactory, Base, engine
from fairway.models.domain import (
    CheckIn,
    HoleScore,
    LeaderboardEntry,
    PaymentInfo,
    PlayerInfo,
    Registration,
    RegistrationPreferences,
    Scorecard,
)
from fairway.models.models import (
    CheckInRecord,
    LeaderboardRecord,
    RegistrationRecord,
    ScorecardRecord,
)


class RegistrationStorage(Protocol):
    async def load_registrations(self) -> List[Registration]: ...

    async def save_registration(self, registration: Registration) -> None: ...


class ScoringStorage(Protocol):
    async def load_leaderboard_entries(self, bracket_id: int) -> List[LeaderboardEntry]: ...

    async def save_leaderboard_entry(self, entry: LeaderboardEntry) -> LeaderboardEntry: ...

    async def load_scorecards(self, bracket_id: int) -> List[Scorecard]: ...

    async def save_scorecard(self, bracket_id: int, scorecard: Scorecard) -> None: ...

    async def load_check_ins(self, bracket_id: int) -> List[CheckIn]: ...

    async def save_check_in(self, bracket_id: int, check_in: CheckIn) -> None: ...


async def create_tables() -> None:
    """Create all tables that don't exist yet (idempotent)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; everything stored is UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SqlAlchemyStorage:
    """
    Parameters
    ----------
    session_factory : async_sessionmaker to open sessions from
                      (defaults to the application's AsyncSessionFactory)
    """

    def __init__(
        self,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
    ) -> None:
        self._session_factory = session_factory or AsyncSessionFactory

    # ── Registrations ────────────────────────────────────────────────────────

    async def load_registrations(self) -> List[Registration]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(RegistrationRecord).order_by(RegistrationRecord.sequence)
            )
            return [self._registration_from_row(row) for row in result.scalars().all()]

    async def save_registration(self, registration: Registration) -> None:
        async with self._session_factory() as session:
            row = await session.get(RegistrationRecord, registration.id)
            if row is None:
                row = RegistrationRecord(id=registration.id)
                session.add(row)

            pay = registration.payment_info
            row.sequence           = registration.sequence
            row.type               = registration.type
            row.status             = registration.status
            row.primary_player     = registration.primary_player.to_dict()
            row.additional_players = [p.to_dict() for p in registration.additional_players]
            row.preferences        = registration.preferences.to_dict()
            row.meta               = dict(registration.metadata)
            row.amount             = pay.amount
            row.fees               = pay.fees
            row.total              = pay.total
            row.payment_method     = pay.method
            row.payment_status     = pay.status
            row.payment_intent_id  = pay.payment_intent_id
            row.paid_at            = pay.paid_at
            row.checkin_token      = registration.checkin_token
            row.created_at         = registration.created_at
            row.updated_at         = registration.updated_at
            await session.commit()

    @staticmethod
    def _registration_from_row(row: RegistrationRecord) -> Registration:
        return Registration(
            id=row.id,
            type=row.type,
            status=row.status,
            primary_player=PlayerInfo.from_dict(row.primary_player or {}),
            additional_players=[PlayerInfo.from_dict(p) for p in row.additional_players or []],
            payment_info=PaymentInfo(
                amount=row.amount,
                fees=row.fees,
                total=row.total,
                status=row.payment_status,
                method=row.payment_method,
                payment_intent_id=row.payment_intent_id,
                paid_at=_aware(row.paid_at),
            ),
            preferences=RegistrationPreferences.from_dict(row.preferences or {}),
            metadata=dict(row.meta or {}),
            sequence=row.sequence,
            checkin_token=row.checkin_token,
            created_at=_aware(row.created_at),
            updated_at=_aware(row.updated_at),
        )

    # ── Leaderboard ──────────────────────────────────────────────────────────

    async def load_leaderboard_entries(self, bracket_id: int) -> List[LeaderboardEntry]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(LeaderboardRecord)
                .where(LeaderboardRecord.bracket_id == bracket_id)
                .order_by(LeaderboardRecord.position, LeaderboardRecord.id)
            )
            return [
                LeaderboardEntry(
                    id=row.id,
                    bracket_id=row.bracket_id,
                    registration_id=row.registration_id,
                    team_name=row.team_name,
                    total_strokes=row.total_strokes,
                    total_score_to_par=row.total_score_to_par,
                    holes_completed=row.holes_completed,
                    position=row.position,
                    is_tied=row.is_tied,
                    players=list(row.players or []),
                    current_hole=row.current_hole,
                    last_score=row.last_score,
                    updated_at=_aware(row.updated_at),
                )
                for row in result.scalars().all()
            ]

    async def save_leaderboard_entry(self, entry: LeaderboardEntry) -> LeaderboardEntry:
        """Upsert on (bracket_id, registration_id). Returns the entry with its row id."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(LeaderboardRecord).where(
                    LeaderboardRecord.bracket_id == entry.bracket_id,
                    LeaderboardRecord.registration_id == entry.registration_id,
                )
            )
            row = result.scalar_one_or_none()
            if row is None:
                row = LeaderboardRecord(
                    bracket_id=entry.bracket_id,
                    registration_id=entry.registration_id,
                )
                session.add(row)

            row.team_name          = entry.team_name
            row.total_strokes      = entry.total_strokes
            row.total_score_to_par = entry.total_score_to_par
            row.holes_completed    = entry.holes_completed
            row.position           = entry.position
            row.is_tied            = entry.is_tied
            row.players            = list(entry.players)
            row.current_hole       = entry.current_hole
            row.last_score         = entry.last_score
            row.updated_at         = entry.updated_at
            await session.flush()
            entry.id = row.id
            await session.commit()
        return entry

    # ── Scorecards ───────────────────────────────────────────────────────────

    async def load_scorecards(self, bracket_id: int) -> List[Scorecard]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(ScorecardRecord)
                .where(ScorecardRecord.bracket_id == bracket_id)
                .order_by(ScorecardRecord.id)
            )
            return [
                Scorecard(
                    registration_id=row.registration_id,
                    team_name=row.team_name,
                    player_name=row.player_name,
                    holes=[HoleScore.from_dict(h) for h in row.holes],
                    total_strokes=row.total_strokes,
                    total_score_to_par=row.total_score_to_par,
                    holes_completed=row.holes_completed,
                )
                for row in result.scalars().all()
            ]

    async def save_scorecard(self, bracket_id: int, scorecard: Scorecard) -> None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(ScorecardRecord).where(
                    ScorecardRecord.bracket_id == bracket_id,
                    ScorecardRecord.registration_id == scorecard.registration_id,
                )
            )
            row = result.scalar_one_or_none()
            if row is None:
                row = ScorecardRecord(
                    bracket_id=bracket_id,
                    registration_id=scorecard.registration_id,
                )
                session.add(row)

            row.team_name          = scorecard.team_name
            row.player_name        = scorecard.player_name
            row.holes              = [h.to_dict() for h in scorecard.holes]
            row.total_strokes      = scorecard.total_strokes
            row.total_score_to_par = scorecard.total_score_to_par
            row.holes_completed    = scorecard.holes_completed
            await session.commit()

    # ── Check-ins ────────────────────────────────────────────────────────────

    async def load_check_ins(self, bracket_id: int) -> List[CheckIn]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(CheckInRecord)
                .where(CheckInRecord.bracket_id == bracket_id)
                .order_by(CheckInRecord.checked_in_at, CheckInRecord.id)
            )
            return [
                CheckIn(
                    registration_id=row.registration_id,
                    player_name=row.player_name,
                    checked_in_at=_aware(row.checked_in_at),
                    cart_number=row.cart_number,
                    starting_hole=row.starting_hole,
                    notes=row.notes,
                )
                for row in result.scalars().all()
            ]

    async def save_check_in(self, bracket_id: int, check_in: CheckIn) -> None:
        async with self._session_factory() as session:
            session.add(CheckInRecord(
                bracket_id=bracket_id,
                registration_id=check_in.registration_id,
                player_name=check_in.player_name,
                checked_in_at=check_in.checked_in_at,
                cart_number=check_in.cart_number,
                starting_hole=check_in.starting_hole,
                notes=check_in.notes,
            ))
            await session.commit()
