"""
Shared pytest fixtures for Fairway tests.

Sets required environment variables BEFORE any fairway module is imported so
that pydantic-settings and SQLAlchemy engine initialisation use safe test values.
"""
from __future__ import annotations

import asyncio
import copy
import os
from collections import deque
from datetime import datetime, timedelta, timezone
from typing import Any, AsyncGenerator, Deque, Dict, List, Optional

# ── Set env vars before any fairway import ────────────────────────────────────
os.environ.setdefault("BOT_TOKEN", "test-token-for-pytest")
os.environ.setdefault("ADMIN_IDS", "123456789")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

# ── Third-party ───────────────────────────────────────────────────────────────
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# ── Fairway imports (safe after env vars are set) ─────────────────────────────
from fairway.config import WorkflowConfig
from fairway.models.base import Base
from fairway.models.domain import CheckIn, LeaderboardEntry, Registration, Scorecard
from fairway.services.payment_service import PaymentResult, RefundResult
from fairway.services.registration_service import RegistrationService
from fairway.services.scoring_service import LiveScoringService

DEADLINE = datetime(2026, 5, 15, 23, 59, 59, tzinfo=timezone.utc)
BEFORE_DEADLINE = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


# ── DB fixtures ───────────────────────────────────────────────────────────────

@pytest.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """
    Yield a session factory bound to an isolated in-memory SQLite database.
    StaticPool keeps one connection so every session sees the same schema;
    the engine is always disposed on teardown.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    try:
        yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    finally:
        await engine.dispose()


# ── Fakes ─────────────────────────────────────────────────────────────────────

class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = BEFORE_DEADLINE) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


class MemoryStorage:
    """Dict-backed storage implementing both storage protocols."""

    def __init__(self) -> None:
        self.registrations: Dict[str, Registration] = {}
        self.saved_statuses: List[tuple] = []
        self.entries: Dict[tuple, LeaderboardEntry] = {}
        self.scorecards: Dict[tuple, Scorecard] = {}
        self.check_ins: List[tuple] = []
        self._next_entry_id = 1

    async def load_registrations(self) -> List[Registration]:
        return [copy.deepcopy(r) for r in self.registrations.values()]

    async def save_registration(self, registration: Registration) -> None:
        self.registrations[registration.id] = copy.deepcopy(registration)
        self.saved_statuses.append((registration.id, registration.status))

    async def load_leaderboard_entries(self, bracket_id: int) -> List[LeaderboardEntry]:
        return [copy.deepcopy(e) for (b, _), e in self.entries.items() if b == bracket_id]

    async def save_leaderboard_entry(self, entry: LeaderboardEntry) -> LeaderboardEntry:
        if entry.id is None:
            entry.id = self._next_entry_id
            self._next_entry_id += 1
        self.entries[(entry.bracket_id, entry.registration_id)] = copy.deepcopy(entry)
        return entry

    async def load_scorecards(self, bracket_id: int) -> List[Scorecard]:
        return [copy.deepcopy(c) for (b, _), c in self.scorecards.items() if b == bracket_id]

    async def save_scorecard(self, bracket_id: int, scorecard: Scorecard) -> None:
        self.scorecards[(bracket_id, scorecard.registration_id)] = copy.deepcopy(scorecard)

    async def load_check_ins(self, bracket_id: int) -> List[CheckIn]:
        return [copy.deepcopy(c) for b, c in self.check_ins if b == bracket_id]

    async def save_check_in(self, bracket_id: int, check_in: CheckIn) -> None:
        self.check_ins.append((bracket_id, copy.deepcopy(check_in)))


class FakeGateway:
    """
    Scriptable payment gateway.

    results   : queued PaymentResults, consumed one per charge
    gate      : when set, every charge waits on this event before answering
    refund_gate : when set, every refund waits on this event before answering
    error     : exception raised by create_payment_intent
    """

    def __init__(self) -> None:
        self.results: Deque[PaymentResult] = deque()
        self.refund_result = RefundResult(success=True, refund_id="re_test", amount_refunded=0)
        self.gate: Optional[asyncio.Event] = None
        self.refund_gate: Optional[asyncio.Event] = None
        self.error: Optional[Exception] = None
        self.charges: List[Dict[str, Any]] = []
        self.refunds: List[tuple] = []

    async def create_payment_intent(self, amount, customer_email, metadata=None, method="stripe"):
        self.charges.append({
            "amount": amount, "email": customer_email,
            "metadata": metadata, "method": method,
        })
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        if self.results:
            return self.results.popleft()
        return PaymentResult(success=True, payment_intent_id=f"pi_{len(self.charges)}")

    async def process_refund(self, payment_intent_id, reason):
        self.refunds.append((payment_intent_id, reason))
        if self.refund_gate is not None:
            await self.refund_gate.wait()
        return self.refund_result


class RecordingNotifier:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.notices: List[tuple] = []

    async def notify(self, kind, registration, payload=None) -> None:
        if self.fail:
            raise RuntimeError("mail server down")
        self.notices.append((kind, registration.id, payload or {}))

    def kinds(self, registration_id: Optional[str] = None) -> List[str]:
        return [k for k, rid, _ in self.notices if registration_id is None or rid == registration_id]


# ── Fixtures ──────────────────────────────────────────────────────────────────

@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def workflow_config() -> WorkflowConfig:
    return WorkflowConfig(registration_deadline=DEADLINE)


@pytest.fixture
def service(storage, gateway, notifier, workflow_config, clock) -> RegistrationService:
    return RegistrationService(
        storage, gateway, notifier,
        config=workflow_config, clock=clock,
        processing_percent=2.9, fixed_fee=30,
    )


@pytest.fixture
def scoring(storage, clock) -> LiveScoringService:
    return LiveScoringService(storage, bracket_id=1, highlight_seconds=30, clock=clock)


def _player(n: int) -> Dict[str, Any]:
    return {"name": f"Player {n}", "email": f"player{n}@example.com", "phone": "555-010-000" + str(n % 10)}


@pytest.fixture
def make_request():
    """
    Factory fixture — builds a registration form payload (camelCase, as the
    web front-end sends it). ``extra_players`` overrides the foursome default of 3.
    """

    def _make(reg_type: str = "individual", extra_players: Optional[int] = None, **overrides) -> Dict[str, Any]:
        primary = _player(1)
        primary["emergencyContact"] = {"name": "Pat Doe", "phone": "555-999-0000"}
        if extra_players is None:
            extra_players = 3 if reg_type == "foursome" else 0
        payload: Dict[str, Any] = {
            "type": reg_type,
            "primaryPlayer": primary,
            "additionalPlayers": [_player(n) for n in range(2, 2 + extra_players)],
            "preferences": {"wantsCart": True, "shirtSize": "L"},
            "paymentMethod": "stripe",
        }
        payload.update(overrides)
        return payload

    return _make
