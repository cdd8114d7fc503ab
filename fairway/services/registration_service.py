"""
Registration workflow — the state machine behind tournament sign-ups.

    draft → submitted → payment_pending ⇄ payment_processing → confirmed
                      ↘ waitlisted ─(promoter)─↗
    any non-cancelled state → cancelled

Single-writer model
-------------------
Every mutation runs under one asyncio.Lock: read current state, build the
next Registration object, persist it, then swap it into the in-memory map.
Readers never observe a half-applied change.

Payment gateway and notifier calls are made *outside* the lock. A payment
attempt commits ``payment_processing`` first, awaits the gateway, then
resolves to ``confirmed`` / ``payment_processing`` (paid, awaiting manual
confirmation) or back to ``payment_pending``.

Capacity
--------
Registrations whose payment is in flight hold their players, so a burst of
simultaneous payments can never confirm more players than the cap allows.
The waitlist is drained explicitly after every transition that can free or
consume capacity (confirmation, cancellation, cap change).
"""
from __future__ import annotations

import asyncio
import copy
import inspect
import logging
import uuid
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Set, Tuple, Union

from pydantic import ValidationError as PydanticValidationError

from fairway.config import WorkflowConfig
from fairway.exceptions import (
    CapacityError,
    InvalidTransitionError,
    NotFoundError,
    PaymentError,
    ValidationError,
)
from fairway.models.domain import PaymentInfo, Registration, utcnow
from fairway.models.models import (
    NotificationKind,
    PaymentMethod,
    PaymentStatus,
    RegistrationStatus,
    RegistrationType,
)
from fairway.services.capacity_service import (
    RegistrationStats,
    compute_stats,
    players_in_payment,
    would_exceed_capacity,
)
from fairway.services.notification_service import Notifier, dispatch
from fairway.services.pairing_service import Pairing, Team, auto_form_teams, generate_pairings
from fairway.services.payment_service import PaymentGateway, PaymentResult, RefundResult
from fairway.services.pricing_service import Pricing, calculate_pricing
from fairway.services.qr_service import make_checkin_token
from fairway.services.storage_service import RegistrationStorage
from fairway.services.validation_service import validate_payload, validate_registration
from fairway.services.waitlist_service import select_promotions
from fairway.validators import RegistrationRequest, error_messages

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegistrationEvent:
    """A committed status change. ``old_status`` is None for a new registration."""
    registration_id: str
    old_status:      Optional[str]
    new_status:      str
    at:              datetime


Listener = Callable[[RegistrationEvent], Union[None, Awaitable[None]]]
_Notice  = Tuple[str, Registration, Dict[str, Any]]


class RegistrationService:
    """
    Owns every registration for one tournament.

    Parameters
    ----------
    storage  : persistence collaborator (load_registrations / save_registration)
    payments : payment gateway
    notifier : best-effort notice delivery
    config   : initial workflow policy (defaults from settings)
    clock    : returns the current aware UTC datetime (injectable for tests)
    """

    def __init__(
        self,
        storage: RegistrationStorage,
        payments: PaymentGateway,
        notifier: Notifier,
        config: Optional[WorkflowConfig] = None,
        clock: Callable[[], datetime] = utcnow,
        processing_percent: Optional[float] = None,
        fixed_fee: Optional[int] = None,
    ) -> None:
        self._storage  = storage
        self._payments = payments
        self._notifier = notifier
        self._config   = config or WorkflowConfig.from_settings()
        self._clock    = clock
        self._processing_percent = processing_percent
        self._fixed_fee = fixed_fee

        self._registrations: Dict[str, Registration] = {}
        self._sequence  = 0
        self._lock      = asyncio.Lock()
        self._listeners: List[Listener] = []
        self._cancelling: Set[str] = set()

    # ── Startup ──────────────────────────────────────────────────────────────

    async def load(self) -> int:
        """
        Load persisted registrations. Attempts interrupted mid-payment
        (``payment_processing`` without a completed payment) are reverted to
        ``payment_pending``. Returns the number of registrations loaded.
        """
        async with self._lock:
            loaded = sorted(await self._storage.load_registrations(), key=lambda r: r.sequence)
            self._registrations = {r.id: r for r in loaded}
            self._sequence = max((r.sequence for r in loaded), default=0)

            now = self._clock()
            for r in loaded:
                if (
                    r.status == RegistrationStatus.PAYMENT_PROCESSING
                    and r.payment_info.status != PaymentStatus.COMPLETED
                ):
                    reverted = self._transition(
                        r, RegistrationStatus.PAYMENT_PENDING, now,
                        payment_info=replace(r.payment_info, status=PaymentStatus.FAILED),
                    )
                    await self._commit(reverted, r.status, [])
                    logger.warning("Registration %s: interrupted payment reverted", r.id)

        logger.info("Loaded %d registrations", len(self._registrations))
        return len(self._registrations)

    # ── Configuration ────────────────────────────────────────────────────────

    @property
    def config(self) -> WorkflowConfig:
        return self._config

    async def update_config(self, **changes: Any) -> WorkflowConfig:
        """
        Replace workflow policy fields, e.g. ``update_config(enable_waitlist=False)``.
        Raising the player cap drains the waitlist.
        """
        events: List[RegistrationEvent] = []
        notices: List[_Notice] = []
        async with self._lock:
            old = self._config
            self._config = old.updated(**changes)
            logger.info("Workflow config updated: %s", changes)
            if self._config.max_total_players != old.max_total_players:
                await self._drain_waitlist(self._clock(), events, notices)
        await self._publish(events, notices)
        return self._config

    # ── Events ───────────────────────────────────────────────────────────────

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener. Returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # ── Queries ──────────────────────────────────────────────────────────────

    def preview_pricing(self, registration_type: str) -> Pricing:
        return calculate_pricing(registration_type, self._processing_percent, self._fixed_fee)

    def get_registration(self, registration_id: str) -> Registration:
        return copy.deepcopy(self._get(registration_id))

    def list_registrations(self, status: Optional[str] = None) -> List[Registration]:
        """Registrations in creation order, optionally filtered by status."""
        regs = sorted(self._registrations.values(), key=lambda r: r.sequence)
        if status is not None:
            regs = [r for r in regs if r.status == status]
        return copy.deepcopy(regs)

    def find_by_checkin_token(self, token: str) -> Optional[Registration]:
        for r in self._registrations.values():
            if r.checkin_token == token:
                return copy.deepcopy(r)
        return None

    def get_stats(self) -> RegistrationStats:
        return compute_stats(self._registrations.values(), self._config.max_total_players)

    def form_teams(self) -> List[Team]:
        """Handicap-balanced teams from confirmed individual sign-ups."""
        return auto_form_teams(self.list_registrations())

    def generate_pairings(
        self,
        first_tee_time: Optional[datetime] = None,
        interval_minutes: Optional[int] = None,
    ) -> List[Pairing]:
        """Tee sheet of confirmed golfers in handicap-sorted foursomes."""
        return generate_pairings(self.list_registrations(), first_tee_time, interval_minutes)

    # ── Creation ─────────────────────────────────────────────────────────────

    async def create_registration(
        self,
        request: Union[RegistrationRequest, Dict[str, Any]],
    ) -> Registration:
        """
        Validate, price and store a new registration.

        Ends in ``payment_pending``, or ``waitlisted`` when the field is full
        and the waitlist is enabled.

        Raises
        ------
        ValidationError : one or more rules violated (all of them are listed)
        CapacityError   : field is full and the waitlist is disabled
        """
        if not isinstance(request, RegistrationRequest):
            try:
                request = RegistrationRequest.model_validate(request)
            except PydanticValidationError as e:
                raise ValidationError(self._merge_errors(request, e)) from e

        pricing = self.preview_pricing(request.type)
        events: List[RegistrationEvent] = []
        notices: List[_Notice] = []

        async with self._lock:
            config = self._config
            now = self._clock()
            registration = self._build(request, pricing, now)

            errors = validate_registration(registration, config, now)
            if errors:
                raise ValidationError(errors)

            stats = compute_stats(self._registrations.values(), config.max_total_players)
            over_capacity = would_exceed_capacity(
                stats.confirmed_players, registration.type, config.max_total_players
            )
            if over_capacity and not config.enable_waitlist:
                raise CapacityError("Tournament is at capacity and waitlist is disabled")

            self._sequence += 1
            registration = replace(registration, sequence=self._sequence)
            await self._commit(registration, None, events)

            submitted = self._transition(registration, RegistrationStatus.SUBMITTED, now)
            await self._commit(submitted, registration.status, events)

            if over_capacity:
                final = self._transition(submitted, RegistrationStatus.WAITLISTED, now)
                notices.append((NotificationKind.WAITLIST_NOTICE, final, {}))
            else:
                final = self._transition(submitted, RegistrationStatus.PAYMENT_PENDING, now)
                notices.append((NotificationKind.REGISTRATION_CONFIRMATION, final, {}))
            await self._commit(final, submitted.status, events)

        logger.info(
            "Registration %s created (%s, %s)", final.id, final.type, final.status
        )
        await self._publish(events, notices)
        return copy.deepcopy(final)

    def _merge_errors(self, payload: Any, exc: PydanticValidationError) -> List[str]:
        """Policy violations of an unparseable payload followed by its format errors."""
        errors: List[str] = []
        if isinstance(payload, Mapping):
            errors.extend(validate_payload(payload, self._config, self._clock()))
        for message in error_messages(exc):
            if message not in errors:
                errors.append(message)
        return errors

    def _build(self, request: RegistrationRequest, pricing: Pricing, now: datetime) -> Registration:
        additional = []
        if request.type == RegistrationType.FOURSOME:
            additional = [p.to_player() for p in request.additional_players]
        return Registration(
            id=f"reg_{uuid.uuid4().hex[:16]}",
            type=request.type,
            status=RegistrationStatus.DRAFT,
            primary_player=request.primary_player.to_player(),
            additional_players=additional,
            payment_info=PaymentInfo(
                amount=pricing.base_amount,
                fees=pricing.fees,
                total=pricing.total,
                method=request.payment_method,
            ),
            preferences=request.preferences.to_preferences(),
            metadata=dict(request.metadata),
            created_at=now,
            updated_at=now,
        )

    # ── Payment ──────────────────────────────────────────────────────────────

    async def process_payment(
        self,
        registration_id: str,
        method: str = PaymentMethod.STRIPE,
    ) -> Registration:
        """
        Charge a ``payment_pending`` registration.

        Raises
        ------
        NotFoundError          : unknown id
        InvalidTransitionError : registration is not awaiting payment
        CapacityError          : no room left for it (waitlisted when enabled)
        PaymentError           : gateway declined / failed; back to payment_pending
        """
        events: List[RegistrationEvent] = []
        notices: List[_Notice] = []
        blocked = False

        async with self._lock:
            reg = self._get(registration_id)
            if reg.status != RegistrationStatus.PAYMENT_PENDING:
                raise InvalidTransitionError(reg.id, reg.status, RegistrationStatus.PAYMENT_PROCESSING)

            config = self._config
            now = self._clock()
            others = [r for r in self._registrations.values() if r.id != reg.id]
            stats = compute_stats(others, config.max_total_players)
            if would_exceed_capacity(
                stats.confirmed_players, reg.type, config.max_total_players,
                reserved_players=players_in_payment(others),
            ):
                blocked = True
                if config.enable_waitlist:
                    waitlisted = self._transition(reg, RegistrationStatus.WAITLISTED, now)
                    await self._commit(waitlisted, reg.status, events)
                    notices.append((NotificationKind.WAITLIST_NOTICE, waitlisted, {}))
            else:
                processing = self._transition(
                    reg, RegistrationStatus.PAYMENT_PROCESSING, now,
                    payment_info=replace(reg.payment_info, status=PaymentStatus.PROCESSING, method=method),
                )
                await self._commit(processing, reg.status, events)
                amount = processing.payment_info.total
                email  = processing.primary_player.email

        await self._publish(events, notices)
        if blocked:
            raise CapacityError("No spots left for this registration")

        try:
            result = await self._payments.create_payment_intent(
                amount, email, {"registrationId": registration_id}, method=method
            )
        except asyncio.CancelledError:
            try:
                await self._resolve_payment(
                    registration_id, method,
                    PaymentResult(success=False, error="Payment attempt was cancelled"),
                )
            except PaymentError:
                pass
            raise
        except Exception:
            logger.exception("Payment gateway error for registration %s", registration_id)
            result = PaymentResult(success=False, error="Payment processing failed")

        return await self._resolve_payment(registration_id, method, result)

    async def _resolve_payment(
        self,
        registration_id: str,
        method: str,
        result: PaymentResult,
    ) -> Registration:
        events: List[RegistrationEvent] = []
        notices: List[_Notice] = []
        orphaned_intent: Optional[str] = None

        async with self._lock:
            reg = self._get(registration_id)
            now = self._clock()

            if reg.status != RegistrationStatus.PAYMENT_PROCESSING:
                # Cancelled while the gateway call was in flight
                if result.success:
                    orphaned_intent = result.payment_intent_id
                final = reg
            elif result.success:
                paid = replace(
                    reg,
                    payment_info=replace(
                        reg.payment_info,
                        status=PaymentStatus.COMPLETED,
                        method=method,
                        payment_intent_id=result.payment_intent_id,
                        paid_at=now,
                    ),
                    updated_at=now,
                )
                await self._storage.save_registration(paid)
                self._registrations[paid.id] = paid
                final = paid
                if self._config.auto_confirm_payments:
                    final = await self._confirm(paid, now, events, notices, strict=False)
                notices.insert(0, (
                    NotificationKind.PAYMENT_CONFIRMATION, final,
                    {"amount": final.payment_info.total, "paymentIntentId": result.payment_intent_id},
                ))
            else:
                final = self._transition(
                    reg, RegistrationStatus.PAYMENT_PENDING, now,
                    payment_info=replace(reg.payment_info, status=PaymentStatus.FAILED),
                )
                await self._commit(final, reg.status, events)

        await self._publish(events, notices)

        if orphaned_intent is not None:
            await self._refund_orphaned(registration_id, orphaned_intent)
            raise PaymentError("Registration was cancelled during payment")
        if reg.status != RegistrationStatus.PAYMENT_PROCESSING:
            raise PaymentError("Registration was cancelled during payment")
        if not result.success:
            logger.info("Payment failed for registration %s: %s", registration_id, result.error)
            raise PaymentError(result.error or "Payment failed")
        return copy.deepcopy(final)

    async def _refund_orphaned(self, registration_id: str, intent_id: str) -> None:
        """
        Refund a charge that succeeded after its registration was cancelled.
        The outcome is recorded on the cancelled registration; a refund that
        fails leaves it marked as paid so the money can be traced.
        """
        logger.warning(
            "Registration %s was cancelled during payment; refunding %s",
            registration_id, intent_id,
        )
        try:
            refund = await self._payments.process_refund(
                intent_id, "Registration cancelled during payment"
            )
        except Exception:
            logger.exception("Refund of %s for registration %s raised", intent_id, registration_id)
            refund = RefundResult(success=False, error="Refund failed")

        async with self._lock:
            reg = self._get(registration_id)
            status = PaymentStatus.REFUNDED if refund.success else PaymentStatus.COMPLETED
            recorded = replace(
                reg,
                payment_info=replace(reg.payment_info, status=status, payment_intent_id=intent_id),
                updated_at=self._clock(),
            )
            await self._storage.save_registration(recorded)
            self._registrations[recorded.id] = recorded

        if not refund.success:
            logger.error(
                "Refund of %s for cancelled registration %s failed: %s",
                intent_id, registration_id, refund.error,
            )
            raise PaymentError(refund.error or "Refund failed")

    async def confirm_registration(self, registration_id: str) -> Registration:
        """Manually confirm a paid registration held in ``payment_processing``."""
        events: List[RegistrationEvent] = []
        notices: List[_Notice] = []
        async with self._lock:
            reg = self._get(registration_id)
            if reg.status != RegistrationStatus.PAYMENT_PROCESSING:
                raise InvalidTransitionError(reg.id, reg.status, RegistrationStatus.CONFIRMED)
            if reg.payment_info.status != PaymentStatus.COMPLETED:
                raise PaymentError("Payment has not been completed")
            confirmed = await self._confirm(reg, self._clock(), events, notices, strict=True)
        await self._publish(events, notices)
        return copy.deepcopy(confirmed)

    async def _confirm(
        self,
        reg: Registration,
        now: datetime,
        events: List[RegistrationEvent],
        notices: List[_Notice],
        strict: bool,
    ) -> Registration:
        """Move to ``confirmed`` unless that would overflow the cap (caller holds the lock)."""
        others = [r for r in self._registrations.values() if r.id != reg.id]
        stats = compute_stats(others, self._config.max_total_players)
        if would_exceed_capacity(stats.confirmed_players, reg.type, self._config.max_total_players):
            if strict:
                raise CapacityError("Confirming this registration would exceed the player cap")
            logger.warning("Registration %s paid but left unconfirmed: field is full", reg.id)
            return reg

        confirmed = self._transition(
            reg, RegistrationStatus.CONFIRMED, now,
            checkin_token=reg.checkin_token or make_checkin_token(),
        )
        await self._commit(confirmed, reg.status, events)
        await self._drain_waitlist(now, events, notices)
        return confirmed

    # ── Cancellation ─────────────────────────────────────────────────────────

    async def cancel_registration(
        self,
        registration_id: str,
        reason: Optional[str] = None,
    ) -> Registration:
        """
        Cancel a registration, refunding it first when it was paid.
        A failed refund raises PaymentError and leaves the status unchanged.
        A second cancel while the first is still refunding raises
        InvalidTransitionError.
        """
        async with self._lock:
            reg = self._get(registration_id)
            if reg.status == RegistrationStatus.CANCELLED or registration_id in self._cancelling:
                raise InvalidTransitionError(reg.id, reg.status, RegistrationStatus.CANCELLED)
            intent_id = reg.payment_info.payment_intent_id
            needs_refund = reg.payment_info.status == PaymentStatus.COMPLETED and bool(intent_id)
            self._cancelling.add(registration_id)

        try:
            return await self._cancel(registration_id, reason or "Registration cancelled",
                                      intent_id, needs_refund)
        finally:
            self._cancelling.discard(registration_id)

    async def _cancel(
        self,
        registration_id: str,
        reason: str,
        intent_id: Optional[str],
        needs_refund: bool,
    ) -> Registration:
        if needs_refund:
            try:
                refund = await self._payments.process_refund(intent_id, reason)
            except Exception as e:
                logger.exception("Refund for registration %s raised", registration_id)
                raise PaymentError("Refund failed") from e
            if not refund.success:
                raise PaymentError(refund.error or "Refund failed")
            logger.info("Registration %s refunded (%s)", registration_id, refund.refund_id)

        events: List[RegistrationEvent] = []
        notices: List[_Notice] = []
        async with self._lock:
            reg = self._get(registration_id)
            if reg.status == RegistrationStatus.CANCELLED:
                return copy.deepcopy(reg)

            now = self._clock()
            payment_status = reg.payment_info.status
            if needs_refund:
                payment_status = PaymentStatus.REFUNDED
            elif payment_status != PaymentStatus.COMPLETED:
                payment_status = PaymentStatus.CANCELLED
            else:
                logger.warning(
                    "Registration %s paid without a payment intent; refund it manually",
                    reg.id,
                )

            cancelled = self._transition(
                reg, RegistrationStatus.CANCELLED, now,
                payment_info=replace(reg.payment_info, status=payment_status),
                metadata={**reg.metadata, "cancellationReason": reason},
            )
            await self._commit(cancelled, reg.status, events)
            await self._drain_waitlist(now, events, notices)

        await self._publish(events, notices)
        return copy.deepcopy(cancelled)

    # ── Waitlist ─────────────────────────────────────────────────────────────

    async def _drain_waitlist(
        self,
        now: datetime,
        events: List[RegistrationEvent],
        notices: List[_Notice],
    ) -> List[Registration]:
        """Promote waitlisted registrations FIFO while they fit (caller holds the lock)."""
        stats = compute_stats(self._registrations.values(), self._config.max_total_players)
        promoted: List[Registration] = []
        for r in select_promotions(self._registrations.values(), stats.available_spots):
            moved = self._transition(r, RegistrationStatus.PAYMENT_PENDING, now)
            await self._commit(moved, r.status, events)
            notices.append((NotificationKind.SPOT_AVAILABLE, moved, {}))
            promoted.append(moved)
            logger.info("Registration %s promoted from waitlist", r.id)
        return promoted

    # ── Internals ────────────────────────────────────────────────────────────

    def _get(self, registration_id: str) -> Registration:
        reg = self._registrations.get(registration_id)
        if reg is None:
            raise NotFoundError(f"Registration {registration_id} not found")
        return reg

    @staticmethod
    def _transition(
        reg: Registration,
        new_status: str,
        now: datetime,
        **changes: Any,
    ) -> Registration:
        if not RegistrationStatus.can_transition(reg.status, new_status):
            raise InvalidTransitionError(reg.id, reg.status, new_status)
        return replace(reg, status=new_status, updated_at=now, **changes)

    async def _commit(
        self,
        reg: Registration,
        old_status: Optional[str],
        events: List[RegistrationEvent],
    ) -> None:
        await self._storage.save_registration(reg)
        self._registrations[reg.id] = reg
        events.append(RegistrationEvent(reg.id, old_status, reg.status, reg.updated_at))

    async def _publish(
        self,
        events: List[RegistrationEvent],
        notices: List[_Notice],
    ) -> None:
        for event in events:
            for listener in list(self._listeners):
                try:
                    result = listener(event)
                    if inspect.isawaitable(result):
                        await result
                except Exception:
                    logger.exception("Registration listener failed for %s", event.registration_id)

        for kind, reg, payload in notices:
            await dispatch(self._notifier, kind, copy.deepcopy(reg), payload)
