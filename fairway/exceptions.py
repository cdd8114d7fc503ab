"""
Error taxonomy for the registration workflow and live scoring.

Validation and capacity errors are raised before any state is touched.
Payment errors are raised after the registration has been reverted to
``payment_pending``.
"""
from __future__ import annotations

from typing import Iterable, List


class FairwayError(Exception):
    """Base class for all domain errors."""


class ValidationError(FairwayError):
    """One or more required-field / policy violations. Carries every message."""

    def __init__(self, errors: Iterable[str]) -> None:
        self.errors: List[str] = list(errors)
        super().__init__(", ".join(self.errors))


class CapacityError(FairwayError):
    """Registration would exceed the player cap and the waitlist is disabled."""


class PaymentError(FairwayError):
    """Payment or refund attempt failed. ``reason`` comes from the gateway."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class InvalidScoreError(FairwayError):
    """Malformed score input: hole outside 1–18 or negative strokes."""


class NotFoundError(FairwayError):
    """Unknown registration / bracket id."""


class InvalidTransitionError(FairwayError):
    """Status change not allowed by the registration state machine."""

    def __init__(self, registration_id: str, current: str, target: str) -> None:
        self.registration_id = registration_id
        self.current = current
        self.target = target
        super().__init__(
            f"Registration {registration_id}: cannot move from {current} to {target}"
        )
