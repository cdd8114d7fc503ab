"""
Check-in pass service.

Confirmed registrations get a random token. The pass is a QR code carrying
``FAIRWAY-PASS:<token>``, which volunteers scan at the check-in desk and paste
into ``/checkin``. A bare token is accepted as well.
"""
from __future__ import annotations

import io
import uuid
from typing import Optional

import segno

PASS_PREFIX = "FAIRWAY-PASS:"


def make_checkin_token() -> str:
    """Generate a random UUID4 token for a confirmed registration."""
    return str(uuid.uuid4())


def pass_payload(token: str) -> str:
    return f"{PASS_PREFIX}{token}"


def generate_qr_png(token: str, scale: int = 8, border: int = 4) -> bytes:
    """
    Render the check-in pass for ``token`` as a PNG image.

    Parameters
    ----------
    token  : check-in token of a confirmed registration
    scale  : pixels per module
    border : quiet-zone width in modules
    """
    qr  = segno.make_qr(pass_payload(token), error="M")
    buf = io.BytesIO()
    qr.save(buf, kind="png", scale=scale, border=border, dark="#0b5d1e")
    return buf.getvalue()


def validate_token_format(token: Optional[str]) -> bool:
    """True when ``token`` is a canonical UUID4 string."""
    try:
        val = uuid.UUID(token, version=4)
        return str(val) == token.lower()
    except (ValueError, AttributeError, TypeError):
        return False


def parse_pass(text: Optional[str]) -> Optional[str]:
    """
    Extract the check-in token from scanned pass text.
    Returns None for anything that is not a well-formed pass.
    """
    if not text:
        return None
    candidate = text.strip()
    if candidate.upper().startswith(PASS_PREFIX):
        candidate = candidate[len(PASS_PREFIX):]
    candidate = candidate.lower()
    return candidate if validate_token_format(candidate) else None
