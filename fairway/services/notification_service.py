"""
Registration notification service.

Every workflow notice (registration received, waitlisted, payment received,
spot opened up) goes through a Notifier. TelegramNotifier delivers a styled
message to the player's Telegram chat and a copy to the organizers' chat;
LoggingNotifier is used when no bot token is configured.

Delivery is best-effort: failures are logged and never reverse a state
transition.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Protocol

from aiogram import Bot
from aiogram.enums import ParseMode
from aiogram.exceptions import TelegramBadRequest, TelegramForbiddenError
from aiogram.types import BufferedInputFile

from fairway.models.domain import Registration
from fairway.models.models import NotificationKind, RegistrationType
from fairway.services.pricing_service import format_amount
from fairway.services.qr_service import generate_qr_png

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    async def notify(
        self,
        kind: str,
        registration: Registration,
        payload: Optional[Dict[str, Any]] = None,
    ) -> None: ...


async def dispatch(
    notifier: Notifier,
    kind: str,
    registration: Registration,
    payload: Optional[Dict[str, Any]] = None,
) -> bool:
    """
    Call the notifier, logging instead of raising on failure.
    Returns True when the notifier completed without error.
    """
    try:
        await notifier.notify(kind, registration, payload or {})
        return True
    except Exception:
        logger.exception(
            "Notification %s for registration %s failed", kind, registration.id
        )
        return False


def render_message(kind: str, registration: Registration, payload: Optional[Dict[str, Any]] = None) -> str:
    """Markdown text for a workflow notice."""
    payload = payload or {}
    name  = registration.display_name
    label = RegistrationType.LABELS.get(registration.type, registration.type)
    total = format_amount(registration.payment_info.total)

    if kind == NotificationKind.REGISTRATION_CONFIRMATION:
        return (
            f"⛳️ *Registration received!*\n\n"
            f"👤 {name}\n"
            f"📋 {label}\n"
            f"💳 Amount due: `{total}`\n\n"
            f"Complete your payment to secure your spot."
        )
    if kind == NotificationKind.WAITLIST_NOTICE:
        return (
            f"⏳ *You're on the waitlist*\n\n"
            f"👤 {name}\n"
            f"📋 {label}\n\n"
            f"The field is currently full. We will message you as soon as a spot opens up."
        )
    if kind == NotificationKind.PAYMENT_CONFIRMATION:
        paid = format_amount(payload.get("amount", registration.payment_info.total))
        lines = [
            "✅ *Payment received — thank you!*\n",
            f"👤 {name}",
            f"💳 Paid: `{paid}`",
        ]
        if registration.checkin_token:
            lines.append("\n🎟 Show the attached QR pass at check-in.")
        return "\n".join(lines)
    if kind == NotificationKind.SPOT_AVAILABLE:
        return (
            f"🎉 *A spot opened up!*\n\n"
            f"👤 {name}\n"
            f"📋 {label}\n"
            f"💳 Amount due: `{total}`\n\n"
            f"You have been moved off the waitlist. Complete your payment to confirm."
        )
    return f"ℹ️ Update for {name}: {kind}"


class LoggingNotifier:
    """Writes notices to the log. Used when Telegram delivery is not configured."""

    async def notify(
        self,
        kind: str,
        registration: Registration,
        payload: Optional[Dict[str, Any]] = None,
    ) -> None:
        logger.info(
            "Notice %s → %s <%s>",
            kind, registration.display_name, registration.primary_player.email,
        )


class TelegramNotifier:
    """
    Delivers notices through the organizer bot.

    Parameters
    ----------
    bot               : aiogram Bot instance
    organizer_chat_id : optional chat that receives a copy of every notice
    """

    def __init__(self, bot: Bot, organizer_chat_id: Optional[int] = None) -> None:
        self._bot = bot
        self._organizer_chat_id = organizer_chat_id

    async def notify(
        self,
        kind: str,
        registration: Registration,
        payload: Optional[Dict[str, Any]] = None,
    ) -> None:
        text = render_message(kind, registration, payload)

        chat_id = registration.primary_player.telegram_chat_id
        if chat_id is not None:
            if kind == NotificationKind.PAYMENT_CONFIRMATION and registration.checkin_token:
                await self._send_pass(chat_id, text, registration.checkin_token)
            else:
                await self._send(chat_id, text)
        else:
            logger.info("Registration %s has no Telegram chat; skipping player notice", registration.id)

        if self._organizer_chat_id is not None:
            await self._send(
                self._organizer_chat_id,
                f"🗂 `{registration.id}` · {kind}\n\n{text}",
            )

    async def _send(self, chat_id: int, text: str) -> None:
        try:
            await self._bot.send_message(
                chat_id=chat_id, text=text, parse_mode=ParseMode.MARKDOWN
            )
        except (TelegramForbiddenError, TelegramBadRequest) as e:
            logger.warning("Could not notify chat_id=%d: %s", chat_id, e)

    async def _send_pass(self, chat_id: int, caption: str, token: str) -> None:
        photo = BufferedInputFile(generate_qr_png(token), filename="checkin-pass.png")
        try:
            await self._bot.send_photo(
                chat_id=chat_id,
                photo=photo,
                caption=caption,
                parse_mode=ParseMode.MARKDOWN,
            )
        except (TelegramForbiddenError, TelegramBadRequest) as e:
            logger.warning("Could not send check-in pass to chat_id=%d: %s", chat_id, e)
