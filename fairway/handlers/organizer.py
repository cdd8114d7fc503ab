"""
Organizer desk — registration overview, check-in and live score entry.

Commands (organizers only):
  /stats                                   registration + scoring summary
  /leaderboard                             top of the live leaderboard
  /checkin <token> [cart]                  check in a confirmed registration
  /score <reg_id> <hole> <strokes> [putts] [penalties]
  /confirm <reg_id>                        confirm a paid registration
  /cancel <reg_id> [reason]                cancel (refunds when paid)
  /pairings                                tee sheet of confirmed golfers
"""
import logging
from typing import List, Optional, Tuple

from aiogram import Router
from aiogram.enums import ParseMode
from aiogram.filters import Command, CommandObject, CommandStart
from aiogram.types import Message

from fairway.exceptions import FairwayError
from fairway.middlewares import IsAdmin
from fairway.models.models import RegistrationStatus
from fairway.services.pricing_service import format_amount
from fairway.services.qr_service import parse_pass
from fairway.services.ranking_service import format_leaderboard_line, top_entries
from fairway.services.registration_service import RegistrationService
from fairway.services.scoring_service import LiveScoringService

logger = logging.getLogger(__name__)
router = Router(name="organizer")
router.message.filter(IsAdmin())

LEADERBOARD_SIZE = 10


def parse_score_args(args: Optional[str]) -> Tuple[str, int, int, Optional[int], Optional[int]]:
    """
    Split ``/score`` arguments.
    Example: "reg_ab12 7 4 2" → ("reg_ab12", 7, 4, 2, None)
    Raises ValueError when the shape is wrong.
    """
    parts: List[str] = (args or "").split()
    if not 3 <= len(parts) <= 5:
        raise ValueError("Usage: /score <reg_id> <hole> <strokes> [putts] [penalties]")
    numbers = [int(p) for p in parts[1:]]
    numbers += [None] * (4 - len(numbers))
    hole, strokes, putts, penalties = numbers
    return parts[0], hole, strokes, putts, penalties


@router.message(CommandStart())
async def cmd_start(message: Message) -> None:
    await message.answer(
        "⛳️ *Fairway organizer desk*\n\n"
        "/stats — registration summary\n"
        "/leaderboard — live standings\n"
        "/checkin `<token>` — check in a player\n"
        "/score `<reg_id> <hole> <strokes>` — enter a score\n"
        "/pairings — tee sheet of confirmed golfers",
        parse_mode=ParseMode.MARKDOWN,
    )


# ── Overview ──────────────────────────────────────────────────────────────────

@router.message(Command("stats"))
async def cmd_stats(
    message: Message,
    registrations: RegistrationService,
    scoring: LiveScoringService,
) -> None:
    stats = registrations.get_stats()
    cfg   = registrations.config
    play  = scoring.scoring_stats()
    desk  = scoring.check_in_stats(stats.confirmed_registrations)
    text = (
        f"📊 *Registrations*\n\n"
        f"Total: *{stats.total_registrations}*\n"
        f"✅ Confirmed: *{stats.confirmed_registrations}* ({stats.confirmed_players} players)\n"
        f"💳 Awaiting payment: *{stats.pending_payments}*\n"
        f"⏳ Waitlisted: *{stats.waitlisted_registrations}*\n"
        f"🟢 Open spots: *{stats.available_spots}* / {cfg.max_total_players}\n"
        f"💰 Revenue: `{format_amount(stats.total_revenue)}`\n\n"
        f"⛳️ *Scoring*\n\n"
        f"Cards: *{play.total_scorecards}* · finished: *{play.completed_rounds}*"
        f" · on course: *{play.in_progress}*"
        f"\n🧾 Checked in: *{desk.checked_in}* / {desk.total_registrations}"
        f" ({desk.check_in_rate:g}%)"
        + (f" · peak {desk.peak_checkin_time} UTC" if desk.peak_checkin_time else "")
    )
    await message.answer(text, parse_mode=ParseMode.MARKDOWN)


@router.message(Command("leaderboard"))
async def cmd_leaderboard(message: Message, scoring: LiveScoringService) -> None:
    entries = top_entries(scoring.entries(), LEADERBOARD_SIZE)
    if not entries:
        await message.answer("No teams on the leaderboard yet.")
        return

    recent = scoring.recent_updates()
    lines = [
        ("🔥 " if e.registration_id in recent else "") + format_leaderboard_line(e)
        for e in entries
    ]
    await message.answer("🏆 *Leaderboard*\n\n```\n" + "\n".join(lines) + "\n```",
                         parse_mode=ParseMode.MARKDOWN)


# ── Event day ─────────────────────────────────────────────────────────────────

@router.message(Command("checkin"))
async def cmd_checkin(
    message: Message,
    command: CommandObject,
    registrations: RegistrationService,
    scoring: LiveScoringService,
) -> None:
    parts = (command.args or "").split()
    if not parts:
        await message.answer("Usage: /checkin <token> [cart]")
        return

    token = parse_pass(parts[0])
    reg = registrations.find_by_checkin_token(token) if token else None
    if reg is None or reg.status != RegistrationStatus.CONFIRMED:
        await message.answer("❌ No confirmed registration for this pass.")
        return

    cart = parts[1] if len(parts) > 1 else None
    await scoring.check_in(
        reg.id,
        reg.primary_player.name,
        team_name=reg.display_name,
        cart_number=cart,
    )
    await message.answer(
        f"✅ *{reg.display_name}* checked in"
        + (f" · cart {cart}" if cart else ""),
        parse_mode=ParseMode.MARKDOWN,
    )


@router.message(Command("score"))
async def cmd_score(message: Message, command: CommandObject, scoring: LiveScoringService) -> None:
    try:
        registration_id, hole, strokes, putts, penalties = parse_score_args(command.args)
    except ValueError:
        await message.answer("Usage: /score <reg_id> <hole> <strokes> [putts] [penalties]")
        return

    result = await scoring.submit_score(registration_id, hole, strokes, putts, penalties)
    if not result.success:
        await message.answer(f"❌ {result.error}")
        return

    card = scoring.get_scorecard(registration_id)
    await message.answer(
        f"✅ Hole {hole}: {strokes} — total {card.total_strokes} after {card.holes_completed}",
    )


# ── Registration desk ─────────────────────────────────────────────────────────

@router.message(Command("confirm"))
async def cmd_confirm(message: Message, command: CommandObject, registrations: RegistrationService) -> None:
    registration_id = (command.args or "").strip()
    if not registration_id:
        await message.answer("Usage: /confirm <reg_id>")
        return
    try:
        reg = await registrations.confirm_registration(registration_id)
    except FairwayError as e:
        await message.answer(f"❌ {e}")
        return
    await message.answer(f"✅ {reg.display_name} confirmed.")


@router.message(Command("cancel"))
async def cmd_cancel(message: Message, command: CommandObject, registrations: RegistrationService) -> None:
    parts = (command.args or "").split(maxsplit=1)
    if not parts:
        await message.answer("Usage: /cancel <reg_id> [reason]")
        return
    reason = parts[1] if len(parts) > 1 else None
    try:
        reg = await registrations.cancel_registration(parts[0], reason)
    except FairwayError as e:
        await message.answer(f"❌ {e}")
        return
    logger.info("Registration %s cancelled by %s", reg.id, message.from_user.id)
    await message.answer(f"🗑 {reg.display_name} cancelled.")


@router.message(Command("pairings"))
async def cmd_pairings(message: Message, registrations: RegistrationService) -> None:
    pairings = registrations.generate_pairings()
    if not pairings:
        await message.answer("Not enough confirmed golfers with a handicap to form a group.")
        return

    lines = []
    for p in pairings:
        names = ", ".join(player.name for player in p.players)
        lines.append(f"{p.tee_time:%H:%M}  {names}  (avg {p.average_handicap:g})")
    await message.answer("🗓 *Tee sheet*\n\n```\n" + "\n".join(lines) + "\n```",
                         parse_mode=ParseMode.MARKDOWN)
