"""
Organizer authorization middleware.

Attaches `is_admin: bool` to handler data for all updates.
The IsAdmin filter (below) restricts organizer-only routers.
"""
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional

from aiogram import BaseMiddleware
from aiogram.filters import BaseFilter
from aiogram.types import CallbackQuery, Message, TelegramObject

from fairway.config import settings


class AdminMiddleware(BaseMiddleware):
    """
    Injects `is_admin` into the data dict.

    Parameters
    ----------
    admin_ids : Telegram user ids treated as organizers (ADMIN_IDS by default)
    """

    def __init__(self, admin_ids: Optional[Iterable[int]] = None) -> None:
        self._admin_ids = frozenset(admin_ids if admin_ids is not None else settings.admin_ids_list)

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any],
    ) -> Any:
        user = data.get("event_from_user")
        data["is_admin"] = bool(user and user.id in self._admin_ids)
        return await handler(event, data)


class IsAdmin(BaseFilter):
    """Use on routers/handlers that only organizers may reach."""

    async def __call__(self, event: Message | CallbackQuery, is_admin: bool = False) -> bool:
        if not is_admin:
            if isinstance(event, Message):
                await event.answer("⛔️ Organizers only.")
            elif isinstance(event, CallbackQuery):
                await event.answer("⛔️ Organizers only.", show_alert=True)
        return is_admin
