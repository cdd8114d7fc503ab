"""
Service injection middleware.
Puts the running registration and live scoring services into every
handler's data dict under "registrations" and "scoring".
"""
from typing import Any, Awaitable, Callable, Dict

from aiogram import BaseMiddleware
from aiogram.types import TelegramObject

from fairway.services.registration_service import RegistrationService
from fairway.services.scoring_service import LiveScoringService


class ServiceMiddleware(BaseMiddleware):
    def __init__(
        self,
        registrations: RegistrationService,
        scoring: LiveScoringService,
    ) -> None:
        self._registrations = registrations
        self._scoring = scoring

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any],
    ) -> Any:
        data["registrations"] = self._registrations
        data["scoring"] = self._scoring
        return await handler(event, data)
