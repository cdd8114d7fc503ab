from fairway.handlers.organizer import router as organizer_router

__all__ = ["organizer_router"]
