from fairway.middlewares.auth_middleware import AdminMiddleware, IsAdmin
from fairway.middlewares.service_middleware import ServiceMiddleware

__all__ = ["AdminMiddleware", "IsAdmin", "ServiceMiddleware"]
