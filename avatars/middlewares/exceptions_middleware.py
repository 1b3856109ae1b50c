from starlette.types import ASGIApp, Receive, Scope, Send

from avatars.exceptions import Exceptions
from avatars.lib.exceptions_context import exceptions_context


class ExceptionsMiddleware:
    """Wrap requests in exceptions context."""

    __slots__ = ('app',)

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope['type'] != 'http':
            return await self.app(scope, receive, send)

        with exceptions_context(Exceptions()):
            return await self.app(scope, receive, send)
