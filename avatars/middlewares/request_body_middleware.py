import logging
from io import BytesIO

import cython
from fastapi import Response
from sizestr import sizestr
from starlette import status
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from avatars.config import REQUEST_BODY_MAX_SIZE


class RequestBodyMiddleware:
    """Request body limiting middleware."""

    __slots__ = ('app',)

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope['type'] != 'http':
            return await self.app(scope, receive, send)

        input_size: cython.size_t = 0
        buffer = BytesIO()

        while True:
            message = await receive()
            if message['type'] != 'http.request':
                # client disconnected
                return

            chunk: bytes = message.get('body', b'')
            input_size += len(chunk)
            if input_size > REQUEST_BODY_MAX_SIZE:
                return await Response(
                    f'Request body exceeded {sizestr(REQUEST_BODY_MAX_SIZE)}',
                    status.HTTP_413_CONTENT_TOO_LARGE,
                )(scope, receive, send)

            buffer.write(chunk)
            if not message.get('more_body', False):
                break

        if input_size:
            logging.debug('Request body size: %s', sizestr(input_size))

        body = buffer.getvalue()
        wrapper_finished: cython.bint = False

        async def wrapper() -> Message:
            nonlocal wrapper_finished
            if wrapper_finished:
                return await receive()
            wrapper_finished = True
            return {'type': 'http.request', 'body': body, 'more_body': False}

        return await self.app(scope, wrapper, send)
