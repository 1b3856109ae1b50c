import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from starlette.staticfiles import StaticFiles

import avatars.lib.sentry  # noqa: F401
from avatars.config import ENV, NAME, VERSION
from avatars.controllers import api_avatar, avatar
from avatars.dependencies import avatar_storage
from avatars.middlewares.exceptions_middleware import ExceptionsMiddleware
from avatars.middlewares.request_body_middleware import RequestBodyMiddleware

# log when in test environment
if ENV != 'prod':
    logging.info('🦺 Running in %s environment', ENV)


@asynccontextmanager
async def lifespan(_):
    await avatar_storage().ensure_root()
    logging.info('Started %s %s', NAME, VERSION)
    yield


main = FastAPI(
    debug=ENV != 'prod',
    title=NAME,
    version=VERSION,
    lifespan=lifespan,
)

main.add_middleware(RequestBodyMiddleware)
main.add_middleware(ExceptionsMiddleware)

main.mount(
    '/static/',
    StaticFiles(directory='avatars/static'),
    name='static',
)

main.include_router(api_avatar.router)
main.include_router(avatar.router)
