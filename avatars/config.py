from datetime import timedelta
from logging.config import dictConfig
from os import chdir
from pathlib import Path
from typing import Annotated, Literal

from githead import githead
from pydantic import BeforeValidator, ByteSize, Field

from avatars.lib.pydantic_settings_integration import pydantic_settings_integration
from avatars.models.types import SizeTag


def _ByteSize(v: str) -> ByteSize:  # noqa: N802
    return ByteSize._validate(v, None)  # noqa: SLF001  # type: ignore


def _validate_dir(v) -> Path:
    """Resolve directory to an absolute path and ensure it exists."""
    v = Path(v)
    v.mkdir(parents=True, exist_ok=True)
    return v.resolve(strict=True)


def _validate_url_path(v) -> str:
    """Validate an absolute URL path, without a trailing slash."""
    v = str(v).rstrip('/')
    if not v.startswith('/') or v.startswith('//') or any(c in v for c in '?#:'):
        raise ValueError(f'Expected an absolute URL path, got {v!r}')
    return v


type _MakeDir = Annotated[Path, BeforeValidator(_validate_dir)]
type _UrlPath = Annotated[str, BeforeValidator(_validate_url_path)]

# Change working directory to the project root
chdir(Path(__file__).parent.parent)

# -------------------- System Configuration --------------------

# Core settings
ENV: Literal['dev', 'test', 'prod'] = 'prod'
LOG_LEVEL: Literal['DEBUG', 'INFO', 'WARNING'] | None = None

# Storage paths
DATA_DIR: _MakeDir = Path('data')
AVATAR_CONTENT_DIR: Path = Path('data/avatars')
AVATAR_REGISTRY_PATH: Path = Path('data/avatars.json')

# Public URLs
# served by this app, so it must be a path on the same origin
AVATAR_URL_PREFIX: _UrlPath = '/avatar'
DEFAULT_AVATAR_URL = '/static/img/avatar.svg'

# -------------------- Avatar Processing --------------------

# Derivatives (square side in pixels)
AVATAR_SIZES: dict[SizeTag, int] = {
    'xs': 32,
    'sm': 64,
    'md': 128,
    'lg': 256,
    'xl': 512,
}
AVATAR_DEFAULT_SIZE: SizeTag = 'md'
AVATAR_WEBP_QUALITY: int = Field(80, ge=1, le=100)
AVATAR_WEBP_METHOD: int = Field(4, ge=0, le=6)

# Upload limits
AVATAR_MAX_FILE_SIZE = _ByteSize('8 MiB')
AVATAR_MAX_MEGAPIXELS = 6000 * 6000  # (resolution)
USER_ID_MAX_LENGTH = 64

# -------------------- Metadata Registry --------------------

# 'fail' refuses to read or write a registry that cannot be parsed,
# 'reset' treats it as empty (the next write discards its contents)
REGISTRY_CORRUPTION_POLICY: Literal['fail', 'reset'] = 'fail'
REGISTRY_LOCK_TIMEOUT = timedelta(seconds=30)

pydantic_settings_integration(__name__, globals())

# -------------------- Constant or derived configuration --------------------

try:
    VERSION = 'git#' + githead()[:7]
except FileNotFoundError:
    VERSION = 'dev'  # pyright: ignore [reportConstantRedefinition]

NAME = 'avatars'

# multipart framing around the uploaded file
REQUEST_BODY_MAX_SIZE = AVATAR_MAX_FILE_SIZE + _ByteSize('64 KiB')

if LOG_LEVEL is None:
    LOG_LEVEL = 'INFO' if ENV == 'prod' else 'DEBUG'  # pyright: ignore[reportConstantRedefinition]

# -------------------- Logging configuration --------------------

dictConfig({
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'default': {
            '()': 'uvicorn.logging.DefaultFormatter',
            'fmt': '%(levelprefix)s | %(asctime)s | %(name)s %(message)s',
            'datefmt': '%Y-%m-%d %H:%M:%S',
        },
    },
    'handlers': {
        'default': {
            'formatter': 'default',
            'class': 'logging.StreamHandler',
            'stream': 'ext://sys.stderr',
        },
    },
    'loggers': {
        'root': {'handlers': ['default'], 'level': LOG_LEVEL},
        **{
            # reduce logging verbosity of some modules
            module: {'handlers': [], 'level': 'INFO'}
            for module in (
                'PIL',
                'httpx',
                'httpcore',
                'multipart',
                'python_multipart',
            )
        },
    },
})
