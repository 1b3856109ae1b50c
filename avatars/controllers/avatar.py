from typing import Annotated

import magic
from fastapi import APIRouter, Depends, Path, Response

from avatars.config import AVATAR_URL_PREFIX
from avatars.dependencies import avatar_storage
from avatars.lib.exceptions_context import raise_for
from avatars.lib.storage.base import StorageBase
from avatars.models.types import StorageKey

router = APIRouter(prefix=AVATAR_URL_PREFIX)


@router.get('/{key}')
async def avatar_file(
    key: Annotated[StorageKey, Path(min_length=1)],
    storage: Annotated[StorageBase, Depends(avatar_storage)],
) -> Response:
    try:
        file = await storage.load(key)
    except (FileNotFoundError, ValueError):
        raise_for.avatar_file_not_found()

    content_type = magic.from_buffer(file[:2048], mime=True)
    return Response(
        file,
        media_type=content_type,
        headers={'Cache-Control': 'public, max-age=31536000, immutable'},
    )
