from typing import Annotated, Any

import msgspec
from fastapi import APIRouter, Depends, File, Form, Path, Query, UploadFile

from avatars.config import AVATAR_DEFAULT_SIZE, AVATAR_MAX_FILE_SIZE, USER_ID_MAX_LENGTH
from avatars.dependencies import avatar_service
from avatars.lib.exceptions_context import raise_for
from avatars.models.types import Permission, SizeTag, UserId
from avatars.services.avatar_service import AvatarService
from avatars.validators.user_id import USER_ID_PATTERN

router = APIRouter(prefix='/api/avatar')


@router.get('/{user_id}')
async def resolve(
    user_id: Annotated[str, Path(min_length=1)],
    service: Annotated[AvatarService, Depends(avatar_service)],
    size: Annotated[SizeTag, Query()] = AVATAR_DEFAULT_SIZE,
) -> dict[str, str]:
    return {'avatarUrl': await service.resolve(user_id, size)}


@router.post('/{user_id}')
async def upload(
    user_id: Annotated[
        str,
        Path(min_length=1, max_length=USER_ID_MAX_LENGTH, pattern=USER_ID_PATTERN),
    ],
    file: Annotated[UploadFile, File()],
    service: Annotated[AvatarService, Depends(avatar_service)],
    permission: Annotated[Permission, Form()] = 'public',
) -> dict[str, Any]:
    if file.size is not None and file.size > AVATAR_MAX_FILE_SIZE:
        raise_for.image_too_big(file.size, AVATAR_MAX_FILE_SIZE)
    data = await file.read()
    record = await service.upload(user_id, data, permission)
    return msgspec.to_builtins(record)


@router.get('/{user_id}/record')
async def get_record(
    user_id: Annotated[str, Path(min_length=1)],
    service: Annotated[AvatarService, Depends(avatar_service)],
    viewer: Annotated[str | None, Query(min_length=1)] = None,
) -> dict[str, Any]:
    record = await service.get_record(UserId(user_id))
    if record is None:
        raise_for.avatar_not_found(UserId(user_id))
    if not service.check_permission(record, viewer):
        raise_for.avatar_access_denied()
    return msgspec.to_builtins(record)
