from typing import NoReturn

from starlette import status

from avatars.exceptions.api_error import APIError
from avatars.models.types import UserId


class AvatarExceptionsMixin:
    def avatar_not_found(self, user_id: UserId) -> NoReturn:
        raise APIError(status.HTTP_404_NOT_FOUND, detail=f'Avatar of {user_id!r} not found')

    def avatar_file_not_found(self) -> NoReturn:
        raise APIError(status.HTTP_404_NOT_FOUND, detail='Avatar file not found')

    def avatar_access_denied(self) -> NoReturn:
        raise APIError(status.HTTP_403_FORBIDDEN, detail='Avatar is not visible to you')

    def user_id_invalid(self, user_id: str) -> NoReturn:
        raise APIError(status.HTTP_422_UNPROCESSABLE_CONTENT, detail=f'Invalid user id {user_id!r}')
