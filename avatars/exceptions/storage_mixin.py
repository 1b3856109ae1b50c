from typing import NoReturn

from starlette import status

from avatars.exceptions.api_error import StorageFailureError
from avatars.models.types import StorageKey


class StorageExceptionsMixin:
    def storage_failure(self, key: StorageKey) -> NoReturn:
        raise StorageFailureError(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f'Failed to store file {key!r}',
        )
