from pathlib import Path
from typing import NoReturn

from starlette import status

from avatars.exceptions.api_error import RegistryCorruptionError


class RegistryExceptionsMixin:
    def registry_corrupted(self, path: Path) -> NoReturn:
        raise RegistryCorruptionError(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f'Avatar registry {path.name!r} is corrupted',
        )
