from typing import NoReturn

from sizestr import sizestr
from starlette import status

from avatars.exceptions.api_error import InvalidImageError


class ImageExceptionsMixin:
    def image_invalid(self, reason: str) -> NoReturn:
        raise InvalidImageError(
            status.HTTP_422_UNPROCESSABLE_CONTENT,
            detail=f'Invalid image: {reason}',
        )

    def image_format_unsupported(self, format: str | None) -> NoReturn:
        raise InvalidImageError(
            status.HTTP_422_UNPROCESSABLE_CONTENT,
            detail=f'Unsupported image format: {format or "unknown"}',
        )

    def image_too_big(self, size: int, max_size: int) -> NoReturn:
        raise InvalidImageError(
            status.HTTP_422_UNPROCESSABLE_CONTENT,
            detail=f'Image is too big ({sizestr(size)} > {sizestr(max_size)})',
        )
