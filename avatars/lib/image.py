import logging
from asyncio import get_running_loop
from collections.abc import Mapping
from io import BytesIO
from typing import NamedTuple

import cython
from PIL import ImageOps
from PIL.Image import DecompressionBombError, Resampling
from PIL.Image import Image as PILImage
from PIL.Image import open as open_image
from sizestr import sizestr

from avatars.config import (
    AVATAR_MAX_FILE_SIZE,
    AVATAR_MAX_MEGAPIXELS,
    AVATAR_WEBP_METHOD,
    AVATAR_WEBP_QUALITY,
)
from avatars.lib.exceptions_context import raise_for
from avatars.models.types import IMAGE_FORMATS, ImageFormat, SizeTag

DERIVATIVE_EXTENSION = 'webp'

_FORMAT_EXTENSIONS: dict[ImageFormat, str] = {
    'JPEG': 'jpg',
    'PNG': 'png',
    'WEBP': 'webp',
}


class DerivedImage(NamedTuple):
    format: ImageFormat
    original: bytes
    """The upload, passed through unmodified."""
    derivatives: dict[SizeTag, bytes]
    """Square WebP renditions, one per requested size."""


class Image:
    @staticmethod
    def extension(format: ImageFormat) -> str:
        """Get the file extension of an accepted image format."""
        return _FORMAT_EXTENSIONS[format]

    @staticmethod
    def validate_and_derive(data: bytes, size_table: Mapping[SizeTag, int]) -> DerivedImage:
        """
        Validate the uploaded image and render its square derivatives.

        - Format: JPEG, PNG or WebP
        - Orientation: rotate (EXIF)
        - Shape: center crop to a square
        - Output: WebP at a fixed quality, metadata stripped

        The result depends only on the input, identical inputs produce
        byte-identical derivatives.
        """
        size: cython.Py_ssize_t = len(data)
        if size > AVATAR_MAX_FILE_SIZE:
            raise_for.image_too_big(size, AVATAR_MAX_FILE_SIZE)

        img, format = _decode(data)
        logging.debug('Decoded %s image %dx%d (%s)', format, *img.size, sizestr(size))

        derivatives: dict[SizeTag, bytes] = {}
        for tag, side in size_table.items():
            resized = ImageOps.fit(img, (side, side), Resampling.LANCZOS)
            buffer = _save(resized)
            logging.debug('Rendered %r derivative %dpx (%s)', tag, side, sizestr(len(buffer)))
            derivatives[tag] = buffer

        return DerivedImage(format, data, derivatives)

    @staticmethod
    async def derive(data: bytes, size_table: Mapping[SizeTag, int]) -> DerivedImage:
        """Run validate_and_derive in the default executor."""
        loop = get_running_loop()
        return await loop.run_in_executor(None, Image.validate_and_derive, data, size_table)


def _decode(data: bytes) -> tuple[PILImage, ImageFormat]:
    try:
        img = open_image(BytesIO(data))
    except DecompressionBombError:
        raise_for.image_invalid('too many pixels')
    except (OSError, SyntaxError, ValueError):
        raise_for.image_invalid('cannot identify image file')

    format = img.format
    if format == 'MPO':
        # multi-picture JPEG, the first frame is a plain baseline JPEG
        format = 'JPEG'
    if format not in IMAGE_FORMATS:
        raise_for.image_format_unsupported(format)

    img_width: cython.Py_ssize_t
    img_height: cython.Py_ssize_t
    img_width, img_height = img.size
    if img_width * img_height > AVATAR_MAX_MEGAPIXELS:
        logging.debug('Image is too big (%dx%d)', img_width, img_height)
        raise_for.image_invalid('too many pixels')

    try:
        img.load()
    except (OSError, SyntaxError, ValueError):
        raise_for.image_invalid('truncated or damaged image data')

    ImageOps.exif_transpose(img, in_place=True)

    if img.mode not in {'RGB', 'RGBA'}:
        has_alpha = 'A' in img.getbands() or 'transparency' in img.info
        img = img.convert('RGBA' if has_alpha else 'RGB')

    return img, format


def _save(img: PILImage) -> bytes:
    buffer = BytesIO()

    # See docs:
    # https://pillow.readthedocs.io/en/stable/handbook/image-file-formats.html#webp
    img.save(
        buffer,
        format='WebP',
        lossless=False,
        quality=AVATAR_WEBP_QUALITY,
        alpha_quality=max(AVATAR_WEBP_QUALITY, 75),
        method=AVATAR_WEBP_METHOD,
        exif=b'',
        xmp=b'',
    )
    return buffer.getvalue()
