import logging
from asyncio import get_running_loop
from os import replace
from pathlib import Path
from typing import override

import cython
from sizestr import sizestr

from avatars.lib.buffered_random import buffered_rand_hex
from avatars.lib.storage.base import StorageBase
from avatars.models.types import StorageKey


class LocalStorage(StorageBase):
    """
    Local file storage.

    Keys are plain file names written directly under the root directory.
    Writes go through a unique temp file and an atomic rename, so concurrent
    writes of different keys never interfere and the last write of a key wins.
    """

    __slots__ = ('_base_dir', '_url_prefix')

    def __init__(self, base_dir: Path, url_prefix: str | None = None):
        super().__init__()
        self._base_dir = base_dir
        self._url_prefix = url_prefix.rstrip('/') if url_prefix is not None else None

    def path(self, key: StorageKey) -> Path:
        """Get the filesystem path of a key."""
        return _get_path(self._base_dir, key)

    @override
    async def ensure_root(self) -> None:
        self._base_dir.mkdir(parents=True, exist_ok=True)

    @override
    async def load(self, key: StorageKey) -> bytes:
        path = _get_path(self._base_dir, key)
        loop = get_running_loop()
        return await loop.run_in_executor(None, path.read_bytes)

    @override
    async def save(self, key: StorageKey, data: bytes) -> None:
        path = _get_path(self._base_dir, key)
        loop = get_running_loop()
        await loop.run_in_executor(None, _write_atomic, path, data)
        logging.debug('Saved %r (%s)', key, sizestr(len(data)))

    @override
    def url(self, key: StorageKey) -> str:
        if self._url_prefix is None:
            raise ValueError(f'Storage {self._base_dir} is not publicly served')
        return f'{self._url_prefix}/{key}'


@cython.cfunc
def _get_path(base_dir: Path, key: StorageKey, /) -> Path:
    """Get the path to a file in the storage."""
    if not key or key[0] == '.' or '/' in key or '\\' in key or '\0' in key:
        raise ValueError(f'Invalid storage key {key!r}')
    return base_dir.joinpath(key)


def _write_atomic(path: Path, data: bytes) -> None:
    temp_path = path.with_name(f'.{path.name}.{buffered_rand_hex(8)}.tmp')
    try:
        with temp_path.open('xb') as f:
            f.write(data)
        replace(temp_path, path)
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise
