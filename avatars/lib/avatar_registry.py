import fcntl
import logging
from asyncio import Lock, get_running_loop, timeout
from contextlib import asynccontextmanager
from datetime import timedelta
from io import FileIO
from os import fstat, stat_result
from pathlib import Path
from typing import Literal, NamedTuple

import msgspec
from sizestr import sizestr

from avatars.config import REGISTRY_CORRUPTION_POLICY, REGISTRY_LOCK_TIMEOUT
from avatars.lib.exceptions_context import raise_for
from avatars.lib.storage.local import LocalStorage
from avatars.models.msgspec.avatar_record import (
    AVATAR_REGISTRY_DECODER,
    AVATAR_REGISTRY_ENCODER,
    AvatarRecord,
    AvatarRegistryMap,
)
from avatars.models.types import StorageKey, UserId


class _FileVersion(NamedTuple):
    ino: int
    mtime_ns: int
    size: int

    @classmethod
    def from_stat(cls, st: stat_result) -> '_FileVersion':
        return cls(st.st_ino, st.st_mtime_ns, st.st_size)


class _Snapshot(NamedTuple):
    version: _FileVersion
    mapping: AvatarRegistryMap


class _RegistryFileLock:
    """A process-safe exclusive lock guarding registry writes."""

    __slots__ = ('_file', '_path', '_timeout')

    def __init__(self, path: Path, lock_timeout: timedelta):
        self._path = path.with_name(f'.{path.name}.lock')
        self._timeout = lock_timeout
        self._file: FileIO | None = None

    async def __aenter__(self) -> '_RegistryFileLock':
        self._path.parent.mkdir(parents=True, exist_ok=True)
        lock_file = self._file = self._path.open('wb', buffering=0)

        try:
            async with timeout(self._timeout.total_seconds()):
                loop = get_running_loop()
                await loop.run_in_executor(
                    None, lambda: fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
                )
        except BaseException:
            lock_file.close()
            self._file = None
            raise

        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self._file is not None:
            self._file.close()
            self._file = None


class AvatarRegistry:
    """
    Persisted mapping of user id to their current avatar record.

    The whole mapping lives in a single JSON file inside a LocalStorage.
    Writers are serialized by an in-process lock plus an exclusive file lock,
    so concurrent upserts never lose updates. Readers take no lock: the file
    is always replaced atomically, so a half-written registry is never seen.
    """

    __slots__ = ('_corruption_policy', '_key', '_lock', '_lock_timeout', '_snapshot', '_storage')

    def __init__(
        self,
        storage: LocalStorage,
        key: StorageKey,
        *,
        corruption_policy: Literal['fail', 'reset'] = REGISTRY_CORRUPTION_POLICY,
        lock_timeout: timedelta = REGISTRY_LOCK_TIMEOUT,
    ):
        self._storage = storage
        self._key = key
        self._corruption_policy = corruption_policy
        self._lock_timeout = lock_timeout
        self._lock = Lock()
        self._snapshot: _Snapshot | None = None

    @property
    def path(self) -> Path:
        return self._storage.path(self._key)

    async def load(self) -> AvatarRegistryMap:
        """
        Load the entire registry.

        A missing registry file is an empty registry.
        Returns a fresh mapping that the caller may modify.
        """
        path = self.path
        snapshot = self._snapshot
        if snapshot is not None:
            try:
                loop = get_running_loop()
                st = await loop.run_in_executor(None, path.stat)
                if _FileVersion.from_stat(st) == snapshot.version:
                    logging.debug('Registry hit (memory)')
                    return _copy_mapping(snapshot.mapping)
            except OSError:
                pass
            self._snapshot = None

        return await self._read()

    async def _read(self) -> AvatarRegistryMap:
        path = self.path
        try:
            loop = get_running_loop()
            buffer, version = await loop.run_in_executor(None, _read_versioned, path)
        except FileNotFoundError:
            logging.debug('Registry file %r not found, assuming empty', path.name)
            return {}

        try:
            mapping = AVATAR_REGISTRY_DECODER.decode(buffer)
        except msgspec.DecodeError as e:
            if self._corruption_policy == 'fail':
                logging.error('Registry file %r is corrupted: %s', path.name, e)
                raise_for.registry_corrupted(path)
            logging.error('Registry file %r is corrupted, resetting to empty: %s', path.name, e)
            return {}

        logging.debug('Registry loaded %d records (%s)', len(mapping), sizestr(len(buffer)))
        self._snapshot = _Snapshot(version, mapping)
        return _copy_mapping(mapping)

    async def get(self, user_id: UserId) -> AvatarRecord | None:
        """Get the current avatar record of a user."""
        return (await self.load()).get(user_id)

    async def save(self, mapping: AvatarRegistryMap) -> None:
        """Replace the entire registry."""
        async with self._write_lock():
            await self._write(mapping)

    async def upsert(self, user_id: UserId, record: AvatarRecord) -> None:
        """Register the record, replacing any previous record of the user."""
        async with self._write_lock():
            # always read from disk, other processes may have written since
            mapping = await self._read()
            previous = mapping.get(user_id)
            mapping[user_id] = record
            await self._write(mapping)

        if previous is not None:
            logging.info('Replaced avatar of %r (created %s)', user_id, previous.created_at)
        else:
            logging.info('Registered avatar of %r', user_id)

    @asynccontextmanager
    async def _write_lock(self):
        async with self._lock, _RegistryFileLock(self.path, self._lock_timeout):
            yield

    async def _write(self, mapping: AvatarRegistryMap) -> None:
        buffer = AVATAR_REGISTRY_ENCODER.encode(mapping)
        await self._storage.save(self._key, buffer)

        try:
            version = _FileVersion.from_stat(self.path.stat())
        except OSError:
            self._snapshot = None
        else:
            self._snapshot = _Snapshot(version, _copy_mapping(mapping))


def _copy_mapping(mapping: AvatarRegistryMap) -> AvatarRegistryMap:
    # records are frozen, but their derivatives dicts are not
    return {
        user_id: msgspec.structs.replace(record, derivatives=record.derivatives.copy())
        for user_id, record in mapping.items()
    }


def _read_versioned(path: Path) -> tuple[bytes, _FileVersion]:
    with path.open('rb') as f:
        buffer = f.read()
        version = _FileVersion.from_stat(fstat(f.fileno()))
    return buffer, version
