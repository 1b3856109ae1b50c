import logging
from asyncio import gather
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import NamedTuple

from avatars.config import AVATAR_DEFAULT_SIZE, AVATAR_SIZES, DEFAULT_AVATAR_URL
from avatars.exceptions.api_error import RegistryCorruptionError
from avatars.lib.avatar_registry import AvatarRegistry
from avatars.lib.buffered_random import buffered_rand_hex
from avatars.lib.exceptions_context import raise_for
from avatars.lib.image import DERIVATIVE_EXTENSION, Image
from avatars.lib.storage.base import StorageBase
from avatars.models.msgspec.avatar_record import AvatarRecord
from avatars.models.types import Permission, SizeTag, StorageKey, UploadId, UserId
from avatars.validators.user_id import validate_user_id


class DerivativeStored(NamedTuple):
    size: SizeTag
    key: StorageKey


class DerivativeFailed(NamedTuple):
    size: SizeTag
    reason: str


DerivativeResult = DerivativeStored | DerivativeFailed


class AvatarService:
    """
    Avatar upload and resolution.

    Upload validates and renders the image, writes the original and its
    derivatives to the content storage and only then points the registry
    at them. Resolution never fails: anything missing degrades to the
    original upload, and then to the default avatar.
    """

    __slots__ = ('_default_avatar_url', '_registry', '_size_table', '_storage')

    def __init__(
        self,
        storage: StorageBase,
        registry: AvatarRegistry,
        *,
        size_table: Mapping[SizeTag, int] = AVATAR_SIZES,
        default_avatar_url: str = DEFAULT_AVATAR_URL,
    ):
        self._storage = storage
        self._registry = registry
        self._size_table = size_table
        self._default_avatar_url = default_avatar_url

    @property
    def default_avatar_url(self) -> str:
        return self._default_avatar_url

    async def upload(
        self,
        user_id: str,
        data: bytes,
        permission: Permission = 'public',
    ) -> AvatarRecord:
        """
        Process upload of a custom avatar image.

        Returns the registered avatar record.
        """
        user_id = validate_user_id(user_id)
        derived = await Image.derive(data, self._size_table)

        upload_id = UploadId(buffered_rand_hex(8))
        original_key = StorageKey(
            f'{user_id}_{upload_id}_original.{Image.extension(derived.format)}'
        )
        try:
            await self._storage.save(original_key, derived.original)
        except OSError:
            logging.exception('Failed to store original avatar %r', original_key)
            raise_for.storage_failure(original_key)

        results: list[DerivativeResult] = await gather(*(
            self._save_derivative(user_id, upload_id, size, buffer)
            for size, buffer in derived.derivatives.items()
        ))
        derivatives: dict[SizeTag, StorageKey] = {}
        failed: list[DerivativeFailed] = []
        for result in results:
            if isinstance(result, DerivativeStored):
                derivatives[result.size] = result.key
            else:
                failed.append(result)

        if failed:
            logging.warning(
                'Partial derivative failure for %r: %s',
                user_id,
                ', '.join(f'{r.size} ({r.reason})' for r in failed),
            )

        record = AvatarRecord(
            user_id=user_id,
            original=original_key,
            derivatives=derivatives,
            permission=permission,
            created_at=datetime.now(UTC),
        )
        await self._registry.upsert(user_id, record)
        return record

    async def get_record(self, user_id: UserId) -> AvatarRecord | None:
        """Get the current avatar record of a user."""
        return await self._registry.get(user_id)

    async def resolve(self, user_id: str, size: SizeTag = AVATAR_DEFAULT_SIZE) -> str:
        """
        Get the url of the user's avatar at the given size.

        Falls back to the original upload when the size is missing,
        and to the default avatar when the user has no usable avatar.
        """
        try:
            record = await self._registry.get(UserId(user_id))
        except (RegistryCorruptionError, OSError):
            logging.warning('Registry unavailable, resolving %r to default avatar', user_id, exc_info=True)
            return self._default_avatar_url

        if record is None:
            return self._default_avatar_url

        key = record.derivatives.get(size)
        if key is not None:
            return self._storage.url(key)

        if record.original:
            logging.debug('Avatar of %r has no %r derivative, using original', user_id, size)
            return self._storage.url(record.original)

        return self._default_avatar_url

    @staticmethod
    def check_permission(record: AvatarRecord, requesting_user_id: str | None) -> bool:
        """
        Check whether the requesting user may see the avatar.

        Friendship is not tracked, friends_only avatars are visible to their owner only.
        """
        if record.permission == 'public':
            return True
        return requesting_user_id is not None and requesting_user_id == record.user_id

    async def _save_derivative(
        self,
        user_id: UserId,
        upload_id: UploadId,
        size: SizeTag,
        buffer: bytes,
    ) -> DerivativeResult:
        key = StorageKey(f'{user_id}_{upload_id}_{size}.{DERIVATIVE_EXTENSION}')
        try:
            await self._storage.save(key, buffer)
        except OSError as e:
            logging.debug('Failed to store derivative %r', key, exc_info=True)
            return DerivativeFailed(size, str(e) or type(e).__name__)
        return DerivativeStored(size, key)
