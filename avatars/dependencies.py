from avatars.lib.storage.base import StorageBase
from avatars.services.avatar_service import AvatarService
from avatars.storage import AVATAR_REGISTRY, AVATAR_STORAGE

_AVATAR_SERVICE = AvatarService(AVATAR_STORAGE, AVATAR_REGISTRY)


def avatar_service() -> AvatarService:
    return _AVATAR_SERVICE


def avatar_storage() -> StorageBase:
    return AVATAR_STORAGE
