from avatars.config import AVATAR_CONTENT_DIR, AVATAR_REGISTRY_PATH, AVATAR_URL_PREFIX
from avatars.lib.avatar_registry import AvatarRegistry
from avatars.lib.storage.local import LocalStorage
from avatars.models.types import StorageKey

AVATAR_STORAGE = LocalStorage(AVATAR_CONTENT_DIR, AVATAR_URL_PREFIX)
AVATAR_REGISTRY = AvatarRegistry(
    LocalStorage(AVATAR_REGISTRY_PATH.parent),
    StorageKey(AVATAR_REGISTRY_PATH.name),
)
