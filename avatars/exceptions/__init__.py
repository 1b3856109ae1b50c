from avatars.exceptions.avatar_mixin import AvatarExceptionsMixin
from avatars.exceptions.image_mixin import ImageExceptionsMixin
from avatars.exceptions.registry_mixin import RegistryExceptionsMixin
from avatars.exceptions.storage_mixin import StorageExceptionsMixin


class Exceptions(
    AvatarExceptionsMixin,
    ImageExceptionsMixin,
    RegistryExceptionsMixin,
    StorageExceptionsMixin,
): ...
