from abc import ABC, abstractmethod

from avatars.models.types import StorageKey


class StorageBase(ABC):
    __slots__ = ()

    @abstractmethod
    async def ensure_root(self) -> None:
        """Make sure the storage is ready to accept writes."""
        ...

    @abstractmethod
    async def load(self, key: StorageKey) -> bytes:
        """Load a file from storage by key."""
        ...

    @abstractmethod
    async def save(self, key: StorageKey, data: bytes) -> None:
        """Save a file to storage under the given key."""
        ...

    @abstractmethod
    def url(self, key: StorageKey) -> str:
        """Get the public url of a stored file."""
        ...
