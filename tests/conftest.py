from collections.abc import Callable, Collection
from io import BytesIO

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from PIL import Image as PILImage

from avatars.dependencies import avatar_service, avatar_storage
from avatars.lib.avatar_registry import AvatarRegistry
from avatars.lib.storage.local import LocalStorage
from avatars.main import main
from avatars.models.types import SizeTag, StorageKey
from avatars.services.avatar_service import AvatarService


@pytest.fixture(scope='session')
def size_table() -> dict[SizeTag, int]:
    return {
        'xs': 16,
        'sm': 24,
        'md': 48,
        'lg': 64,
        'xl': 96,
    }


def pytest_collection_modifyitems(config: pytest.Config, items: Collection[pytest.Item]):
    # run all tests in the session in the same event loop
    # https://pytest-asyncio.readthedocs.io/en/latest/how-to-guides/run_session_tests_in_same_loop.html
    session_scope_marker = pytest.mark.asyncio(loop_scope='session')
    for item in items:
        if pytest_asyncio.is_async_test(item):
            item.add_marker(session_scope_marker, append=False)


@pytest.fixture(scope='session')
def make_image() -> Callable[..., bytes]:
    def factory(
        size: tuple[int, int] = (200, 160),
        *,
        format: str = 'PNG',
        mode: str = 'RGB',
        color: tuple[int, ...] | int = (200, 40, 40),
    ) -> bytes:
        img = PILImage.new(mode, size, color)
        # a second color region so resampling has something to work with
        img.paste(0, (0, 0, size[0] // 2, size[1] // 2))
        buffer = BytesIO()
        img.save(buffer, format=format)
        return buffer.getvalue()

    return factory


@pytest.fixture
def storage(tmp_path) -> LocalStorage:
    base_dir = tmp_path.joinpath('content')
    base_dir.mkdir()
    return LocalStorage(base_dir, '/avatar')


@pytest.fixture
def registry(tmp_path) -> AvatarRegistry:
    return AvatarRegistry(LocalStorage(tmp_path), StorageKey('avatars.json'))


@pytest.fixture
def service(
    storage: LocalStorage,
    registry: AvatarRegistry,
    size_table: dict[SizeTag, int],
) -> AvatarService:
    return AvatarService(storage, registry, size_table=size_table)


@pytest_asyncio.fixture(scope='session')
async def transport():
    async with main.router.lifespan_context(main):
        yield ASGITransport(main)  # pyright: ignore[reportArgumentType]


@pytest.fixture
def client(transport: ASGITransport, service: AvatarService, storage: LocalStorage):
    main.dependency_overrides[avatar_service] = lambda: service
    main.dependency_overrides[avatar_storage] = lambda: storage
    yield AsyncClient(base_url='http://127.0.0.1:8000', transport=transport)
    main.dependency_overrides.clear()
