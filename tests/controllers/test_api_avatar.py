from io import BytesIO

import pytest
from httpx import AsyncClient
from PIL import Image as PILImage

DEFAULT_URL = '/static/img/avatar.svg'


async def _upload(client: AsyncClient, user_id: str, data: bytes, permission: str | None = None):
    return await client.post(
        f'/api/avatar/{user_id}',
        files={'file': ('avatar.png', data, 'image/png')},
        data={'permission': permission} if permission is not None else None,
    )


async def test_resolve_unknown_user(client: AsyncClient):
    r = await client.get('/api/avatar/scholar-404')
    assert r.is_success, r.text
    assert r.json() == {'avatarUrl': DEFAULT_URL}

    r = await client.get('/api/avatar/scholar-404', params={'size': 'xl'})
    assert r.json() == {'avatarUrl': DEFAULT_URL}


async def test_resolve_invalid_size(client: AsyncClient):
    r = await client.get('/api/avatar/scholar-1', params={'size': 'huge'})
    assert r.status_code == 422, r.text


async def test_upload_and_serve(client: AsyncClient, size_table, make_image):
    r = await _upload(client, 'scholar-1', make_image())
    assert r.is_success, r.text
    record = r.json()
    assert record['user_id'] == 'scholar-1'
    assert record['permission'] == 'public'
    assert set(record['derivatives']) == set(size_table)

    r = await client.get('/api/avatar/scholar-1', params={'size': 'lg'})
    url = r.json()['avatarUrl']
    assert url == f'/avatar/{record["derivatives"]["lg"]}'

    r = await client.get(url)
    assert r.is_success, r.text
    assert r.headers['Content-Type'].startswith('image/')
    assert PILImage.open(BytesIO(r.content)).size == (size_table['lg'], size_table['lg'])


async def test_upload_invalid_image(client: AsyncClient):
    r = await _upload(client, 'scholar-1', b'not an image')
    assert r.status_code == 422, r.text

    r = await client.get('/api/avatar/scholar-1')
    assert r.json() == {'avatarUrl': DEFAULT_URL}


async def test_upload_invalid_user_id(client: AsyncClient, make_image):
    r = await _upload(client, 'bad_id', make_image())
    assert r.status_code == 422, r.text


@pytest.mark.parametrize(
    ('permission', 'viewer', 'status_code'),
    [
        ('public', None, 200),
        ('private', None, 403),
        ('private', 'scholar-2', 403),
        ('private', 'scholar-1', 200),
        ('friends_only', 'scholar-2', 403),
        ('friends_only', 'scholar-1', 200),
    ],
)
async def test_record_permission(client: AsyncClient, make_image, permission, viewer, status_code):
    r = await _upload(client, 'scholar-1', make_image(), permission)
    assert r.is_success, r.text

    r = await client.get(
        '/api/avatar/scholar-1/record',
        params={'viewer': viewer} if viewer is not None else None,
    )
    assert r.status_code == status_code, r.text
    if status_code == 200:
        assert r.json()['permission'] == permission


async def test_record_not_found(client: AsyncClient):
    r = await client.get('/api/avatar/scholar-404/record')
    assert r.status_code == 404, r.text


@pytest.mark.parametrize('key', ['missing.webp', '.avatars.json.lock'])
async def test_file_not_found(client: AsyncClient, key):
    r = await client.get(f'/avatar/{key}')
    assert r.status_code == 404, r.text


async def test_default_avatar_served(client: AsyncClient):
    r = await client.get(DEFAULT_URL)
    assert r.is_success, r.text
    assert r.headers['Content-Type'].startswith('image/svg+xml')


async def test_upload_file_too_big(client: AsyncClient, make_image, monkeypatch):
    monkeypatch.setattr('avatars.controllers.api_avatar.AVATAR_MAX_FILE_SIZE', 100)
    r = await _upload(client, 'scholar-1', make_image())
    assert r.status_code == 422, r.text
    assert 'too big' in r.text

    r = await client.get('/api/avatar/scholar-1')
    assert r.json() == {'avatarUrl': DEFAULT_URL}


async def test_upload_request_body_too_big(client: AsyncClient, monkeypatch):
    monkeypatch.setattr('avatars.middlewares.request_body_middleware.REQUEST_BODY_MAX_SIZE', 1024)
    r = await _upload(client, 'scholar-1', bytes(4096))
    assert r.status_code == 413, r.text
