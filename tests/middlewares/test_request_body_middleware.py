from starlette.types import Message

from avatars.middlewares.request_body_middleware import RequestBodyMiddleware


def _chunked_receive(*chunks: bytes):
    messages: list[Message] = [
        {'type': 'http.request', 'body': chunk, 'more_body': i < len(chunks) - 1}
        for i, chunk in enumerate(chunks)
    ]

    async def receive() -> Message:
        return messages.pop(0) if messages else {'type': 'http.disconnect'}

    return receive


async def test_body_is_buffered(monkeypatch):
    monkeypatch.setattr('avatars.middlewares.request_body_middleware.REQUEST_BODY_MAX_SIZE', 100)
    received: list[Message] = []

    async def app(scope, receive, send):
        received.append(await receive())

    async def send(_):
        raise AssertionError('nothing should be sent')

    await RequestBodyMiddleware(app)({'type': 'http'}, _chunked_receive(b'a' * 60, b'b' * 40), send)
    assert received == [{'type': 'http.request', 'body': b'a' * 60 + b'b' * 40, 'more_body': False}]


async def test_body_too_big(monkeypatch):
    monkeypatch.setattr('avatars.middlewares.request_body_middleware.REQUEST_BODY_MAX_SIZE', 100)
    sent: list[Message] = []

    async def app(scope, receive, send):
        raise AssertionError('app must not be called')

    async def send(message: Message):
        sent.append(message)

    await RequestBodyMiddleware(app)({'type': 'http'}, _chunked_receive(b'a' * 60, b'b' * 60), send)
    assert sent[0]['type'] == 'http.response.start'
    assert sent[0]['status'] == 413
