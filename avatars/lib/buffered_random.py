from io import BytesIO
from os import urandom
from threading import Lock

import cython

_BUFFER_SIZE = 64 * 1024  # 64 KB
_BUFFER = BytesIO()
_LOCK = Lock()


@cython.cfunc
def _randbytes(n: cython.Py_ssize_t) -> bytes:
    buffer = _BUFFER
    result: bytes = buffer.read(n)
    remaining: cython.Py_ssize_t = n - len(result)

    while remaining > 0:
        buffer.seek(0)
        buffer.truncate()
        buffer.write(urandom(_BUFFER_SIZE))
        buffer.seek(0)
        read: bytes = buffer.read(remaining)
        result += read
        remaining -= len(read)

    return result


def buffered_rand_hex(n: int) -> str:
    """Generate a secure random hex string from n random bytes."""
    # the buffer is shared with executor threads (temp file names)
    with _LOCK:
        data = _randbytes(n)
    return data.hex()
