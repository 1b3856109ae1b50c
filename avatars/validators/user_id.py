import re

from avatars.config import USER_ID_MAX_LENGTH
from avatars.lib.exceptions_context import raise_for
from avatars.models.types import UserId

# user ids become part of storage file names
USER_ID_PATTERN = r'^[A-Za-z0-9][A-Za-z0-9.-]*$'
_USER_ID_RE = re.compile(USER_ID_PATTERN)


def validate_user_id(value: str) -> UserId:
    if not value or len(value) > USER_ID_MAX_LENGTH or _USER_ID_RE.fullmatch(value) is None:
        raise_for.user_id_invalid(value)
    return UserId(value)