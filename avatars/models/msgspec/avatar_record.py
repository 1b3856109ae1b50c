from datetime import datetime

import msgspec

from avatars.models.types import Permission, SizeTag, StorageKey, UserId


class AvatarRecord(msgspec.Struct, frozen=True, forbid_unknown_fields=True):
    user_id: UserId
    original: StorageKey
    """Storage key of the unmodified upload."""
    derivatives: dict[SizeTag, StorageKey]
    """Storage keys of the successfully written derivatives."""
    permission: Permission
    created_at: datetime


AvatarRegistryMap = dict[UserId, AvatarRecord]

AVATAR_REGISTRY_ENCODER = msgspec.json.Encoder(order='sorted')
AVATAR_REGISTRY_DECODER = msgspec.json.Decoder(AvatarRegistryMap)
