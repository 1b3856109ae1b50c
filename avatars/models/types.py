from typing import Literal, NewType, get_args

UserId = NewType('UserId', str)
UploadId = NewType('UploadId', str)
StorageKey = NewType('StorageKey', str)

SizeTag = Literal['xs', 'sm', 'md', 'lg', 'xl']
SIZE_TAGS: tuple[SizeTag, ...] = get_args(SizeTag)

Permission = Literal['public', 'private', 'friends_only']
PERMISSIONS: tuple[Permission, ...] = get_args(Permission)

ImageFormat = Literal['JPEG', 'PNG', 'WEBP']
IMAGE_FORMATS: tuple[ImageFormat, ...] = get_args(ImageFormat)
