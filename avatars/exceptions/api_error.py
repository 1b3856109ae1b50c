from fastapi import HTTPException


class APIError(HTTPException):
    pass


class InvalidImageError(APIError):
    """Uploaded bytes are not an acceptable image."""


class StorageFailureError(APIError):
    """The original image could not be written to the content store."""


class RegistryCorruptionError(APIError):
    """The persisted avatar registry could not be parsed."""
