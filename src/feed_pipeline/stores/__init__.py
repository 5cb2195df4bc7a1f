from .base import IMMUTABLE_CACHE_CONTROL, NO_CACHE, ObjectStore
from .filesystem import FilesystemObjectStore
from .object_storage import S3ObjectStore
from .registry import build_object_store

__all__ = [
    "IMMUTABLE_CACHE_CONTROL",
    "NO_CACHE",
    "ObjectStore",
    "FilesystemObjectStore",
    "S3ObjectStore",
    "build_object_store",
]
