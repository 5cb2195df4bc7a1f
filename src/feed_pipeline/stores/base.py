from __future__ import annotations

from abc import ABC, abstractmethod

# content objects are addressed by hash, so they never change under a key
IMMUTABLE_CACHE_CONTROL = "public, max-age=31536000, immutable"
NO_CACHE = "no-cache"


class ObjectStore(ABC):
    """Key/value blob store with HEAD + PUT semantics."""

    @abstractmethod
    def exists(self, key: str) -> bool: ...

    @abstractmethod
    def put(
        self,
        key: str,
        data: bytes,
        content_type: str,
        cache_control: str = IMMUTABLE_CACHE_CONTROL,
    ) -> None: ...
