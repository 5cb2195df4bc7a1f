from __future__ import annotations

from pathlib import Path

import orjson

from feed_pipeline.common.io import write_bytes_atomic
from feed_pipeline.stores.base import IMMUTABLE_CACHE_CONTROL, ObjectStore

META_DIR = ".meta"


class FilesystemObjectStore(ObjectStore):
    """Mirror objects into a local directory (dry runs, tests, self-hosting)."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def _p(self, key: str) -> Path:
        # treat 'key' as POSIX-like relative path under root
        return self.root / key.lstrip("/")

    def _meta_p(self, key: str) -> Path:
        return self.root / META_DIR / f"{key.lstrip('/')}.json"

    def exists(self, key: str) -> bool:
        return self._p(key).is_file()

    def put(
        self,
        key: str,
        data: bytes,
        content_type: str,
        cache_control: str = IMMUTABLE_CACHE_CONTROL,
    ) -> None:
        write_bytes_atomic(self._p(key), data)
        meta = {"ContentType": content_type, "CacheControl": cache_control}
        write_bytes_atomic(self._meta_p(key), orjson.dumps(meta))

    def read_bytes(self, key: str) -> bytes:
        return self._p(key).read_bytes()

    def metadata(self, key: str) -> dict[str, str]:
        return orjson.loads(self._meta_p(key).read_bytes())
