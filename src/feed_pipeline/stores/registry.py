from __future__ import annotations

from feed_pipeline.common.errors import ConfigError
from feed_pipeline.settings import StorageCfg
from feed_pipeline.stores.base import ObjectStore
from feed_pipeline.stores.filesystem import FilesystemObjectStore
from feed_pipeline.stores.object_storage import S3ObjectStore


def build_object_store(storage: StorageCfg, max_pool_connections: int = 10) -> ObjectStore:
    """Build the object store selected by ``storage.kind``.

    Example:
      storage:
        kind: filesystem
        root: public/mirror
    """
    if storage.kind == "s3":
        return S3ObjectStore.connect(
            bucket=storage.bucket,
            endpoint_url=storage.endpoint_url,
            access_key_id=storage.access_key_id,
            secret_access_key=storage.secret_access_key,
            region=storage.region,
            max_pool_connections=max_pool_connections,
        )
    if storage.kind == "filesystem":
        if storage.root is None:
            raise ConfigError("storage.root is required for the filesystem store")
        return FilesystemObjectStore(storage.root)
    raise ConfigError(f"Unsupported storage kind: {storage.kind!r}")
