# src/feed_pipeline/settings.py
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml
from dotenv import load_dotenv

from feed_pipeline.common.errors import ConfigError

DEFAULT_CONCURRENCY = 4
DEFAULT_FETCH_ATTEMPTS = 3


@dataclass
class StorageCfg:
    # "s3" (R2 / any S3-compatible endpoint) or "filesystem"
    kind: str
    public_base: str

    # s3
    bucket: str = ""
    endpoint_url: str = ""
    region: str = "auto"
    access_key_id: str = ""
    secret_access_key: str = ""

    # filesystem
    root: Optional[Path] = None


@dataclass
class ImagesCfg:
    input_path: Path
    manifest_path: Path        # URL -> record manifest (previous + next run)
    offers_path: Path          # per-offer output list
    manifest_key: str          # object key the manifest is mirrored to
    key_prefix: str
    concurrency: int
    fetch_attempts: int
    timeout_sec: int
    user_agent: str
    max_width: int
    jpeg_quality: int


@dataclass
class FeedCfg:
    url: str
    output_path: Path
    images_out: Path
    timeout_sec: int
    user_agent: str
    shop_name: str
    company: str
    shop_url: str


@dataclass
class Cfg:
    root: Path
    storage: StorageCfg
    images: ImagesCfg
    feed: FeedCfg
    log_file: Optional[str] = None


def _as_rooted_path(root: Path, p: str | Path) -> Path:
    """Resolve a possibly-relative path under root."""
    pp = Path(p)
    return pp if pp.is_absolute() else (root / pp)


def _positive_int(raw: Any, default: int) -> int:
    # unparsable or 0 -> default; anything below 1 clamps to 1
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return default
    if value == 0:
        return default
    return max(1, value)


def _int(sec: Mapping[str, Any], key: str, default: int, section: str) -> int:
    raw = sec.get(key, default)
    try:
        return int(raw)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{section}.{key} must be an integer, got {raw!r}") from e


def _section(obj: Mapping[str, Any], name: str) -> dict[str, Any]:
    sec = obj.get(name) or {}
    if not isinstance(sec, dict):
        raise ConfigError(f"config section '{name}' must be a mapping")
    return sec


def load_cfg(path: str | Path, env: Optional[Mapping[str, str]] = None) -> Cfg:
    """
    Load pipeline YAML + environment into a Cfg.

    Environment values (credentials, bucket, public base, concurrency and
    attempt overrides) win over YAML. When ``env`` is None the process
    environment is used, after loading a ``.env`` file if one exists.
    """
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")

    try:
        obj = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in {path}: {e}") from e
    if not isinstance(obj, dict):
        raise ConfigError("pipeline config root must be a mapping (YAML dict)")

    if env is None:
        load_dotenv()
        env = os.environ

    project = _section(obj, "project")
    storage = _section(obj, "storage")
    images = _section(obj, "images")
    feed = _section(obj, "feed")

    root = Path(project.get("root") or ".").resolve()

    # storage
    account_id = env.get("CF_ACCOUNT_ID", "")
    endpoint_url = str(storage.get("endpoint_url") or "")
    if not endpoint_url and account_id:
        endpoint_url = f"https://{account_id}.r2.cloudflarestorage.com"
    fs_root = storage.get("root")

    storage_cfg = StorageCfg(
        kind=str(storage.get("kind", "s3")),
        public_base=str(env.get("R2_PUBLIC_BASE") or storage.get("public_base") or "").rstrip("/"),
        bucket=str(env.get("R2_BUCKET") or storage.get("bucket") or ""),
        endpoint_url=endpoint_url,
        region=str(storage.get("region", "auto")),
        access_key_id=env.get("CF_R2_ACCESS_KEY_ID", ""),
        secret_access_key=env.get("CF_R2_SECRET_ACCESS_KEY", ""),
        root=_as_rooted_path(root, fs_root) if fs_root else None,
    )

    images_cfg = ImagesCfg(
        input_path=_as_rooted_path(root, images.get("input_path", "images.json")),
        manifest_path=_as_rooted_path(root, images.get("manifest_path", "public/images-manifest.json")),
        offers_path=_as_rooted_path(root, images.get("offers_path", "public/manifest-r2.json")),
        manifest_key=str(images.get("manifest_key", "manifests/images-manifest.json")),
        key_prefix=str(images.get("key_prefix", "img")),
        concurrency=_positive_int(
            env.get("R2_CONCURRENCY") or images.get("concurrency"), DEFAULT_CONCURRENCY
        ),
        fetch_attempts=_positive_int(
            env.get("R2_FETCH_ATTEMPTS") or images.get("fetch_attempts"), DEFAULT_FETCH_ATTEMPTS
        ),
        timeout_sec=_int(images, "timeout_sec", 30, "images"),
        user_agent=str(images.get("user_agent", "feed-pipeline/0.1")),
        max_width=_int(images, "max_width", 1600, "images"),
        jpeg_quality=_int(images, "jpeg_quality", 90, "images"),
    )

    feed_cfg = FeedCfg(
        url=str(env.get("GOOGLE_FEED_URL") or feed.get("url") or ""),
        output_path=_as_rooted_path(root, feed.get("output_path", "public/yandex.yml")),
        images_out=_as_rooted_path(root, feed.get("images_out", "images.json")),
        timeout_sec=_int(feed, "timeout_sec", 30, "feed"),
        user_agent=str(feed.get("user_agent", images_cfg.user_agent)),
        shop_name=str(feed.get("shop_name", "My Shop")),
        company=str(feed.get("company", "My Company")),
        shop_url=str(feed.get("shop_url", "https://example.com")),
    )

    return Cfg(
        root=root,
        storage=storage_cfg,
        images=images_cfg,
        feed=feed_cfg,
        log_file=project.get("log_file"),
    )


def validate_storage(storage: StorageCfg) -> None:
    """Raise ConfigError when the selected store kind lacks required settings."""
    missing: list[str] = []
    if not storage.public_base:
        missing.append("R2_PUBLIC_BASE (storage.public_base)")

    if storage.kind == "s3":
        if not storage.endpoint_url:
            missing.append("CF_ACCOUNT_ID (or storage.endpoint_url)")
        if not storage.access_key_id:
            missing.append("CF_R2_ACCESS_KEY_ID")
        if not storage.secret_access_key:
            missing.append("CF_R2_SECRET_ACCESS_KEY")
        if not storage.bucket:
            missing.append("R2_BUCKET (storage.bucket)")
    elif storage.kind == "filesystem":
        if storage.root is None:
            missing.append("storage.root")
    else:
        raise ConfigError(f"Unsupported storage kind: {storage.kind!r}")

    if missing:
        raise ConfigError("Missing required configuration: " + ", ".join(missing))
