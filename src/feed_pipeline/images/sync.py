# src/feed_pipeline/images/sync.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from feed_pipeline.common.errors import ConfigError
from feed_pipeline.common.io import dump_json_pretty, read_json_safe, write_bytes_atomic
from feed_pipeline.images.fetcher import ConditionalFetcher
from feed_pipeline.images.manifest import Manifest, has_changed
from feed_pipeline.images.models import RunStats, SourceEntry
from feed_pipeline.images.processor import OfferProcessor
from feed_pipeline.images.scheduler import effective_concurrency, run_pool
from feed_pipeline.images.transcoder import PillowTranscoder, Transcoder
from feed_pipeline.settings import Cfg, validate_storage
from feed_pipeline.stores.base import NO_CACHE, ObjectStore
from feed_pipeline.stores.registry import build_object_store

logger = logging.getLogger(__name__)


@dataclass
class SyncReport:
    offers: int
    stats: dict[str, int]
    concurrency: int
    manifest_changed: bool
    manifest_uploaded: bool

    def summary(self) -> str:
        return (
            f"Images processed: offers={self.offers}, "
            f"uploaded={self.stats['uploaded']}, "
            f"reused(304)={self.stats['reused_not_modified']}, "
            f"reused(existing)={self.stats['reused_existing']}, "
            f"skipped={self.stats['skipped']}, "
            f"concurrency={self.concurrency}"
        )


def load_entries(raw: Any) -> list[SourceEntry]:
    if not isinstance(raw, list):
        return []
    entries = [SourceEntry.from_obj(obj) for obj in raw]
    kept = [e for e in entries if e is not None]
    if len(kept) != len(entries):
        logger.debug("dropped %d entries without id or urls", len(entries) - len(kept))
    return kept


def run_sync(
    cfg: Cfg,
    store: Optional[ObjectStore] = None,
    fetcher: Optional[ConditionalFetcher] = None,
    transcoder: Optional[Transcoder] = None,
) -> SyncReport:
    """
    Mirror every image referenced by the input list into the object store.

    Setup problems (configuration, missing input) raise ConfigError before any
    work starts. Per-URL and per-offer failures only show up in the stats.
    """
    ic = cfg.images
    if store is None:
        validate_storage(cfg.storage)
    elif not cfg.storage.public_base:
        raise ConfigError("Missing required configuration: R2_PUBLIC_BASE (storage.public_base)")

    if not ic.input_path.exists():
        raise ConfigError(f"images list not found: {ic.input_path}")

    entries = load_entries(read_json_safe(ic.input_path, []))
    if not entries:
        logger.info("No images to process.")
        write_bytes_atomic(ic.offers_path, b"[]")
        write_bytes_atomic(ic.manifest_path, b"{}")
        return SyncReport(0, RunStats().snapshot(), 0, False, False)

    workers = effective_concurrency(ic.concurrency, len(entries))
    if store is None:
        store = build_object_store(cfg.storage, max_pool_connections=max(10, workers))

    own_fetcher = fetcher is None
    if fetcher is None:
        fetcher = ConditionalFetcher(
            attempts=ic.fetch_attempts,
            timeout_sec=ic.timeout_sec,
            user_agent=ic.user_agent,
            pool_size=max(10, workers),
        )
    if transcoder is None:
        transcoder = PillowTranscoder(max_width=ic.max_width, jpeg_quality=ic.jpeg_quality)

    previous = Manifest.load(ic.manifest_path)
    next_manifest = Manifest()
    stats = RunStats()

    processor = OfferProcessor(
        fetcher=fetcher,
        transcoder=transcoder,
        store=store,
        previous=previous,
        next_manifest=next_manifest,
        stats=stats,
        public_base=cfg.storage.public_base,
        key_prefix=ic.key_prefix,
    )

    try:
        results, workers = run_pool(
            entries,
            processor.process,
            ic.concurrency,
            stats,
            describe=lambda e: e.identifier,
        )
    finally:
        if own_fetcher:
            fetcher.close()

    offers = sorted((r.to_dict() for r in results), key=lambda o: o["offerId"])
    manifest_bytes = next_manifest.serialize()
    changed = has_changed(previous, next_manifest)

    write_bytes_atomic(ic.offers_path, dump_json_pretty(offers))
    write_bytes_atomic(ic.manifest_path, manifest_bytes)

    uploaded = False
    if changed:
        try:
            store.put(ic.manifest_key, manifest_bytes, "application/json", NO_CACHE)
            uploaded = True
        except Exception as e:
            logger.warning("Failed to upload manifest to object store: %s", e)

    report = SyncReport(
        offers=len(offers),
        stats=stats.snapshot(),
        concurrency=workers,
        manifest_changed=changed,
        manifest_uploaded=uploaded,
    )
    logger.info(report.summary())
    return report
