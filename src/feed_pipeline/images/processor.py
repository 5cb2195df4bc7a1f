from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Optional

from feed_pipeline.common.errors import FetchError, ProcessingError
from feed_pipeline.common.hashing import content_key
from feed_pipeline.images.fetcher import ConditionalFetcher, Fresh, NotModified
from feed_pipeline.images.manifest import Manifest, ManifestRecord
from feed_pipeline.images.models import OfferResult, RunStats, SourceEntry
from feed_pipeline.images.transcoder import Transcoder
from feed_pipeline.stores.base import IMMUTABLE_CACHE_CONTROL, ObjectStore

logger = logging.getLogger(__name__)


class UrlState(enum.Enum):
    # terminal states of one source URL
    ALREADY_RESOLVED = "already_resolved"   # written earlier this run (other offer)
    NOT_MODIFIED = "not_modified"           # 304, previous record carried forward
    UPLOADED = "uploaded"
    REUSED_EXISTING = "reused_existing"     # same content already in the store
    SKIPPED = "skipped"


@dataclass(frozen=True)
class UrlOutcome:
    state: UrlState
    stored_key: Optional[str] = None
    reason: Optional[str] = None


class OfferProcessor:
    """Drives each source URL of an offer to a stored object or a skip.

    ``next_manifest`` is shared by all workers; this class only ever writes
    the key of the URL it is processing.
    """

    def __init__(
        self,
        fetcher: ConditionalFetcher,
        transcoder: Transcoder,
        store: ObjectStore,
        previous: Manifest,
        next_manifest: Manifest,
        stats: RunStats,
        public_base: str,
        key_prefix: str = "img",
    ):
        self.fetcher = fetcher
        self.transcoder = transcoder
        self.store = store
        self.previous = previous
        self.next = next_manifest
        self.stats = stats
        self.public_base = public_base.rstrip("/")
        self.key_prefix = key_prefix

    def public_url(self, key: str) -> str:
        return f"{self.public_base}/{key}"

    def process(self, entry: SourceEntry) -> Optional[OfferResult]:
        resolved: list[str] = []
        for url in entry.urls:
            outcome = self.process_url(url)
            if outcome.stored_key:
                resolved.append(self.public_url(outcome.stored_key))
        if not resolved:
            return None
        return OfferResult(identifier=entry.identifier, urls=resolved)

    def process_url(self, url: str) -> UrlOutcome:
        current = self.next.get(url)
        if current is not None and current.stored_key:
            return UrlOutcome(UrlState.ALREADY_RESOLVED, current.stored_key)

        prior = current or self.previous.get(url)
        try:
            fetched = self.fetcher.fetch(url, prior)
        except FetchError as e:
            return self._skip(url, str(e))

        if isinstance(fetched, NotModified):
            self.stats.incr("reused_not_modified")
            self.next.merge(url, fetched.record)
            logger.debug("%s not modified -> %s", url, fetched.record.stored_key)
            return UrlOutcome(UrlState.NOT_MODIFIED, fetched.record.stored_key)

        try:
            state, record = self._store_fresh(url, fetched)
        except ProcessingError as e:
            return self._skip(url, str(e))

        self.next.merge(url, record)
        logger.debug("%s %s -> %s", url, state.value, record.stored_key)
        return UrlOutcome(state, record.stored_key)

    def _store_fresh(self, url: str, fetched: Fresh) -> tuple[UrlState, ManifestRecord]:
        try:
            image = self.transcoder.transcode(fetched.content, fetched.media_type)
        except Exception as e:
            raise ProcessingError(url, "transcode", f"{type(e).__name__}: {e}") from e

        # identity of the stored object = hash of the transcoded bytes
        key = content_key(image.data, image.ext, self.key_prefix)

        try:
            exists = self.store.exists(key)
        except Exception as e:
            raise ProcessingError(url, "HEAD", str(e)) from e

        if exists:
            self.stats.incr("reused_existing")
            state = UrlState.REUSED_EXISTING
        else:
            try:
                self.store.put(key, image.data, image.media_type, IMMUTABLE_CACHE_CONTROL)
            except Exception as e:
                raise ProcessingError(url, "upload", str(e)) from e
            self.stats.incr("uploaded")
            state = UrlState.UPLOADED

        record = ManifestRecord(
            etag=fetched.etag,
            last_modified=fetched.last_modified,
            stored_key=key,
            media_type=image.media_type,
        )
        return state, record

    def _skip(self, url: str, reason: str) -> UrlOutcome:
        self.stats.incr("skipped")
        logger.warning("Skip %s: %s", url, reason)
        return UrlOutcome(UrlState.SKIPPED, reason=reason)
