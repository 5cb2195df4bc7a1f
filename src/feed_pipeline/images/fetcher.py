from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, Union

import requests
from requests.adapters import HTTPAdapter
from tenacity import RetryCallState, Retrying, retry_if_exception_type, stop_after_attempt

from feed_pipeline.common.errors import FetchError, StaleValidatorsError
from feed_pipeline.images.manifest import ManifestRecord
from feed_pipeline.images.transcoder import normalise_media_type

logger = logging.getLogger(__name__)

BACKOFF_BASE_SEC = 0.2


@dataclass(frozen=True)
class NotModified:
    # the previous record, carried forward unchanged
    record: ManifestRecord


@dataclass(frozen=True)
class Fresh:
    content: bytes
    media_type: str
    etag: Optional[str]
    last_modified: Optional[str]


FetchOutcome = Union[NotModified, Fresh]


def backoff_wait(retry_state: RetryCallState) -> float:
    """0.2s * 2**(attempt-1); a stale 304 is retried immediately."""
    outcome = retry_state.outcome
    if outcome is not None and isinstance(outcome.exception(), StaleValidatorsError):
        return 0.0
    return BACKOFF_BASE_SEC * 2 ** (retry_state.attempt_number - 1)


class ConditionalFetcher:
    """GET with ETag/Last-Modified validators and bounded retry.

    Conditional headers are only sent until the first failed attempt; every
    later attempt is unconditional.
    """

    def __init__(
        self,
        attempts: int = 3,
        timeout_sec: int = 30,
        user_agent: str = "feed-pipeline/0.1",
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
        pool_size: int = 10,
    ):
        self.attempts = max(1, attempts)
        self.timeout = timeout_sec
        self.ua = user_agent
        self.sleep = sleep
        if session is None:
            session = requests.Session()
            adapter = HTTPAdapter(pool_connections=pool_size, pool_maxsize=pool_size)
            session.mount("http://", adapter)
            session.mount("https://", adapter)
        self.session = session

    def close(self) -> None:
        self.session.close()

    def fetch(self, url: str, prior: Optional[ManifestRecord] = None) -> FetchOutcome:
        """Fetch ``url``; raises the last FetchError once attempts are exhausted."""
        conditional = prior is not None and prior.has_validators

        retryer = Retrying(
            stop=stop_after_attempt(self.attempts),
            wait=backoff_wait,
            retry=retry_if_exception_type(FetchError),
            sleep=self.sleep,
            reraise=True,
        )
        for attempt in retryer:
            with attempt:
                try:
                    return self._attempt(url, prior if conditional else None)
                except FetchError as e:
                    conditional = False
                    logger.debug(
                        "fetch attempt %d/%d failed for %s: %s",
                        attempt.retry_state.attempt_number, self.attempts, url, e,
                    )
                    raise

    def _attempt(self, url: str, validators: Optional[ManifestRecord]) -> FetchOutcome:
        headers = {"User-Agent": self.ua}
        if validators is not None:
            if validators.etag:
                headers["If-None-Match"] = validators.etag
            if validators.last_modified:
                headers["If-Modified-Since"] = validators.last_modified

        try:
            r = self.session.get(url, headers=headers, timeout=self.timeout, allow_redirects=True)
        except requests.RequestException as e:
            raise FetchError(url, f"{type(e).__name__}: {e}") from e

        if r.status_code == 304:
            if validators is None:
                raise FetchError(url, "HTTP 304 to an unconditional request", status=304)
            if validators.stored_key:
                return NotModified(record=validators)
            # validators without a stored object: do not trust the 304
            raise StaleValidatorsError(url)

        if not 200 <= r.status_code < 300:
            raise FetchError(url, f"HTTP {r.status_code}", status=r.status_code)

        return Fresh(
            content=r.content,
            media_type=normalise_media_type(r.headers.get("Content-Type")),
            etag=r.headers.get("ETag") or None,
            last_modified=r.headers.get("Last-Modified") or None,
        )
