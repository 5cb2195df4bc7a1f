from __future__ import annotations

from typing import Optional


class FeedPipelineError(RuntimeError):
    """Base class for every failure raised by feed-pipeline."""


class ConfigError(FeedPipelineError):
    """Missing or invalid configuration / input files. Fatal at startup."""


class FetchError(FeedPipelineError):
    """A single fetch attempt failed (non-2xx/304 status or transport error)."""

    def __init__(self, url: str, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.url = url
        self.status = status


class StaleValidatorsError(FetchError):
    """Origin answered 304 but there is no stored object to fall back on."""

    def __init__(self, url: str) -> None:
        super().__init__(url, "HTTP 304 without a stored object", status=304)


class ProcessingError(FeedPipelineError):
    """Post-fetch failure (transcode, HEAD, PUT). Terminal for the URL."""

    def __init__(self, url: str, stage: str, message: str) -> None:
        super().__init__(f"{stage} failed: {message}")
        self.url = url
        self.stage = stage


class StoreError(FeedPipelineError):
    """Object store call failed."""


class ManifestError(FeedPipelineError):
    """Manifest file exists but cannot be parsed."""


class FeedError(FeedPipelineError):
    """Product feed could not be downloaded or parsed."""
