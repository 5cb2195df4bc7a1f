"""Data models shared by the image sync stages."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

STAT_NAMES = ("uploaded", "reused_not_modified", "reused_existing", "skipped")


@dataclass(frozen=True)
class SourceEntry:
    """One offer and the image URLs it references (deduplicated, input order kept)."""

    identifier: str
    urls: Tuple[str, ...]

    @classmethod
    def from_obj(cls, obj: Any) -> Optional["SourceEntry"]:
        """Build from an input JSON object; None when there is no id or no usable URL."""
        if not isinstance(obj, dict):
            return None
        identifier = obj.get("offerId") or obj.get("identifier") or obj.get("id")
        raw_urls = obj.get("urls")
        if not identifier or not isinstance(raw_urls, list):
            return None

        seen: Dict[str, None] = {}
        for u in raw_urls:
            if u is None:
                continue
            s = str(u).strip()
            if s:
                seen.setdefault(s, None)
        if not seen:
            return None
        return cls(identifier=str(identifier), urls=tuple(seen))


@dataclass
class OfferResult:
    identifier: str
    urls: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"offerId": self.identifier, "urls": sorted(set(self.urls))}


class RunStats:
    """Per-run counters, safe to increment from any worker thread."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counts = {name: 0 for name in STAT_NAMES}

    def incr(self, name: str, n: int = 1) -> None:
        if name not in self._counts:
            raise KeyError(name)
        with self._lock:
            self._counts[name] += n

    def snapshot(self) -> dict[str, int]:
        with self._lock:
            return dict(self._counts)

    @property
    def uploaded(self) -> int:
        return self.snapshot()["uploaded"]

    @property
    def reused_not_modified(self) -> int:
        return self.snapshot()["reused_not_modified"]

    @property
    def reused_existing(self) -> int:
        return self.snapshot()["reused_existing"]

    @property
    def skipped(self) -> int:
        return self.snapshot()["skipped"]
