from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, Optional

import orjson

from feed_pipeline.common.errors import ManifestError

# on-disk field names
_FIELDS = (
    ("etag", "etag"),
    ("last_modified", "lastModified"),
    ("stored_key", "storedKey"),
    ("media_type", "mediaType"),
)

# field names written by the previous sync tool, accepted on load
_LEGACY_NAMES = {"stored_key": "r2Key", "media_type": "mime"}


@dataclass(frozen=True)
class ManifestRecord:
    etag: Optional[str] = None
    last_modified: Optional[str] = None
    stored_key: Optional[str] = None
    media_type: Optional[str] = None

    @property
    def has_validators(self) -> bool:
        return bool(self.etag or self.last_modified)

    def to_dict(self) -> dict[str, str]:
        # absent values are omitted, keys sorted
        out = {name: getattr(self, attr) for attr, name in _FIELDS if getattr(self, attr)}
        return dict(sorted(out.items()))

    @classmethod
    def from_dict(cls, obj: dict[str, Any]) -> "ManifestRecord":
        values: dict[str, Optional[str]] = {}
        for attr, name in _FIELDS:
            raw = obj.get(name) or obj.get(_LEGACY_NAMES.get(attr, name))
            values[attr] = str(raw) if raw else None
        return cls(**values)


class Manifest:
    """Source URL -> ManifestRecord.

    Keys are raw source URLs (not normalised). During a run each URL key is
    written only by the worker processing that URL, so the map itself is not
    locked; single dict assignments are atomic under the GIL.
    """

    def __init__(self, records: Optional[dict[str, ManifestRecord]] = None) -> None:
        self._records: dict[str, ManifestRecord] = dict(records or {})

    @classmethod
    def load(cls, path: Path) -> "Manifest":
        if not path.exists():
            return cls()
        try:
            obj = orjson.loads(path.read_bytes())
        except orjson.JSONDecodeError as e:
            raise ManifestError(f"invalid manifest {path}: {e}") from e
        if not isinstance(obj, dict):
            raise ManifestError(f"manifest {path} must be a JSON object")
        return cls({
            url: ManifestRecord.from_dict(rec)
            for url, rec in obj.items()
            if isinstance(rec, dict)
        })

    def get(self, url: str) -> Optional[ManifestRecord]:
        return self._records.get(url)

    def merge(self, url: str, record: ManifestRecord) -> None:
        self._records[url] = record

    def __contains__(self, url: object) -> bool:
        return url in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[str]:
        return iter(self._records)

    def to_dict(self) -> dict[str, dict[str, str]]:
        return {url: self._records[url].to_dict() for url in sorted(self._records)}

    def serialize(self) -> bytes:
        """Canonical form: sorted keys at every level, 2-space indent."""
        return orjson.dumps(self.to_dict(), option=orjson.OPT_SORT_KEYS | orjson.OPT_INDENT_2)


def has_changed(previous: Manifest, current: Manifest) -> bool:
    return previous.serialize() != current.serialize()
