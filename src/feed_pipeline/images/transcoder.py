"""Image re-encoding used before content hashing.

The stored key is derived from the transcoder's *output*, so any change to
``max_width`` or ``jpeg_quality`` produces new keys on the next run.
"""

from __future__ import annotations

import io
from dataclasses import dataclass
from typing import Optional, Protocol

from PIL import Image, ImageSequence

DEFAULT_MEDIA_TYPE = "image/jpeg"

MIME_TO_EXT = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}
SUPPORTED_MEDIA_TYPES = frozenset(MIME_TO_EXT)

_PIL_FORMAT = {"jpg": "JPEG", "png": "PNG", "webp": "WEBP", "gif": "GIF"}


def normalise_media_type(raw: Optional[str]) -> str:
    """Map a Content-Type header onto the media type the transcoder is asked for."""
    if not raw:
        return DEFAULT_MEDIA_TYPE
    clean = raw.split(";")[0].strip().lower()
    if clean == "image/jpg":
        return "image/jpeg"
    if clean in SUPPORTED_MEDIA_TYPES:
        return clean
    return clean if clean.startswith("image/") else DEFAULT_MEDIA_TYPE


@dataclass(frozen=True)
class TranscodedImage:
    data: bytes
    media_type: str
    ext: str


class Transcoder(Protocol):
    def transcode(self, data: bytes, media_type: str) -> TranscodedImage: ...


class PillowTranscoder:
    """Downscale to ``max_width`` (never upscale) and re-encode.

    jpeg/png/webp/gif keep their format; anything else becomes jpeg.
    """

    def __init__(self, max_width: int = 1600, jpeg_quality: int = 90) -> None:
        self.max_width = max_width
        self.jpeg_quality = jpeg_quality

    def _target_size(self, size: tuple[int, int]) -> Optional[tuple[int, int]]:
        w, h = size
        if w <= self.max_width:
            return None
        return self.max_width, max(1, round(h * self.max_width / w))

    def transcode(self, data: bytes, media_type: str) -> TranscodedImage:
        target = media_type if media_type in SUPPORTED_MEDIA_TYPES else DEFAULT_MEDIA_TYPE
        if target == "image/jpg":
            target = "image/jpeg"
        ext = MIME_TO_EXT[target]

        out = io.BytesIO()
        with Image.open(io.BytesIO(data)) as img:
            if ext == "gif" and getattr(img, "n_frames", 1) > 1:
                self._save_animated_gif(img, out)
            else:
                frame = img.convert("RGBA") if img.mode == "P" and ext != "gif" else img.copy()
                size = self._target_size(frame.size)
                if size:
                    frame = frame.resize(size, Image.Resampling.LANCZOS)
                self._save_frame(frame, ext, out)

        return TranscodedImage(data=out.getvalue(), media_type=target, ext=ext)

    def _save_frame(self, frame: Image.Image, ext: str, out: io.BytesIO) -> None:
        if ext == "jpg":
            if frame.mode not in ("RGB", "L"):
                frame = frame.convert("RGB")
            frame.save(out, format="JPEG", quality=self.jpeg_quality)
        else:
            frame.save(out, format=_PIL_FORMAT[ext])

    def _save_animated_gif(self, img: Image.Image, out: io.BytesIO) -> None:
        frames = []
        for frame in ImageSequence.Iterator(img):
            frame = frame.copy()
            size = self._target_size(frame.size)
            if size:
                frame = frame.resize(size, Image.Resampling.LANCZOS)
            frames.append(frame)

        params = {"save_all": True, "append_images": frames[1:], "loop": img.info.get("loop", 0)}
        if "duration" in img.info:
            params["duration"] = img.info["duration"]
        frames[0].save(out, format="GIF", **params)
