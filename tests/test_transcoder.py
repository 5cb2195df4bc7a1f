from __future__ import annotations

import io

import pytest
from PIL import Image

from feed_pipeline.images.transcoder import PillowTranscoder, normalise_media_type


def _image_bytes(size: tuple[int, int], fmt: str, mode: str = "RGB", color=(200, 30, 30)) -> bytes:
    buf = io.BytesIO()
    Image.new(mode, size, color).save(buf, format=fmt)
    return buf.getvalue()


@pytest.mark.parametrize(
    "raw, expected",
    [
        (None, "image/jpeg"),
        ("", "image/jpeg"),
        ("image/JPEG; charset=binary", "image/jpeg"),
        ("image/jpg", "image/jpeg"),
        ("image/png", "image/png"),
        ("image/bmp", "image/bmp"),
        ("text/html; charset=utf-8", "image/jpeg"),
    ],
)
def test_normalise_media_type(raw, expected):
    assert normalise_media_type(raw) == expected


def test_wide_png_is_downscaled_and_stays_png():
    t = PillowTranscoder(max_width=1600)
    out = t.transcode(_image_bytes((3200, 100), "PNG"), "image/png")

    assert out.ext == "png"
    assert out.media_type == "image/png"
    with Image.open(io.BytesIO(out.data)) as img:
        assert img.format == "PNG"
        assert img.size == (1600, 50)


def test_small_image_is_not_upscaled():
    t = PillowTranscoder(max_width=1600)
    out = t.transcode(_image_bytes((100, 50), "JPEG"), "image/jpeg")

    assert out.ext == "jpg"
    with Image.open(io.BytesIO(out.data)) as img:
        assert img.format == "JPEG"
        assert img.size == (100, 50)


def test_unsupported_type_becomes_jpeg():
    t = PillowTranscoder()
    out = t.transcode(_image_bytes((40, 40), "BMP"), "image/bmp")

    assert out.media_type == "image/jpeg"
    assert out.ext == "jpg"
    with Image.open(io.BytesIO(out.data)) as img:
        assert img.format == "JPEG"


def test_rgba_png_declared_as_jpeg_is_flattened():
    t = PillowTranscoder()
    data = _image_bytes((20, 20), "PNG", mode="RGBA", color=(0, 0, 255, 128))
    out = t.transcode(data, "image/jpeg")
    with Image.open(io.BytesIO(out.data)) as img:
        assert img.mode == "RGB"


def test_output_is_deterministic():
    t = PillowTranscoder(max_width=64)
    data = _image_bytes((300, 200), "PNG")
    assert t.transcode(data, "image/png").data == t.transcode(data, "image/png").data


def test_animated_gif_keeps_frames():
    frames = [Image.new("RGB", (2000, 100), c) for c in ((255, 0, 0), (0, 255, 0))]
    buf = io.BytesIO()
    frames[0].save(buf, format="GIF", save_all=True, append_images=frames[1:], duration=100, loop=0)

    out = PillowTranscoder(max_width=1600).transcode(buf.getvalue(), "image/gif")

    assert out.ext == "gif"
    with Image.open(io.BytesIO(out.data)) as img:
        assert img.n_frames == 2
        assert img.size == (1600, 80)


def test_garbage_bytes_raise():
    with pytest.raises(OSError):
        PillowTranscoder().transcode(b"definitely not an image", "image/png")
