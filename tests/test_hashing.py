from feed_pipeline.common.hashing import content_key, sha1_hex, sha256_hex, stable_id


def test_sha_hex_deterministic():
    assert sha1_hex(b"hello") == sha1_hex(b"hello")
    assert sha1_hex(b"hello") != sha1_hex(b"hello!")
    assert len(sha1_hex(b"hello")) == 40
    assert len(sha256_hex(b"hello")) == 64


def test_content_key_uses_prefix_hash_and_ext():
    h = sha1_hex(b"abc")
    assert content_key(b"abc", "jpg") == f"img/{h}.jpg"
    assert content_key(b"abc", ".png", prefix="/mirror/") == f"mirror/{h}.png"
    assert content_key(b"abc", "gif", prefix="") == f"{h}.gif"


def test_content_key_identical_bytes_collapse():
    assert content_key(b"same", "jpg") == content_key(bytes(b"same"), "jpg")
    assert content_key(b"same", "jpg") != content_key(b"other", "jpg")


def test_stable_id_length_and_stability():
    assert stable_id("https://shop/a") == stable_id("https://shop/a")
    assert len(stable_id("https://shop/a")) == 12
