from __future__ import annotations

import hashlib

def sha1_hex(data: bytes) -> str:
    h = hashlib.sha1()
    h.update(data)
    return h.hexdigest()

def sha256_hex(data: bytes) -> str:
    h = hashlib.sha256()
    h.update(data)
    return h.hexdigest()

def content_key(data: bytes, ext: str, prefix: str = "img") -> str:
    # content-addressed object key: "<prefix>/<sha1>.<ext>"
    name = f"{sha1_hex(data)}.{ext.lstrip('.')}"
    prefix = prefix.strip("/")
    return f"{prefix}/{name}" if prefix else name

def stable_id(value: str) -> str:
    # short hash for ids derived from urls/titles
    return sha256_hex(value.encode("utf-8"))[:12]
