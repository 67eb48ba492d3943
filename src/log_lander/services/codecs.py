from __future__ import annotations

import gzip

import zstandard as zstd

from log_lander.domain.messages import Codec

GZIP_MAGIC = b"\x1f\x8b"
ZSTD_MAGIC = b"\x28\xb5\x2f\xfd"

# Object suffix and content type per writer codec.
EXTENSIONS: dict[Codec, str] = {Codec.GZIP: "json.gz", Codec.ZSTD: "json.zst", Codec.NONE: "json"}
CONTENT_TYPES: dict[Codec, str] = {
    Codec.GZIP: "application/gzip",
    Codec.ZSTD: "application/zstd",
    Codec.NONE: "application/x-ndjson",
}


def sniff(payload: bytes) -> Codec:
    # Magic-number detection; anything unrecognized is treated as plain bytes.
    if payload.startswith(GZIP_MAGIC):
        return Codec.GZIP
    if payload.startswith(ZSTD_MAGIC):
        return Codec.ZSTD
    return Codec.NONE


def compress(data: bytes, codec: Codec, *, level: int = 6) -> bytes:
    if codec is Codec.GZIP:
        # mtime=0 keeps output deterministic for identical input.
        return gzip.compress(data, compresslevel=level, mtime=0)
    if codec is Codec.ZSTD:
        return zstd.ZstdCompressor(level=min(level, 22)).compress(data)
    return data


def decompress(data: bytes, codec: Codec) -> bytes:
    """Single decompression pass; errors surface as the codec library raises them."""
    if codec is Codec.GZIP:
        return gzip.decompress(data)
    if codec is Codec.ZSTD:
        return zstd.ZstdDecompressor().decompress(data)
    return data


def decompress_object(key: str, body: bytes) -> bytes:
    # Stored objects are decoded by magic number, falling back to the key suffix.
    codec = sniff(body)
    if codec is Codec.NONE:
        if key.endswith(".gz"):
            codec = Codec.GZIP
        elif key.endswith(".zst"):
            codec = Codec.ZSTD
    return decompress(body, codec)
