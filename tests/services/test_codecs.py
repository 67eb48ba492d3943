from __future__ import annotations

import gzip

import zstandard as zstd

from log_lander.domain.messages import Codec
from log_lander.services import codecs


def test_sniff_detects_magic_numbers() -> None:
    assert codecs.sniff(gzip.compress(b"x")) is Codec.GZIP
    assert codecs.sniff(zstd.ZstdCompressor().compress(b"x")) is Codec.ZSTD
    assert codecs.sniff(b'{"a":1}') is Codec.NONE


def test_gzip_output_is_deterministic() -> None:
    # mtime is pinned, so identical input compresses identically.
    assert codecs.compress(b"abc", Codec.GZIP) == codecs.compress(b"abc", Codec.GZIP)


def test_decompress_object_falls_back_to_key_suffix() -> None:
    body = codecs.compress(b"line\n", Codec.ZSTD)
    assert codecs.decompress_object("p/x.json.zst", body) == b"line\n"
    assert codecs.decompress_object("p/x.json", b"line\n") == b"line\n"
