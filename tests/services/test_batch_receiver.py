from __future__ import annotations

import gzip
from datetime import UTC, datetime

import pytest
import zstandard as zstd

from log_lander.domain.errors import MalformedBatch, ReasonCode
from log_lander.domain.messages import Codec, LogBatch
from log_lander.services.batch_receiver import BatchReceiver

_BODY = b'{"messageType":"DATA_MESSAGE","logEvents":[]}'


def _batch(payload: bytes, codec: Codec) -> LogBatch:
    return LogBatch(payload=payload, codec=codec, arrival=datetime(2024, 1, 15, 10, tzinfo=UTC), shard_id="s-1")


def _reason(payload: bytes, codec: Codec) -> ReasonCode:
    with pytest.raises(MalformedBatch) as info:
        BatchReceiver().receive(_batch(payload, codec))
    return info.value.reason


def test_receive_decompresses_gzip_once() -> None:
    assert BatchReceiver().receive(_batch(gzip.compress(_BODY), Codec.GZIP)) == _BODY


def test_receive_decompresses_zstd() -> None:
    payload = zstd.ZstdCompressor().compress(_BODY)
    assert BatchReceiver().receive(_batch(payload, Codec.ZSTD)) == _BODY


def test_receive_passes_plain_payload_through() -> None:
    assert BatchReceiver().receive(_batch(_BODY, Codec.NONE)) == _BODY


def test_receive_empty_payload_is_empty_stream() -> None:
    assert BatchReceiver().receive(_batch(b"", Codec.GZIP)) == b""


def test_double_compression_is_rejected_not_unwrapped() -> None:
    # Still gzip after the single pass: never decompressed a second time.
    assert _reason(gzip.compress(gzip.compress(_BODY)), Codec.GZIP) is ReasonCode.DOUBLE_COMPRESSION


def test_declared_none_but_compressed_is_invalid_codec() -> None:
    assert _reason(gzip.compress(_BODY), Codec.NONE) is ReasonCode.INVALID_CODEC


def test_declared_codec_must_match_payload() -> None:
    assert _reason(_BODY, Codec.GZIP) is ReasonCode.INVALID_CODEC
    assert _reason(gzip.compress(_BODY), Codec.ZSTD) is ReasonCode.INVALID_CODEC


def test_truncated_gzip_fails_decompression() -> None:
    payload = gzip.compress(_BODY)[:12]
    assert _reason(payload, Codec.GZIP) is ReasonCode.DECOMPRESSION_FAILED


def test_non_utf8_output_is_rejected() -> None:
    assert _reason(gzip.compress(b"\xff\xfe{}"), Codec.GZIP) is ReasonCode.NOT_UTF8
