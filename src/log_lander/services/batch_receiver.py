from __future__ import annotations

import zlib
from dataclasses import dataclass

import zstandard as zstd

from log_lander.domain.errors import MalformedBatch, ReasonCode
from log_lander.domain.messages import Codec, LogBatch
from log_lander.services import codecs


@dataclass(frozen=True, slots=True)
class BatchReceiver:
    # Validates the declared codec and performs at most one decompression pass.
    def receive(self, batch: LogBatch) -> bytes:
        payload = batch.payload
        if not payload:
            return b""

        actual = codecs.sniff(payload)
        if batch.codec is Codec.NONE:
            if actual is not Codec.NONE:
                raise MalformedBatch(ReasonCode.INVALID_CODEC, f"payload is {actual.value} but declared none")
            return _require_utf8(payload)

        if actual is not batch.codec:
            raise MalformedBatch(
                ReasonCode.INVALID_CODEC,
                f"declared {batch.codec.value}, payload looks like {actual.value}",
            )

        try:
            decoded = codecs.decompress(payload, batch.codec)
        except (OSError, EOFError, zlib.error, zstd.ZstdError) as exc:
            raise MalformedBatch(ReasonCode.DECOMPRESSION_FAILED, str(exc)) from exc

        # One pass only: compressed output after decompression is rejected, not unwrapped again.
        if codecs.sniff(decoded) is not Codec.NONE:
            raise MalformedBatch(ReasonCode.DOUBLE_COMPRESSION, "payload still compressed after one pass")
        return _require_utf8(decoded)


def _require_utf8(data: bytes) -> bytes:
    try:
        data.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise MalformedBatch(ReasonCode.NOT_UTF8, str(exc)) from exc
    return data
