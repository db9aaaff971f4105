from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import numcodecs
from numcodecs.compat import ensure_bytes

from zarrvol.abc.codec import BytesBytesCodec, Numcodec
from zarrvol.errors import ChunkDecodeError, UnsupportedCodecError

if TYPE_CHECKING:
    from zarrvol.abc.codec import BaseNumcodecConfig


@dataclass(frozen=True, kw_only=True)
class NumcodecWrapper(BytesBytesCodec):
    """
    Decode chunks with any compressor registered with numcodecs (zstd, zlib, gzip, lz4, ...).
    """

    codec: Numcodec

    @property
    def codec_id(self) -> str:  # type: ignore[override]
        return self.codec.codec_id

    def _decode_single(self, chunk_bytes: bytes, nbytes: int) -> bytes:
        try:
            decoded = self.codec.decode(chunk_bytes)
        except Exception as e:
            raise ChunkDecodeError(f"{self.codec_id} decompression failed: {e}") from e
        return ensure_bytes(decoded)


def get_numcodec_codec(codec_spec: BaseNumcodecConfig | dict[str, Any]) -> NumcodecWrapper:
    try:
        codec = numcodecs.get_codec(dict(codec_spec))
    except (KeyError, ValueError, TypeError) as e:
        raise UnsupportedCodecError(f"Unsupported compressor {codec_spec!r}: {e}") from e
    if not isinstance(codec, Numcodec):
        raise UnsupportedCodecError(f"Compressor {codec_spec!r} cannot decode chunks")
    return NumcodecWrapper(codec=codec)
