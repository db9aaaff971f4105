from __future__ import annotations

from functools import lru_cache
from typing import TYPE_CHECKING

from zarrvol.codecs.blosc import BloscCname, BloscCodec, BloscShuffle
from zarrvol.codecs.numcodec import NumcodecWrapper, get_numcodec_codec

if TYPE_CHECKING:
    from zarrvol.abc.codec import BytesBytesCodec
    from zarrvol.metadata.v2 import ArrayMetadata, CompressorMetadata

__all__ = [
    "BloscCname",
    "BloscCodec",
    "BloscShuffle",
    "NumcodecWrapper",
    "get_compressor",
]


def get_compressor(metadata: ArrayMetadata) -> BytesBytesCodec | None:
    """
    The codec that decompresses chunks of this array, or ``None`` when chunks are stored
    uncompressed (no compressor, or a compressor without an id).

    Arrays with equal ``compressor`` entries share one codec instance.

    Raises
    ------
    UnsupportedCodecError
        If the compressor id is not one numcodecs can decode.
    """
    compressor = metadata.compressor
    if compressor is None or compressor.id == "":
        return None
    return _codec_for(compressor)


@lru_cache(maxsize=32)
def _codec_for(compressor: CompressorMetadata) -> BytesBytesCodec:
    if compressor.id == BloscCodec.codec_id:
        return BloscCodec.from_metadata(compressor)
    return get_numcodec_codec({"id": compressor.id})
