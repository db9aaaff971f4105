from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from functools import cached_property
from typing import TYPE_CHECKING, ClassVar, Final, Literal

import numcodecs
from numcodecs.blosc import Blosc
from numcodecs.compat import ensure_bytes
from packaging.version import Version

from zarrvol.abc.codec import BytesBytesCodec
from zarrvol.core.config import config
from zarrvol.errors import ChunkDecodeError, UnsupportedCodecError

if TYPE_CHECKING:
    from typing import Self

    from zarrvol.metadata.v2 import CompressorMetadata

logger = logging.getLogger(__name__)

# Size of the header at the front of every Blosc frame.
BLOSC_HEADER_NBYTES: Final = 16


class BloscShuffle(Enum):
    """
    Enum for shuffle filter used by blosc.
    """

    noshuffle = "noshuffle"
    shuffle = "shuffle"
    bitshuffle = "bitshuffle"

    @classmethod
    def from_int(cls, num: int) -> BloscShuffle:
        blosc_shuffle_int_to_str = {
            0: "noshuffle",
            1: "shuffle",
            2: "bitshuffle",
        }
        if num not in blosc_shuffle_int_to_str:
            raise ValueError(f"Value must be between 0 and 2. Got {num}.")
        return BloscShuffle[blosc_shuffle_int_to_str[num]]

    def to_int(self) -> int:
        return {BloscShuffle.noshuffle: 0, BloscShuffle.shuffle: 1, BloscShuffle.bitshuffle: 2}[
            self
        ]


class BloscCname(Enum):
    """
    Enum for compression library used by blosc.
    """

    lz4 = "lz4"
    lz4hc = "lz4hc"
    blosclz = "blosclz"
    zstd = "zstd"
    snappy = "snappy"
    zlib = "zlib"


def parse_cname(data: str) -> BloscCname:
    # an unset cname is fine for decoding, the frame header names the real one
    if data == "":
        return BloscCname.lz4
    try:
        return BloscCname(data)
    except ValueError as e:
        names = tuple(c.value for c in BloscCname)
        raise UnsupportedCodecError(f"Blosc cname must be one of {names}. Got {data!r}.") from e


def parse_shuffle(data: int) -> BloscShuffle:
    try:
        return BloscShuffle.from_int(data)
    except ValueError as e:
        raise UnsupportedCodecError(f"Invalid blosc shuffle: {e}") from e


@dataclass(frozen=True)
class BloscCodec(BytesBytesCodec):
    codec_id: ClassVar[Literal["blosc"]] = "blosc"

    typesize: int
    cname: BloscCname
    clevel: int
    shuffle: BloscShuffle
    blocksize: int

    def __init__(
        self,
        *,
        typesize: int = 1,
        cname: BloscCname | str = BloscCname.lz4,
        clevel: int = 5,
        shuffle: BloscShuffle | int = BloscShuffle.shuffle,
        blocksize: int = 0,
    ) -> None:
        cname_parsed = cname if isinstance(cname, BloscCname) else parse_cname(cname)
        shuffle_parsed = shuffle if isinstance(shuffle, BloscShuffle) else parse_shuffle(shuffle)

        object.__setattr__(self, "typesize", typesize)
        object.__setattr__(self, "cname", cname_parsed)
        object.__setattr__(self, "clevel", clevel)
        object.__setattr__(self, "shuffle", shuffle_parsed)
        object.__setattr__(self, "blocksize", blocksize)

    @classmethod
    def from_metadata(cls, compressor: CompressorMetadata) -> Self:
        """
        Build a decoder from the ``compressor`` entry of an array.

        Every Blosc frame records the cname and shuffle it was written with, so values only an
        encoder understands (numcodecs writes ``shuffle: -1`` for AUTOSHUFFLE) fall back to the
        defaults instead of failing.
        """
        try:
            cname = parse_cname(compressor.cname)
        except UnsupportedCodecError:
            logger.debug("Ignoring blosc cname %r, decoding with the frame's own", compressor.cname)
            cname = BloscCname.lz4
        try:
            shuffle = parse_shuffle(compressor.shuffle)
        except UnsupportedCodecError:
            logger.debug(
                "Ignoring blosc shuffle %r, decoding with the frame's own", compressor.shuffle
            )
            shuffle = BloscShuffle.shuffle
        return cls(
            cname=cname,
            clevel=compressor.clevel,
            shuffle=shuffle,
            blocksize=compressor.blocksize,
        )

    def to_json(self) -> dict[str, object]:
        return {
            "id": "blosc",
            "cname": self.cname.value,
            "clevel": self.clevel,
            "shuffle": self.shuffle.to_int(),
            "blocksize": self.blocksize,
        }

    @cached_property
    def _blosc_codec(self) -> Blosc:
        # See https://zarr.readthedocs.io/en/stable/user-guide/performance.html#configuring-blosc
        numcodecs.blosc.use_threads = config.get("codecs.blosc.use_threads")
        config_dict = {
            "cname": self.cname.value,
            "clevel": self.clevel,
            "shuffle": self.shuffle.to_int(),
            "blocksize": self.blocksize,
        }
        # See https://github.com/zarr-developers/numcodecs/pull/713
        if Version(numcodecs.__version__) >= Version("0.16.0"):
            config_dict["typesize"] = self.typesize
        return Blosc.from_config(config_dict)

    def _decode_single(self, chunk_bytes: bytes, nbytes: int) -> bytes:
        if len(chunk_bytes) < BLOSC_HEADER_NBYTES:
            raise ChunkDecodeError(
                f"Blosc frame is {len(chunk_bytes)} bytes, shorter than its "
                f"{BLOSC_HEADER_NBYTES} byte header"
            )
        # header: version, versionlz, flags, typesize, then uint32 LE nbytes, blocksize, cbytes
        declared_nbytes = int.from_bytes(chunk_bytes[4:8], "little")
        declared_cbytes = int.from_bytes(chunk_bytes[12:16], "little")
        if declared_cbytes != len(chunk_bytes):
            raise ChunkDecodeError(
                f"Blosc frame declares {declared_cbytes} compressed bytes, "
                f"but {len(chunk_bytes)} are present"
            )
        if declared_nbytes != nbytes:
            raise ChunkDecodeError(
                f"Blosc frame declares {declared_nbytes} decompressed bytes, expected {nbytes}"
            )
        try:
            decoded = self._blosc_codec.decode(chunk_bytes)
        except (RuntimeError, ValueError) as e:
            raise ChunkDecodeError(f"Blosc decompression failed: {e}") from e
        return ensure_bytes(decoded)
