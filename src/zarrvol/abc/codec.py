from __future__ import annotations

from abc import ABC, abstractmethod
from typing import ClassVar, TypedDict

from typing_extensions import Protocol, runtime_checkable

from zarrvol.errors import ChunkDecodeError

__all__ = ["BaseNumcodecConfig", "BytesBytesCodec", "Numcodec"]


class BaseNumcodecConfig(TypedDict, total=False):
    id: str


@runtime_checkable
class Numcodec(Protocol):
    """
    The decoding half of the numcodecs.abc.Codec interface.
    """

    codec_id: ClassVar[str]

    def decode(self, buf: bytes, out: bytearray | None = None) -> bytes: ...


class BytesBytesCodec(ABC):
    """
    A codec that turns the stored bytes of a chunk back into its raw sample bytes.
    """

    codec_id: ClassVar[str]

    @abstractmethod
    def _decode_single(self, chunk_bytes: bytes, nbytes: int) -> bytes:
        """
        Decompress ``chunk_bytes``. ``nbytes`` is the size the caller expects back and may be
        used to validate framing before any work is done.
        """

    def decode(self, chunk_bytes: bytes, nbytes: int) -> bytes:
        """
        Decompress one chunk, requiring exactly ``nbytes`` bytes of output.

        Raises
        ------
        ChunkDecodeError
            If the payload is corrupt, truncated, or decompresses to a different size.
        """
        decoded = self._decode_single(chunk_bytes, nbytes)
        if len(decoded) != nbytes:
            raise ChunkDecodeError(
                f"{self.codec_id} decompressed {len(decoded)} bytes, expected {nbytes}"
            )
        return decoded
