"""Reading and decoding single chunks of a Zarr v2 array.

A chunk is returned as a C-contiguous ``uint8`` array of shape ``(CHUNK_LEN,) * 3``,
indexed ``[z, y, x]``. The caller holds the only reference to it.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Final

import numpy as np
import numpy.typing as npt

from zarrvol.codecs import get_compressor
from zarrvol.core.chunk_key_encodings import resolve_chunk_path
from zarrvol.core.common import CHUNK_LEN, CHUNK_NBYTES, UINT8_DTYPE
from zarrvol.errors import (
    ChunkDecodeError,
    ChunkReadError,
    ChunkShapeError,
    MetadataValidationError,
    UnsupportedCodecError,
    UnsupportedDtypeError,
)

if TYPE_CHECKING:
    from collections.abc import Iterable
    from os import PathLike

    from zarrvol.metadata.v2 import ArrayMetadata

__all__ = [
    "CHUNK_SHAPE",
    "Chunk",
    "check_chunk_metadata",
    "decode_chunk",
    "get_chunk",
    "read_chunk",
]

logger = logging.getLogger(__name__)

Chunk = npt.NDArray[np.uint8]

CHUNK_SHAPE: Final = (CHUNK_LEN, CHUNK_LEN, CHUNK_LEN)


def check_chunk_metadata(metadata: ArrayMetadata) -> None:
    """
    Check that chunks of this array can be decoded at all.

    Raises
    ------
    MetadataValidationError
        If ``metadata`` is the unloaded sentinel.
    ChunkShapeError
        If the chunk shape is not ``(CHUNK_LEN, CHUNK_LEN, CHUNK_LEN)``.
    UnsupportedDtypeError
        If the dtype is not ``"|u1"``.
    UnsupportedCodecError
        If the array declares a filter chain.
    """
    if not metadata.loaded:
        raise MetadataValidationError("Array metadata is not loaded")
    if tuple(metadata.chunks) != CHUNK_SHAPE:
        raise ChunkShapeError("chunks", list(CHUNK_SHAPE), list(metadata.chunks))
    if metadata.dtype != UINT8_DTYPE:
        logger.warning("Refusing to decode chunks with dtype %r", metadata.dtype)
        raise UnsupportedDtypeError(metadata.dtype, UINT8_DTYPE)
    if metadata.has_filters:
        raise UnsupportedCodecError(f"Filters are not supported. Got {metadata.filters!r}.")


def decode_chunk(data: bytes, metadata: ArrayMetadata) -> Chunk:
    """
    Decompress the stored bytes of one chunk into a dense ``[z, y, x]`` array.

    The byte at linear offset ``z * E * E + y * E + x`` of the decompressed buffer becomes
    ``chunk[z, y, x]``. Arrays stored with ``order == "F"`` are read in Fortran order instead.

    Raises
    ------
    ChunkDecodeError
        If the payload is corrupt or does not hold exactly one chunk of samples.
    """
    check_chunk_metadata(metadata)
    return _decode_checked(data, metadata)


def _decode_checked(data: bytes, metadata: ArrayMetadata) -> Chunk:
    codec = get_compressor(metadata)
    if codec is None:
        decoded = bytes(data)
        if len(decoded) != CHUNK_NBYTES:
            raise ChunkDecodeError(
                f"Uncompressed chunk has {len(decoded)} bytes, expected {CHUNK_NBYTES}"
            )
    else:
        decoded = codec.decode(bytes(data), CHUNK_NBYTES)

    order = "F" if metadata.order == "F" else "C"
    flat = np.frombuffer(decoded, dtype=np.uint8)
    return np.array(flat.reshape(CHUNK_SHAPE, order=order), order="C")


def read_chunk(path: str | PathLike[str], metadata: ArrayMetadata) -> Chunk:
    """
    Read the chunk file at ``path`` and decode it.

    Raises
    ------
    ChunkReadError
        If the file is missing or cannot be read.
    UnsupportedDtypeError
        If the array dtype is not ``"|u1"``. Checked before the file is read.
    ChunkDecodeError
        If the payload cannot be decompressed into one chunk.
    """
    check_chunk_metadata(metadata)
    try:
        data = Path(path).read_bytes()
    except OSError as e:
        logger.warning("Failed to open chunk file: %s", path)
        raise ChunkReadError(str(path), e) from e

    logger.debug("Read %d bytes from %s", len(data), path)
    try:
        return _decode_checked(data, metadata)
    except ChunkDecodeError:
        logger.warning("Failed to decode chunk file: %s", path)
        raise


def get_chunk(
    store_root: str | PathLike[str], metadata: ArrayMetadata, chunk_coords: Iterable[int]
) -> Chunk:
    """
    Resolve the file of the chunk at ``chunk_coords`` (z, y, x) and read it.
    """
    return read_chunk(resolve_chunk_path(store_root, chunk_coords, metadata), metadata)
