"""Assembling a box of chunks into one addressable volume."""

from __future__ import annotations

import itertools
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import numpy as np
import numpy.typing as npt

from zarrvol.chunk import CHUNK_SHAPE, Chunk, check_chunk_metadata, read_chunk
from zarrvol.codecs import get_compressor
from zarrvol.core.chunk_key_encodings import resolve_chunk_path
from zarrvol.core.common import (
    CHUNK_LEN,
    ChunkCoords,
    parse_chunk_coords,
    parse_extent,
    product,
)
from zarrvol.core.config import config, parse_max_workers
from zarrvol.errors import BaseZarrVolError, MisalignedOffsetError, VolumeAssemblyError

if TYPE_CHECKING:
    from collections.abc import Iterable
    from concurrent.futures import Future
    from os import PathLike

    from zarrvol.metadata.v2 import ArrayMetadata

__all__ = ["Volume", "assemble_volume", "chunk_coords_from_offset"]

logger = logging.getLogger(__name__)

# Value of every voxel outside the volume.
OUT_OF_BOUNDS_VALUE = 0


def chunk_coords_from_offset(voxel_offset: Iterable[int]) -> ChunkCoords:
    """
    Convert a voxel offset (z, y, x) to the chunk-grid coordinate it starts at.

    Raises
    ------
    MisalignedOffsetError
        If any axis is negative or not a multiple of ``CHUNK_LEN``.
    """
    offset = tuple(voxel_offset)
    if len(offset) != 3:
        raise ValueError(f"Expected a voxel offset of 3 values (z, y, x). Got {offset} instead.")
    if any(o < 0 or o % CHUNK_LEN != 0 for o in offset):
        raise MisalignedOffsetError(
            f"Voxel offset {offset} is not aligned to the {CHUNK_LEN} voxel chunk grid"
        )
    return parse_chunk_coords(o // CHUNK_LEN for o in offset)


@dataclass(frozen=True, eq=False)
class Volume:
    """
    A rectangular box of chunks addressed as one 3-D sample space.

    ``chunks`` has shape ``(*extent, E, E, E)``: the first three axes pick a chunk in the box,
    the last three a voxel in that chunk. ``origin`` is the chunk-grid coordinate of the first
    chunk in the array the box was read from. Voxel coordinates are relative to the box.

    Reading a voxel outside the box gives 0 instead of raising, on any axis and for negative
    coordinates too.
    """

    chunks: npt.NDArray[np.uint8]
    origin: ChunkCoords = (0, 0, 0)

    def __post_init__(self) -> None:
        if self.chunks.ndim != 6 or self.chunks.shape[3:] != CHUNK_SHAPE:
            raise ValueError(
                f"Expected chunks with shape (cz, cy, cx, *{CHUNK_SHAPE}). "
                f"Got {self.chunks.shape} instead."
            )

    @classmethod
    def from_chunks(
        cls, chunks: Iterable[Chunk], extent: Iterable[int], origin: Iterable[int] = (0, 0, 0)
    ) -> Volume:
        """
        Pack chunks given in row-major (z, then y, then x) order into a volume.
        """
        extent_parsed = parse_extent(extent)
        packed = np.stack([np.asarray(c, dtype=np.uint8) for c in chunks])
        if packed.shape[0] != product(extent_parsed):
            raise ValueError(
                f"Expected {product(extent_parsed)} chunks for extent {extent_parsed}. "
                f"Got {packed.shape[0]} instead."
            )
        return cls(packed.reshape(extent_parsed + packed.shape[1:]), parse_chunk_coords(origin))

    @property
    def extent(self) -> tuple[int, int, int]:
        """Number of chunks along (z, y, x)."""
        z, y, x = self.chunks.shape[:3]
        return (z, y, x)

    @property
    def shape(self) -> tuple[int, int, int]:
        """Number of voxels along (z, y, x)."""
        z, y, x = (e * CHUNK_LEN for e in self.extent)
        return (z, y, x)

    @property
    def voxel_origin(self) -> tuple[int, int, int]:
        """Position of voxel (0, 0, 0) of this volume in the full array."""
        z, y, x = (o * CHUNK_LEN for o in self.origin)
        return (z, y, x)

    @property
    def nbytes(self) -> int:
        return self.chunks.nbytes

    def chunk(self, cz: int, cy: int, cx: int) -> Chunk:
        """The chunk at position (cz, cy, cx) in the box."""
        if not all(0 <= c < e for c, e in zip((cz, cy, cx), self.extent, strict=True)):
            raise IndexError(f"Chunk {(cz, cy, cx)} is outside the volume extent {self.extent}")
        return self.chunks[cz, cy, cx]

    def __getitem__(self, key: tuple[int, int, int]) -> int:
        z, y, x = key
        cz, lz = divmod(z, CHUNK_LEN)
        cy, ly = divmod(y, CHUNK_LEN)
        cx, lx = divmod(x, CHUNK_LEN)
        ez, ey, ex = self.extent
        # floor division keeps negative coordinates at a negative chunk index
        if 0 <= cz < ez and 0 <= cy < ey and 0 <= cx < ex:
            return int(self.chunks[cz, cy, cx, lz, ly, lx])
        return OUT_OF_BOUNDS_VALUE

    def sample(self, z: Any, y: Any, x: Any) -> npt.NDArray[np.uint8]:
        """
        Vectorized voxel lookup. ``z``, ``y`` and ``x`` are broadcast against each other;
        coordinates outside the volume read as 0.
        """
        z, y, x = np.broadcast_arrays(*(np.asarray(v, dtype=np.int64) for v in (z, y, x)))
        cz, lz = np.divmod(z, CHUNK_LEN)
        cy, ly = np.divmod(y, CHUNK_LEN)
        cx, lx = np.divmod(x, CHUNK_LEN)
        ez, ey, ex = self.extent
        inside = (cz >= 0) & (cz < ez) & (cy >= 0) & (cy < ey) & (cx >= 0) & (cx < ex)
        out = np.full(z.shape, OUT_OF_BOUNDS_VALUE, dtype=np.uint8)
        out[inside] = self.chunks[
            cz[inside], cy[inside], cx[inside], lz[inside], ly[inside], lx[inside]
        ]
        return out

    def to_dense(self) -> npt.NDArray[np.uint8]:
        """The whole volume as one ``(cz * E, cy * E, cx * E)`` array."""
        ez, ey, ex = self.extent
        return (
            self.chunks.transpose(0, 3, 1, 4, 2, 5)
            .reshape(ez * CHUNK_LEN, ey * CHUNK_LEN, ex * CHUNK_LEN)
            .copy()
        )

    def get_slice(self, axis: int, index: int) -> npt.NDArray[np.uint8]:
        """
        The 2-D image through the volume at voxel ``index`` along ``axis`` (0=z, 1=y, 2=x).

        An index outside the volume gives an image of zeros.
        """
        if axis not in (0, 1, 2):
            raise ValueError(f"Expected axis 0, 1 or 2. Got {axis} instead.")
        plane_shape = tuple(s for i, s in enumerate(self.shape) if i != axis)
        c, local = divmod(index, CHUNK_LEN)
        if not 0 <= c < self.extent[axis]:
            return np.full(plane_shape, OUT_OF_BOUNDS_VALUE, dtype=np.uint8)
        # chunk-grid axis and in-chunk axis of the sliced dimension are dropped together
        block = np.take(np.take(self.chunks, c, axis=axis), local, axis=axis + 2)
        return block.transpose(0, 2, 1, 3).reshape(plane_shape).copy()


def _box_coords(origin: ChunkCoords, extent: tuple[int, int, int]) -> list[ChunkCoords]:
    oz, oy, ox = origin
    ez, ey, ex = extent
    return [
        (oz + z, oy + y, ox + x)
        for z, y, x in itertools.product(range(ez), range(ey), range(ex))
    ]


def assemble_volume(
    store_root: str | PathLike[str],
    metadata: ArrayMetadata,
    origin: Iterable[int],
    extent: Iterable[int],
    *,
    max_workers: int | None = None,
) -> Volume:
    """
    Read every chunk in the box ``[origin, origin + extent)`` and pack them into a volume.

    Chunks are read in row-major order (z, then y, then x). With more than one worker the
    reads run on a thread pool; the result is the same.

    Parameters
    ----------
    store_root : str or PathLike
        Directory holding the array.
    metadata : ArrayMetadata
        Metadata of the array.
    origin : iterable of int
        Chunk-grid coordinate (z, y, x) of the first chunk.
    extent : iterable of int
        Number of chunks to read along (z, y, x).
    max_workers : int, optional
        Number of threads to decode with. Defaults to ``config["volume.max_workers"]``.

    Raises
    ------
    VolumeAssemblyError
        If any chunk fails to load. The error names the first failing chunk in row-major order
        and chains the underlying error. No chunk read during the attempt is kept.
    UnsupportedCodecError
        If the compressor cannot be decoded. Checked before any chunk is read.
    """
    origin_parsed = parse_chunk_coords(origin)
    extent_parsed = parse_extent(extent)
    check_chunk_metadata(metadata)
    # resolved once here so worker threads share one codec
    get_compressor(metadata)
    if max_workers is None:
        max_workers = config.get("volume.max_workers")
    workers = parse_max_workers(max_workers)

    coords = _box_coords(origin_parsed, extent_parsed)
    paths = [resolve_chunk_path(store_root, c, metadata) for c in coords]
    logger.debug(
        "Assembling %d chunks from %s starting at %s with %d worker(s)",
        len(coords),
        store_root,
        origin_parsed,
        workers,
    )

    buffer: npt.NDArray[np.uint8] | None = np.empty(
        (len(coords), *CHUNK_SHAPE), dtype=np.uint8
    )
    failure: tuple[int, BaseZarrVolError] | None = None

    def load(i: int) -> None:
        buffer[i] = read_chunk(paths[i], metadata)

    if workers == 1 or len(coords) == 1:
        for i in range(len(coords)):
            try:
                load(i)
            except BaseZarrVolError as e:
                failure = (i, e)
                break
    else:
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="zarrvol") as pool:
            futures: list[Future[None]] = [pool.submit(load, i) for i in range(len(coords))]
            for i, future in enumerate(futures):
                try:
                    future.result()
                except BaseZarrVolError as e:
                    failure = (i, e)
                    for pending in futures[i + 1 :]:
                        pending.cancel()
                    break

    if failure is not None:
        # drop every decoded chunk before the error leaves this frame
        buffer = None
        index, err = failure
        logger.warning("Volume assembly failed at chunk %s: %s", coords[index], err)
        raise VolumeAssemblyError(coords[index], paths[index]) from err

    return Volume(buffer.reshape(extent_parsed + CHUNK_SHAPE), origin_parsed)
