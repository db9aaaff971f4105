"""
Read chunked, compressed Zarr v2 volumes of unsigned bytes as dense voxel buffers.
"""

from zarrvol._version import __version__
from zarrvol.chunk import Chunk, decode_chunk, get_chunk, read_chunk
from zarrvol.core.chunk_key_encodings import V2ChunkKeyEncoding, resolve_chunk_path
from zarrvol.core.common import CHUNK_LEN
from zarrvol.core.config import config
from zarrvol.errors import (
    ArrayNotFoundError,
    BaseZarrVolError,
    ChunkDecodeError,
    ChunkReadError,
    ChunkShapeError,
    MetadataValidationError,
    MisalignedOffsetError,
    UnsupportedCodecError,
    UnsupportedDtypeError,
    VolumeAssemblyError,
)
from zarrvol.metadata import ArrayMetadata, CompressorMetadata, parse_zarray, read_zarray
from zarrvol.volume import Volume, assemble_volume, chunk_coords_from_offset

__all__ = [
    "CHUNK_LEN",
    "ArrayMetadata",
    "ArrayNotFoundError",
    "BaseZarrVolError",
    "Chunk",
    "ChunkDecodeError",
    "ChunkReadError",
    "ChunkShapeError",
    "CompressorMetadata",
    "MetadataValidationError",
    "MisalignedOffsetError",
    "UnsupportedCodecError",
    "UnsupportedDtypeError",
    "V2ChunkKeyEncoding",
    "Volume",
    "VolumeAssemblyError",
    "__version__",
    "assemble_volume",
    "chunk_coords_from_offset",
    "config",
    "decode_chunk",
    "get_chunk",
    "parse_zarray",
    "read_chunk",
    "read_zarray",
]
