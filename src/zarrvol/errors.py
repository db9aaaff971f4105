from __future__ import annotations

__all__ = [
    "ArrayNotFoundError",
    "BaseZarrVolError",
    "ChunkDecodeError",
    "ChunkReadError",
    "ChunkShapeError",
    "MetadataValidationError",
    "MisalignedOffsetError",
    "UnsupportedCodecError",
    "UnsupportedDtypeError",
    "VolumeAssemblyError",
]


class BaseZarrVolError(ValueError):
    """
    Base class for zarrvol errors.
    """


class ArrayNotFoundError(BaseZarrVolError, FileNotFoundError):
    """
    Raised when the array metadata document isn't found in a store.
    """

    _msg = "No array metadata found in store {!r} at key {!r}"

    def __init__(self, *args: object) -> None:
        if len(args) == 1:
            super().__init__(args[0])
        else:
            super().__init__(self._msg.format(*args))


class MetadataValidationError(BaseZarrVolError):
    """Raised when the array metadata is invalid in some way"""

    _msg = "Invalid value for '{}'. Expected '{}'. Got '{}'."

    def __init__(self, *args: object) -> None:
        if len(args) == 1:
            super().__init__(args[0])
        else:
            super().__init__(self._msg.format(*args))


class ChunkShapeError(MetadataValidationError):
    """
    Raised when the metadata declares a chunk shape other than the fixed cubic chunk this
    package decodes.
    """


class ChunkReadError(BaseZarrVolError, OSError):
    """Raised when a chunk file is missing or cannot be read."""

    _msg = "Failed to read chunk file {!r}: {}"

    def __init__(self, *args: object) -> None:
        if len(args) == 1:
            super().__init__(args[0])
        else:
            super().__init__(self._msg.format(*args))


class UnsupportedDtypeError(BaseZarrVolError):
    """Raised when the metadata declares a sample encoding other than unsigned bytes."""

    _msg = "Unsupported dtype {!r}. Only {!r} is supported."

    def __init__(self, *args: object) -> None:
        if len(args) == 1:
            super().__init__(args[0])
        else:
            super().__init__(self._msg.format(*args))


class UnsupportedCodecError(BaseZarrVolError):
    """Raised when the compressor or the filter chain of an array cannot be decoded."""


class ChunkDecodeError(BaseZarrVolError):
    """
    Raised when a compressed chunk is truncated, corrupt, or decompresses to the wrong
    number of bytes.
    """


class VolumeAssemblyError(BaseZarrVolError):
    """
    Raised when a chunk inside a requested box fails to load.

    The failing chunk coordinates are available as ``chunk_coords`` and the underlying
    error as ``__cause__``.
    """

    def __init__(self, chunk_coords: tuple[int, ...], path: str | None = None) -> None:
        self.chunk_coords = chunk_coords
        self.path = path
        msg = f"Failed to assemble volume: chunk {chunk_coords} could not be loaded"
        if path is not None:
            msg += f" from {path!r}"
        super().__init__(msg)


class MisalignedOffsetError(BaseZarrVolError):
    """Raised when a voxel offset is not aligned to the chunk grid."""
