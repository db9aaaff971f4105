from __future__ import annotations

from dataclasses import dataclass
from os import fspath
from typing import TYPE_CHECKING, ClassVar, Literal

from zarrvol.core.common import parse_chunk_coords

if TYPE_CHECKING:
    from collections.abc import Iterable
    from os import PathLike

    from zarrvol.core.common import JSON, ChunkCoords
    from zarrvol.metadata.v2 import ArrayMetadata

DEFAULT_V2_SEPARATOR = "."


def parse_separator(data: JSON) -> str:
    if data is None:
        return DEFAULT_V2_SEPARATOR
    if not isinstance(data, str) or len(data) != 1:
        raise ValueError(f"Expected a single character separator. Got {data!r} instead.")
    return data


@dataclass(frozen=True, kw_only=True)
class V2ChunkKeyEncoding:
    """
    The Zarr V2 chunk key encoding: chunk-grid indices joined by the dimension separator,
    in (z, y, x) order.
    """

    name: ClassVar[Literal["v2"]] = "v2"
    separator: str = DEFAULT_V2_SEPARATOR

    def __init__(self, *, separator: str | None = DEFAULT_V2_SEPARATOR) -> None:
        object.__setattr__(self, "separator", parse_separator(separator))

    @classmethod
    def from_metadata(cls, metadata: ArrayMetadata) -> V2ChunkKeyEncoding:
        return cls(separator=metadata.dimension_separator or None)

    def decode_chunk_key(self, chunk_key: str) -> ChunkCoords:
        return parse_chunk_coords(map(int, chunk_key.split(self.separator)))

    def encode_chunk_key(self, chunk_coords: Iterable[int]) -> str:
        return self.separator.join(map(str, parse_chunk_coords(chunk_coords)))


def resolve_chunk_path(
    store_root: str | PathLike[str], chunk_coords: Iterable[int], metadata: ArrayMetadata
) -> str:
    """
    Build the path of the file holding a chunk: ``"{root}/{z}{sep}{y}{sep}{x}"``.

    The file is not checked for existence; a missing file surfaces when the chunk is read.
    With the ``"/"`` separator the chunk lives in nested directories under the root.
    """
    key = V2ChunkKeyEncoding.from_metadata(metadata).encode_chunk_key(chunk_coords)
    root = fspath(store_root)
    if root.endswith("/"):
        root = root[:-1]
    return f"{root}/{key}"
