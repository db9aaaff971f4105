from __future__ import annotations

from zarrvol.metadata.v2 import ArrayMetadata, CompressorMetadata, parse_zarray, read_zarray

__all__ = ["ArrayMetadata", "CompressorMetadata", "parse_zarray", "read_zarray"]
