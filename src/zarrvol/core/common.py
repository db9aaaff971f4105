from __future__ import annotations

import functools
import math
import operator
from collections.abc import Iterable, Mapping, Sequence
from numbers import Integral
from typing import Any, Final

ZARRAY_JSON: Final = ".zarray"

# Edge length of every chunk along z, y and x.
CHUNK_LEN: Final = 128
CHUNK_NBYTES: Final = CHUNK_LEN**3

# The only sample encoding that can be decoded.
UINT8_DTYPE: Final = "|u1"

JSON = str | int | float | Mapping[str, "JSON"] | Sequence["JSON"] | None
ChunkCoords = tuple[int, int, int]


def product(tup: Iterable[int]) -> int:
    return functools.reduce(operator.mul, tup, 1)


def ceildiv(a: int, b: int) -> int:
    if b == 0:
        return 0
    return math.ceil(a / b)


def parse_int_value(data: Any) -> int | None:
    """
    Best-effort conversion of a JSON number to an int. Fractions are truncated toward zero.
    Returns ``None`` for anything that isn't a finite number; JSON booleans are not numbers.
    """
    if isinstance(data, bool):
        return None
    if isinstance(data, int):
        return data
    if isinstance(data, float) and math.isfinite(data):
        return int(data)
    return None


def parse_int_triple(data: Any) -> tuple[int, int, int]:
    """
    Read up to three numbers from a JSON array. Missing or non-numeric entries are 0 and
    entries past the third are ignored.
    """
    out = [0, 0, 0]
    if isinstance(data, list):
        for i, item in enumerate(data[:3]):
            value = parse_int_value(item)
            if value is not None:
                out[i] = value
    return (out[0], out[1], out[2])


def parse_char(data: Any) -> str | None:
    """The first character of a non-empty JSON string, otherwise ``None``."""
    if isinstance(data, str) and data:
        return data[0]
    return None


def parse_text(data: Any, limit: int | None) -> str | None:
    if not isinstance(data, str):
        return None
    if limit is not None:
        return data[:limit]
    return data


def parse_chunk_coords(data: Iterable[int]) -> ChunkCoords:
    """
    Validate a chunk-grid coordinate: exactly three non-negative integers in (z, y, x) order.
    """
    coords = tuple(data)
    if len(coords) != 3:
        raise ValueError(f"Expected 3 chunk coordinates (z, y, x). Got {coords} instead.")
    for c in coords:
        if isinstance(c, bool) or not isinstance(c, Integral):
            raise TypeError(f"Expected integer chunk coordinates. Got {coords} instead.")
        if c < 0:
            raise ValueError(f"Chunk coordinates must be non-negative. Got {coords} instead.")
    return (int(coords[0]), int(coords[1]), int(coords[2]))


def parse_extent(data: Iterable[int]) -> tuple[int, int, int]:
    extent = tuple(data)
    if len(extent) != 3:
        raise ValueError(f"Expected an extent of 3 chunk counts (z, y, x). Got {extent} instead.")
    if any(isinstance(e, bool) or not isinstance(e, Integral) or e < 1 for e in extent):
        raise ValueError(f"Extent must be 3 positive integers. Got {extent} instead.")
    return (int(extent[0]), int(extent[1]), int(extent[2]))
