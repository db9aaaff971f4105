from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any

import numpy as np
import pytest
from numcodecs import Blosc

from zarrvol.core.common import CHUNK_LEN
from zarrvol.metadata.v2 import parse_zarray

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from zarrvol.metadata.v2 import ArrayMetadata

BLOSC_COMPRESSOR = {"blocksize": 0, "clevel": 5, "cname": "lz4", "id": "blosc", "shuffle": 1}


def zarray_document(**overrides: Any) -> dict[str, Any]:
    """A `.zarray` document for a 4x4x4 chunk grid of unsigned bytes."""
    doc: dict[str, Any] = {
        "chunks": [CHUNK_LEN, CHUNK_LEN, CHUNK_LEN],
        "compressor": BLOSC_COMPRESSOR,
        "dtype": "|u1",
        "fill_value": 0,
        "filters": None,
        "order": "C",
        "shape": [4 * CHUNK_LEN, 4 * CHUNK_LEN, 4 * CHUNK_LEN],
        "zarr_format": 2,
    }
    doc.update(overrides)
    return doc


def encode_chunk(data: np.ndarray, compressor: dict[str, Any] | None = BLOSC_COMPRESSOR) -> bytes:
    raw = np.ascontiguousarray(data, dtype=np.uint8).tobytes()
    if compressor is None:
        return raw
    codec = Blosc(
        cname=compressor["cname"], clevel=compressor["clevel"], shuffle=compressor["shuffle"]
    )
    return bytes(codec.encode(raw))


def random_chunk(seed: int) -> np.ndarray:
    return np.random.default_rng(seed).integers(
        0, 256, size=(CHUNK_LEN, CHUNK_LEN, CHUNK_LEN), dtype=np.uint8
    )


class LocalArray:
    """A Zarr v2 array written to a temporary directory."""

    def __init__(self, root: Path, document: dict[str, Any]) -> None:
        self.root = root
        self.document = document
        root.mkdir(parents=True, exist_ok=True)
        (root / ".zarray").write_text(json.dumps(document))

    @property
    def metadata(self) -> ArrayMetadata:
        return parse_zarray((self.root / ".zarray").read_text())

    @property
    def separator(self) -> str:
        return self.document.get("dimension_separator") or "."

    def chunk_path(self, coords: Iterable[int]) -> Path:
        return self.root.joinpath(self.separator.join(map(str, coords)))

    def write_chunk(self, coords: Iterable[int], data: np.ndarray) -> Path:
        return self.write_raw(coords, encode_chunk(data, self.document.get("compressor")))

    def write_raw(self, coords: Iterable[int], payload: bytes) -> Path:
        path = self.chunk_path(coords)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(payload)
        return path


@pytest.fixture
def make_array(tmp_path: Path) -> Callable[..., LocalArray]:
    def _make_array(name: str = "data.zarr", **overrides: Any) -> LocalArray:
        return LocalArray(tmp_path / name, zarray_document(**overrides))

    return _make_array


@pytest.fixture
def local_array(make_array: Callable[..., LocalArray]) -> LocalArray:
    return make_array()
