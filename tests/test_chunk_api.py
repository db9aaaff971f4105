"""Tests for the chunk-based IO routines"""

from __future__ import annotations

import zlib
from dataclasses import replace
from typing import TYPE_CHECKING

import numpy as np
import pytest
from numcodecs import Blosc

from zarrvol.chunk import CHUNK_SHAPE, decode_chunk, get_chunk, read_chunk
from zarrvol.core.common import CHUNK_LEN, CHUNK_NBYTES
from zarrvol.errors import (
    ChunkDecodeError,
    ChunkReadError,
    ChunkShapeError,
    MetadataValidationError,
    UnsupportedCodecError,
    UnsupportedDtypeError,
)
from zarrvol.metadata.v2 import ArrayMetadata, CompressorMetadata

from .conftest import encode_chunk, random_chunk

if TYPE_CHECKING:
    from collections.abc import Callable

    from .conftest import LocalArray


def linear_chunk() -> np.ndarray:
    """A chunk whose decompressed bytes are 0, 1, 2, ... (mod 256)."""
    return (np.arange(CHUNK_NBYTES, dtype=np.uint32) % 256).astype(np.uint8)


class TestReadChunk:
    def test_row_major_reconstruction(self, local_array: LocalArray) -> None:
        path = local_array.write_raw((0, 0, 0), encode_chunk(linear_chunk()))
        chunk = read_chunk(path, local_array.metadata)

        assert chunk.shape == CHUNK_SHAPE
        assert chunk.dtype == np.uint8
        assert chunk[0, 0, 0] == 0
        assert chunk[0, 0, 1] == 1
        assert chunk[0, 1, 0] == CHUNK_LEN % 256
        assert chunk[1, 0, 0] == (CHUNK_LEN * CHUNK_LEN) % 256
        assert chunk[-1, -1, -1] == (CHUNK_NBYTES - 1) % 256
        z, y, x = 3, 77, 101
        assert chunk[z, y, x] == (z * CHUNK_LEN * CHUNK_LEN + y * CHUNK_LEN + x) % 256

    def test_chunk_is_owned_by_caller(self, local_array: LocalArray) -> None:
        path = local_array.write_chunk((0, 0, 0), random_chunk(0))
        chunk = read_chunk(path, local_array.metadata)
        assert chunk.flags.c_contiguous
        assert chunk.flags.writeable
        assert chunk.flags.owndata

    def test_fortran_order(self, make_array: Callable[..., LocalArray]) -> None:
        array = make_array(order="F")
        expected = random_chunk(1)
        path = array.write_raw((0, 0, 0), encode_chunk(np.asfortranarray(expected).ravel("K")))
        np.testing.assert_array_equal(read_chunk(path, array.metadata), expected)

    def test_autoshuffle_store(self, make_array: Callable[..., LocalArray]) -> None:
        compressor = Blosc(cname="zstd", clevel=5, shuffle=Blosc.AUTOSHUFFLE).get_config()
        assert compressor["shuffle"] == -1
        array = make_array(compressor=compressor)
        expected = random_chunk(11)
        path = array.write_chunk((0, 0, 0), expected)
        np.testing.assert_array_equal(read_chunk(path, array.metadata), expected)

    def test_missing_file(self, local_array: LocalArray) -> None:
        path = local_array.chunk_path((3, 3, 3))
        with pytest.raises(ChunkReadError, match="Failed to read chunk file") as exc_info:
            read_chunk(path, local_array.metadata)
        assert isinstance(exc_info.value, OSError)
        assert isinstance(exc_info.value.__cause__, FileNotFoundError)

    def test_directory_is_unreadable(self, local_array: LocalArray) -> None:
        with pytest.raises(ChunkReadError):
            read_chunk(local_array.root, local_array.metadata)

    @pytest.mark.parametrize("size", [0, 8, 15])
    def test_too_few_bytes(self, local_array: LocalArray, size: int) -> None:
        path = local_array.write_raw((0, 0, 0), bytes(size))
        with pytest.raises(ChunkDecodeError):
            read_chunk(path, local_array.metadata)

    def test_truncated_stream(self, local_array: LocalArray) -> None:
        payload = encode_chunk(random_chunk(2))
        path = local_array.write_raw((0, 0, 0), payload[: len(payload) - 100])
        with pytest.raises(ChunkDecodeError):
            read_chunk(path, local_array.metadata)

    def test_decompresses_to_fewer_bytes(self, local_array: LocalArray) -> None:
        path = local_array.write_raw((0, 0, 0), encode_chunk(np.zeros(CHUNK_NBYTES // 2)))
        with pytest.raises(ChunkDecodeError, match="expected"):
            read_chunk(path, local_array.metadata)

    def test_unsupported_dtype(self, make_array: Callable[..., LocalArray]) -> None:
        array = make_array(dtype="<f4")
        path = array.write_chunk((0, 0, 0), random_chunk(3))
        with pytest.raises(UnsupportedDtypeError, match="Unsupported dtype '<f4'"):
            read_chunk(path, array.metadata)

    def test_unsupported_dtype_checked_before_reading(
        self, make_array: Callable[..., LocalArray]
    ) -> None:
        array = make_array(dtype="<u2")
        with pytest.raises(UnsupportedDtypeError):
            read_chunk(array.chunk_path((0, 0, 0)), array.metadata)

    def test_chunk_shape_mismatch(self, make_array: Callable[..., LocalArray]) -> None:
        array = make_array(chunks=[64, 64, 64])
        with pytest.raises(ChunkShapeError, match="Invalid value for 'chunks'"):
            read_chunk(array.chunk_path((0, 0, 0)), array.metadata)

    def test_filters_are_rejected(self, make_array: Callable[..., LocalArray]) -> None:
        array = make_array(filters=[{"id": "delta", "dtype": "|u1"}])
        path = array.write_chunk((0, 0, 0), random_chunk(4))
        with pytest.raises(UnsupportedCodecError, match="Filters are not supported"):
            read_chunk(path, array.metadata)

    def test_empty_filter_list(self, make_array: Callable[..., LocalArray]) -> None:
        array = make_array(filters=[])
        expected = random_chunk(5)
        path = array.write_chunk((0, 0, 0), expected)
        np.testing.assert_array_equal(read_chunk(path, array.metadata), expected)

    def test_unloaded_metadata(self, local_array: LocalArray) -> None:
        path = local_array.write_chunk((0, 0, 0), random_chunk(6))
        with pytest.raises(MetadataValidationError, match="not loaded"):
            read_chunk(path, ArrayMetadata.empty())


class TestDecodeChunk:
    @staticmethod
    def test_uncompressed(make_array: Callable[..., LocalArray]) -> None:
        metadata = make_array(compressor=None).metadata
        expected = random_chunk(7)
        np.testing.assert_array_equal(decode_chunk(expected.tobytes(), metadata), expected)

    @staticmethod
    def test_uncompressed_wrong_size(make_array: Callable[..., LocalArray]) -> None:
        metadata = make_array(compressor=None).metadata
        with pytest.raises(ChunkDecodeError, match="Uncompressed chunk has 10 bytes"):
            decode_chunk(bytes(10), metadata)

    @staticmethod
    def test_numcodecs_compressor(local_array: LocalArray) -> None:
        metadata = replace(local_array.metadata, compressor=CompressorMetadata(id="zlib"))
        expected = random_chunk(8)
        decoded = decode_chunk(zlib.compress(expected.tobytes()), metadata)
        np.testing.assert_array_equal(decoded, expected)


class TestGetChunk:
    @staticmethod
    def test_default_separator(local_array: LocalArray) -> None:
        expected = random_chunk(9)
        local_array.write_chunk((1, 2, 3), expected)
        assert (local_array.root / "1.2.3").exists()
        np.testing.assert_array_equal(
            get_chunk(local_array.root, local_array.metadata, (1, 2, 3)), expected
        )

    @staticmethod
    def test_nested_separator(make_array: Callable[..., LocalArray]) -> None:
        array = make_array(dimension_separator="/")
        expected = random_chunk(10)
        array.write_chunk((1, 2, 3), expected)
        assert (array.root / "1" / "2" / "3").exists()
        np.testing.assert_array_equal(get_chunk(array.root, array.metadata, (1, 2, 3)), expected)

    @staticmethod
    def test_missing(local_array: LocalArray) -> None:
        with pytest.raises(ChunkReadError, match=r"0\.0\.1"):
            get_chunk(local_array.root, local_array.metadata, (0, 0, 1))
