from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, ClassVar

from zarrvol.abc.metadata import Metadata
from zarrvol.core.chunk_key_encodings import DEFAULT_V2_SEPARATOR
from zarrvol.core.common import (
    ZARRAY_JSON,
    ceildiv,
    parse_char,
    parse_int_triple,
    parse_int_value,
    parse_text,
)
from zarrvol.core.config import config, parse_text_field_limit
from zarrvol.errors import ArrayNotFoundError

if TYPE_CHECKING:
    from os import PathLike

    from zarrvol.core.common import JSON

__all__ = ["ArrayMetadata", "CompressorMetadata", "parse_zarray", "read_zarray"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class CompressorMetadata(Metadata):
    """
    The ``compressor`` entry of a Zarr v2 array. Every key is optional in the document;
    missing numbers are 0 and missing strings are empty.
    """

    blocksize: int = 0
    clevel: int = 0
    cname: str = ""
    id: str = ""
    shuffle: int = 0

    @classmethod
    def from_json(
        cls, data: dict[str, Any], *, text_limit: int | None = None
    ) -> CompressorMetadata:
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            if key in ("blocksize", "clevel", "shuffle"):
                parsed_int = parse_int_value(value)
                if parsed_int is not None:
                    kwargs[key] = parsed_int
            elif key in ("cname", "id"):
                parsed_str = parse_text(value, text_limit)
                if parsed_str is not None:
                    kwargs[key] = parsed_str
        return cls(**kwargs)


@dataclass(frozen=True, kw_only=True)
class ArrayMetadata(Metadata):
    """
    Metadata for a Zarr version 2 array, as read from its ``.zarray`` document.

    Only the keys this package understands are kept. A key missing from the document leaves
    its field at the zero value. ``loaded`` is ``False`` only for the sentinel returned when
    the document could not be parsed as a JSON object; check it before trusting any other
    field.
    """

    _skip_fields: ClassVar[tuple[str, ...]] = ("loaded",)

    chunks: tuple[int, int, int] = (0, 0, 0)
    compressor: CompressorMetadata | None = None
    dimension_separator: str = DEFAULT_V2_SEPARATOR
    dtype: str = ""
    fill_value: int = 0
    filters: JSON = None
    order: str = ""
    shape: tuple[int, int, int] = (0, 0, 0)
    zarr_format: int = 0
    loaded: bool = True

    @classmethod
    def empty(cls) -> ArrayMetadata:
        """The "no metadata" sentinel."""
        return cls(loaded=False)

    @property
    def chunk_shape(self) -> tuple[int, int, int]:
        return self.chunks

    @property
    def array_shape(self) -> tuple[int, int, int]:
        return self.shape

    @property
    def format_version(self) -> int:
        return self.zarr_format

    @property
    def chunk_grid_shape(self) -> tuple[int, int, int]:
        """Number of chunks along (z, y, x) needed to cover the array."""
        z, y, x = (ceildiv(s, c) for s, c in zip(self.shape, self.chunks, strict=True))
        return (z, y, x)

    @property
    def has_filters(self) -> bool:
        return self.filters not in (None, [])

    def describe(self) -> list[str]:
        """
        Summary lines for display, one per fact. Empty when no metadata is loaded.
        """
        if not self.loaded or self.zarr_format <= 0:
            return []
        lines = [
            f"Format: {self.zarr_format}",
            f"Shape: [{', '.join(map(str, self.shape))}]",
            f"Chunks: [{', '.join(map(str, self.chunks))}]",
            f"Data Type: {self.dtype}",
        ]
        if self.compressor is not None:
            c = self.compressor
            lines.append(
                f"Compressor: {c.id} (cname={c.cname}, clevel={c.clevel}, shuffle={c.shuffle})"
            )
        return lines

    @classmethod
    def from_dict(cls, data: dict[str, JSON]) -> ArrayMetadata:
        return parse_metadata_dict(data)


def parse_metadata_dict(
    data: dict[str, Any], *, text_limit: int | None = None
) -> ArrayMetadata:
    """
    Build an ``ArrayMetadata`` from the top-level object of a ``.zarray`` document.

    Each key is visited once. Unknown keys are ignored and values of the wrong JSON type leave
    the field at its zero value.
    """
    kwargs: dict[str, Any] = {}
    for key, value in data.items():
        match key:
            case "chunks" | "shape":
                kwargs[key] = parse_int_triple(value)
            case "compressor":
                if isinstance(value, dict):
                    kwargs["compressor"] = CompressorMetadata.from_json(
                        value, text_limit=text_limit
                    )
            case "dimension_separator":
                separator = parse_char(value)
                if separator is not None:
                    kwargs["dimension_separator"] = separator
            case "dtype":
                dtype = parse_text(value, text_limit)
                if dtype is not None:
                    kwargs["dtype"] = dtype
            case "fill_value" | "zarr_format":
                number = parse_int_value(value)
                if number is not None:
                    kwargs[key] = number
            case "filters":
                # kept as-is; a non-empty filter chain is refused when decoding
                kwargs["filters"] = value
            case "order":
                order = parse_char(value)
                if order is not None:
                    kwargs["order"] = order
    return ArrayMetadata(**kwargs)


def parse_zarray(data: str | bytes) -> ArrayMetadata:
    """
    Parse the text of a ``.zarray`` document.

    This never raises on bad input. If the text isn't JSON, or isn't a JSON object, the
    unloaded sentinel (``ArrayMetadata.empty()``) is returned.

    Parameters
    ----------
    data : str or bytes
        The document text. Bytes are decoded as UTF-8.

    Returns
    -------
    ArrayMetadata
    """
    text_limit = parse_text_field_limit(config.get("metadata.text_field_limit"))
    try:
        if isinstance(data, bytes):
            data = data.decode("utf-8")
        document = json.loads(data)
    except (UnicodeDecodeError, ValueError, RecursionError) as e:
        logger.warning("Failed to parse array metadata: %s", e)
        return ArrayMetadata.empty()

    if not isinstance(document, dict):
        logger.warning(
            "Array metadata root is not an object, got %s instead", type(document).__name__
        )
        return ArrayMetadata.empty()

    return parse_metadata_dict(document, text_limit=text_limit)


def read_zarray(store_root: str | PathLike[str]) -> ArrayMetadata:
    """
    Read and parse ``<store_root>/.zarray``.

    Raises
    ------
    ArrayNotFoundError
        If the document is missing or cannot be read.
    """
    path = Path(store_root) / ZARRAY_JSON
    try:
        raw = path.read_bytes()
    except OSError as e:
        raise ArrayNotFoundError(str(store_root), ZARRAY_JSON) from e
    logger.debug("Read %d bytes of array metadata from %s", len(raw), path)
    return parse_zarray(raw)
