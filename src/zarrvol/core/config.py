from __future__ import annotations

from donfig import Config

config = Config(
    "zarrvol",
    defaults=[
        {
            "metadata": {"text_field_limit": 31},
            "volume": {"max_workers": 1},
            "codecs": {"blosc": {"use_threads": False}},
        }
    ],
)


def parse_text_field_limit(data: object) -> int | None:
    if data is None:
        return None
    if isinstance(data, int) and not isinstance(data, bool) and data > 0:
        return data
    msg = f"Expected a positive integer or None for the text field limit, got {data!r} instead."
    raise ValueError(msg)


def parse_max_workers(data: object) -> int:
    if data is None:
        return 1
    if isinstance(data, int) and not isinstance(data, bool) and data > 0:
        return data
    msg = f"Expected a positive integer or None for max_workers, got {data!r} instead."
    raise ValueError(msg)
