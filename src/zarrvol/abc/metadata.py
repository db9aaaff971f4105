from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, fields
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Self

    from zarrvol.core.common import JSON

__all__ = ["Metadata"]


@dataclass(frozen=True)
class Metadata:
    def to_dict(self) -> dict[str, JSON]:
        """
        Recursively serialize this model to a dictionary.
        This method inspects the fields of self and calls `x.to_dict()` for any fields that
        are instances of `Metadata`. Tuples are emitted as lists so the result can be written
        back out as a JSON document. Fields listed in ``_skip_fields`` are left out.
        """
        skip = getattr(self, "_skip_fields", ())
        out_dict: dict[str, JSON] = {}
        for field in fields(self):
            key = field.name
            if key in skip:
                continue
            value = getattr(self, key)
            if isinstance(value, Metadata):
                out_dict[key] = value.to_dict()
            elif isinstance(value, str):
                out_dict[key] = value
            elif isinstance(value, Sequence):
                out_dict[key] = [v.to_dict() if isinstance(v, Metadata) else v for v in value]
            else:
                out_dict[key] = value

        return out_dict

    @classmethod
    def from_dict(cls, data: dict[str, JSON]) -> Self:
        """
        Create an instance of the model from a dictionary
        """

        return cls(**data)
