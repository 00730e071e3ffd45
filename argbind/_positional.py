"""Binding of leftover (non-option) tokens to arguments with a declared position."""

from __future__ import annotations

import dataclasses
from typing import Any, Dict, List, Mapping, Sequence

from . import _arguments


@dataclasses.dataclass(frozen=True)
class PositionalResult:
    code: int
    message: str
    args: Dict[str, Any] = dataclasses.field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.code == 200


def args_from_array(
    array: Sequence[str],
    specs: Mapping[str, _arguments.ArgumentSpec],
    allow_extra_elems: bool = False,
) -> PositionalResult:
    """Assign tokens to arguments by position.

    A greedy argument takes every token from its position onward, as a list. Arguments
    whose position is past the end of `array` are left unset. `array` is not modified.
    """
    remaining: List[str] = list(array)
    args: Dict[str, Any] = {}

    # Highest positions first, so removing tokens doesn't shift the ones still to be
    # assigned.
    positional = sorted(
        (spec for spec in specs.values() if spec.pos is not None),
        key=lambda spec: spec.pos,  # type: ignore
        reverse=True,
    )
    for spec in positional:
        assert spec.pos is not None
        if spec.pos >= len(remaining):
            continue
        if spec.greedy:
            args[spec.name] = remaining[spec.pos :]
            del remaining[spec.pos :]
        else:
            args[spec.name] = remaining.pop(spec.pos)

    if len(remaining) > 0 and not allow_extra_elems:
        return PositionalResult(
            code=400,
            message="There are extra, unassigned elements in array: ["
            + ", ".join(remaining)
            + "]",
        )
    return PositionalResult(code=200, message="OK", args=args)
