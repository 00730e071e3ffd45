from typing import Type, TypeVar

from typing_extensions import Annotated

from .. import _singleton


class Marker(_singleton.Singleton):
    pass


def _make_marker(description: str) -> Marker:
    class _InnerMarker(Marker):
        def __repr__(self):
            return description

    return _InnerMarker()


T = TypeVar("T", bound=Type)

POSITIONAL = _make_marker("Positional")
Positional = Annotated[T, POSITIONAL]
"""A type `T` can be annotated as `Positional[T]` if we want to bind it from a positional
argument. Positional indexes are assigned in declaration order."""

GREEDY = _make_marker("Greedy")
Greedy = Annotated[T, POSITIONAL, GREEDY]
"""A sequence type `T` can be annotated as `Greedy[T]` to bind it positionally, absorbing
every remaining token from its index onward."""

FLAG = _make_marker("Flag")
Flag = Annotated[T, FLAG]
"""A boolean can be annotated as `Flag[bool]` to make it an exact flag: `--verbose` is
accepted, but no `--no-verbose` counterpart is generated."""
