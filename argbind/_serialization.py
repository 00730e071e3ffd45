"""Decoders for structured values passed as strings on the command line.

Two formats are supported, and tried in a fixed order wherever a structured value is
expected: JSON first, then YAML. A decoder never raises on malformed input; it returns a
failed :class:`DecodeResult` and leaves it to the caller to try the next decoder or to
report an error.
"""

from __future__ import annotations

import collections.abc
import dataclasses
import functools
import json
from typing import Any, Dict, Optional, Tuple

import yaml
from typing_extensions import Protocol


@dataclasses.dataclass(frozen=True)
class DecodeResult:
    ok: bool
    value: Any = None
    error: Optional[str] = None


class Decoder(Protocol):
    name: str

    def decode(self, text: str) -> DecodeResult:
        ...


def clean_decoded(value: Any) -> Any:
    """Replace decoder-specific container objects with plain Python values, so
    downstream validation only ever sees builtin types.

    `bool` cannot be subclassed, so booleans are already plain; mappings (eg from an
    `object_pairs_hook`) become dicts and tuples become lists, recursively."""
    if isinstance(value, (list, tuple)):
        return [clean_decoded(v) for v in value]
    elif isinstance(value, collections.abc.Mapping):
        return {k: clean_decoded(v) for k, v in value.items()}
    return value


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-finite number {name} is not valid JSON")


class JsonDecoder:
    name = "json"

    def __init__(self, decoder: Optional[json.JSONDecoder] = None) -> None:
        # Constructed once, then reused for every decode.
        self._decoder = (
            json.JSONDecoder(parse_constant=_reject_constant)
            if decoder is None
            else decoder
        )

    def decode(self, text: str) -> DecodeResult:
        try:
            value = self._decoder.decode(text)
        except (ValueError, RecursionError) as e:
            return DecodeResult(ok=False, error=str(e))
        return DecodeResult(ok=True, value=clean_decoded(value))


def _make_loader() -> type:
    class ImplicitTypingLoader(yaml.SafeLoader):
        pass

    # Keep timestamps as plain strings. Everything else uses YAML's implicit typing:
    # `1` => int, `true` => bool, `~` => None.
    ImplicitTypingLoader.add_constructor(
        "tag:yaml.org,2002:timestamp",
        lambda loader, node: loader.construct_scalar(node),
    )
    return ImplicitTypingLoader


class YamlDecoder:
    name = "yaml"

    def __init__(self) -> None:
        self._loader = _make_loader()

    def decode(self, text: str) -> DecodeResult:
        try:
            value = yaml.load(text, Loader=self._loader)
        except (yaml.YAMLError, RecursionError) as e:
            return DecodeResult(ok=False, error=str(e))
        return DecodeResult(ok=True, value=value)


class DecoderRegistry:
    """Ordered collection of decoders. Construct once and reuse; decoders are immutable
    after construction."""

    def __init__(self, *decoders: Decoder) -> None:
        if len(decoders) == 0:
            decoders = (JsonDecoder(), YamlDecoder())
        self._decoders: Tuple[Decoder, ...] = decoders
        self._decoder_from_name: Dict[str, Decoder] = {d.name: d for d in decoders}

    @staticmethod
    @functools.lru_cache(maxsize=None)
    def default() -> DecoderRegistry:
        """Process-wide registry, built on first use."""
        return DecoderRegistry()

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(d.name for d in self._decoders)

    def get(self, name: str) -> Decoder:
        return self._decoder_from_name[name]

    def decode(self, text: str) -> DecodeResult:
        """Try each decoder in order. The first success wins."""
        errors = []
        for decoder in self._decoders:
            result = decoder.decode(text)
            if result.ok:
                return result
            errors.append(f"{decoder.name}: {result.error}")
        return DecodeResult(ok=False, error="; ".join(errors))
