"""Argument specifications: what can be bound, and how."""

from __future__ import annotations

import collections.abc
import dataclasses
from functools import cached_property
from typing import Any, Callable, Dict, Mapping, Optional, Union

from . import _resolver, _strings
from ._singleton import HANDLER_LOST, HandlerLostType

# Called with keyword arguments: arg=, value=, args=, opt=.
GetoptHook = Callable[..., Any]

# Called with the argument map under construction and the raw option value.
AliasCode = Callable[[Dict[str, Any], Any], Any]


class InvalidMetadataError(Exception):
    """Exception raised when argument metadata is malformed."""


@dataclasses.dataclass(frozen=True)
class AliasSpec:
    """An alternate option name for an argument.

    `code`, when set, replaces the default handler. It is either a callable, or the
    :data:`HANDLER_LOST` marker when the callable didn't survive transport."""

    schema: Optional[_resolver.Schema] = None
    code: Union[None, AliasCode, HandlerLostType] = None
    summary: Optional[str] = None

    @property
    def handler_lost(self) -> bool:
        return self.code is HANDLER_LOST

    @staticmethod
    def from_metadata(raw: Union[AliasSpec, Mapping[str, Any]]) -> AliasSpec:
        if isinstance(raw, AliasSpec):
            alias = raw
        elif isinstance(raw, collections.abc.Mapping):
            alias = AliasSpec(
                schema=raw.get("schema"),
                code=raw.get("code"),
                summary=raw.get("summary"),
            )
        else:
            raise InvalidMetadataError(f"Invalid alias specification: {raw!r}")

        alias = _transform_normalize_alias_schema(alias)
        alias = _transform_mark_lost_code(alias)
        return alias


def _transform_normalize_alias_schema(alias: AliasSpec) -> AliasSpec:
    if alias.schema is None:
        return alias
    return dataclasses.replace(alias, schema=_resolver.normalize_schema(alias.schema))


def _transform_mark_lost_code(alias: AliasSpec) -> AliasSpec:
    """Code that arrives as anything but a callable (eg the string 'CODE' after a JSON
    round-trip) can't be run."""
    if alias.code is None or alias.code is HANDLER_LOST or callable(alias.code):
        return alias
    return dataclasses.replace(alias, code=HANDLER_LOST)


@dataclasses.dataclass(frozen=True)
class ArgumentSpec:
    """Declarative description of one bindable argument."""

    name: str
    schema: _resolver.Schema = dataclasses.field(
        default_factory=lambda: _resolver.Schema("any")
    )
    required: bool = False
    pos: Optional[int] = None
    greedy: bool = False
    aliases: Mapping[str, AliasSpec] = dataclasses.field(default_factory=dict)
    on_getopt: Optional[GetoptHook] = None
    summary: Optional[str] = None

    @cached_property
    def kind(self) -> _resolver.ArgumentKind:
        """How values are decoded. Computed once per spec."""
        return _resolver.classify(self.schema)

    @property
    def option_name(self) -> str:
        return _strings.option_name_from_arg(self.name)

    @staticmethod
    def from_metadata(
        name: str, raw: Union[ArgumentSpec, Mapping[str, Any], None]
    ) -> ArgumentSpec:
        """Build a normalized spec from either an existing spec or a Rinci-style
        dictionary. The input is never mutated; a normalized copy is returned."""
        if isinstance(raw, ArgumentSpec):
            arg = dataclasses.replace(raw, name=name)
        elif raw is None or isinstance(raw, collections.abc.Mapping):
            raw = {} if raw is None else raw
            arg = ArgumentSpec(
                name=name,
                schema=raw.get("schema"),  # type: ignore
                required=bool(raw.get("req", False)),
                pos=raw.get("pos"),
                greedy=bool(raw.get("greedy", False)),
                aliases=dict(raw.get("cmdline_aliases") or {}),
                on_getopt=raw.get("cmdline_on_getopt"),
                summary=raw.get("summary"),
            )
        else:
            raise InvalidMetadataError(
                f"Invalid specification for argument '{name}': {raw!r}"
            )

        arg = _transform_normalize_schema(arg)
        arg = _transform_check_position(arg)
        arg = _transform_normalize_aliases(arg)
        return arg


def _transform_normalize_schema(arg: ArgumentSpec) -> ArgumentSpec:
    """Normalize the schema, including the element schema of arrays."""
    return dataclasses.replace(arg, schema=_resolver.normalize_schema(arg.schema))


def _transform_check_position(arg: ArgumentSpec) -> ArgumentSpec:
    if arg.pos is None:
        return arg
    if isinstance(arg.pos, bool) or not isinstance(arg.pos, int) or arg.pos < 0:
        raise InvalidMetadataError(
            f"Position of argument '{arg.name}' must be a non-negative integer,"
            f" got {arg.pos!r}"
        )
    return arg


def _transform_normalize_aliases(arg: ArgumentSpec) -> ArgumentSpec:
    return dataclasses.replace(
        arg,
        aliases={
            alias: AliasSpec.from_metadata(alias_spec)
            for alias, alias_spec in arg.aliases.items()
        },
    )


def specs_from_metadata(
    raw_args: Mapping[str, Union[ArgumentSpec, Mapping[str, Any], None]]
) -> Dict[str, ArgumentSpec]:
    """Normalize every argument in the `args` section of function metadata. Iteration
    order is preserved."""
    return {
        name: ArgumentSpec.from_metadata(name, raw) for name, raw in raw_args.items()
    }
