"""Translation of argument specifications into an option grammar.

The grammar is plain data: an ordered list of :class:`OptionGrammarEntry` objects, each
holding option names, an arity, and a handler closure that writes into the argument map
under construction. Handlers are invoked by an option matcher in the order tokens are
encountered on the command line."""

from __future__ import annotations

import dataclasses
import enum
import logging
import re
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    List,
    Mapping,
    Sequence,
    Set,
    Tuple,
    Union,
)

from . import _arguments, _resolver, _results, _serialization, _strings

log = logging.getLogger(__name__)

# Called with the name of the matched option (without dashes) and its value: the raw
# string for options that take a value, `True`/`False` for flags.
Handler = Callable[[str, Any], Any]


class EntryOrigin(enum.Enum):
    PRE = "pre"
    DERIVED = "derived"
    POST = "post"


@dataclasses.dataclass(frozen=True)
class OptionGrammarEntry:
    """One option in the grammar."""

    names: Tuple[str, ...]  # Bare names, eg ('verbose', 'v'). The first is canonical.
    handler: Handler
    takes_value: bool = False
    negatable: bool = False
    origin: EntryOrigin = EntryOrigin.DERIVED

    @property
    def name(self) -> str:
        return self.names[0]

    def option_strings(self) -> List[str]:
        """Tokens that set this option, eg ['--verbose', '-v']."""
        out: List[str] = []
        for name in self.names:
            out.extend(_strings.option_strings_from_name(name))
        return out

    def negated_option_strings(self) -> List[str]:
        """Tokens that unset a negatable flag, eg ['--no-verbose', '--noverbose']."""
        if not self.negatable:
            return []
        out: List[str] = []
        for name in self.names:
            if len(name) > 1:
                out.extend(_strings.negated_option_strings(name))
        return out


_option_spec_pattern = re.compile(r"\A([\w?][\w?-]*(?:\|[\w?][\w?-]*)*)(!|=[sif])?\Z")


def parse_option_spec(
    spec: str, handler: Handler, origin: EntryOrigin = EntryOrigin.PRE
) -> OptionGrammarEntry:
    """Build a grammar entry from a Getopt-style spec string.

    'help|h|?' => flag with three names
    'color!'   => negatable flag (--color, --no-color)
    'output=s' => option taking one value
    """
    match = _option_spec_pattern.match(spec)
    if match is None:
        raise ValueError(f"Unsupported option specification: {spec!r}")
    names, suffix = match.groups()
    return OptionGrammarEntry(
        names=tuple(names.split("|")),
        handler=handler,
        takes_value=suffix is not None and suffix.startswith("="),
        negatable=suffix == "!",
        origin=origin,
    )


ExtraGrammar = Iterable[Union[OptionGrammarEntry, Tuple[str, Handler]]]


def _coerce_entries(
    entries: ExtraGrammar, origin: EntryOrigin
) -> List[OptionGrammarEntry]:
    out = []
    for entry in entries:
        if isinstance(entry, OptionGrammarEntry):
            out.append(dataclasses.replace(entry, origin=origin))
        else:
            spec, handler = entry
            out.append(parse_option_spec(spec, handler, origin=origin))
    return out


def _arity(name: str, schema: _resolver.Schema) -> Tuple[bool, bool]:
    """Returns (takes_value, negatable). Booleans are flags; single-letter and exact
    flags never get a negated form."""
    if schema.kind == "bool":
        return False, len(name) > 1 and not schema.is_exact_flag
    return True, False


def _make_default_handler(
    arg: _arguments.ArgumentSpec,
    args: Dict[str, Any],
    decoders: _serialization.DecoderRegistry,
) -> Handler:
    kind = arg.kind

    def handler(option_name: str, raw: Any) -> None:
        value: Any
        if kind is _resolver.ArgumentKind.SCALAR_LIST:
            value = raw
            args.setdefault(arg.name, []).append(value)
        elif kind is _resolver.ArgumentKind.SCALAR or not isinstance(raw, str):
            value = raw
            args[arg.name] = value
        else:
            result = decoders.decode(raw)
            if not result.ok:
                raise _results.invalid_structured_value(
                    f"Invalid structured value in argument '{arg.name}'"
                    f" ({result.error})"
                )
            value = result.value
            args[arg.name] = value

        if arg.on_getopt is not None:
            arg.on_getopt(arg=arg.name, value=value, args=args, opt=option_name)

    return handler


def _make_format_handler(
    arg: _arguments.ArgumentSpec,
    args: Dict[str, Any],
    decoder: _serialization.Decoder,
    set_by_json: Set[str],
) -> Handler:
    """Handler for --NAME-json and --NAME-yaml. Exactly one decoder, no fallback. If both
    are passed for the same argument, the JSON value wins."""

    def handler(option_name: str, raw: str) -> None:
        result = decoder.decode(raw)
        if not result.ok:
            raise _results.invalid_structured_value(
                f"Invalid {decoder.name.upper()} in option --{option_name}: {raw}:"
                f" {result.error}"
            )
        if decoder.name == "json":
            set_by_json.add(arg.name)
        elif arg.name in set_by_json:
            return
        args[arg.name] = result.value

    return handler


def _handler_lost_error(
    arg: _arguments.ArgumentSpec, alias_name: str
) -> _results.BindingError:
    return _results.BindingError(
        _results.BindingResult.failure(
            502,
            _results.ErrorCode.ALIAS_HANDLER_LOST_IN_TRANSPORT,
            f"Handler for alias '{alias_name}' of argument '{arg.name}' was lost in"
            " transport: its code got converted into a non-callable, probably"
            " because of JSON transport",
        )
    )


def _make_lost_handler(arg: _arguments.ArgumentSpec, alias_name: str) -> Handler:
    def handler(option_name: str, value: Any) -> None:
        raise _handler_lost_error(arg, alias_name)

    return handler


def _make_alias_code_handler(
    code: _arguments.AliasCode, args: Dict[str, Any]
) -> Handler:
    def handler(option_name: str, value: Any) -> None:
        code(args, value)

    return handler


def _alias_entries(
    arg: _arguments.ArgumentSpec,
    args: Dict[str, Any],
    default_handler: Handler,
    argv: Sequence[str],
) -> List[OptionGrammarEntry]:
    entries = []
    for alias_name, alias in arg.aliases.items():
        schema = alias.schema if alias.schema is not None else arg.schema
        takes_value, negatable = _arity(alias_name, schema)

        if alias.handler_lost:
            # Fail early if it's mentioned. The entry still catches forms that can't
            # be spotted by scanning argv, eg bundled flags.
            if _strings.mentions_option(argv, alias_name):
                raise _handler_lost_error(arg, alias_name)
            entries.append(
                OptionGrammarEntry(
                    names=(alias_name,),
                    handler=_make_lost_handler(arg, alias_name),
                    takes_value=takes_value,
                )
            )
        elif callable(alias.code):
            # Boolean aliases with code don't get a negated form.
            entries.append(
                OptionGrammarEntry(
                    names=(alias_name,),
                    handler=_make_alias_code_handler(alias.code, args),
                    takes_value=takes_value,
                )
            )
        else:
            entries.append(
                OptionGrammarEntry(
                    names=(alias_name,),
                    handler=default_handler,
                    takes_value=takes_value,
                    negatable=negatable,
                )
            )
    return entries


def build_grammar(
    specs: Mapping[str, _arguments.ArgumentSpec],
    args: Dict[str, Any],
    *,
    argv: Sequence[str] = (),
    decoders: _serialization.DecoderRegistry,
    per_arg_json: bool = False,
    per_arg_yaml: bool = False,
    extra_before: ExtraGrammar = (),
    extra_after: ExtraGrammar = (),
) -> List[OptionGrammarEntry]:
    """Build the option grammar for a set of (normalized) argument specifications.

    Handlers write into `args`. `argv` is only inspected, to detect aliases whose handler
    was lost in transport; a :class:`BindingError` is raised if one of those is
    mentioned. Entries for lost aliases are kept, with handlers that raise the same
    error.

    Returns caller entries from `extra_before`, then derived entries in specification
    order, then caller entries from `extra_after`."""
    derived: List[OptionGrammarEntry] = []
    set_by_json: Set[str] = set()

    for arg in specs.values():
        name = arg.option_name
        takes_value, negatable = _arity(name, arg.schema)
        default_handler = _make_default_handler(arg, args, decoders)
        derived.append(
            OptionGrammarEntry(
                names=(name,),
                handler=default_handler,
                takes_value=takes_value,
                negatable=negatable,
            )
        )

        if arg.schema.kind != "bool":
            for enabled, decoder_name in (
                (per_arg_json, "json"),
                (per_arg_yaml, "yaml"),
            ):
                if not enabled:
                    continue
                derived.append(
                    OptionGrammarEntry(
                        names=(f"{name}-{decoder_name}",),
                        handler=_make_format_handler(
                            arg, args, decoders.get(decoder_name), set_by_json
                        ),
                        takes_value=True,
                    )
                )

        derived.extend(_alias_entries(arg, args, default_handler, argv))

    grammar = (
        _coerce_entries(extra_before, EntryOrigin.PRE)
        + derived
        + _coerce_entries(extra_after, EntryOrigin.POST)
    )
    log.debug(
        "Option grammar: %s",
        [e.option_strings() + e.negated_option_strings() for e in grammar],
    )
    return grammar
