"""Option matching: runs an option grammar over argv.

The default matcher is backed by `argparse`. Every grammar entry becomes an
`argparse.Action` that records which entry matched, and with what value. Handlers are
invoked once parsing has succeeded, in the order options appear on the command line."""

from __future__ import annotations

import argparse
import dataclasses
import logging
from typing import Any, Dict, List, NoReturn, Optional, Sequence, Set, Tuple

from typing_extensions import Protocol

from . import _parsers, _results, _strings

log = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class MatchResult:
    ok: bool
    leftover: List[str]
    # Failures raised by handlers. Parsing continues past these.
    errors: List[_results.BindingError] = dataclasses.field(default_factory=list)
    message: Optional[str] = None


class OptionMatcher(Protocol):
    def match(
        self,
        argv: List[str],
        grammar: Sequence[_parsers.OptionGrammarEntry],
        *,
        strict: bool,
    ) -> MatchResult:
        """Match options in `argv` against `grammar`, invoking handlers. `argv` is
        consumed in place: afterwards it holds only the leftover tokens."""
        ...


class OptionParsingError(Exception):
    """Raised instead of exiting when argparse reports an error."""


class _RaisingArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> NoReturn:
        raise OptionParsingError(message)


# (entry, value, option string) for each matched option, in command-line order.
_Call = Tuple[_parsers.OptionGrammarEntry, Any, str]
_CALLS_ATTR = "argbind_calls"


class _HandlerAction(argparse.Action):
    """Adapted from https://github.com/python/cpython/pull/27672. Flags report `True`,
    or `False` when one of the negated option strings was used."""

    def __init__(
        self,
        option_strings: Sequence[str],
        dest: str,
        entry: _parsers.OptionGrammarEntry,
        negated_strings: Set[str],
        **kwargs: Any,
    ) -> None:
        self._entry = entry
        self._negated_strings = negated_strings
        super().__init__(
            option_strings=option_strings,
            dest=dest,
            nargs=None if entry.takes_value else 0,
            default=argparse.SUPPRESS,
            **kwargs,
        )

    def __call__(self, parser, namespace, values, option_string=None):
        if self._entry.takes_value:
            value = values
        else:
            value = option_string not in self._negated_strings
        getattr(namespace, _CALLS_ATTR).append((self._entry, value, option_string))


def _invoke(calls: Sequence[_Call]) -> List[_results.BindingError]:
    """Run handlers in order. A failing handler doesn't stop the ones after it."""
    errors: List[_results.BindingError] = []
    for entry, value, option_string in calls:
        try:
            entry.handler(entry.name, value)
        except _results.BindingError as e:
            log.debug("Handler for %s failed: %s", option_string, e)
            errors.append(e)
        except Exception as e:
            # Caller-supplied code (alias handlers, getopt hooks, extra grammar).
            log.debug("Handler for %s raised %r", option_string, e)
            errors.append(
                _results.BindingError(
                    _results.BindingResult.failure(
                        500,
                        _results.ErrorCode.OPTION_PARSING_FAILED,
                        f"Error in option {option_string}: {e}",
                    )
                )
            )
    return errors


def _attach_values(head: Sequence[str], takes_value: Dict[str, bool]) -> List[str]:
    """`--opt VALUE` => `--opt=VALUE` for options that take a value, so the value is
    taken verbatim even if it looks like an option."""
    out: List[str] = []
    i = 0
    while i < len(head):
        token = head[i]
        if takes_value.get(token, False) and i + 1 < len(head):
            out.append(f"{token}={head[i + 1]}")
            i += 2
        else:
            out.append(token)
            i += 1
    return out


class ArgparseMatcher:
    """Default :class:`OptionMatcher`.

    - Options and operands may be freely intermixed.
    - Matching is case-sensitive, abbreviations are not accepted.
    - Single-letter flags bundle: `-vx` is `-v -x`.
    - An option that takes a value takes the next token, even if it starts with `-`.
    - `--` ends option processing; it's dropped and everything after it is leftover.
    - Pre-grammar entries can't be shadowed by derived entries; post-grammar entries
      shadow everything registered before them.
    - If not strict, tokens that can't be parsed (eg an option missing its value) are
      dropped and the rest of the command line is still matched.
    """

    def match(
        self,
        argv: List[str],
        grammar: Sequence[_parsers.OptionGrammarEntry],
        *,
        strict: bool,
    ) -> MatchResult:
        parser, takes_value = self._make_parser(grammar)

        if "--" in argv:
            split = argv.index("--")
            head, tail = argv[:split], argv[split + 1 :]
        else:
            head, tail = list(argv), []

        # The rewritten tokens are all consumed by options, so leftovers are always
        # original tokens.
        head = _attach_values(head, takes_value)

        message: Optional[str] = None
        try:
            calls, extras = self._parse(parser, head)
        except OptionParsingError as e:
            message = e.args[0]
            if strict:
                return MatchResult(ok=False, leftover=[], message=message)
            recovered = self._recover(parser, head)
            if recovered is None:
                return MatchResult(ok=False, leftover=[], message=message)
            calls, extras = recovered

        unknown = [token for token in extras if _strings.looks_like_option(token)]
        if strict and len(unknown) > 0:
            return MatchResult(
                ok=False,
                leftover=[],
                message="Unknown option: " + ", ".join(unknown),
            )

        errors = _invoke(calls)
        leftover = extras + tail
        argv[:] = leftover
        return MatchResult(
            ok=message is None and len(errors) == 0,
            leftover=leftover,
            errors=errors,
            message=message,
        )

    def _parse(
        self, parser: argparse.ArgumentParser, tokens: List[str]
    ) -> Tuple[List[_Call], List[str]]:
        namespace = argparse.Namespace(**{_CALLS_ATTR: []})
        namespace, extras = parser.parse_known_args(tokens, namespace)
        return getattr(namespace, _CALLS_ATTR), extras

    def _recover(
        self, parser: argparse.ArgumentParser, head: List[str]
    ) -> Optional[Tuple[List[_Call], List[str]]]:
        """Drop every token that fails to parse on its own, then parse the rest."""
        kept: List[str] = []
        for token in head:
            try:
                self._parse(parser, [token])
            except OptionParsingError as e:
                log.warning("Ignoring %s: %s", token, e.args[0])
                continue
            kept.append(token)
        try:
            return self._parse(parser, kept)
        except OptionParsingError as e:
            log.warning("Option parsing failed: %s", e.args[0])
            return None

    def _make_parser(
        self, grammar: Sequence[_parsers.OptionGrammarEntry]
    ) -> Tuple[argparse.ArgumentParser, Dict[str, bool]]:
        """Returns the parser, and whether each registered option string takes a
        value."""
        parser = _RaisingArgumentParser(
            add_help=False,
            allow_abbrev=False,
            conflict_handler="resolve",
        )

        takes_value: Dict[str, bool] = {}
        claimed_by_pre: Set[str] = set()
        for i, entry in enumerate(grammar):
            option_strings = entry.option_strings()
            negated_strings = entry.negated_option_strings()
            if entry.origin is _parsers.EntryOrigin.DERIVED:
                option_strings = [s for s in option_strings if s not in claimed_by_pre]
                negated_strings = [
                    s for s in negated_strings if s not in claimed_by_pre
                ]
            elif entry.origin is _parsers.EntryOrigin.PRE:
                claimed_by_pre.update(option_strings + negated_strings)

            if len(option_strings) + len(negated_strings) == 0:
                log.debug("Options for %s are all shadowed, skipping", entry.name)
                continue

            parser.add_argument(
                *(option_strings + negated_strings),
                action=_HandlerAction,
                dest=f"__argbind_entry_{i}",
                entry=entry,
                negated_strings=set(negated_strings),
            )
            for s in option_strings + negated_strings:
                takes_value[s] = entry.takes_value
        return parser, takes_value
