"""Utilities and constants for working with option names and tokens."""

import functools
import re
from typing import List, Sequence


def option_name_from_arg(name: str) -> str:
    """Canonical argument name => option name.

    'with_underscore' => 'with-underscore'
    'parent.child'    => 'parent-child'
    """
    return name.replace("_", "-").replace(".", "-")


def option_strings_from_name(name: str) -> List[str]:
    """Single-letter names become short options, everything else is a long option."""
    if len(name) == 1:
        return ["-" + name]
    return ["--" + name]


def negated_option_strings(name: str) -> List[str]:
    """Negated forms of a long boolean option; both --no-flag and --noflag."""
    return ["--no-" + name, "--no" + name]


@functools.lru_cache(maxsize=None)
def _get_negative_number_pattern() -> re.Pattern:
    # Same heuristic as argparse.
    return re.compile(r"^-\d+$|^-\d*\.\d+$")


def looks_like_option(token: str) -> bool:
    """Whether a leftover token looks like an (unrecognized) option rather than an
    operand. A lone '-', negative numbers and tokens containing spaces are
    operands, as in argparse."""
    return (
        len(token) > 1
        and token.startswith("-")
        and " " not in token
        and _get_negative_number_pattern().match(token) is None
    )


def mentions_option(argv: Sequence[str], name: str) -> bool:
    """Whether `argv` contains the option `name`, in any of the forms it can be passed
    in: `-n`, `-nVALUE`, `--name`, `--name=VALUE`, `--name-json`, `--name-yaml`."""
    if len(name) == 1:
        short = "-" + name
        return any(
            token == short or (token.startswith(short) and not token.startswith("--"))
            for token in argv
        )
    pattern = re.compile(r"\A--" + re.escape(name) + r"(-yaml|-json)?(=|\Z)")
    return any(pattern.match(token) is not None for token in argv)
