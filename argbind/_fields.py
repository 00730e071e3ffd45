"""Abstractions for pulling argument specifications out of type-annotated callables."""

from __future__ import annotations

import inspect
import logging
from typing import Any, Callable, Dict, List, Optional

import docstring_parser
from typing_extensions import get_type_hints

from . import _arguments, _resolver
from ._cli import SUPPORTED_METADATA_VERSION
from .conf import _markers

log = logging.getLogger(__name__)


def _summaries_from_docstring(f: Callable) -> Dict[str, str]:
    docstring = inspect.getdoc(f)
    if docstring is None:
        return {}
    out = {}
    for param_doc in docstring_parser.parse(docstring).params:
        if param_doc.description is not None:
            # Summaries are one line: the first sentence of the description.
            out[param_doc.arg_name.lstrip("*")] = param_doc.description.split("\n")[
                0
            ].strip()
    return out


def meta_from_callable(f: Callable) -> Dict[str, Any]:
    """Build function metadata from the signature of `f`.

    - Parameters without a default are required.
    - Positional-only parameters, and parameters annotated with
      :data:`argbind.conf.Positional` or :data:`argbind.conf.Greedy`, get positions in
      declaration order.
    - `*args` becomes a greedy positional array.
    - `**kwargs` is skipped.
    - Parameter summaries are read from the docstring.

    Unannotated parameters accept any value.
    """
    try:
        hints = get_type_hints(f, include_extras=True)
    except TypeError as e:
        raise _resolver.UnsupportedSchemaError(
            f"Could not get type hints for {f}: {e}"
        ) from e
    summaries = _summaries_from_docstring(f)

    params: List[inspect.Parameter] = list(inspect.signature(f).parameters.values())
    args: Dict[str, _arguments.ArgumentSpec] = {}
    next_pos = 0
    for param in params:
        if param.kind is inspect.Parameter.VAR_KEYWORD:
            log.debug("Skipping **%s in %s", param.name, f)
            continue

        typ: Any = hints.get(param.name, Any)
        _, metadata = _resolver.unwrap_annotated(typ)

        pos: Optional[int] = None
        greedy = False
        if param.kind is inspect.Parameter.VAR_POSITIONAL:
            # Annotations on *args describe each element.
            schema = _resolver.Schema(
                "array", {"of": _resolver.normalize_schema(typ)}
            )
            greedy = True
        else:
            schema = _resolver.normalize_schema(typ)
            greedy = _markers.GREEDY in metadata

        if (
            param.kind is inspect.Parameter.POSITIONAL_ONLY
            or param.kind is inspect.Parameter.VAR_POSITIONAL
            or _markers.POSITIONAL in metadata
        ):
            pos = next_pos
            next_pos += 1

        args[param.name] = _arguments.ArgumentSpec(
            name=param.name,
            schema=schema,
            required=param.default is inspect.Parameter.empty
            and param.kind is not inspect.Parameter.VAR_POSITIONAL,
            pos=pos,
            greedy=greedy,
            summary=summaries.get(param.name),
        )

    return {"v": SUPPORTED_METADATA_VERSION, "args": args}
