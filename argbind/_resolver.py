"""Utilities for normalizing type descriptors into schemas, and classifying them."""

from __future__ import annotations

import collections.abc
import dataclasses
import enum
import types
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from typing_extensions import Annotated, get_args, get_origin

from .conf import _markers


class UnsupportedSchemaError(Exception):
    """Exception raised when a type descriptor can't be normalized."""


SIMPLE_SCALAR_KINDS = frozenset({"str", "num", "int", "float", "bool"})

KNOWN_KINDS = SIMPLE_SCALAR_KINDS | frozenset(
    {"array", "hash", "any", "obj", "code", "date", "duration", "re", "buf", "undef"}
)

_kind_from_synonym = {
    "string": "str",
    "integer": "int",
    "number": "num",
    "boolean": "bool",
    "list": "array",
    "dict": "hash",
    "map": "hash",
}

_kind_from_builtin: Dict[Any, str] = {
    str: "str",
    int: "int",
    float: "float",
    bool: "bool",
    bytes: "buf",
    type(None): "undef",
    list: "array",
    tuple: "array",
    set: "array",
    frozenset: "array",
    dict: "hash",
}

NoneType = type(None)


@dataclasses.dataclass(frozen=True)
class Schema:
    """A normalized type descriptor: a kind, plus kind-specific clauses.

    For `array` schemas, the `of` clause (if set) holds the normalized element schema.
    For `bool` schemas, a truthy `is` clause marks an exact flag, which never gets a
    `--no-` form."""

    kind: str
    clauses: Mapping[str, Any] = dataclasses.field(default_factory=dict)

    @property
    def of(self) -> Optional[Schema]:
        return self.clauses.get("of")

    @property
    def is_exact_flag(self) -> bool:
        return self.kind == "bool" and bool(self.clauses.get("is"))


class ArgumentKind(enum.Enum):
    SCALAR = "scalar"
    SCALAR_LIST = "scalar_list"
    COMPLEX = "complex"


def classify(schema: Schema) -> ArgumentKind:
    """Simple scalars are stored as raw strings, lists of simple scalars accumulate raw
    strings, and everything else is decoded as a structured value."""
    if schema.kind in SIMPLE_SCALAR_KINDS:
        return ArgumentKind.SCALAR
    if (
        schema.kind == "array"
        and schema.of is not None
        and schema.of.kind in SIMPLE_SCALAR_KINDS
    ):
        return ArgumentKind.SCALAR_LIST
    return ArgumentKind.COMPLEX


def _normalize_kind(kind: str) -> Tuple[str, bool]:
    """Returns the canonical kind, and whether a trailing `*` (value required) was
    present."""
    required = kind.endswith("*")
    kind = kind.rstrip("*").strip()
    kind = _kind_from_synonym.get(kind, kind)
    if kind not in KNOWN_KINDS:
        raise UnsupportedSchemaError(f"Unknown schema type: {kind!r}")
    return kind, required


def _with_normalized_of(kind: str, clauses: Dict[str, Any]) -> Dict[str, Any]:
    if kind == "array" and clauses.get("of") is not None:
        clauses["of"] = normalize_schema(clauses["of"])
    return clauses


def unwrap_annotated(typ: Any) -> Tuple[Any, Tuple[Any, ...]]:
    """Returns the type inside `Annotated[]` (if any), and the annotation metadata."""
    if get_origin(typ) is not Annotated:
        return typ, ()
    args = get_args(typ)
    return args[0], tuple(args[1:])


def _schema_from_annotation(typ: Any) -> Schema:
    typ, metadata = unwrap_annotated(typ)
    if typ is Any:
        return Schema("any")

    origin = get_origin(typ)

    # Optional[T] => T. Unions over anything else can't be bound from a single kind.
    if origin is Union or origin is getattr(types, "UnionType", Union):
        options = [o for o in get_args(typ) if o is not NoneType]
        if len(options) == 1:
            return _schema_from_annotation(options[0])
        return Schema("any")

    if origin is None:
        if typ in _kind_from_builtin:
            kind = _kind_from_builtin[typ]
            clauses: Dict[str, Any] = {}
            if kind == "bool" and _markers.FLAG in metadata:
                clauses["is"] = True
            return Schema(kind, clauses)
        raise UnsupportedSchemaError(
            f"Expected a str/int/float/bool or container annotation, but got {typ}."
        )

    args = get_args(typ)
    if origin in (list, set, frozenset, collections.abc.Sequence, collections.abc.Set):
        of = _schema_from_annotation(args[0]) if len(args) == 1 else None
        return Schema("array", {} if of is None else {"of": of})
    if origin is tuple:
        # Tuple[T, ...] behaves like List[T]; fixed-length tuples are structured.
        if len(args) == 2 and args[1] is Ellipsis:
            return Schema("array", {"of": _schema_from_annotation(args[0])})
        return Schema("array")
    if origin in (dict, collections.abc.Mapping):
        return Schema("hash")

    raise UnsupportedSchemaError(f"Unsupported annotation: {typ}")


def normalize_schema(raw: Any) -> Schema:
    """Normalize a raw type descriptor into a :class:`Schema`.

    Accepted forms:
    ```
        None                        => any
        "int", "str*", "integer"    => kind (the * suffix sets the `req` clause)
        ["array", {"of": "str"}]    => kind with clauses; `of` is normalized too
        int, List[str], Dict[...]   => Python type annotations
        Schema(...)                 => copied, with `of` re-normalized
    ```
    """
    if raw is None:
        return Schema("any")

    if isinstance(raw, Schema):
        return Schema(raw.kind, _with_normalized_of(raw.kind, dict(raw.clauses)))

    if isinstance(raw, str):
        kind, required = _normalize_kind(raw)
        return Schema(kind, {"req": True} if required else {})

    if isinstance(raw, (list, tuple)):
        if len(raw) == 0 or not isinstance(raw[0], str):
            raise UnsupportedSchemaError(f"Invalid schema: {raw!r}")
        kind, required = _normalize_kind(raw[0])
        clauses: Dict[str, Any] = {}
        # Merge every clause set. Sah-style schemas may carry a third element.
        for clause_set in raw[1:]:
            if not isinstance(clause_set, collections.abc.Mapping):
                raise UnsupportedSchemaError(f"Invalid schema clauses: {clause_set!r}")
            clauses.update(clause_set)
        if required:
            clauses["req"] = True
        return Schema(kind, _with_normalized_of(kind, clauses))

    return _schema_from_annotation(raw)

