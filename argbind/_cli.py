"""Core public API."""

from __future__ import annotations

import logging
import sys
import warnings
from typing import Any, Callable, Dict, List, Mapping, Optional

from . import (
    _arguments,
    _matching,
    _parsers,
    _positional,
    _resolver,
    _results,
    _serialization,
)
from ._results import BindingResult, ErrorCode
from ._singleton import FROM_POSITIONAL

log = logging.getLogger(__name__)

SUPPORTED_METADATA_VERSION = 1.1

# Called with keyword arguments: arg=, args=, spec=. Returns True if it resolved the
# missing argument.
MissingArgumentHook = Callable[..., Any]


def get_args_from_argv(
    argv: Optional[List[str]] = None,
    *,
    meta: Optional[Mapping[str, Any]] = None,
    check_required_args: bool = True,
    strict: bool = True,
    per_arg_json: bool = False,
    per_arg_yaml: bool = False,
    allow_extra_elems: bool = False,
    on_missing_required_args: Optional[MissingArgumentHook] = None,
    extra_getopts_before: _parsers.ExtraGrammar = (),
    extra_getopts_after: _parsers.ExtraGrammar = (),
    decoders: Optional[_serialization.DecoderRegistry] = None,
    matcher: Optional[_matching.OptionMatcher] = None,
) -> BindingResult:
    """Bind command-line tokens to a dictionary of function arguments, driven by the
    `args` section of function metadata.

    Options are generated from argument names (`dry_run` => `--dry-run`). Simple
    scalars are stored as the raw string, lists of simple scalars accumulate one string
    per occurrence, and every other type is decoded as JSON, or failing that, YAML.
    Tokens that aren't consumed by options are bound to arguments with a `pos`.

    `argv` is consumed in place: afterwards, it holds only the tokens that weren't
    matched as options. If it isn't specified, `sys.argv[1:]` is used, and `sys.argv`
    is updated.

    Args:
        argv: Command-line tokens.

    Keyword Args:
        meta: Function metadata: `{"v": 1.1, "args": {name: spec, ...}}`, where each
            spec is an :class:`ArgumentSpec` or a dictionary with the keys `schema`,
            `req`, `pos`, `greedy`, `cmdline_aliases`, `cmdline_on_getopt` and
            `summary`.
        check_required_args: Whether a missing required argument is an error. Turning
            this off lets callers run eg `--help` with incomplete arguments; the first
            missing argument is still reported in `BindingResult.missing_arg`.
        strict: If False, parsing errors are logged and the best-effort arguments are
            returned instead of an error. A lost alias handler is always an error.
        per_arg_json: Recognize `--NAME-json` for every non-boolean argument.
        per_arg_yaml: Recognize `--NAME-yaml` for every non-boolean argument. Enabling
            both is allowed but discouraged; JSON wins when both are passed.
        allow_extra_elems: Ignore leftover tokens that can't be bound to a position.
        on_missing_required_args: Called as `hook(arg=..., args=..., spec=...)` for each
            missing required argument; returning True marks it resolved, eg because the
            hook filled in the value from another source.
        extra_getopts_before: Extra grammar entries placed before the generated ones.
            Generated options never shadow these.
        extra_getopts_after: Extra grammar entries placed after the generated ones.
            These shadow generated options with the same name.
        decoders: Structured-value decoders. Defaults to a shared JSON + YAML registry.
        matcher: Option matcher. Defaults to :class:`ArgparseMatcher`.

    Returns:
        A :class:`BindingResult`. Errors are reported through the result, never
        raised.
    """
    if per_arg_json and per_arg_yaml:
        warnings.warn(
            "Enabling both `per_arg_json` and `per_arg_yaml` is not recommended.",
            stacklevel=2,
        )

    use_sys_argv = argv is None
    if argv is None:
        argv = sys.argv[1:]

    log.debug("-> get_args_from_argv(), argv=%s", argv)
    try:
        result = _bind(
            argv,
            meta=meta,
            check_required_args=check_required_args,
            strict=strict,
            per_arg_json=per_arg_json,
            per_arg_yaml=per_arg_yaml,
            allow_extra_elems=allow_extra_elems,
            on_missing_required_args=on_missing_required_args,
            extra_getopts_before=extra_getopts_before,
            extra_getopts_after=extra_getopts_after,
            decoders=decoders
            if decoders is not None
            else _serialization.DecoderRegistry.default(),
            matcher=matcher if matcher is not None else _matching.ArgparseMatcher(),
        )
    except _results.BindingError as e:
        result = e.result

    if use_sys_argv:
        sys.argv[1:] = argv
    log.debug(
        "<- get_args_from_argv(), code=%s, args=%s, remaining argv=%s",
        result.code,
        result.args,
        argv,
    )
    return result


def _bind(
    argv: List[str],
    *,
    meta: Optional[Mapping[str, Any]],
    check_required_args: bool,
    strict: bool,
    per_arg_json: bool,
    per_arg_yaml: bool,
    allow_extra_elems: bool,
    on_missing_required_args: Optional[MissingArgumentHook],
    extra_getopts_before: _parsers.ExtraGrammar,
    extra_getopts_after: _parsers.ExtraGrammar,
    decoders: _serialization.DecoderRegistry,
    matcher: _matching.OptionMatcher,
) -> BindingResult:
    if meta is None:
        return BindingResult.failure(400, ErrorCode.BAD_INPUT, "Please specify meta")
    v = meta.get("v", 1.0)
    try:
        version = float(v)
    except (TypeError, ValueError):
        version = None
    if version != SUPPORTED_METADATA_VERSION:
        return BindingResult.failure(
            412,
            ErrorCode.BAD_INPUT,
            f"Only metadata version {SUPPORTED_METADATA_VERSION} is supported,"
            f" given {v}",
        )

    # Normalized copies; the caller's metadata is never modified.
    try:
        specs = _arguments.specs_from_metadata(meta.get("args") or {})
    except (_resolver.UnsupportedSchemaError, _arguments.InvalidMetadataError) as e:
        return BindingResult.failure(
            400, ErrorCode.BAD_INPUT, f"Invalid metadata: {e.args[0]}"
        )

    # The resulting args.
    args: Dict[str, Any] = {}

    # (1) Generate the option grammar, and fill `args` from command-line options.
    grammar = _parsers.build_grammar(
        specs,
        args,
        argv=argv,
        decoders=decoders,
        per_arg_json=per_arg_json,
        per_arg_yaml=per_arg_yaml,
        extra_before=extra_getopts_before,
        extra_after=extra_getopts_after,
    )
    matched = matcher.match(argv, grammar, strict=strict)
    for error in matched.errors:
        # Even if not strict: ignoring the alias would change what the user asked for.
        if error.error is ErrorCode.ALIAS_HANDLER_LOST_IN_TRANSPORT:
            return error.result
    if not matched.ok:
        if strict:
            if len(matched.errors) > 0:
                return matched.errors[0].result
            return BindingResult.failure(
                500,
                ErrorCode.OPTION_PARSING_FAILED,
                "GetOptions failed"
                + (f": {matched.message}" if matched.message is not None else ""),
            )
        log.warning(
            "Option parsing failed, continuing with partial arguments: %s",
            matched.message
            if matched.message is not None
            else "; ".join(str(e) for e in matched.errors),
        )

    # (2) Fill `args` from leftover tokens, for arguments with a position.
    if len(matched.leftover) > 0:
        result = _bind_positional(
            matched.leftover,
            specs,
            args,
            strict=strict,
            allow_extra_elems=allow_extra_elems,
            decoders=decoders,
        )
        if result is not None:
            return result

    # (3) Check required args.
    missing_arg: Optional[str] = None
    for name, spec in specs.items():
        if name in args or not spec.required:
            continue
        # Give the hook a chance to supply the argument from another source.
        if on_missing_required_args is not None:
            try:
                resolved = _call_hook(
                    on_missing_required_args,
                    f"missing-argument hook for '{name}'",
                    arg=name,
                    args=args,
                    spec=spec,
                )
            except _results.BindingError as e:
                if strict:
                    return e.result
                log.warning("%s", e)
                resolved = False
            if resolved:
                continue
        if name in args:
            continue
        if missing_arg is None:
            missing_arg = name
        if check_required_args and strict:
            return BindingResult(
                code=400,
                message=f"Missing required argument: {name}",
                missing_arg=name,
                error=ErrorCode.MISSING_REQUIRED_ARGUMENT,
            )

    return BindingResult(code=200, message="OK", args=args, missing_arg=missing_arg)


def _bind_positional(
    leftover: List[str],
    specs: Mapping[str, _arguments.ArgumentSpec],
    args: Dict[str, Any],
    *,
    strict: bool,
    allow_extra_elems: bool,
    decoders: _serialization.DecoderRegistry,
) -> Optional[BindingResult]:
    """Returns a result only if binding should stop with an error."""
    positional = _positional.args_from_array(
        leftover, specs, allow_extra_elems=allow_extra_elems
    )
    if not positional.ok:
        if strict:
            return BindingResult.failure(
                500,
                ErrorCode.EXTRA_POSITIONAL_ARGUMENTS,
                f"Get args from array failed: {positional.message}",
            )
        log.warning("Ignoring positional arguments: %s", positional.message)
        return None

    for name, spec in specs.items():
        if name not in positional.args:
            continue
        if name in args:
            if strict:
                return BindingResult.failure(
                    400,
                    ErrorCode.CONFLICT_OPTION_AND_POSITIONAL,
                    f"Argument '{name}' specified as option and positionally"
                    f" (argument #{spec.pos})",
                )
            log.warning(
                "Argument '%s' specified as option and positionally; keeping the"
                " option value",
                name,
            )
            continue

        try:
            value = _decode_positional(spec, positional.args[name], decoders)
        except _results.BindingError as e:
            if strict:
                return e.result
            log.warning("Skipping argument '%s': %s", name, e)
            continue

        args[name] = value
        if spec.on_getopt is not None:
            try:
                for v in value if spec.greedy else [value]:
                    _call_hook(
                        spec.on_getopt,
                        f"positional argument '{name}'",
                        arg=name,
                        value=v,
                        args=args,
                        opt=FROM_POSITIONAL,
                    )
            except _results.BindingError as e:
                if strict:
                    return e.result
                log.warning("%s", e)
    return None


def _call_hook(hook: Callable[..., Any], description: str, **kwargs: Any) -> Any:
    """Run caller code. Exceptions other than :class:`BindingError` are converted into
    a 500 `BindingError`."""
    try:
        return hook(**kwargs)
    except _results.BindingError:
        raise
    except Exception as e:
        log.debug("Error in %s: %r", description, e)
        raise _results.BindingError(
            BindingResult.failure(
                500, ErrorCode.OPTION_PARSING_FAILED, f"Error in {description}: {e}"
            )
        ) from e


def _decode_positional(
    spec: _arguments.ArgumentSpec,
    value: Any,
    decoders: _serialization.DecoderRegistry,
) -> Any:
    if spec.greedy:
        # Every element is decoded on its own.
        out = []
        for j, element in enumerate(value):
            result = decoders.decode(element)
            if not result.ok:
                raise _results.invalid_structured_value(
                    f"Invalid structured value at positional index {spec.pos},"
                    f" element {j}"
                )
            out.append(result.value)
        return out

    if spec.kind is not _resolver.ArgumentKind.SCALAR:
        result = decoders.decode(value)
        if not result.ok:
            raise _results.invalid_structured_value(
                f"Invalid structured value at positional index {spec.pos}"
            )
        return result.value

    return value
