import sys
from typing import Any, Dict

import pytest

import argbind
from argbind import FROM_POSITIONAL, BindingError, ErrorCode, StatusClass


def _meta(**args: Any) -> Dict[str, Any]:
    return {"v": 1.1, "args": args}


def test_scalars_are_raw_strings() -> None:
    meta = _meta(count={"schema": "int"}, name={"schema": "str"})
    argv = ["--count", "3", "--name=x"]
    result = argbind.get_args_from_argv(argv, meta=meta)
    assert result.code == 200
    assert result.message == "OK"
    assert result.ok
    assert result.status is StatusClass.SUCCESS
    assert result.args == {"count": "3", "name": "x"}
    assert argv == []


def test_booleans() -> None:
    meta = _meta(dry_run={"schema": "bool"}, v={"schema": "bool"})
    assert argbind.get_args_from_argv(["--dry-run"], meta=meta).args == {
        "dry_run": True
    }
    assert argbind.get_args_from_argv(["--no-dry-run"], meta=meta).args == {
        "dry_run": False
    }
    assert argbind.get_args_from_argv(["--nodry-run", "-v"], meta=meta).args == {
        "dry_run": False,
        "v": True,
    }

    # Single-letter flags have no negated form.
    result = argbind.get_args_from_argv(["--no-v"], meta=meta)
    assert result.code == 500
    assert result.error is ErrorCode.OPTION_PARSING_FAILED
    assert result.message == "GetOptions failed: Unknown option: --no-v"


def test_exact_flag() -> None:
    meta = _meta(force={"schema": ["bool", {"is": 1}]})
    assert argbind.get_args_from_argv(["--force"], meta=meta).args == {"force": True}
    assert argbind.get_args_from_argv(["--no-force"], meta=meta).code == 500


def test_list_accumulates() -> None:
    meta = _meta(tag={"schema": ["array", {"of": "str"}]})
    result = argbind.get_args_from_argv(
        ["--tag", "a", "--tag", "b", "--tag", "c"], meta=meta
    )
    assert result.args == {"tag": ["a", "b", "c"]}


def test_structured_values() -> None:
    meta = _meta(data={}, opts={"schema": "hash"}, items={"schema": "array"})
    result = argbind.get_args_from_argv(
        ["--data", "1", "--opts", "{a: 1}", "--items", '["x", 2]'], meta=meta
    )
    assert result.args == {"data": 1, "opts": {"a": 1}, "items": ["x", 2]}

    assert argbind.get_args_from_argv(['--data="x"'], meta=meta).args == {
        "data": "x"
    }
    assert argbind.get_args_from_argv(["--data", "x"], meta=meta).args == {
        "data": "x"
    }


def test_invalid_structured_value() -> None:
    meta = _meta(data={}, verbose={"schema": "bool"})
    argv = ["--data", "[1", "--verbose"]
    result = argbind.get_args_from_argv(argv, meta=meta)
    assert result.code == 400
    assert result.error is ErrorCode.INVALID_STRUCTURED_VALUE
    assert result.message.startswith("Invalid structured value in argument 'data'")

    # Lenient: the bad option is skipped.
    argv = ["--data", "[1", "--verbose"]
    result = argbind.get_args_from_argv(argv, meta=meta, strict=False)
    assert result.code == 200
    assert result.args == {"verbose": True}


def test_idempotent() -> None:
    meta = _meta(
        tag={"schema": ["array", {"of": "str"}]},
        data={},
        file={"pos": 0},
        verbose={"schema": "bool"},
    )
    argv = ["--tag", "a", "f.txt", "--data", "{x: [1, 2]}", "--no-verbose"]
    first = argbind.get_args_from_argv(list(argv), meta=meta)
    second = argbind.get_args_from_argv(list(argv), meta=meta)
    assert first.ok
    assert first.args == second.args
    assert first.args == {
        "tag": ["a"],
        "file": "f.txt",
        "data": {"x": [1, 2]},
        "verbose": False,
    }


def test_meta_is_not_modified() -> None:
    meta = _meta(tag={"schema": ["array", {"of": "str"}], "cmdline_aliases": {"t": {}}})
    argbind.get_args_from_argv(["-t", "x"], meta=meta)
    assert meta == _meta(
        tag={"schema": ["array", {"of": "str"}], "cmdline_aliases": {"t": {}}}
    )


def test_positional() -> None:
    meta = _meta(
        src={"schema": "str", "pos": 0},
        dst={"schema": "str", "pos": 1},
        verbose={"schema": "bool"},
    )
    argv = ["a", "--verbose", "b"]
    result = argbind.get_args_from_argv(argv, meta=meta)
    assert result.args == {"src": "a", "dst": "b", "verbose": True}
    assert argv == ["a", "b"]


def test_positional_values_are_decoded() -> None:
    meta = _meta(data={"pos": 0}, n={"schema": "int", "pos": 1})
    result = argbind.get_args_from_argv(['{"a": 1}', "-5"], meta=meta)
    assert result.args == {"data": {"a": 1}, "n": "-5"}

    result = argbind.get_args_from_argv(["[1"], meta=meta)
    assert result.code == 400
    assert result.error is ErrorCode.INVALID_STRUCTURED_VALUE
    assert result.message == "Invalid structured value at positional index 0"


def test_end_of_options() -> None:
    meta = _meta(file={"schema": "str", "pos": 0})
    result = argbind.get_args_from_argv(["--", "--not-an-option"], meta=meta)
    assert result.args == {"file": "--not-an-option"}


def test_conflict() -> None:
    meta = _meta(name={"pos": 0})

    result = argbind.get_args_from_argv(["--name", "x", "y"], meta=meta)
    assert result.code == 400
    assert result.error is ErrorCode.CONFLICT_OPTION_AND_POSITIONAL
    assert result.message == (
        "Argument 'name' specified as option and positionally (argument #0)"
    )

    result = argbind.get_args_from_argv(["--name", "x", "y"], meta=meta, strict=False)
    assert result.code == 200
    assert result.args == {"name": "x"}


def test_missing_required() -> None:
    meta = _meta(file={"req": True}, other={"req": True})

    result = argbind.get_args_from_argv([], meta=meta)
    assert result.code == 400
    assert result.status is StatusClass.CLIENT_ERROR
    assert result.error is ErrorCode.MISSING_REQUIRED_ARGUMENT
    assert result.message == "Missing required argument: file"
    assert result.missing_arg == "file"
    assert result.meta == {"func.missing_arg": "file"}

    result = argbind.get_args_from_argv([], meta=meta, check_required_args=False)
    assert result.code == 200
    assert "file" not in result.args
    assert result.missing_arg == "file"

    result = argbind.get_args_from_argv([], meta=meta, strict=False)
    assert result.code == 200
    assert result.missing_arg == "file"


def test_missing_required_hook() -> None:
    meta = _meta(file={"req": True}, token={"req": True}, other={})
    calls = []

    def hook(arg, args, spec):
        calls.append(arg)
        if arg == "file":
            # Fills the value but returns nothing: still resolved.
            args["file"] = "default.txt"
            return None
        return True

    result = argbind.get_args_from_argv(
        [], meta=meta, on_missing_required_args=hook
    )
    assert result.code == 200
    assert result.args == {"file": "default.txt"}
    assert result.missing_arg is None
    assert calls == ["file", "token"]


def test_greedy() -> None:
    meta = _meta(items={"pos": 0, "greedy": True})
    result = argbind.get_args_from_argv(["1", "2", "x"], meta=meta)
    assert result.args == {"items": [1, 2, "x"]}

    result = argbind.get_args_from_argv(["1", "[1"], meta=meta)
    assert result.code == 400
    assert result.error is ErrorCode.INVALID_STRUCTURED_VALUE
    assert result.message == (
        "Invalid structured value at positional index 0, element 1"
    )

    result = argbind.get_args_from_argv(["1", "[1"], meta=meta, strict=False)
    assert result.code == 200
    assert result.args == {}


def test_extra_positional() -> None:
    meta = _meta(file={"pos": 0})

    argv = ["a", "b"]
    result = argbind.get_args_from_argv(argv, meta=meta)
    assert result.code == 500
    assert result.status is StatusClass.SERVER_ERROR
    assert result.error is ErrorCode.EXTRA_POSITIONAL_ARGUMENTS
    assert result.message == (
        "Get args from array failed: There are extra, unassigned elements in"
        " array: [b]"
    )

    argv = ["a", "b"]
    result = argbind.get_args_from_argv(argv, meta=meta, allow_extra_elems=True)
    assert result.args == {"file": "a"}
    assert argv == ["a", "b"]


def test_unknown_option() -> None:
    meta = _meta(file={"pos": 0})
    result = argbind.get_args_from_argv(["--what"], meta=meta)
    assert result.code == 500
    assert result.message == "GetOptions failed: Unknown option: --what"

    # Lenient: unknown options are left in argv, and the leftover tokens can't be
    # bound positionally.
    argv = ["x", "--what"]
    result = argbind.get_args_from_argv(argv, meta=meta, strict=False)
    assert result.code == 200
    assert argv == ["x", "--what"]


def test_per_arg_json_and_yaml() -> None:
    meta = _meta(data={}, verbose={"schema": "bool"})

    result = argbind.get_args_from_argv(
        ["--data-json", '{"a": 1}'], meta=meta, per_arg_json=True
    )
    assert result.args == {"data": {"a": 1}}

    result = argbind.get_args_from_argv(
        ["--data-yaml", "~"], meta=meta, per_arg_yaml=True
    )
    assert result.args == {"data": None}

    # No fallback to the other format.
    result = argbind.get_args_from_argv(
        ["--data-json", "{a: 1}"], meta=meta, per_arg_json=True
    )
    assert result.code == 400
    assert result.message.startswith("Invalid JSON in option --data-json: {a: 1}: ")

    # Booleans don't get format options.
    result = argbind.get_args_from_argv(
        ["--verbose-json", "true"], meta=meta, per_arg_json=True
    )
    assert result.code == 500


def test_json_wins_over_yaml() -> None:
    meta = _meta(data={})
    for argv in (
        ["--data-json", "1", "--data-yaml", "2"],
        ["--data-yaml", "2", "--data-json", "1"],
    ):
        with pytest.warns(UserWarning):
            result = argbind.get_args_from_argv(
                argv, meta=meta, per_arg_json=True, per_arg_yaml=True
            )
        assert result.args == {"data": 1}


def test_aliases() -> None:
    def set_quiet(args, value):
        args["verbose"] = False

    meta = _meta(
        verbose={
            "schema": "bool",
            "cmdline_aliases": {"v": {}, "quiet": {"code": set_quiet}},
        },
        level={"schema": "int", "cmdline_aliases": {"l": {}}},
    )
    assert argbind.get_args_from_argv(["-v", "-l", "2"], meta=meta).args == {
        "verbose": True,
        "level": "2",
    }
    assert argbind.get_args_from_argv(["--quiet"], meta=meta).args == {
        "verbose": False
    }
    # Aliases with code have no negated form.
    assert argbind.get_args_from_argv(["--no-quiet"], meta=meta).code == 500


def test_lost_alias_handler() -> None:
    meta = _meta(
        verbose={"schema": "bool", "cmdline_aliases": {"q": {"code": "CODE"}}}
    )

    for strict in (True, False):
        result = argbind.get_args_from_argv(["-q"], meta=meta, strict=strict)
        assert result.code == 502
        assert result.error is ErrorCode.ALIAS_HANDLER_LOST_IN_TRANSPORT

    # Unused lost aliases don't matter.
    result = argbind.get_args_from_argv(["--verbose"], meta=meta)
    assert result.args == {"verbose": True}


def test_getopt_hook() -> None:
    calls = []

    def hook(arg, value, args, opt):
        calls.append((arg, value, opt))

    meta = _meta(
        dry_run={"schema": "bool", "cmdline_on_getopt": hook},
        files={"pos": 0, "greedy": True, "cmdline_on_getopt": hook},
    )
    result = argbind.get_args_from_argv(["--dry-run", "a", "b"], meta=meta)
    assert result.ok
    assert calls == [
        ("dry_run", True, "dry-run"),
        ("files", "a", FROM_POSITIONAL),
        ("files", "b", FROM_POSITIONAL),
    ]


def test_failing_hook() -> None:
    def hook(**kwargs):
        raise RuntimeError("nope")

    meta = _meta(name={"schema": "str", "cmdline_on_getopt": hook})
    result = argbind.get_args_from_argv(["--name", "x"], meta=meta)
    assert result.code == 500
    assert result.error is ErrorCode.OPTION_PARSING_FAILED
    assert result.message == "Error in option --name: nope"


def test_failing_positional_hook() -> None:
    def hook(**kwargs):
        raise RuntimeError("nope")

    meta = _meta(
        file={"schema": "str", "pos": 0, "cmdline_on_getopt": hook},
        verbose={"schema": "bool"},
    )
    result = argbind.get_args_from_argv(["x"], meta=meta)
    assert result.code == 500
    assert result.error is ErrorCode.OPTION_PARSING_FAILED
    assert result.message == "Error in positional argument 'file': nope"

    result = argbind.get_args_from_argv(["x", "--verbose"], meta=meta, strict=False)
    assert result.code == 200
    assert result.args == {"file": "x", "verbose": True}


def test_failing_missing_argument_hook() -> None:
    def hook(**kwargs):
        raise RuntimeError("nope")

    meta = _meta(file={"req": True})
    result = argbind.get_args_from_argv([], meta=meta, on_missing_required_args=hook)
    assert result.code == 500
    assert result.error is ErrorCode.OPTION_PARSING_FAILED
    assert result.message == "Error in missing-argument hook for 'file': nope"

    result = argbind.get_args_from_argv(
        [], meta=meta, on_missing_required_args=hook, strict=False
    )
    assert result.code == 200
    assert result.missing_arg == "file"


def test_bundled_lost_alias_handler() -> None:
    meta = _meta(
        verbose={"schema": "bool", "cmdline_aliases": {"q": {"code": "CODE"}}},
        x={"schema": "bool"},
    )
    for strict in (True, False):
        argv = ["-xq"]
        result = argbind.get_args_from_argv(argv, meta=meta, strict=strict)
        assert result.code == 502
        assert result.error is ErrorCode.ALIAS_HANDLER_LOST_IN_TRANSPORT

    assert argbind.get_args_from_argv(["-x"], meta=meta).args == {"x": True}


def test_lenient_recovers_positionals() -> None:
    meta = _meta(file={"schema": "str", "pos": 0}, name={"schema": "str"})

    argv = ["file.txt", "--name"]
    result = argbind.get_args_from_argv(argv, meta=meta)
    assert result.code == 500
    assert result.error is ErrorCode.OPTION_PARSING_FAILED

    result = argbind.get_args_from_argv(argv, meta=meta, strict=False)
    assert result.code == 200
    assert result.args == {"file": "file.txt"}
    assert argv == ["file.txt"]


def test_option_values_starting_with_dash() -> None:
    meta = _meta(pattern={"schema": "str", "cmdline_aliases": {"p": {}}}, n={})
    result = argbind.get_args_from_argv(
        ["--pattern", "-foo", "-n", "-5"], meta=meta
    )
    assert result.args == {"pattern": "-foo", "n": -5}

    result = argbind.get_args_from_argv(["-p", "--bar"], meta=meta)
    assert result.args == {"pattern": "--bar"}


def test_extra_getopts() -> None:
    seen = []

    def on_help(name, value):
        seen.append((name, value))

    meta = _meta(help={"schema": "bool"}, count={"schema": "int"})
    result = argbind.get_args_from_argv(
        ["-h", "--help", "--count", "3"],
        meta=meta,
        extra_getopts_before=[("help|h|?", on_help)],
        extra_getopts_after=[("count=s", on_help)],
    )
    assert result.ok
    assert result.args == {}
    assert seen == [("help", True), ("help", True), ("count", "3")]


def test_bad_meta() -> None:
    result = argbind.get_args_from_argv([])
    assert result.code == 400
    assert result.error is ErrorCode.BAD_INPUT
    assert result.message == "Please specify meta"

    result = argbind.get_args_from_argv([], meta={"args": {}})
    assert result.code == 412
    assert result.error is ErrorCode.BAD_INPUT

    result = argbind.get_args_from_argv([], meta={"v": "1.1", "args": {}})
    assert result.code == 200

    result = argbind.get_args_from_argv([], meta=_meta(x={"schema": "frob"}))
    assert result.code == 400
    assert result.message == "Invalid metadata: Unknown schema type: 'frob'"

    result = argbind.get_args_from_argv([], meta=_meta(x={"pos": -1}))
    assert result.code == 400
    assert result.message.startswith("Invalid metadata: Position of argument 'x'")


def test_sys_argv(monkeypatch) -> None:
    monkeypatch.setattr(sys, "argv", ["prog", "--name", "x", "rest"])
    result = argbind.get_args_from_argv(
        meta=_meta(name={"schema": "str"}), allow_extra_elems=True
    )
    assert result.args == {"name": "x"}
    assert sys.argv == ["prog", "rest"]


def test_raise_for_status() -> None:
    meta = _meta(file={"req": True})
    with pytest.raises(BindingError) as e:
        argbind.get_args_from_argv([], meta=meta).raise_for_status()
    assert e.value.code == 400
    assert e.value.result.missing_arg == "file"

    result = argbind.get_args_from_argv(["--file", "x"], meta=meta)
    assert result.raise_for_status() is result
