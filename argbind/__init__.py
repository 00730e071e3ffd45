from . import conf
from ._arguments import AliasSpec, ArgumentSpec, InvalidMetadataError
from ._cli import get_args_from_argv
from ._fields import meta_from_callable
from ._matching import ArgparseMatcher, MatchResult, OptionMatcher
from ._parsers import OptionGrammarEntry, build_grammar, parse_option_spec
from ._positional import PositionalResult, args_from_array
from ._resolver import (
    ArgumentKind,
    Schema,
    UnsupportedSchemaError,
    classify,
    normalize_schema,
)
from ._results import BindingError, BindingResult, ErrorCode, StatusClass
from ._serialization import DecodeResult, DecoderRegistry, JsonDecoder, YamlDecoder
from ._singleton import FROM_POSITIONAL, HANDLER_LOST

__all__ = [
    "conf",
    "get_args_from_argv",
    "meta_from_callable",
    "AliasSpec",
    "ArgumentSpec",
    "InvalidMetadataError",
    "ArgparseMatcher",
    "MatchResult",
    "OptionMatcher",
    "OptionGrammarEntry",
    "build_grammar",
    "parse_option_spec",
    "PositionalResult",
    "args_from_array",
    "ArgumentKind",
    "Schema",
    "UnsupportedSchemaError",
    "classify",
    "normalize_schema",
    "BindingError",
    "BindingResult",
    "ErrorCode",
    "StatusClass",
    "DecodeResult",
    "DecoderRegistry",
    "JsonDecoder",
    "YamlDecoder",
    "FROM_POSITIONAL",
    "HANDLER_LOST",
]
