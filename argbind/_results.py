"""Result and error types returned by the binding engine."""

from __future__ import annotations

import dataclasses
import enum
from typing import Any, Dict, Optional


class ErrorCode(enum.Enum):
    """Why a binding attempt failed."""

    BAD_INPUT = "BadInput"
    OPTION_PARSING_FAILED = "OptionParsingFailed"
    CONFLICT_OPTION_AND_POSITIONAL = "ConflictOptionAndPositional"
    INVALID_STRUCTURED_VALUE = "InvalidStructuredValue"
    MISSING_REQUIRED_ARGUMENT = "MissingRequiredArgument"
    ALIAS_HANDLER_LOST_IN_TRANSPORT = "AliasHandlerLostInTransport"
    EXTRA_POSITIONAL_ARGUMENTS = "ExtraPositionalArguments"


class StatusClass(enum.Enum):
    SUCCESS = "success"
    CLIENT_ERROR = "client_error"
    SERVER_ERROR = "server_error"


@dataclasses.dataclass(frozen=True)
class BindingResult:
    """Outcome of binding an argv to an argument map.

    `code` follows HTTP conventions: 200 on success, 4xx when the input (argv or
    metadata) is at fault, 5xx when parsing itself could not be completed. `args` is
    populated on success, and holds the best-effort partial map for lenient failures.
    """

    code: int
    message: str
    args: Dict[str, Any] = dataclasses.field(default_factory=dict)
    missing_arg: Optional[str] = None
    error: Optional[ErrorCode] = None

    @property
    def status(self) -> StatusClass:
        if self.code < 300:
            return StatusClass.SUCCESS
        elif self.code < 500:
            return StatusClass.CLIENT_ERROR
        else:
            return StatusClass.SERVER_ERROR

    @property
    def ok(self) -> bool:
        return self.status is StatusClass.SUCCESS

    @property
    def meta(self) -> Dict[str, Any]:
        """Auxiliary result metadata."""
        return {"func.missing_arg": self.missing_arg}

    def raise_for_status(self) -> BindingResult:
        """Raise a :class:`BindingError` unless the result is a success. Returns the
        result itself, for chaining."""
        if not self.ok:
            raise BindingError(self)
        return self

    @staticmethod
    def failure(
        code: int,
        error: ErrorCode,
        message: str,
        args: Optional[Dict[str, Any]] = None,
    ) -> BindingResult:
        return BindingResult(
            code=code,
            message=message,
            args={} if args is None else args,
            error=error,
        )


class BindingError(Exception):
    """Exception carrying a failed :class:`BindingResult`.

    Raised inside option handlers, where the matcher catches it, and by
    `BindingResult.raise_for_status()`."""

    def __init__(self, result: BindingResult) -> None:
        super().__init__(result.message)
        self.result = result

    @property
    def code(self) -> int:
        return self.result.code

    @property
    def error(self) -> Optional[ErrorCode]:
        return self.result.error


def invalid_structured_value(message: str) -> BindingError:
    return BindingError(
        BindingResult.failure(400, ErrorCode.INVALID_STRUCTURED_VALUE, message)
    )
