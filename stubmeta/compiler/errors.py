"""Diagnostics raised while compiling a declaration.

Every error carries a ``kind``, the offending identifier and the source
location of the token or declaration that caused it. Compilers raise these
and never catch them; a failed declaration produces no descriptor.
"""

from enum import StrEnum, auto


class CompileError(RuntimeError):
    """Base class for compile-time diagnostics."""

    kind: str = "compile_error"

    def __init__(self, ident: str, *, line: int = 0, column: int = 0, message: str | None = None):
        self.ident = ident
        self.line = line
        self.column = column
        self.message = message or self.default_message()
        super().__init__(self.message)

    def default_message(self) -> str:
        return f"{self.kind.replace('_', ' ')}: `{self.ident}`"

    @property
    def location(self) -> str:
        return f"{self.line}:{self.column}"

    def __str__(self) -> str:
        if self.line:
            return f"line {self.line}, column {self.column}: {self.message}"
        return self.message


class ParseError(CompileError):
    """The source text is not valid declaration syntax."""

    kind = "parse_error"


class UnsupportedItem(CompileError):
    """An exposure tag is attached to a declaration shape it cannot describe."""

    kind = "unsupported_item"


class OptionError(CompileError):
    """Base class for attribute argument errors."""


class UnrecognizedOption(OptionError):
    kind = "unrecognized_option"


class DuplicateOption(OptionError):
    kind = "duplicate_option"


class MalformedOption(OptionError):
    kind = "malformed_option"


class _KindedError(CompileError):
    """An error family whose members are distinguished by an enum kind."""

    def __init__(
        self,
        kind: StrEnum,
        ident: str,
        *,
        line: int = 0,
        column: int = 0,
        message: str | None = None,
    ):
        self.kind = kind
        super().__init__(ident, line=line, column=column, message=message)


class SignatureErrorKind(StrEnum):
    DUPLICATE_NAME = auto()
    ORDERING_VIOLATION = auto()
    DEFAULT_ORDERING_VIOLATION = auto()
    POSITIONAL_ONLY_CONFLICT = auto()
    UNKNOWN_PARAMETER = auto()
    MISSING_PARAMETER = auto()


class SignatureError(_KindedError):
    kind: SignatureErrorKind


class MemberErrorKind(StrEnum):
    MISSING_TYPE = auto()
    DUPLICATE_NAME = auto()
    FROZEN_SETTER = auto()


class MemberError(_KindedError):
    kind: MemberErrorKind


class EnumErrorKind(StrEnum):
    PAYLOAD_VARIANT = auto()
    DUPLICATE_VARIANT = auto()
    EMPTY_ENUM = auto()


class EnumError(_KindedError):
    kind: EnumErrorKind


class MethodErrorKind(StrEnum):
    SETTER_WITHOUT_GETTER = auto()
    DUPLICATE_NAME = auto()
    CONFLICTING_MARKERS = auto()
    PROPERTY_TYPE_MISMATCH = auto()


class MethodError(_KindedError):
    kind: MethodErrorKind
