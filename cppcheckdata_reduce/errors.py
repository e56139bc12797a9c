# cppcheckdata_reduce/errors.py
"""
Error types for the reduction passes.

Architecture Overview:
─────────────────────
┌─────────────────────────────────────────────────────────────────────────────┐
│                          Error Hierarchy                                     │
├─────────────────────────────────────────────────────────────────────────────┤
│  ReduceError (base)                                                         │
│  ├── FrontendError       - dump/source/cppcheck could not be loaded         │
│  ├── UsageError          - bad invocation parameters                        │
│  └── InternalError       - the pass cannot continue soundly                 │
│      ├── InvariantViolation - the token model broke an assumption           │
│      └── RewriteError       - an edit could not be materialised             │
└─────────────────────────────────────────────────────────────────────────────┘

Error Codes:
────────────
Each error carries a code of the form RPL-XXXX:
  - 0001-0999: Front-end errors (dump, cppcheck, source files)
  - 1000-1999: Usage errors
  - 9000-9999: Internal errors (invariant violations, rewrite failures)

Running out of candidates is *not* an error: the pass reports it as the
``NO_INSTANCE`` status of its result.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, unique
from typing import Any, Dict, Optional


# ═══════════════════════════════════════════════════════════════════════════════
# ERROR SEVERITY AND CLASSIFICATION
# ═══════════════════════════════════════════════════════════════════════════════

@unique
class ErrorSeverity(Enum):
    """Severity levels for reduction errors."""

    FATAL = "fatal"
    ERROR = "error"
    WARNING = "warning"

    def is_error(self) -> bool:
        return self in (ErrorSeverity.FATAL, ErrorSeverity.ERROR)


@unique
class ErrorPhase(Enum):
    """Pass phase where the error occurred."""

    FRONTEND = "frontend"      # loading dumps and sources
    COLLECT = "collect"        # classification traversal
    SELECT = "select"          # candidate enumeration
    REWRITE = "rewrite"        # source edits
    INTERNAL = "internal"


# ═══════════════════════════════════════════════════════════════════════════════
# ERROR CODES
# ═══════════════════════════════════════════════════════════════════════════════

class ErrorCode:
    """
    Structured error code ``PREFIX-NNNN``.

    Codes compare equal to their string form, so callers can write
    ``err.code == "RPL-9001"``.
    """

    __slots__ = ("prefix", "number", "phase", "default_severity")

    def __init__(
        self,
        prefix: str,
        number: int,
        phase: ErrorPhase,
        default_severity: ErrorSeverity = ErrorSeverity.ERROR,
    ) -> None:
        self.prefix = prefix
        self.number = number
        self.phase = phase
        self.default_severity = default_severity

    @property
    def code(self) -> str:
        """Get the full error code string."""
        return f"{self.prefix}-{self.number:04d}"

    def __str__(self) -> str:
        return self.code

    def __repr__(self) -> str:
        return f"ErrorCode({self.code!r}, {self.phase.name})"

    def __hash__(self) -> int:
        return hash((self.prefix, self.number))

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ErrorCode):
            return self.prefix == other.prefix and self.number == other.number
        if isinstance(other, str):
            return self.code == other
        return False


class ReduceErrorCodes:
    """Predefined error codes."""

    # ── front end (0001-0999) ────────────────────────────────────────────
    CPPCHECKDATA_MISSING = ErrorCode("RPL", 1, ErrorPhase.FRONTEND)
    DUMP_NOT_FOUND = ErrorCode("RPL", 2, ErrorPhase.FRONTEND)
    DUMP_UNREADABLE = ErrorCode("RPL", 3, ErrorPhase.FRONTEND)
    NO_CONFIGURATION = ErrorCode("RPL", 4, ErrorPhase.FRONTEND)
    CPPCHECK_FAILED = ErrorCode("RPL", 5, ErrorPhase.FRONTEND)
    SOURCE_NOT_FOUND = ErrorCode("RPL", 6, ErrorPhase.FRONTEND)

    # ── usage (1000-1999) ────────────────────────────────────────────────
    BAD_COUNTER = ErrorCode("RPL", 1000, ErrorPhase.SELECT)
    UNKNOWN_TRANSFORMATION = ErrorCode("RPL", 1001, ErrorPhase.FRONTEND)

    # ── internal (9000-9999) ─────────────────────────────────────────────
    INTERNAL_ERROR = ErrorCode("RPL", 9000, ErrorPhase.INTERNAL, ErrorSeverity.FATAL)
    UNRESOLVED_LHS = ErrorCode("RPL", 9001, ErrorPhase.COLLECT, ErrorSeverity.FATAL)
    UNRESOLVED_OPERAND = ErrorCode("RPL", 9002, ErrorPhase.COLLECT, ErrorSeverity.FATAL)
    NO_POINTER_DECLARATOR = ErrorCode("RPL", 9003, ErrorPhase.REWRITE, ErrorSeverity.FATAL)
    UNEXPECTED_SHAPE = ErrorCode("RPL", 9004, ErrorPhase.REWRITE, ErrorSeverity.FATAL)
    TEXT_MISMATCH = ErrorCode("RPL", 9005, ErrorPhase.REWRITE, ErrorSeverity.FATAL)
    OVERLAPPING_EDITS = ErrorCode("RPL", 9006, ErrorPhase.REWRITE, ErrorSeverity.FATAL)


# ═══════════════════════════════════════════════════════════════════════════════
# SOURCE LOCATIONS
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class SourceSpan:
    """A source position, usually taken from a cppcheck token."""

    file: str = ""
    line: int = 0
    column: int = 0

    @classmethod
    def from_token(cls, token: Any) -> "SourceSpan":
        """Create a SourceSpan from a token object (``None`` gives an empty span)."""
        if token is None:
            return cls()
        return cls(
            file=getattr(token, "file", "") or "",
            line=int(getattr(token, "linenr", 0) or 0),
            column=int(getattr(token, "column", 0) or 0),
        )

    def __str__(self) -> str:
        if not self.file and self.line == 0:
            return "<unknown location>"

        parts = []
        if self.file:
            parts.append(self.file)
        if self.line > 0:
            parts.append(str(self.line))
            if self.column > 0:
                parts.append(str(self.column))
        return ":".join(parts)


# ═══════════════════════════════════════════════════════════════════════════════
# EXCEPTION CLASSES
# ═══════════════════════════════════════════════════════════════════════════════

class ReduceError(Exception):
    """
    Base exception for all reduction errors.

    Carries a structured :class:`ErrorCode` and an optional
    :class:`SourceSpan`.
    """

    default_code: ErrorCode = ReduceErrorCodes.INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[ErrorCode] = None,
        span: Optional[SourceSpan] = None,
        severity: Optional[ErrorSeverity] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.span = span or SourceSpan()
        self.severity = severity or self.code.default_severity
        self.cause = cause

    @property
    def phase(self) -> ErrorPhase:
        return self.code.phase

    def to_gcc_format(self) -> str:
        """Format as ``file:line:col: severity: message [code]``."""
        return f"{self.span}: {self.severity.value}: {self.message} [{self.code}]"

    def to_json(self) -> Dict[str, Any]:
        """Convert to a JSON-serializable dict."""
        return {
            "code": self.code.code,
            "message": self.message,
            "severity": self.severity.value,
            "phase": self.phase.value,
            "location": {
                "file": self.span.file,
                "line": self.span.line,
                "column": self.span.column,
            },
        }

    def __str__(self) -> str:
        return self.to_gcc_format()


class FrontendError(ReduceError):
    """The dump file, the cppcheck binary or a source file is unusable."""

    default_code = ReduceErrorCodes.DUMP_UNREADABLE


class UsageError(ReduceError, ValueError):
    """The pass was invoked with parameters it cannot honour."""

    default_code = ReduceErrorCodes.BAD_COUNTER


class InternalError(ReduceError):
    """
    The pass cannot continue without risking an unsound rewrite.

    Raised for conditions that indicate either a token model that breaks
    an assumption of the pass, or a defect in the eligibility filtering.
    """

    default_code = ReduceErrorCodes.INTERNAL_ERROR


class InvariantViolation(InternalError):
    """An assumption about the token model does not hold."""

    default_code = ReduceErrorCodes.UNRESOLVED_LHS


class RewriteError(InternalError):
    """A source edit could not be materialised."""

    default_code = ReduceErrorCodes.UNEXPECTED_SHAPE
