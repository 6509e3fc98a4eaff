"""
Rule Engine Data Models: diagnostics, results, and rule metadata.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


RULE_ID = "must_be_handled_violation"


class Severity(str, Enum):
    ERROR = "error"


class DiagnosticKind(str, Enum):
    """The three ways a call to a marked callable can be left unhandled."""

    SYNC_NOT_HANDLED = "sync_not_handled"
    ASYNC_NOT_AWAITED = "async_not_awaited"
    ASYNC_NOT_HANDLED = "async_not_handled"


DIAGNOSTIC_CODES: dict[DiagnosticKind, str] = {
    DiagnosticKind.SYNC_NOT_HANDLED: "MBH001",
    DiagnosticKind.ASYNC_NOT_AWAITED: "MBH002",
    DiagnosticKind.ASYNC_NOT_HANDLED: "MBH003",
}

MESSAGES: dict[DiagnosticKind, str] = {
    DiagnosticKind.SYNC_NOT_HANDLED: (
        "Call to '{name}' is marked with @must_be_handled and must be "
        "wrapped in try/except."
    ),
    DiagnosticKind.ASYNC_NOT_AWAITED: (
        "Call to '{name}' is marked with @must_be_handled and must be "
        "awaited and wrapped in try/except."
    ),
    DiagnosticKind.ASYNC_NOT_HANDLED: (
        "Call to '{name}' is marked with @must_be_handled. The await must be "
        "wrapped in try/except."
    ),
}

CORRECTIONS: dict[DiagnosticKind, str] = {
    DiagnosticKind.SYNC_NOT_HANDLED: "Wrap this call in a try/except block.",
    DiagnosticKind.ASYNC_NOT_AWAITED: (
        "Add await before this call and wrap it in a try/except block."
    ),
    DiagnosticKind.ASYNC_NOT_HANDLED: "Wrap this await expression in a try/except block.",
}


class Span(BaseModel):
    """Source range of a call expression."""

    offset: int = Field(..., description="0-based character offset from the start of the file")
    length: int = Field(..., description="Length in characters")
    line: int = Field(..., description="1-based start line")
    column: int = Field(..., description="0-based start column, in characters")
    end_line: int
    end_column: int


class Diagnostic(BaseModel):
    """A single unhandled call to a marked callable."""

    rule_id: str = RULE_ID
    code: str = Field(..., description="Stable code, e.g. 'MBH001'")
    kind: DiagnosticKind
    severity: Severity = Severity.ERROR
    file: str = Field(..., description="File path where the call was found")
    span: Span
    name: str = Field(..., description="Display name of the offending call")
    message: str
    correction: str = Field(default="", description="Suggested fix")

    @classmethod
    def build(cls, kind: DiagnosticKind, file: str, span: Span, name: str) -> Diagnostic:
        return cls(
            code=DIAGNOSTIC_CODES[kind],
            kind=kind,
            file=file,
            span=span,
            name=name,
            message=MESSAGES[kind].format(name=name),
            correction=CORRECTIONS[kind],
        )


class CheckResult(BaseModel):
    """Result of running all rules on a set of modules."""

    diagnostics: list[Diagnostic] = Field(default_factory=list)
    rules_executed: list[str] = Field(default_factory=list)
    total_files_checked: int = 0
    suppressed: int = Field(default=0, description="Diagnostics silenced by # noqa")
    parse_errors: list[str] = Field(default_factory=list)
    check_duration_ms: float = 0.0
