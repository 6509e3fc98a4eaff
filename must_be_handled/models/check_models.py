"""
Check Request/Response Models: API and CLI contract schemas.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from must_be_handled.models.rule_models import Diagnostic


class FileInput(BaseModel):
    """A single file submitted for checking."""

    path: str = Field(..., description="File path (absolute or relative)")
    content: str = Field(..., description="File source content")


class CheckRequest(BaseModel):
    """Request body for the /check endpoint."""

    files: list[FileInput] = Field(default_factory=list)


class SkippedFile(BaseModel):
    """A submitted file that was not analysed."""

    path: str
    reason: Literal["too_large", "excluded", "syntax_error"]
    detail: str = ""


class CheckReport(BaseModel):
    """Full check report for one analysis pass."""

    diagnostics: list[Diagnostic] = Field(default_factory=list)
    files_checked: int = 0
    skipped: list[SkippedFile] = Field(default_factory=list)
    suppressed: int = Field(default=0, description="Diagnostics silenced by # noqa")
    enabled: bool = True
    duration_ms: float = 0.0


class CheckResponse(BaseModel):
    """Top-level response for check endpoints."""

    message: str = "check_complete"
    check_id: str = ""
    report: CheckReport | None = None
    error: str | None = None
