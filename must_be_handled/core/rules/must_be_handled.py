"""
Must-Be-Handled Rule: calls to marked callables must be handled by the caller.

Reports an error when:
- a synchronous marked callable is called outside the body of a try/except
  (MBH001, sync_not_handled);
- an asynchronous marked callable is called without being awaited
  (MBH002, async_not_awaited);
- an asynchronous marked callable is awaited outside the body of a try/except
  (MBH003, async_not_handled).

Calling an async function inside a try body without awaiting it is still
MBH002: the coroutine would fail later, outside the handler.
"""

from __future__ import annotations

import ast
import logging

from must_be_handled.core.await_link import find_enclosing_await
from must_be_handled.core.binder import BoundModule
from must_be_handled.core.call_site import call_site
from must_be_handled.core.classifier import is_asynchronous
from must_be_handled.core.containment import is_in_protected_clause
from must_be_handled.core.marker import has_required_marker
from must_be_handled.models.rule_models import RULE_ID, Diagnostic, DiagnosticKind

__all__ = ["RULE_ID", "check", "evaluate"]

logger = logging.getLogger("must_be_handled.rules.must_be_handled")


def check(module: BoundModule) -> list[Diagnostic]:
    """Evaluate every call expression in the module independently."""
    diagnostics: list[Diagnostic] = []
    for call in module.calls():
        try:
            diagnostic = evaluate(call, module)
        except Exception:
            # An inconsistent node must not abort the pass, nor be reported
            logger.warning(
                f"Skipping call at {module.path}:{call.lineno}: evaluation failed",
                exc_info=True,
            )
            continue
        if diagnostic is not None:
            diagnostics.append(diagnostic)
    return diagnostics


def evaluate(call: ast.Call, module: BoundModule) -> Diagnostic | None:
    """Return the diagnostic for one call, or None when it is unmarked or handled."""
    site = call_site(call, module)
    declaration = site.declaration
    if declaration is None or not has_required_marker(declaration):
        return None

    if not is_asynchronous(declaration):
        if is_in_protected_clause(call, module.parents):
            return None
        kind = DiagnosticKind.SYNC_NOT_HANDLED
    else:
        awaiter = find_enclosing_await(call, module.parents)
        if awaiter is None:
            kind = DiagnosticKind.ASYNC_NOT_AWAITED
        elif is_in_protected_clause(awaiter, module.parents):
            return None
        else:
            kind = DiagnosticKind.ASYNC_NOT_HANDLED

    logger.debug(f"{module.path}:{call.lineno} {kind.value} '{site.name}'")
    return Diagnostic.build(kind, module.path, module.span(call), site.name)
