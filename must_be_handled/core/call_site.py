"""
Call Sites: one shared view over both call-expression shapes.

    fetch_user()            NAMED       callee is a name
    client.fetch_user()     NAMED       callee is an attribute
    (f := fetch_user)()     EXPRESSION  resolved through the assignment expression
    handlers[key]()         EXPRESSION  unresolved, never checked
"""

from __future__ import annotations

import ast
from typing import TYPE_CHECKING

from must_be_handled.models.tree_models import CallShape, CallSite, Declaration, SymbolKind

if TYPE_CHECKING:
    from must_be_handled.core.binder import BoundModule

UNKNOWN_NAME = "<unknown>"


def call_site(call: ast.Call, module: BoundModule) -> CallSite:
    callee = call.func
    if isinstance(callee, (ast.Name, ast.Attribute)):
        return CallSite(CallShape.NAMED, call, display_name(callee), _target(callee, module))
    if isinstance(callee, ast.NamedExpr) and isinstance(callee.value, (ast.Name, ast.Attribute)):
        return CallSite(
            CallShape.EXPRESSION, call, display_name(callee.value), _target(callee.value, module)
        )
    return CallSite(CallShape.EXPRESSION, call, UNKNOWN_NAME)


def display_name(callee: ast.expr) -> str:
    if isinstance(callee, ast.Name):
        return callee.id
    if isinstance(callee, ast.Attribute):
        return callee.attr
    return UNKNOWN_NAME


def _target(callee: ast.expr, module: BoundModule) -> Declaration | None:
    symbol = module.project.resolver.resolve_expr(callee, module)
    if symbol is None or symbol.kind is not SymbolKind.FUNCTION:
        return None
    return symbol.declaration
