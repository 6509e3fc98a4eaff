"""
Containment Checker: is a node inside the protected clause of a try/except?

Walks ancestors from the node. The first `try` statement with at least one
`except` handler decides: the node is protected only if the walk entered that
statement through its body (not its handlers, `else` or `finally`). Reaching
the body of the innermost enclosing callable (function, lambda, generator
expression) first means the node is unprotected: a try in an outer function
never protects code that runs later in an inner one.
"""

from __future__ import annotations

import ast

_TRY_STATEMENTS = (ast.Try, ast.TryStar)


def is_in_protected_clause(node: ast.AST, parents: dict[ast.AST, ast.AST]) -> bool:
    child = node
    ancestor = parents.get(node)
    while ancestor is not None:
        if isinstance(ancestor, _TRY_STATEMENTS) and ancestor.handlers:
            return any(child is stmt for stmt in ancestor.body)
        if _enters_callable_body(node, child, ancestor, parents):
            return False
        child = ancestor
        ancestor = parents.get(ancestor)
    return False


def _enters_callable_body(
    node: ast.AST, child: ast.AST, ancestor: ast.AST, parents: dict[ast.AST, ast.AST]
) -> bool:
    """True if moving from ``child`` to ``ancestor`` leaves a deferred callable body."""
    # Decorators, defaults and annotations are evaluated where the def statement runs
    if isinstance(ancestor, (ast.FunctionDef, ast.AsyncFunctionDef)):
        return any(child is stmt for stmt in ancestor.body)
    if isinstance(ancestor, ast.Lambda):
        return child is ancestor.body
    if isinstance(ancestor, ast.GeneratorExp):
        # Only the first iterable is evaluated eagerly
        return not descends_from(node, ancestor.generators[0].iter, parents)
    return False


def descends_from(node: ast.AST, ancestor: ast.AST, parents: dict[ast.AST, ast.AST]) -> bool:
    """True if ``node`` is ``ancestor`` or lies in its subtree."""
    current: ast.AST | None = node
    while current is not None:
        if current is ancestor:
            return True
        current = parents.get(current)
    return False
