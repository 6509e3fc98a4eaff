"""
Await-Link Resolver: is a call the direct operand of an `await`?

Walks ancestors from the call through transparent expression wrappers
(operators, subscripts, argument and keyword-argument positions). An `await`
reached this way is returned. Statements, variable bindings and the bodies of
lambdas and comprehensions are opaque: `task = fetch()` followed by
`await task` does not link the call to the await.
"""

from __future__ import annotations

import ast

# Boundaries that end the walk without an await
_OPAQUE = (
    ast.stmt,
    ast.Lambda,
    ast.GeneratorExp,
    ast.ListComp,
    ast.SetComp,
    ast.DictComp,
    ast.NamedExpr,
    ast.comprehension,
)

_TRANSPARENT = (ast.expr, ast.keyword)


def find_enclosing_await(node: ast.AST, parents: dict[ast.AST, ast.AST]) -> ast.Await | None:
    current = parents.get(node)
    while current is not None:
        if isinstance(current, ast.Await):
            return current
        if isinstance(current, _OPAQUE):
            return None
        if isinstance(current, _TRANSPARENT):
            current = parents.get(current)
            continue
        return None
    return None
