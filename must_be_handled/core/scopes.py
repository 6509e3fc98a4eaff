"""
Scopes: the bindings of every module, class and function body.

Records, for each name, every statement that binds it: imports (absolute and
relative), `def`/`class` statements, parameters and assignments. A name bound
more than once in one scope has no single static target and resolves to
nothing.
"""

from __future__ import annotations

import ast
from dataclasses import dataclass, field
from typing import Union

_COMPREHENSIONS = (ast.ListComp, ast.SetComp, ast.DictComp, ast.GeneratorExp)


# ── Bindings ──


@dataclass(frozen=True)
class ImportBinding:
    """`import module` (attr is None) or `from module import attr`."""

    module: str
    attr: str | None = None


@dataclass(frozen=True)
class DefBinding:
    """A `def`, `async def` or `class` statement."""

    node: ast.FunctionDef | ast.AsyncFunctionDef | ast.ClassDef


@dataclass(frozen=True)
class ValueBinding:
    """Assignment, parameter, loop target or any other runtime value."""

    value: ast.expr | None = None
    annotation: ast.expr | None = None


@dataclass(frozen=True)
class ReceiverBinding:
    """The first parameter of a method: the instance, or the class for classmethods."""

    class_node: ast.ClassDef
    is_class: bool = False


Binding = Union[ImportBinding, DefBinding, ValueBinding, ReceiverBinding]


@dataclass(eq=False)
class Scope:
    """Names bound directly in one module, class or function body."""

    kind: str  # "module", "class" or "function"
    node: ast.AST
    module: str
    parent: Scope | None = None
    bindings: dict[str, list[Binding]] = field(default_factory=dict)
    globals: set[str] = field(default_factory=set)

    def bind(self, name: str, binding: Binding) -> None:
        self.bindings.setdefault(name, []).append(binding)

    @property
    def root(self) -> Scope:
        scope = self
        while scope.parent is not None:
            scope = scope.parent
        return scope


# ── Scope construction ──


class _ScopeBuilder(ast.NodeVisitor):
    """Walks a module and records, for every visited node, the scope it is evaluated in."""

    def __init__(self, tree: ast.Module, module_name: str, is_package: bool) -> None:
        self.module_name = module_name
        self.is_package = is_package
        self.module_scope = Scope("module", tree, module_name)
        self.scope_of: dict[ast.AST, Scope] = {}
        self.inner_scopes: dict[ast.AST, Scope] = {tree: self.module_scope}
        self._scope = self.module_scope

    def visit(self, node: ast.AST) -> None:
        self.scope_of[node] = self._scope
        super().visit(node)

    def _push(self, kind: str, node: ast.AST) -> Scope:
        scope = Scope(kind, node, self.module_name, parent=self._scope)
        self.inner_scopes[node] = scope
        self._scope = scope
        return scope

    def _pop(self) -> None:
        assert self._scope.parent is not None
        self._scope = self._scope.parent

    def _absolute(self, module: str | None, level: int) -> str:
        """Turn a relative `from` import into an absolute module name."""
        if level == 0:
            return module or ""
        parts = self.module_name.split(".")
        if not self.is_package:
            parts = parts[:-1]
        if level > 1:
            parts = parts[: len(parts) - (level - 1)]
        if module:
            parts.append(module)
        return ".".join(parts)

    # imports

    def visit_Import(self, node: ast.Import) -> None:  # noqa: N802
        for alias in node.names:
            if alias.asname:
                self._scope.bind(alias.asname, ImportBinding(alias.name))
            else:
                head = alias.name.split(".")[0]
                self._scope.bind(head, ImportBinding(head))

    def visit_ImportFrom(self, node: ast.ImportFrom) -> None:  # noqa: N802
        module = self._absolute(node.module, node.level)
        for alias in node.names:
            if alias.name == "*":
                continue
            self._scope.bind(alias.asname or alias.name, ImportBinding(module, alias.name))

    # definitions

    def visit_FunctionDef(self, node: ast.FunctionDef | ast.AsyncFunctionDef) -> None:  # noqa: N802
        self._scope.bind(node.name, DefBinding(node))

        # Decorators, defaults and annotations run in the enclosing scope
        for decorator in node.decorator_list:
            self.visit(decorator)
        self._visit_signature(node.args)
        if node.returns is not None:
            self.visit(node.returns)

        enclosing = self._scope
        self._push("function", node)
        self._bind_parameters(node, enclosing)
        for stmt in node.body:
            self.visit(stmt)
        self._pop()

    visit_AsyncFunctionDef = visit_FunctionDef

    def visit_Lambda(self, node: ast.Lambda) -> None:  # noqa: N802
        self._visit_signature(node.args)
        self._push("function", node)
        for arg in _all_parameters(node.args):
            self._scope.bind(arg.arg, ValueBinding())
        self.visit(node.body)
        self._pop()

    def visit_ClassDef(self, node: ast.ClassDef) -> None:  # noqa: N802
        self._scope.bind(node.name, DefBinding(node))
        for expr in (*node.decorator_list, *node.bases):
            self.visit(expr)
        for keyword in node.keywords:
            self.visit(keyword)

        self._push("class", node)
        for stmt in node.body:
            self.visit(stmt)
        self._pop()

    def _visit_signature(self, args: ast.arguments) -> None:
        for default in (*args.defaults, *args.kw_defaults):
            if default is not None:
                self.visit(default)
        for arg in _all_parameters(args):
            if arg.annotation is not None:
                self.visit(arg.annotation)

    def _bind_parameters(
        self, node: ast.FunctionDef | ast.AsyncFunctionDef, enclosing: Scope
    ) -> None:
        positional = [*node.args.posonlyargs, *node.args.args]
        is_method = enclosing.kind == "class" and not _has_decorator(node, "staticmethod")
        for arg in _all_parameters(node.args):
            if is_method and positional and arg is positional[0]:
                assert isinstance(enclosing.node, ast.ClassDef)
                is_class = _has_decorator(node, "classmethod") or node.name == "__new__"
                self._scope.bind(arg.arg, ReceiverBinding(enclosing.node, is_class=is_class))
            else:
                self._scope.bind(arg.arg, ValueBinding(annotation=arg.annotation))

    # assignments

    def visit_Assign(self, node: ast.Assign) -> None:  # noqa: N802
        self.visit(node.value)
        for target in node.targets:
            if isinstance(target, ast.Name):
                self.scope_of[target] = self._scope
                self._scope.bind(target.id, ValueBinding(value=node.value))
            else:
                self.visit(target)

    def visit_AnnAssign(self, node: ast.AnnAssign) -> None:  # noqa: N802
        self.visit(node.annotation)
        if node.value is not None:
            self.visit(node.value)
        if isinstance(node.target, ast.Name):
            self.scope_of[node.target] = self._scope
            self._scope.bind(
                node.target.id, ValueBinding(value=node.value, annotation=node.annotation)
            )
        else:
            self.visit(node.target)

    def visit_NamedExpr(self, node: ast.NamedExpr) -> None:  # noqa: N802
        self.visit(node.value)
        self.scope_of[node.target] = self._scope
        # Assignment expressions bind in the nearest non-comprehension scope
        scope = self._scope
        while isinstance(scope.node, _COMPREHENSIONS) and scope.parent is not None:
            scope = scope.parent
        scope.bind(node.target.id, ValueBinding(value=node.value))

    def visit_Name(self, node: ast.Name) -> None:  # noqa: N802
        if isinstance(node.ctx, (ast.Store, ast.Del)):
            self._scope.bind(node.id, ValueBinding())

    def visit_ExceptHandler(self, node: ast.ExceptHandler) -> None:  # noqa: N802
        if node.name:
            self._scope.bind(node.name, ValueBinding())
        self.generic_visit(node)

    def visit_MatchAs(self, node: ast.MatchAs) -> None:  # noqa: N802
        if node.name:
            self._scope.bind(node.name, ValueBinding())
        self.generic_visit(node)

    def visit_MatchStar(self, node: ast.MatchStar) -> None:  # noqa: N802
        if node.name:
            self._scope.bind(node.name, ValueBinding())

    def visit_MatchMapping(self, node: ast.MatchMapping) -> None:  # noqa: N802
        if node.rest:
            self._scope.bind(node.rest, ValueBinding())
        self.generic_visit(node)

    def visit_Global(self, node: ast.Global) -> None:  # noqa: N802
        self._scope.globals.update(node.names)

    # comprehensions

    def _visit_comprehension(
        self, node: ast.ListComp | ast.SetComp | ast.DictComp | ast.GeneratorExp
    ) -> None:
        # The first iterable is evaluated in the enclosing scope
        self.visit(node.generators[0].iter)
        self._push("function", node)
        for index, generator in enumerate(node.generators):
            self.scope_of[generator] = self._scope
            self.visit(generator.target)
            if index:
                self.visit(generator.iter)
            for condition in generator.ifs:
                self.visit(condition)
        if isinstance(node, ast.DictComp):
            self.visit(node.key)
            self.visit(node.value)
        else:
            self.visit(node.elt)
        self._pop()

    visit_ListComp = _visit_comprehension
    visit_SetComp = _visit_comprehension
    visit_DictComp = _visit_comprehension
    visit_GeneratorExp = _visit_comprehension


def _all_parameters(args: ast.arguments) -> list[ast.arg]:
    params = [*args.posonlyargs, *args.args]
    if args.vararg is not None:
        params.append(args.vararg)
    params.extend(args.kwonlyargs)
    if args.kwarg is not None:
        params.append(args.kwarg)
    return params


def _has_decorator(node: ast.FunctionDef | ast.AsyncFunctionDef, name: str) -> bool:
    for decorator in node.decorator_list:
        if isinstance(decorator, ast.Name) and decorator.id == name:
            return True
        if isinstance(decorator, ast.Attribute) and decorator.attr == name:
            return True
    return False


def build_scopes(
    tree: ast.Module, module_name: str, is_package: bool
) -> tuple[dict[ast.AST, Scope], dict[ast.AST, Scope]]:
    """
    Build the scopes of one module.

    Returns:
        (scope_of, inner_scopes): the scope each visited node is evaluated in,
        and the scope opened by each module, class, function, lambda and
        comprehension node.
    """
    builder = _ScopeBuilder(tree, module_name, is_package)
    for stmt in tree.body:
        builder.visit(stmt)
    return builder.scope_of, builder.inner_scopes
