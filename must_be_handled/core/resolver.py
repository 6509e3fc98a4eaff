"""
Resolver: static name, attribute and type resolution over bound scopes.

Turns expressions into Symbols (what a name refers to and where it was
defined), function definitions into Declarations (metadata plus declared
result type), and annotations into ResolvedTypes.

Resolution is deliberately shallow. It follows imports, re-exports, class
members and inherited members, `self`/`cls`, annotated parameters and
constructor-call assignments. It never tracks values through control flow.
Whatever it cannot pin to a single definition resolves to None.
"""

from __future__ import annotations

import ast
import logging
from dataclasses import replace
from typing import TYPE_CHECKING

from must_be_handled.core.scopes import (
    Binding,
    DefBinding,
    ImportBinding,
    ReceiverBinding,
    Scope,
    ValueBinding,
)
from must_be_handled.models.tree_models import (
    ClassInfo,
    Declaration,
    MetadataEntry,
    MetadataKind,
    ResolvedType,
    Symbol,
    SymbolKind,
)

if TYPE_CHECKING:
    from must_be_handled.core.binder import BoundModule, BoundProject

logger = logging.getLogger("must_be_handled.resolver")


class Resolver:
    """Resolves names across every module of a BoundProject."""

    def __init__(self, project: BoundProject) -> None:
        self.project = project
        self._declarations: dict[ast.AST, Declaration] = {}
        self._classes: dict[ast.AST, ClassInfo] = {}
        self._resolving: set[tuple[int, str]] = set()

    # ── Expressions ──

    def resolve_expr(
        self, expr: ast.expr, module: BoundModule, scope: Scope | None = None
    ) -> Symbol | None:
        """Resolve a name, attribute chain, constructor call or assignment expression."""
        scope = scope or module.scope_of.get(expr)
        if scope is None:
            return None

        if isinstance(expr, ast.Name):
            return self.resolve_name(expr.id, scope)
        if isinstance(expr, ast.Attribute):
            base = self.resolve_expr(expr.value, module, scope)
            return self.member(base, expr.attr) if base is not None else None
        if isinstance(expr, ast.Call):
            callee = self.resolve_expr(expr.func, module, scope)
            if callee is not None and callee.kind is SymbolKind.CLASS:
                return replace(callee, kind=SymbolKind.INSTANCE)
            return None
        if isinstance(expr, ast.NamedExpr):
            return self.resolve_expr(expr.value, module, scope)
        return None

    def resolve_name(self, name: str, scope: Scope) -> Symbol | None:
        """Resolve a bare name as Python would at that point: local, enclosing, module."""
        found = _lookup(name, scope)
        if found is None:
            return None
        owner, bindings = found

        key = (id(owner), name)
        if key in self._resolving:
            # import cycle between indexed modules
            return None
        self._resolving.add(key)
        try:
            return self._resolve_bindings(name, owner, bindings)
        finally:
            self._resolving.discard(key)

    def member(self, symbol: Symbol, attr: str) -> Symbol | None:
        """Resolve ``symbol.attr``."""
        if symbol.kind is SymbolKind.MODULE:
            return self._module_member(symbol.module, attr)
        if symbol.kind in (SymbolKind.CLASS, SymbolKind.INSTANCE) and symbol.class_info:
            return self._class_member(symbol.class_info, attr, set())
        if symbol.kind is SymbolKind.EXTERNAL:
            return Symbol(SymbolKind.EXTERNAL, attr, f"{symbol.module}.{symbol.name}")
        return None

    def _resolve_bindings(
        self, name: str, owner: Scope, bindings: list[Binding]
    ) -> Symbol | None:
        if len(bindings) != 1:
            # Rebound or conditionally bound: no single static target
            return None
        binding = bindings[0]
        module = self.project.modules.get(owner.module)
        if module is None:
            return None

        if isinstance(binding, ImportBinding):
            if binding.attr is None:
                return Symbol(SymbolKind.MODULE, binding.module, binding.module)
            return self._module_member(binding.module, binding.attr)

        if isinstance(binding, DefBinding):
            node = binding.node
            if isinstance(node, ast.ClassDef):
                info = self.class_info(node, module)
                return Symbol(SymbolKind.CLASS, node.name, owner.module, class_info=info)
            declaration = self.declaration(node, module)
            return Symbol(SymbolKind.FUNCTION, node.name, owner.module, declaration=declaration)

        if isinstance(binding, ReceiverBinding):
            info = self.class_info(binding.class_node, module)
            kind = SymbolKind.CLASS if binding.is_class else SymbolKind.INSTANCE
            return Symbol(kind, info.name, info.module, class_info=info)

        return self._value_symbol(name, owner, binding, module)

    def _value_symbol(
        self, name: str, owner: Scope, binding: ValueBinding, module: BoundModule
    ) -> Symbol:
        """A runtime value; typed as an instance when its class is statically known."""
        if binding.annotation is not None:
            annotated = self._resolve_annotation_expr(binding.annotation, module)
            if annotated is not None and annotated.kind is SymbolKind.CLASS:
                return Symbol(
                    SymbolKind.INSTANCE, name, owner.module, class_info=annotated.class_info
                )
        if isinstance(binding.value, ast.Call):
            made = self.resolve_expr(binding.value.func, module)
            if made is not None and made.kind is SymbolKind.CLASS:
                return Symbol(SymbolKind.INSTANCE, name, owner.module, class_info=made.class_info)
        return Symbol(SymbolKind.VARIABLE, name, owner.module)

    def _resolve_annotation_expr(self, expr: ast.expr, module: BoundModule) -> Symbol | None:
        scope = module.scope_of.get(expr)
        if scope is None:
            return None
        if isinstance(expr, ast.Constant) and isinstance(expr.value, str):
            parsed = _parse_string_annotation(expr.value)
            return self.resolve_expr(parsed, module, scope) if parsed is not None else None
        return self.resolve_expr(expr, module, scope)

    # ── Modules and classes ──

    def _module_member(self, module_name: str, attr: str) -> Symbol | None:
        target = self.project.find_module(module_name)
        if target is not None and attr in target.module_scope.bindings:
            return self.resolve_name(attr, target.module_scope)

        submodule = self.project.find_module(f"{module_name}.{attr}")
        if submodule is not None:
            return Symbol(SymbolKind.MODULE, submodule.name, submodule.name)

        origin = target.name if target is not None else module_name
        return Symbol(SymbolKind.EXTERNAL, attr, origin)

    def class_info(self, node: ast.ClassDef, module: BoundModule) -> ClassInfo:
        info = self._classes.get(node)
        if info is None:
            info = ClassInfo(
                name=node.name,
                qualified_name=_qualified_name(node, module),
                module=module.name,
                node=node,
            )
            self._classes[node] = info
        return info

    def _class_member(self, info: ClassInfo, attr: str, seen: set[int]) -> Symbol | None:
        """Look ``attr`` up in the class body, then in indexed base classes (depth-first)."""
        if id(info.node) in seen:
            return None
        seen.add(id(info.node))

        module = self.project.modules.get(info.module)
        if module is None:
            return None
        class_scope = module.inner_scopes.get(info.node)
        if class_scope is not None and attr in class_scope.bindings:
            return self._resolve_bindings(attr, class_scope, class_scope.bindings[attr])

        for base in info.node.bases:
            base_symbol = self.resolve_expr(base, module)
            if base_symbol is None or base_symbol.kind is not SymbolKind.CLASS:
                continue
            if base_symbol.class_info is None:
                continue
            found = self._class_member(base_symbol.class_info, attr, seen)
            if found is not None:
                return found
        return None

    # ── Declarations ──

    def declaration(
        self, node: ast.FunctionDef | ast.AsyncFunctionDef, module: BoundModule
    ) -> Declaration:
        """Build (once) the Declaration view of a function definition."""
        cached = self._declarations.get(node)
        if cached is not None:
            return cached

        scope = module.scope_of.get(node)
        metadata = tuple(
            self._metadata_entry(decorator, module, scope) for decorator in node.decorator_list
        )
        returns = None
        if node.returns is not None and scope is not None:
            returns = self.resolve_annotation(node.returns, module, scope)

        is_coroutine = isinstance(node, ast.AsyncFunctionDef)
        declaration = Declaration(
            name=node.name,
            qualified_name=_qualified_name(node, module),
            module=module.name,
            node=node,
            metadata=metadata,
            returns=returns,
            is_coroutine=is_coroutine,
            is_async_generator=is_coroutine and _contains_yield(node),
        )
        self._declarations[node] = declaration
        return declaration

    def _metadata_entry(
        self, decorator: ast.expr, module: BoundModule, scope: Scope | None
    ) -> MetadataEntry:
        if scope is None:
            return MetadataEntry(MetadataKind.UNRESOLVED)

        if isinstance(decorator, ast.Call):
            callee = self.resolve_expr(decorator.func, module, scope)
            if callee is not None and callee.kind in (SymbolKind.CLASS, SymbolKind.EXTERNAL):
                return MetadataEntry(
                    MetadataKind.CONSTRUCTOR,
                    callee.name,
                    self.project.canonical_name(callee.module),
                )
            return MetadataEntry(MetadataKind.UNRESOLVED)

        symbol = self.resolve_expr(decorator, module, scope)
        if symbol is None or symbol.kind is SymbolKind.MODULE:
            return MetadataEntry(MetadataKind.UNRESOLVED)
        return MetadataEntry(
            MetadataKind.VALUE, symbol.name, self.project.canonical_name(symbol.module)
        )

    # ── Types ──

    def resolve_annotation(
        self, expr: ast.expr, module: BoundModule, scope: Scope
    ) -> ResolvedType | None:
        """Resolve a return annotation to its head type constructor and arguments."""
        if isinstance(expr, ast.Constant):
            if expr.value is None:
                return ResolvedType("None", "builtins")
            if isinstance(expr.value, str):
                parsed = _parse_string_annotation(expr.value)
                if parsed is None:
                    return None
                return self.resolve_annotation(parsed, module, scope)
            return None

        if isinstance(expr, ast.BinOp) and isinstance(expr.op, ast.BitOr):
            members = (
                self.resolve_annotation(expr.left, module, scope),
                self.resolve_annotation(expr.right, module, scope),
            )
            return ResolvedType(
                "Union", "typing", tuple(member for member in members if member is not None)
            )

        if isinstance(expr, ast.Subscript):
            head = self.resolve_annotation(expr.value, module, scope)
            if head is None:
                return None
            items = expr.slice.elts if isinstance(expr.slice, ast.Tuple) else [expr.slice]
            args = tuple(
                arg
                for arg in (self.resolve_annotation(item, module, scope) for item in items)
                if arg is not None
            )
            return ResolvedType(head.name, head.module, args)

        symbol = self.resolve_expr(expr, module, scope)
        if symbol is None or symbol.kind not in (SymbolKind.CLASS, SymbolKind.EXTERNAL):
            return None
        return ResolvedType(symbol.name, symbol.module)


def _lookup(name: str, scope: Scope) -> tuple[Scope, list[Binding]] | None:
    """Find the scope that binds ``name``; class bodies are invisible to nested scopes."""
    start = scope.root if name in scope.globals else scope
    current: Scope | None = start
    while current is not None:
        if current is start or current.kind != "class":
            bindings = current.bindings.get(name)
            if bindings:
                return current, bindings
        current = current.parent
    return None


def _qualified_name(node: ast.AST, module: BoundModule) -> str:
    parts: list[str] = []
    current: ast.AST | None = node
    while current is not None:
        if isinstance(current, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef)):
            parts.append(current.name)
        current = module.parent(current)
    return ".".join(reversed(parts))


def _contains_yield(node: ast.AsyncFunctionDef) -> bool:
    """True if the function body itself (not nested functions) yields."""
    stack: list[ast.AST] = list(node.body)
    while stack:
        child = stack.pop()
        if isinstance(child, (ast.Yield, ast.YieldFrom)):
            return True
        if isinstance(child, (ast.FunctionDef, ast.AsyncFunctionDef, ast.Lambda, ast.ClassDef)):
            continue
        stack.extend(ast.iter_child_nodes(child))
    return False


def _parse_string_annotation(text: str) -> ast.expr | None:
    try:
        return ast.parse(text.strip(), mode="eval").body
    except SyntaxError:
        logger.debug(f"Unparseable string annotation: {text!r}")
        return None
