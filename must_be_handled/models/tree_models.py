"""
Resolved Tree Models: read-only views over a bound Python syntax tree.

These are produced by the binder and consumed by the detection core. They hold
non-owning references to ``ast`` nodes and are never mutated after
construction, so they are plain frozen dataclasses rather than pydantic models.
"""

from __future__ import annotations

import ast
from dataclasses import dataclass, field
from enum import Enum


class MetadataKind(str, Enum):
    """How a decorator expression resolved."""

    VALUE = "value"  # bare reference: @name, @module.name
    CONSTRUCTOR = "constructor"  # constructor-style call: @Name()
    UNRESOLVED = "unresolved"


class SymbolKind(str, Enum):
    """What a resolved name or attribute refers to."""

    MODULE = "module"
    FUNCTION = "function"
    CLASS = "class"
    INSTANCE = "instance"
    VARIABLE = "variable"
    EXTERNAL = "external"  # defined outside the indexed modules


class CallShape(str, Enum):
    """Surface shape of a call expression."""

    NAMED = "named"  # f(), obj.f(), module.f()
    EXPRESSION = "expression"  # any other callee expression


@dataclass(frozen=True)
class MetadataEntry:
    """One decorator attached to a declaration."""

    kind: MetadataKind
    name: str = ""
    module: str = ""


@dataclass(frozen=True)
class ResolvedType:
    """A declared type with its head constructor resolved to a defining module."""

    name: str
    module: str
    args: tuple[ResolvedType, ...] = ()


@dataclass(frozen=True)
class Declaration:
    """A function or method definition with its resolved metadata and result type."""

    name: str
    qualified_name: str
    module: str
    node: ast.FunctionDef | ast.AsyncFunctionDef = field(compare=False, repr=False)
    metadata: tuple[MetadataEntry, ...] = ()
    returns: ResolvedType | None = None
    is_coroutine: bool = False
    is_async_generator: bool = False


@dataclass(frozen=True)
class ClassInfo:
    """An indexed class definition."""

    name: str
    qualified_name: str
    module: str
    node: ast.ClassDef = field(compare=False, repr=False)


@dataclass(frozen=True)
class Symbol:
    """The target of a resolved name, attribute or call."""

    kind: SymbolKind
    name: str
    module: str
    declaration: Declaration | None = None
    class_info: ClassInfo | None = None


@dataclass(frozen=True)
class CallSite:
    """A call expression together with its resolved target declaration."""

    shape: CallShape
    node: ast.Call = field(compare=False, repr=False)
    name: str
    declaration: Declaration | None = None
