"""
Binder: builds the resolved syntax tree consumed by the detection core.

Parses Python sources with the built-in `ast` module, links every node to its
parent and records the scopes of every module (`must_be_handled.core.scopes`).
Name resolution on top of those scopes lives in `must_be_handled.core.resolver`.

All modules of one analysis pass are bound together so that a call in one file
resolves to a marked declaration in another.
"""

from __future__ import annotations

import ast
import logging
import re
import sys
from dataclasses import dataclass, field
from functools import cached_property
from pathlib import PurePosixPath
from typing import Iterator

from must_be_handled.core.marker import MARKER_MODULE
from must_be_handled.core.resolver import Resolver
from must_be_handled.core.scopes import Scope, build_scopes
from must_be_handled.core.suppression import parse_noqa
from must_be_handled.models.rule_models import Span

logger = logging.getLogger("must_be_handled.binder")

# Line breaks as the tokenizer sees them
_NEWLINE = re.compile(r"\r\n|\r|\n")


# ── Bound modules ──


@dataclass(frozen=True)
class ParseError:
    """A file that could not be parsed and was left out of the pass."""

    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


@dataclass(eq=False)
class BoundModule:
    """One parsed module with parent links and scopes."""

    path: str
    name: str
    source: str
    tree: ast.Module
    is_package: bool
    project: BoundProject = field(repr=False)
    parents: dict[ast.AST, ast.AST] = field(repr=False)
    scope_of: dict[ast.AST, Scope] = field(repr=False)
    inner_scopes: dict[ast.AST, Scope] = field(repr=False)

    @property
    def module_scope(self) -> Scope:
        return self.inner_scopes[self.tree]

    @cached_property
    def _lines(self) -> list[str]:
        return _NEWLINE.split(self.source)

    @cached_property
    def _line_starts(self) -> list[int]:
        # Offsets into the original text, whatever its line endings
        starts = [0]
        starts.extend(match.end() for match in _NEWLINE.finditer(self.source))
        return starts

    @cached_property
    def noqa(self) -> dict[int, frozenset[str] | None]:
        """Line number -> suppressed codes (None suppresses every code)."""
        return parse_noqa(self.source)

    def parent(self, node: ast.AST) -> ast.AST | None:
        return self.parents.get(node)

    def calls(self) -> Iterator[ast.Call]:
        """Every call expression in the module, in source order."""
        calls = [node for node in ast.walk(self.tree) if isinstance(node, ast.Call)]
        calls.sort(key=lambda node: (node.lineno, node.col_offset))
        yield from calls

    def span(self, node: ast.expr) -> Span:
        """Character-based source span of an expression node."""
        line = node.lineno
        end_line = node.end_lineno or line
        column = self._char_column(line, node.col_offset)
        end_column = self._char_column(
            end_line,
            node.end_col_offset if node.end_col_offset is not None else node.col_offset,
        )
        offset = self._line_starts[line - 1] + column
        end_offset = self._line_starts[end_line - 1] + end_column
        return Span(
            offset=offset,
            length=end_offset - offset,
            line=line,
            column=column,
            end_line=end_line,
            end_column=end_column,
        )

    def _char_column(self, line: int, byte_offset: int) -> int:
        # ast column offsets count UTF-8 bytes
        text = self._lines[line - 1]
        return len(text.encode("utf-8")[:byte_offset].decode("utf-8", errors="ignore"))


class BoundProject:
    """All modules of one analysis pass, bound together."""

    def __init__(self) -> None:
        self.modules: dict[str, BoundModule] = {}
        self.parse_errors: list[ParseError] = []
        self.resolver = Resolver(self)

    def add(self, path: str, source: str) -> BoundModule | None:
        """Parse and bind one source file. Returns None on a syntax error."""
        name, is_package = module_name_for(path)
        try:
            tree = ast.parse(source, filename=path)
        except SyntaxError as e:
            self.parse_errors.append(ParseError(path, f"SyntaxError at line {e.lineno}: {e.msg}"))
            logger.info(f"Skipping {path}: syntax error at line {e.lineno}")
            return None
        except ValueError as e:
            # Null bytes in the source
            self.parse_errors.append(ParseError(path, f"ValueError: {e}"))
            logger.info(f"Skipping {path}: {e}")
            return None

        parents: dict[ast.AST, ast.AST] = {}
        for node in ast.walk(tree):
            for child in ast.iter_child_nodes(node):
                parents[child] = node

        scope_of, inner_scopes = build_scopes(tree, name, is_package)

        if name in self.modules:
            logger.warning(f"Module name '{name}' bound twice; {path} replaces the earlier file")

        module = BoundModule(
            path=path,
            name=name,
            source=source,
            tree=tree,
            is_package=is_package,
            project=self,
            parents=parents,
            scope_of=scope_of,
            inner_scopes=inner_scopes,
        )
        self.modules[name] = module
        return module

    def find_module(self, name: str) -> BoundModule | None:
        """
        Look up an indexed module by dotted name.

        Falls back to a unique suffix match so that files submitted with a
        leading directory (``src/pkg/mod.py``) still satisfy ``import pkg.mod``.
        Standard-library names and the marker package never match by suffix.
        """
        module = self.modules.get(name)
        if module is not None or not name:
            return module
        head = name.split(".")[0]
        if head in sys.stdlib_module_names or head == MARKER_MODULE:
            return None
        suffix = f".{name}"
        matches = [m for key, m in self.modules.items() if key.endswith(suffix)]
        return matches[0] if len(matches) == 1 else None

    def canonical_name(self, name: str) -> str:
        """
        Strip the leading directories of an indexed copy of the marker package.

        ``vendor.must_be_handled.annotation`` becomes
        ``must_be_handled.annotation`` when ``vendor/must_be_handled/__init__.py``
        is part of the pass. Any other name is returned unchanged.
        """
        parts = name.split(".")
        for index in range(len(parts) - 1, 0, -1):
            if parts[index] != MARKER_MODULE:
                continue
            package = self.modules.get(".".join(parts[: index + 1]))
            if package is not None and package.is_package:
                return ".".join(parts[index:])
        return name


def module_name_for(path: str) -> tuple[str, bool]:
    """Derive (dotted module name, is_package) from a file path."""
    pure = PurePosixPath(path.replace("\\", "/"))
    parts = [p for p in pure.with_suffix("").parts if p not in ("/", ".", "..")]
    if parts and parts[0].endswith(":"):  # drive letter
        parts = parts[1:]
    is_package = bool(parts) and parts[-1] == "__init__"
    if is_package:
        parts = parts[:-1]
    return ".".join(parts) or "__main__", is_package


def bind_modules(sources: dict[str, str]) -> BoundProject:
    """
    Parse and bind a set of source files as one project.

    Args:
        sources: Dict mapping file_path -> source code.

    Returns:
        BoundProject with every parseable module bound; syntax errors are
        collected in ``parse_errors``.
    """
    project = BoundProject()
    for path, source in sources.items():
        project.add(path, source)
    logger.debug(
        f"Bound {len(project.modules)} modules ({len(project.parse_errors)} parse errors)"
    )
    return project
