"""
Marker Resolver: does a declaration carry the handling-required marker?

Two surface forms are accepted and treated identically:

    @must_be_handled        # VALUE: read of the pre-built singleton
    @MustBeHandled()        # CONSTRUCTOR: direct construction of the marker type

Either way the binding must originate from the `must_be_handled` package, so a
same-named decorator defined locally or imported from elsewhere does not count.
"""

from __future__ import annotations

from must_be_handled.models.tree_models import Declaration, MetadataEntry, MetadataKind

MARKER_MODULE = "must_be_handled"
MARKER_VALUE_NAME = "must_be_handled"
MARKER_TYPE_NAME = "MustBeHandled"


def is_marker_module(module: str) -> bool:
    """Exact package match, or one of its submodules (not a mere string prefix)."""
    return module == MARKER_MODULE or module.startswith(f"{MARKER_MODULE}.")


def is_marker(entry: MetadataEntry) -> bool:
    if entry.kind is MetadataKind.VALUE:
        return entry.name == MARKER_VALUE_NAME and is_marker_module(entry.module)
    if entry.kind is MetadataKind.CONSTRUCTOR:
        return entry.name == MARKER_TYPE_NAME and is_marker_module(entry.module)
    return False


def has_required_marker(declaration: Declaration) -> bool:
    return any(is_marker(entry) for entry in declaration.metadata)
