"""
Marker definitions consumed by the checker.

The checker recognizes two surface forms, both defined here:

    from must_be_handled import MustBeHandled, must_be_handled

    @must_be_handled
    def dangerous_sync() -> None: ...

    @MustBeHandled()
    async def fetch_user() -> User: ...

Valid call sites:

    try:
        dangerous_sync()
    except ValueError:
        ...

    try:
        user = await fetch_user()
    except LookupError:
        ...

At runtime the marker is inert: it tags the function and returns it unchanged.
"""

from __future__ import annotations

from typing import Any, Callable, TypeVar

F = TypeVar("F", bound=Callable[..., Any])

MARKER_ATTRIBUTE = "__must_be_handled__"


class MustBeHandled:
    """Marks a function or method as requiring explicit error handling by callers."""

    __slots__ = ()

    def __call__(self, func: F) -> F:
        setattr(func, MARKER_ATTRIBUTE, True)
        return func

    def __repr__(self) -> str:
        return "must_be_handled"


# Convenience singleton, used as a bare decorator: @must_be_handled
must_be_handled = MustBeHandled()


def is_marked(func: Any) -> bool:
    """Return True if ``func`` was decorated with the marker at runtime."""
    return bool(getattr(func, MARKER_ATTRIBUTE, False))
