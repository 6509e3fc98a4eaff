"""
must_be_handled: explicit error-handling contracts for Python callables.

Decorate a function with ``@must_be_handled`` (or ``@MustBeHandled()``) and the
checker requires every call site to sit inside the body of a try/except.
Coroutine functions must additionally be awaited there.

Importing this package only pulls in the marker definitions; the checker lives
in ``must_be_handled.core`` and its outer surfaces in ``must_be_handled.cli``
and ``must_be_handled.main``.
"""

from __future__ import annotations

from must_be_handled.annotation import MustBeHandled, is_marked, must_be_handled

__version__ = "0.1.0"
__all__ = [
    "MustBeHandled",
    "is_marked",
    "must_be_handled",
]
