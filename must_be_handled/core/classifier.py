"""
Callable Classifier: is a declaration asynchronous?

A declaration is asynchronous when its result is future-like: it is a
coroutine function (`async def`, excluding async generators), or its return
annotation's head is an awaitable type from the standard asynchronous
modules, or a union with such a member (the "awaitable or immediate value"
form). Anything unresolved is synchronous.
"""

from __future__ import annotations

from must_be_handled.models.tree_models import Declaration, ResolvedType

_TYPING_MODULES = frozenset({"typing", "typing_extensions", "collections.abc"})
_ASYNCIO_FUTURE_MODULES = frozenset({"asyncio", "asyncio.futures"})
_ASYNCIO_TASK_MODULES = frozenset({"asyncio", "asyncio.tasks"})

FUTURE_TYPES: dict[str, frozenset[str]] = {
    "Awaitable": _TYPING_MODULES,
    "Coroutine": _TYPING_MODULES,
    "Future": _ASYNCIO_FUTURE_MODULES,
    "Task": _ASYNCIO_TASK_MODULES,
}

UNION_TYPES = frozenset(
    {
        ("Union", "typing"),
        ("Union", "typing_extensions"),
        ("Optional", "typing"),
        ("Optional", "typing_extensions"),
    }
)


def is_future_type(resolved: ResolvedType) -> bool:
    return resolved.module in FUTURE_TYPES.get(resolved.name, ())


def is_asynchronous(declaration: Declaration) -> bool:
    if declaration.is_coroutine:
        return not declaration.is_async_generator
    returns = declaration.returns
    if returns is None:
        return False
    if (returns.name, returns.module) in UNION_TYPES:
        return any(is_future_type(member) for member in returns.args)
    return is_future_type(returns)
