"""
Test fixtures shared across all must-be-handled tests.
"""

import pytest


@pytest.fixture
def services_code():
    """A module declaring marked callables in both marker forms."""
    return '''
import asyncio

from must_be_handled import MustBeHandled, must_be_handled


@must_be_handled
def charge_card(amount: int) -> None:
    raise ValueError("declined")


@must_be_handled
async def fetch_user(user_id: int) -> dict:
    raise LookupError(user_id)


@MustBeHandled()
async def risky_operation() -> None:
    raise RuntimeError("failed")


def plain() -> int:
    return 1
'''


@pytest.fixture
def app_code():
    """Calls into services.py: one violation of each kind, plus handled calls."""
    return '''
import asyncio

import services
from services import charge_card, fetch_user


def checkout() -> None:
    charge_card(10)
    try:
        charge_card(10)
    except ValueError:
        pass


async def load() -> None:
    fetch_user(1)
    await fetch_user(1)
    try:
        await services.fetch_user(1)
        await services.risky_operation()
    except LookupError:
        pass
    services.plain()
'''


@pytest.fixture
def clean_python_code():
    """Every marked call is handled."""
    return '''
from must_be_handled import must_be_handled


@must_be_handled
def parse_config(text: str) -> dict:
    raise ValueError(text)


@must_be_handled
async def connect(url: str) -> None:
    raise ConnectionError(url)


async def main() -> dict:
    try:
        await connect("db://localhost")
        return parse_config("")
    except (ValueError, ConnectionError):
        return {}
'''
