"""
Tests for the must-be-handled rule: each call site gets the right verdict.
"""

import textwrap

import pytest

from must_be_handled.core.binder import bind_modules
from must_be_handled.core.rule_engine import RuleEngine, check_sources
from must_be_handled.models.rule_models import RULE_ID, DiagnosticKind, Severity

HEADER = '''
import asyncio

from must_be_handled import must_be_handled


@must_be_handled
def dangerous_sync():
    raise ValueError()


@must_be_handled
async def fetch_user():
    raise LookupError()

'''


def _source(body: str) -> str:
    return HEADER + textwrap.dedent(body)


def _kinds(body: str) -> list[DiagnosticKind]:
    result = check_sources({"app.py": _source(body)})
    return [d.kind for d in result.diagnostics]


# ── The six basic verdicts ──


def test_sync_call_outside_try_reported():
    result = check_sources({"app.py": _source('''
        def main():
            dangerous_sync()
    ''')})
    assert len(result.diagnostics) == 1
    diagnostic = result.diagnostics[0]
    assert diagnostic.kind == DiagnosticKind.SYNC_NOT_HANDLED
    assert diagnostic.code == "MBH001"
    assert diagnostic.name == "dangerous_sync"
    assert diagnostic.rule_id == RULE_ID
    assert diagnostic.severity == Severity.ERROR
    assert diagnostic.file == "app.py"
    assert "dangerous_sync" in diagnostic.message


def test_sync_call_in_try_body_clean():
    assert _kinds('''
        def main():
            try:
                dangerous_sync()
            except ValueError:
                pass
    ''') == []


def test_async_call_not_awaited_reported():
    assert _kinds('''
        async def main():
            fetch_user()
    ''') == [DiagnosticKind.ASYNC_NOT_AWAITED]


def test_awaited_call_outside_try_reported():
    result = check_sources({"app.py": _source('''
        async def main():
            await fetch_user()
    ''')})
    assert [d.code for d in result.diagnostics] == ["MBH003"]


def test_async_call_in_try_without_await_reported():
    assert _kinds('''
        async def main():
            try:
                fetch_user()
            except LookupError:
                pass
    ''') == [DiagnosticKind.ASYNC_NOT_AWAITED]


def test_awaited_call_in_try_body_clean():
    assert _kinds('''
        async def main():
            try:
                user = await fetch_user()
            except Exception:
                user = None
            return user
    ''') == []


# ── Clauses of the try statement ──


def test_call_in_except_clause_reported():
    assert _kinds('''
        def main():
            try:
                pass
            except ValueError:
                dangerous_sync()
    ''') == [DiagnosticKind.SYNC_NOT_HANDLED]


def test_call_in_else_and_finally_reported():
    assert _kinds('''
        def main():
            try:
                pass
            except ValueError:
                pass
            else:
                dangerous_sync()
            finally:
                dangerous_sync()
    ''') == [DiagnosticKind.SYNC_NOT_HANDLED, DiagnosticKind.SYNC_NOT_HANDLED]


def test_try_finally_without_handlers_does_not_protect():
    assert _kinds('''
        def main():
            try:
                dangerous_sync()
            finally:
                pass
    ''') == [DiagnosticKind.SYNC_NOT_HANDLED]


def test_try_finally_inside_protected_body_is_walked_through():
    assert _kinds('''
        def main():
            try:
                try:
                    dangerous_sync()
                finally:
                    pass
            except ValueError:
                pass
    ''') == []


def test_inner_try_in_except_clause_protects():
    assert _kinds('''
        def main():
            try:
                pass
            except ValueError:
                try:
                    dangerous_sync()
                except ValueError:
                    pass
    ''') == []


def test_nearest_try_decides():
    # The inner try protects nothing in its handler, even inside an outer body
    assert _kinds('''
        def main():
            try:
                try:
                    pass
                except KeyError:
                    dangerous_sync()
            except ValueError:
                pass
    ''') == [DiagnosticKind.SYNC_NOT_HANDLED]


# ── Callable boundaries ──


def test_nested_function_not_protected_by_outer_try():
    assert _kinds('''
        def main():
            try:
                def inner():
                    dangerous_sync()
                inner()
            except ValueError:
                pass
    ''') == [DiagnosticKind.SYNC_NOT_HANDLED]


def test_lambda_body_not_protected_by_outer_try():
    assert _kinds('''
        def main():
            try:
                callback = lambda: dangerous_sync()
            except ValueError:
                callback = None
            return callback
    ''') == [DiagnosticKind.SYNC_NOT_HANDLED]


def test_default_argument_protected_by_outer_try():
    assert _kinds('''
        def main():
            try:
                def inner(value=dangerous_sync()):
                    return value
            except ValueError:
                pass
    ''') == []


def test_module_level_call_reported():
    assert _kinds('''
        dangerous_sync()
    ''') == [DiagnosticKind.SYNC_NOT_HANDLED]


# ── Await linking ──


def test_awaited_through_gather_arguments():
    assert _kinds('''
        async def main():
            try:
                await asyncio.gather(fetch_user(), fetch_user())
            except LookupError:
                pass
    ''') == []


def test_coroutine_assigned_then_awaited_reported():
    assert _kinds('''
        async def main():
            try:
                pending = fetch_user()
                await pending
            except LookupError:
                pass
    ''') == [DiagnosticKind.ASYNC_NOT_AWAITED]


def test_walrus_breaks_await_link():
    assert _kinds('''
        async def main():
            try:
                await (pending := fetch_user())
            except LookupError:
                pass
    ''') == [DiagnosticKind.ASYNC_NOT_AWAITED]


def test_generator_expression_breaks_await_link():
    assert _kinds('''
        async def main():
            try:
                await asyncio.gather(*(fetch_user() for _ in range(3)))
            except LookupError:
                pass
    ''') == [DiagnosticKind.ASYNC_NOT_AWAITED]


# ── Resolution ──


def test_unmarked_calls_never_reported():
    assert _kinds('''
        def helper():
            return 1

        helper()
        print(helper())
    ''') == []


def test_rebound_name_not_resolved():
    assert _kinds('''
        def replacement():
            pass

        dangerous_sync = replacement
        dangerous_sync()
    ''') == []


def test_method_calls_resolved():
    assert _kinds('''
        class Client:
            @must_be_handled
            async def fetch(self):
                raise LookupError()

            async def refresh(self):
                await self.fetch()


        async def use(client: Client):
            try:
                await client.fetch()
            except LookupError:
                pass
            Client().fetch()
            other = Client()
            other.fetch()
    ''') == [
        DiagnosticKind.ASYNC_NOT_HANDLED,
        DiagnosticKind.ASYNC_NOT_AWAITED,
        DiagnosticKind.ASYNC_NOT_AWAITED,
    ]


def test_inherited_method_resolved():
    assert _kinds('''
        class Base:
            @must_be_handled
            def save(self):
                raise ValueError()


        class Child(Base):
            pass


        Child().save()
    ''') == [DiagnosticKind.SYNC_NOT_HANDLED]


def test_cross_module_calls(services_code, app_code):
    result = check_sources({"services.py": services_code, "app.py": app_code})
    assert [(d.file, d.code, d.name) for d in result.diagnostics] == [
        ("app.py", "MBH001", "charge_card"),
        ("app.py", "MBH002", "fetch_user"),
        ("app.py", "MBH003", "fetch_user"),
    ]
    assert result.total_files_checked == 2


def test_relative_import_resolved(services_code):
    result = check_sources({
        "shop/__init__.py": "",
        "shop/services.py": services_code,
        "shop/api.py": "from .services import charge_card\n\ncharge_card(1)\n",
    })
    assert [(d.file, d.code) for d in result.diagnostics] == [("shop/api.py", "MBH001")]


# ── Spans ──


def test_span_points_at_call_expression():
    source = _source('''
        def main():
            dangerous_sync()
    ''')
    result = check_sources({"app.py": source})
    span = result.diagnostics[0].span
    offset = source.index("    dangerous_sync()") + 4
    assert span.offset == offset
    assert span.length == len("dangerous_sync()")
    assert span.line == source[:offset].count("\n") + 1
    assert span.column == 4
    assert span.end_line == span.line


def test_span_counts_characters_not_bytes():
    source = _source('''
        label = "é"; dangerous_sync()
    ''')
    span = check_sources({"app.py": source}).diagnostics[0].span
    assert span.column == len('label = "é"; ')
    assert source[span.offset:span.offset + span.length] == "dangerous_sync()"


# ── Engine ──


def test_diagnostics_independent_of_file_order(services_code, app_code):
    forward = check_sources({"services.py": services_code, "app.py": app_code})
    backward = check_sources({"app.py": app_code, "services.py": services_code})
    assert forward.diagnostics == backward.diagnostics


def test_syntax_error_reported_as_parse_error(services_code):
    result = check_sources({"services.py": services_code, "broken.py": "def broken(:\n"})
    assert result.diagnostics == []
    assert len(result.parse_errors) == 1
    assert result.parse_errors[0].startswith("broken.py")
    assert result.total_files_checked == 1


def test_failing_rule_does_not_crash_engine(services_code):
    def exploding_rule(module):
        raise RuntimeError("boom")

    engine = RuleEngine({"exploding": exploding_rule})
    result = engine.run(bind_modules({"services.py": services_code}))
    assert result.diagnostics == []
    assert result.rules_executed == ["exploding"]


def test_run_single_rule(app_code, services_code):
    project = bind_modules({"services.py": services_code, "app.py": app_code})
    diagnostics = RuleEngine().run_single_rule(RULE_ID, project.modules["app"])
    assert len(diagnostics) == 3


def test_run_single_rule_unknown():
    project = bind_modules({"app.py": "pass\n"})
    with pytest.raises(ValueError):
        RuleEngine().run_single_rule("no_such_rule", project.modules["app"])


@pytest.mark.parametrize("newline", ["\r\n", "\r"])
def test_span_with_other_line_endings(newline):
    source = (
        "from must_be_handled import must_be_handled\n"
        "@must_be_handled\n"
        "def charge(): pass\n"
        "x = 1; charge()\n"
    ).replace("\n", newline)
    result = check_sources({"app.py": source})
    assert [d.code for d in result.diagnostics] == ["MBH001"]
    span = result.diagnostics[0].span
    assert (span.line, span.column) == (4, 7)
    assert source[span.offset:span.offset + span.length] == "charge()"
