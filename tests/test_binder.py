"""
Tests for the binder and resolver: module naming, parsing and name resolution.
"""

import pytest

from must_be_handled.core.binder import bind_modules, module_name_for
from must_be_handled.core.call_site import UNKNOWN_NAME, call_site
from must_be_handled.models.tree_models import CallShape, SymbolKind


@pytest.mark.parametrize("path, expected", [
    ("app.py", ("app", False)),
    ("./app.py", ("app", False)),
    ("src/shop/services.py", ("src.shop.services", False)),
    ("shop/__init__.py", ("shop", True)),
    ("/srv/project/shop/api.py", ("srv.project.shop.api", False)),
    ("C:\\work\\shop\\api.py", ("work.shop.api", False)),
])
def test_module_name_for(path, expected):
    assert module_name_for(path) == expected


def test_syntax_error_collected():
    project = bind_modules({"good.py": "x = 1\n", "bad.py": "def broken(:\n    pass\n"})
    assert list(project.modules) == ["good"]
    assert len(project.parse_errors) == 1
    error = project.parse_errors[0]
    assert error.path == "bad.py"
    assert "SyntaxError" in error.message


def test_null_bytes_collected():
    project = bind_modules({"bad.py": "x = 1\x00\n"})
    assert project.modules == {}
    assert len(project.parse_errors) == 1


def test_calls_in_source_order():
    project = bind_modules({"mod.py": "first(second())\nthird()\n"})
    names = [call.func.id for call in project.modules["mod"].calls()]
    assert names == ["first", "second", "third"]


def test_find_module_suffix_match():
    project = bind_modules({"src/shop/services.py": "", "src/shop/api.py": ""})
    assert project.find_module("shop.services").name == "src.shop.services"
    assert project.find_module("services").name == "src.shop.services"
    assert project.find_module("missing") is None


def test_find_module_ambiguous_suffix():
    project = bind_modules({"a/util.py": "", "b/util.py": ""})
    assert project.find_module("util") is None


def test_find_module_never_shadows_stdlib():
    project = bind_modules({"vendor/asyncio.py": ""})
    assert project.find_module("asyncio") is None
    assert project.find_module("vendor.asyncio") is not None


def _resolve(sources: dict[str, str], module_name: str, name: str):
    project = bind_modules(sources)
    module = project.modules[module_name]
    call = next(c for c in module.calls() if getattr(c.func, "id", None) == name
                or getattr(c.func, "attr", None) == name)
    return call_site(call, module)


def test_resolves_reexported_function():
    site = _resolve({
        "shop/__init__.py": "from shop.services import charge\n",
        "shop/services.py": "def charge():\n    pass\n",
        "app.py": "import shop\nshop.charge()\n",
    }, "app", "charge")
    assert site.shape == CallShape.NAMED
    assert site.declaration.module == "shop.services"
    assert site.declaration.qualified_name == "charge"


def test_resolves_submodule_attribute():
    site = _resolve({
        "shop/__init__.py": "",
        "shop/services.py": "def charge():\n    pass\n",
        "app.py": "import shop.services\nshop.services.charge()\n",
    }, "app", "charge")
    assert site.declaration is not None


def test_resolves_parent_relative_import():
    site = _resolve({
        "shop/__init__.py": "",
        "shop/services.py": "def charge():\n    pass\n",
        "shop/api/__init__.py": "",
        "shop/api/routes.py": "from ..services import charge\ncharge()\n",
    }, "shop.api.routes", "charge")
    assert site.declaration.module == "shop.services"


def test_class_scope_invisible_to_methods():
    site = _resolve({
        "mod.py": (
            "class Service:\n"
            "    def helper():\n"
            "        pass\n"
            "    def run(self):\n"
            "        helper()\n"
        ),
    }, "mod", "helper")
    assert site.declaration is None


def test_local_shadows_module_function():
    site = _resolve({
        "mod.py": (
            "def charge():\n"
            "    pass\n"
            "def main(charge):\n"
            "    charge()\n"
        ),
    }, "mod", "charge")
    assert site.declaration is None


def test_global_statement_reads_module_binding():
    site = _resolve({
        "mod.py": (
            "def charge():\n"
            "    pass\n"
            "def main():\n"
            "    global charge\n"
            "    charge()\n"
        ),
    }, "mod", "charge")
    assert site.declaration is not None


def test_classmethod_receiver():
    site = _resolve({
        "mod.py": (
            "class Service:\n"
            "    def build(self):\n"
            "        pass\n"
            "    @classmethod\n"
            "    def create(cls):\n"
            "        cls().build()\n"
        ),
    }, "mod", "build")
    assert site.declaration.qualified_name == "Service.build"


def test_walrus_callee_resolved():
    project = bind_modules({"mod.py": "def charge():\n    pass\n(f := charge)()\n"})
    module = project.modules["mod"]
    site = call_site(next(module.calls()), module)
    assert site.shape == CallShape.EXPRESSION
    assert site.name == "charge"
    assert site.declaration is not None


def test_unresolvable_expression_callee():
    project = bind_modules({"mod.py": "handlers = {}\nhandlers['x']()\n"})
    module = project.modules["mod"]
    site = call_site(next(module.calls()), module)
    assert site.shape == CallShape.EXPRESSION
    assert site.name == UNKNOWN_NAME
    assert site.declaration is None


def test_external_symbol():
    project = bind_modules({"mod.py": "import requests\n"})
    module = project.modules["mod"]
    symbol = project.resolver.resolve_name("requests", module.module_scope)
    assert symbol.kind == SymbolKind.MODULE
    member = project.resolver.member(symbol, "get")
    assert member.kind == SymbolKind.EXTERNAL
    assert member.module == "requests"


def test_find_module_never_matches_marker_package_by_suffix():
    project = bind_modules({
        "checks/must_be_handled.py": "",
        "vendor/must_be_handled/__init__.py": "",
        "vendor/must_be_handled/annotation.py": "",
    })
    assert project.find_module("must_be_handled") is None
    assert project.find_module("must_be_handled.annotation") is None
    assert project.find_module("vendor.must_be_handled") is not None


def test_canonical_name():
    project = bind_modules({
        "checks/must_be_handled.py": "",
        "vendor/must_be_handled/__init__.py": "",
        "vendor/must_be_handled/annotation.py": "",
    })
    assert project.canonical_name("vendor.must_be_handled.annotation") == (
        "must_be_handled.annotation"
    )
    assert project.canonical_name("vendor.must_be_handled") == "must_be_handled"
    # A plain module with that name is not the marker package
    assert project.canonical_name("checks.must_be_handled") == "checks.must_be_handled"
    assert project.canonical_name("must_be_handled") == "must_be_handled"
    assert project.canonical_name("app") == "app"
