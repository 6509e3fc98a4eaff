"""
Rule Engine: orchestrates the registered rules over a bound project.

Runs every registered rule against every bound module, applies inline
``# noqa`` suppressions and collects the result. Pure static analysis: no I/O,
no shared state between passes.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from must_be_handled.core.binder import BoundModule, BoundProject, bind_modules
from must_be_handled.core.rules import must_be_handled
from must_be_handled.core.suppression import is_suppressed
from must_be_handled.models.rule_models import CheckResult, Diagnostic

logger = logging.getLogger("must_be_handled.engine")

# Type for a rule check function
RuleCheckFn = Callable[[BoundModule], list[Diagnostic]]

# Registry of all rules
RULE_REGISTRY: dict[str, RuleCheckFn] = {
    must_be_handled.RULE_ID: must_be_handled.check,
}


class RuleEngine:
    """
    Deterministic rule engine.

    Each call expression is judged independently at its call site, so the
    order in which modules or rules run never changes the result.
    """

    def __init__(self, rules: dict[str, RuleCheckFn] | None = None) -> None:
        self.rules = rules or RULE_REGISTRY

    def run(self, project: BoundProject) -> CheckResult:
        """
        Run all rules against all modules of a project.

        Args:
            project: Modules bound together by `bind_modules`.

        Returns:
            CheckResult with every unsuppressed diagnostic found.
        """
        start = time.monotonic()
        diagnostics: list[Diagnostic] = []
        rules_executed: list[str] = []
        suppressed = 0

        for rule_id, check_fn in self.rules.items():
            rules_executed.append(rule_id)
            for module in project.modules.values():
                try:
                    found = check_fn(module)
                except Exception:
                    # Rule failures should not crash the engine
                    logger.exception(f"Rule '{rule_id}' failed on {module.path}")
                    continue
                for diagnostic in found:
                    if is_suppressed(diagnostic, module.noqa):
                        suppressed += 1
                        continue
                    diagnostics.append(diagnostic)

        elapsed = (time.monotonic() - start) * 1000

        return CheckResult(
            diagnostics=diagnostics,
            rules_executed=rules_executed,
            total_files_checked=len(project.modules),
            suppressed=suppressed,
            parse_errors=[str(error) for error in project.parse_errors],
            check_duration_ms=round(elapsed, 2),
        )

    def run_single_rule(self, rule_id: str, module: BoundModule) -> list[Diagnostic]:
        """Run a single rule against a single module, without suppressions."""
        if rule_id not in self.rules:
            raise ValueError(f"Unknown rule: {rule_id}")
        return self.rules[rule_id](module)


def check_sources(sources: dict[str, str]) -> CheckResult:
    """Bind ``{path: source}`` as one project and run every rule over it."""
    return RuleEngine().run(bind_modules(sources))
