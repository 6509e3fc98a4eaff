"""
Inline suppression: ``# noqa`` comments on the line where a call starts.

    fetch_user()  # noqa                 -> silences every code on this line
    fetch_user()  # noqa: MBH002         -> silences MBH002 only
    fetch_user()  # noqa: MBH002,MBH003  -> silences both
"""

from __future__ import annotations

import io
import logging
import re
import tokenize

from must_be_handled.models.rule_models import Diagnostic

logger = logging.getLogger("must_be_handled.suppression")

NOQA_PATTERN = re.compile(
    r"#\s*noqa(?::\s*(?P<codes>[A-Z]+[0-9]+(?:\s*,\s*[A-Z]+[0-9]+)*))?",
    re.IGNORECASE,
)


def parse_noqa(source: str) -> dict[int, frozenset[str] | None]:
    """Map line number -> suppressed codes, or None when the comment names no codes."""
    suppressions: dict[int, frozenset[str] | None] = {}
    try:
        # newline=None splits on \r and \r\n too, as the parser does
        for token in tokenize.generate_tokens(io.StringIO(source, newline=None).readline):
            if token.type != tokenize.COMMENT:
                continue
            match = NOQA_PATTERN.search(token.string)
            if match is None:
                continue
            codes = match.group("codes")
            line = token.start[0]
            if codes is None:
                suppressions[line] = None
            else:
                suppressions[line] = frozenset(
                    code.strip().upper() for code in codes.split(",")
                )
    except (tokenize.TokenError, SyntaxError) as e:
        logger.debug(f"Stopped reading noqa comments early: {e}")
    return suppressions


def is_suppressed(diagnostic: Diagnostic, suppressions: dict[int, frozenset[str] | None]) -> bool:
    line = diagnostic.span.line
    if line not in suppressions:
        return False
    codes = suppressions[line]
    return codes is None or diagnostic.code in codes
