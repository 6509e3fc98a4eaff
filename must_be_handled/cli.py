"""
Command line: ``python -m must_be_handled [paths...]``.

Checks every ``*.py`` file under the given paths as one project and prints one
line per diagnostic:

    app/service.py:12:5: error MBH001 Call to 'charge' is marked with ...

Exit status: 0 when clean, 1 when diagnostics were found, 2 on usage errors.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import tokenize
from pathlib import Path

from must_be_handled import __version__
from must_be_handled.models.check_models import CheckResponse, FileInput
from must_be_handled.workers.check_worker import CheckWorker, is_excluded

logger = logging.getLogger("must_be_handled.cli")


def collect_files(paths: list[str]) -> list[FileInput]:
    """
    Expand files and directories into FileInputs.

    Raises:
        FileNotFoundError: if a path does not exist.
    """
    files: list[FileInput] = []
    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            candidates = sorted(
                p for p in path.rglob("*.py") if not is_excluded(p.relative_to(path).as_posix())
            )
        elif path.is_file():
            candidates = [path]
        else:
            raise FileNotFoundError(f"No such file or directory: {raw}")

        for candidate in candidates:
            try:
                # tokenize.open honours PEP 263 encoding declarations
                with tokenize.open(candidate) as f:
                    content = f.read()
            except (OSError, SyntaxError, UnicodeDecodeError) as e:
                logger.warning(f"Skipping unreadable file {candidate}: {e}")
                continue
            files.append(FileInput(path=candidate.as_posix(), content=content))
    return files


def format_text(response: CheckResponse) -> str:
    report = response.report
    if report is None:
        return ""
    lines = [
        f"{d.file}:{d.span.line}:{d.span.column + 1}: {d.severity.value} {d.code} {d.message}"
        for d in report.diagnostics
    ]
    for skipped in report.skipped:
        if skipped.reason == "syntax_error":
            lines.append(f"{skipped.path}: skipped ({skipped.detail})")
    return "\n".join(lines)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="must_be_handled",
        description="Report calls to @must_be_handled callables that are not handled.",
    )
    parser.add_argument(
        "paths", nargs="*", default=["."], help="Files or directories to check (default: .)"
    )
    parser.add_argument(
        "--format", choices=("text", "json"), default="text", help="Output format"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    try:
        files = collect_files(args.paths)
    except FileNotFoundError as e:
        parser.error(str(e))

    # collect_files already dropped excluded directories below each root
    response = asyncio.run(CheckWorker().run_check(files, filter_excluded=False))
    report = response.report
    diagnostics = report.diagnostics if report is not None else []

    if args.format == "json":
        sys.stdout.write(response.model_dump_json(indent=2) + "\n")
    else:
        output = format_text(response)
        if output:
            sys.stdout.write(output + "\n")
        files_checked = report.files_checked if report is not None else 0
        sys.stderr.write(f"Found {len(diagnostics)} error(s) in {files_checked} file(s).\n")

    return 1 if diagnostics else 0
