"""Console entry point: ``retrace`` / ``python -m retrace``."""

from __future__ import annotations

import argparse
import os
import sys
from typing import Any, List, Optional, Sequence, TextIO

from retrace.control import EngineFault
from retrace.driver import ReplState, create_session, format_parse_error
from retrace.lang import Complete, ParseFailure, parse
from retrace.runtime import telemetry
from retrace.runtime.settings import ReplSettings


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="retrace",
        description="Scheme prompt whose continuations rewind the terminal.",
    )
    parser.add_argument(
        "--prompt",
        default=None,
        help="Primary prompt (default: RETRACE_PROMPT or '> ')",
    )
    parser.add_argument(
        "--continuation-prompt",
        default=None,
        help="Prompt shown while an expression is unfinished (default: '. ')",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Do not wrap values and errors in colour sequences",
    )
    parser.add_argument(
        "--log-preset",
        choices=telemetry.PRESETS,
        default=os.environ.get("RETRACE_LOG_PRESET") or None,
        help="telelog preset; logs go to a file, never to the console",
    )
    parser.add_argument(
        "--load",
        metavar="FILE",
        action="append",
        default=[],
        help="Evaluate FILE before the first prompt (repeatable)",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress the greeting",
    )
    return parser.parse_args(argv)


def _settings_from_args(args: argparse.Namespace) -> ReplSettings:
    settings = ReplSettings.from_env().with_overrides(
        primary_prompt=args.prompt,
        continuation_prompt=args.continuation_prompt,
        log_preset=args.log_preset,
    )
    if args.no_color:
        settings = settings.with_overrides(color=False)
    if args.quiet:
        settings = settings.with_overrides(greeting="")
    return settings


def main(
    argv: Optional[Sequence[str]] = None,
    *,
    stdin: Optional[TextIO] = None,
    stdout: Optional[TextIO] = None,
    stderr: Optional[TextIO] = None,
) -> int:
    args = _parse_args(argv)
    settings = _settings_from_args(args)
    errors = stderr if stderr is not None else sys.stderr
    if settings.log_preset:
        telemetry.configure(preset=settings.log_preset)

    preload: List[Any] = []
    for path in args.load:
        try:
            with open(path, encoding="utf-8") as handle:
                result = parse(handle.read())
        except OSError as exc:
            errors.write(f"retrace: cannot load {path}: {exc.strerror}\n")
            return 2
        if isinstance(result, ParseFailure):
            errors.write(f"retrace: {path}: {format_parse_error(result.message)}\n")
            return 1
        if not isinstance(result, Complete):
            errors.write(f"retrace: {path}: unexpected end of file\n")
            return 1
        preload.extend(result.forms)

    driver = create_session(settings, stdin=stdin, stdout=stdout)
    try:
        summary = driver.run(preload=preload)
    except KeyboardInterrupt:
        driver.terminal.deactivate()
        return 130
    except EngineFault as exc:
        errors.write(f"retrace: internal error: {exc}\n")
        return 70
    return 0 if summary.state is ReplState.TERMINATED else 1


if __name__ == "__main__":  # pragma: no cover - manual entry
    raise SystemExit(main())
