"""CLI entrypoint for the kata dojo."""

from __future__ import annotations

import argparse
import logging
import os
from collections.abc import Callable
from pathlib import Path

from . import __version__
from .config import find_project_root
from .errors import DojoError, LayoutMismatch
from .logging_config import setup_logging
from .models import CaseStatus, CheckResult, KataState, ResolvedKata
from .service import CheckOutcome, DojoService

PrintFn = Callable[[str], None]
CLI = "dojo"


def _service(root: Path) -> DojoService:
    """Create app service for a project root."""
    return DojoService(root)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=CLI, description="Kata progression tracker")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--root", type=Path, default=None, help="project root (default: nearest .dojorc)")
    parser.add_argument("-v", "--verbose", action="store_true", help="log engine activity to stderr")
    commands = parser.add_subparsers(dest="command")

    setup = commands.add_parser("setup", help="create .dojorc and select a training pack")
    setup.add_argument("--pack", default=None, help="training pack to activate")
    commands.add_parser("status", help="show current kata state")
    check = commands.add_parser("check", help="run checks for the current or named kata")
    check.add_argument("query", nargs="?", default=None, help="kata id or name")
    next_ = commands.add_parser("next", help="preview or start the next kata")
    next_.add_argument("query", nargs="?", default=None, help="kata id or name")
    next_.add_argument("--approve", action="store_true", help="scaffold the kata and move to it")
    commands.add_parser("list", help="list every kata with its state")
    return parser


def run(argv: list[str] | None = None, print_fn: PrintFn = print) -> int:
    """Run the CLI application."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        print_fn(parser.format_help())
        return 0

    root = args.root.resolve() if args.root is not None else find_project_root()
    try:
        service = _service(root)
    except ValueError as exc:
        print_fn(f"Invalid configuration: {exc}")
        return 1
    setup_logging(logging.DEBUG if args.verbose else service.settings.log_level)

    try:
        if args.command == "setup":
            return _setup_flow(service, args.pack, print_fn)
        if args.command == "status":
            return _status_flow(service, print_fn)
        if args.command == "check":
            return _check_flow(service, args.query, print_fn)
        if args.command == "list":
            return _list_flow(service, print_fn)
        if args.approve:
            return _advance_flow(service, args.query, print_fn)
        return _preview_flow(service, args.query, print_fn)
    except DojoError as exc:
        print_fn(f"{exc}\n\nNext: {exc.hint}")
        return 1


def _rel(service: DojoService, path: Path) -> str:
    return os.path.relpath(path, service.root)


def _setup_flow(service: DojoService, pack: str | None, print_fn: PrintFn) -> int:
    record = service.setup(pack)
    print_fn("Dojo ready.")
    print_fn("")
    print_fn(f"  Pack:      {record.active_pack}")
    print_fn(f"  Command:   {CLI} next --approve")
    return 0


def _print_problems(problems: tuple[LayoutMismatch, ...], print_fn: PrintFn) -> None:
    if not problems:
        return
    print_fn("")
    print_fn(f"Warning: {len(problems)} kata(s) skipped due to missing pack files:")
    for problem in problems:
        print_fn(f"- {problem}")


def _status_flow(service: DojoService, print_fn: PrintFn) -> int:
    """Print progression status."""
    report = service.status()
    if report.current is None:
        if report.next is not None:
            print_fn(f"{report.completed}/{report.total} katas complete. No kata in progress.")
            print_fn("")
            print_fn("Suggested:")
            print_fn(f"- Start next kata ({report.next.id}) -> {CLI} next --approve")
            print_fn(f"- Pick a kata -> {CLI} list")
        else:
            print_fn(f"All {report.total} katas complete. The dojo is finished.")
        _print_problems(report.problems, print_fn)
        return 0

    print_fn(f"Kata: {report.current.id} (in progress)")
    print_fn(
        f"{report.completed}/{report.total} complete | Workspace: {_rel(service, report.current.workspace_path)}"
    )
    print_fn("")
    print_fn("Suggested:")
    print_fn(f"- Check progress -> {CLI} check")
    print_fn("- Keep working")
    print_fn(f"- Switch kata -> {CLI} next")
    _print_problems(report.problems, print_fn)
    return 0


def _check_flow(service: DojoService, query: str | None, print_fn: PrintFn) -> int:
    """Run checks and print guidance for the result."""
    outcome = service.check(query)
    if outcome.kata is None or outcome.result is None:
        _print_no_target(outcome, print_fn)
    else:
        _print_check_result(service, outcome.kata, outcome.result, print_fn)
    _print_problems(outcome.problems, print_fn)
    return outcome.exit_code


def _print_check_result(service: DojoService, kata: ResolvedKata, result: CheckResult, print_fn: PrintFn) -> None:
    guidance = _rel(service, kata.guidance_path)
    if result.fatal_error is not None:
        print_fn(f"{kata.id}: error")
        print_fn("")
        print_fn(result.fatal_error)
        print_fn("")
        print_fn("Suggested:")
        print_fn(f"- Get help with the error -> read {guidance}")
        print_fn("- Keep working")
        return

    lines = [f"  [{'x' if case.status is CaseStatus.PASSED else ' '}] {case.title}" for case in result.tests]
    if result.complete:
        print_fn(f"{kata.id}: {result.total}/{result.total} complete!")
        print_fn("")
        for line in lines:
            print_fn(line)
        print_fn("")
        print_fn("Suggested:")
        print_fn(f"- Review -> read {_rel(service, kata.workspace_path)} and {guidance}")
        print_fn(f"- Move on -> {CLI} next --approve")
        print_fn("- Pause")
        return

    print_fn(f"{kata.id}: {result.passed}/{result.total} passing")
    print_fn("")
    for line in lines:
        print_fn(line)
    print_fn("")
    print_fn("Suggested:")
    print_fn(f"- Get hints for failing checks -> read {guidance}")
    print_fn("- Keep working")
    print_fn("- Pause")


def _print_no_target(outcome: CheckOutcome, print_fn: PrintFn) -> None:
    if outcome.query:
        print_fn(f"Kata not found: {outcome.query}")
        print_fn("")
        print_fn(f"List katas -> {CLI} list")
        return
    if outcome.next is not None:
        print_fn("No kata in progress.")
        print_fn("")
        print_fn("Suggested:")
        print_fn(f"- Start next kata -> {CLI} next --approve")
        print_fn(f"- Pick a kata -> {CLI} list")
        return
    print_fn(f"All {outcome.total} katas complete. The dojo is finished.")


def _preview_flow(service: DojoService, query: str | None, print_fn: PrintFn) -> int:
    """Show the next kata without changing progress."""
    preview = service.preview_next(query)
    if preview.target is None:
        if query:
            print_fn(f"Kata not found: {query}")
            return 1
        print_fn("All katas are done. The dojo is complete.")
        return 0

    if preview.scaffolded:
        print_fn(f"{preview.target.id} is already scaffolded.")
        print_fn(f"Workspace: {_rel(service, preview.target.workspace_path)}")
        print_fn("")
        print_fn(f"Resume it -> {CLI} next {preview.target.id} --approve")
        return 0

    print_fn(f"Next kata: {preview.target.id} ({preview.target.title})")
    if preview.upcoming:
        print_fn("")
        print_fn("Available:")
        for kata in preview.upcoming:
            print_fn(f"  {kata.id}")
    print_fn("")
    print_fn(f"Start one -> {CLI} next <name> --approve")
    return 0


def _advance_flow(service: DojoService, query: str | None, print_fn: PrintFn) -> int:
    """Scaffold and switch to the next or named kata."""
    advance = service.advance(query)
    if advance.kata is None:
        if query:
            print_fn(f"Kata not found: {query}")
            return 1
        print_fn("All katas are done. The dojo is complete.")
        return 0

    kata: ResolvedKata = advance.kata
    workspace = _rel(service, kata.workspace_path)
    if advance.scaffolded:
        print_fn(f"Kata {kata.id} scaffolded.")
    else:
        print_fn(f"Resuming kata {kata.id}.")
    print_fn(f"Workspace: {workspace}")
    editor = advance.record.editor_preference
    if editor:
        print_fn(f"Open command: {editor} {kata.workspace_path}")
    print_fn("")
    print_fn(f"Briefing: {_rel(service, kata.guidance_path)}")
    print_fn(f"Check progress -> {CLI} check")
    return 0


_MARKERS = {
    KataState.COMPLETED: "[x]",
    KataState.CURRENT: "[~]",
    KataState.UPCOMING: "[ ]",
    KataState.BROKEN: "[!]",
}


def _list_flow(service: DojoService, print_fn: PrintFn) -> int:
    """Print every kata in the active pack with its state."""
    listing = service.list_katas()
    print_fn(f"Katas ({listing.completed}/{listing.total} complete):")
    print_fn("")
    for entry in listing.entries:
        suffix = "    (current)" if entry.id == listing.current_id else ""
        if entry.problem is not None:
            suffix += "    (missing pack files)"
        print_fn(f"  {_MARKERS[entry.state]} {entry.id}{suffix}")
    if not listing.entries:
        print_fn("  (no katas in this pack)")
    return 0


def main_entry() -> None:
    """Console script entrypoint."""
    raise SystemExit(run())


if __name__ == "__main__":  # pragma: no cover
    main_entry()
