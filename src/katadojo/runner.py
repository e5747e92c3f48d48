"""Run one kata's check suite out-of-process and classify the outcome."""

from __future__ import annotations

import json
import logging
import os
import shlex
import subprocess
import sys
import tempfile
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Any

from .models import CaseResult, CaseStatus, CheckResult, ResolvedKata, TrainingPack

logger = logging.getLogger(__name__)

REPORT_NAME = "report.xml"
# pytest: all passed, some failed, nothing collected
JUNIT_REPORT_EXIT_CODES = {0, 1, 5}
MAX_FATAL_CHARS = 4000


class CheckRunner:
    """Invoke check suites as subprocesses scoped to the pack environment."""

    def __init__(self, timeout: float = 60.0) -> None:
        self.timeout = timeout

    def run(self, kata: ResolvedKata, pack: TrainingPack) -> CheckResult:
        """Run the checks for exactly one kata. Never retries."""
        if not kata.workspace_path.is_file():
            return CheckResult.fatal(f"Workspace file not found: {kata.workspace_path}")

        with tempfile.TemporaryDirectory(prefix="katadojo-") as report_dir:
            report_path = Path(report_dir) / REPORT_NAME
            try:
                argv = build_command(pack, kata, report_path)
            except (IndexError, KeyError, ValueError) as exc:
                return CheckResult.fatal(f"Invalid check command '{pack.test_command}': {exc}")

            logger.info("Running checks for %s: %s", kata.id, shlex.join(argv))
            try:
                completed = subprocess.run(
                    argv,
                    cwd=pack.root,
                    env=check_environment(kata),
                    stdin=subprocess.DEVNULL,
                    capture_output=True,
                    text=True,
                    timeout=self.timeout,
                    check=False,
                )
            except subprocess.TimeoutExpired:
                return CheckResult.fatal(f"Check suite timed out after {self.timeout:g} seconds.")
            except OSError as exc:
                return CheckResult.fatal(f"Could not start check suite: {exc}")

            logger.debug("Check suite for %s exited with %s", kata.id, completed.returncode)
            if pack.reporter == "jest-json":
                return parse_jest_json(completed.stdout, completed.stderr)
            return _junit_outcome(completed, report_path)


def pack_python(pack: TrainingPack) -> str:
    """Return the pack's virtualenv interpreter, falling back to the running one."""
    for candidate in (pack.root / ".venv" / "bin" / "python", pack.root / ".venv" / "Scripts" / "python.exe"):
        if candidate.is_file():
            return str(candidate)
    return sys.executable


def build_command(pack: TrainingPack, kata: ResolvedKata, report_path: Path) -> list[str]:
    """Expand the pack's command template into an argv list."""
    test_rel = os.path.relpath(kata.check_path, pack.root.resolve())
    values = {
        "python": pack_python(pack),
        "test": test_rel,
        "report": str(report_path),
        "workspace": str(kata.workspace_path.parent),
    }
    argv = [token.format(**values) for token in shlex.split(pack.test_command)]
    if not argv:
        raise ValueError("empty command")
    return argv


def check_environment(kata: ResolvedKata) -> dict[str, str]:
    """Environment exposing the learner's workspace ahead of the pack's template."""
    env = dict(os.environ)
    workspace_dir = str(kata.workspace_path.parent)
    existing = env.get("PYTHONPATH")
    env["PYTHONPATH"] = os.pathsep.join([workspace_dir, existing]) if existing else workspace_dir
    env["DOJO_WORKSPACE"] = workspace_dir
    env["DOJO_KATAS_PATH"] = str(kata.workspace_path.parent.parent)
    return env


def _junit_outcome(completed: subprocess.CompletedProcess[str], report_path: Path) -> CheckResult:
    """Classify a pytest-style run that writes a JUnit XML report."""
    if completed.returncode not in JUNIT_REPORT_EXIT_CODES or not report_path.is_file():
        return CheckResult.fatal(_diagnostic(completed))
    try:
        return parse_junit_xml(report_path.read_text(encoding="utf-8"))
    except ET.ParseError as exc:
        return CheckResult.fatal(f"Unreadable check report: {exc}\n{_diagnostic(completed)}")


def parse_junit_xml(raw: str) -> CheckResult:
    """Parse a JUnit XML report into ordered case outcomes."""
    root = ET.fromstring(raw)
    cases: list[CaseResult] = []
    for testcase in root.iter("testcase"):
        problems = [child for child in testcase if child.tag in {"failure", "error", "skipped"}]
        messages = tuple(
            text
            for text in ((child.get("message") or child.text or "").strip() for child in problems)
            if text
        )
        cases.append(
            CaseResult(
                title=str(testcase.get("name", "")),
                status=CaseStatus.FAILED if problems else CaseStatus.PASSED,
                failure_messages=messages,
            )
        )
    return CheckResult.from_cases(cases)


def parse_jest_json(stdout: str, stderr: str = "") -> CheckResult:
    """Parse a vitest/jest `--reporter=json` document from stdout."""
    try:
        raw: Any = json.loads(stdout)
    except json.JSONDecodeError:
        return CheckResult.fatal(stderr or stdout or "Test execution failed")
    if not isinstance(raw, dict):
        return CheckResult.fatal(stderr or stdout)
    suites = raw.get("testResults") or []
    if not isinstance(suites, list) or not all(isinstance(suite, dict) for suite in suites):
        return CheckResult.fatal(stderr or stdout)

    cases: list[CaseResult] = []
    suite_errors: list[str] = []
    for suite in suites:
        assertions = suite.get("assertionResults") or []
        if not isinstance(assertions, list) or not all(isinstance(item, dict) for item in assertions):
            return CheckResult.fatal(stderr or stdout)
        if not assertions and suite.get("status") == "failed":
            suite_errors.append(str(suite.get("message") or suite.get("failureMessage") or "").strip())
        for assertion in assertions:
            messages = assertion.get("failureMessages") or []
            if not isinstance(messages, list):
                messages = [messages]
            passed = assertion.get("status") == "passed"
            cases.append(
                CaseResult(
                    title=str(assertion.get("title", "")),
                    status=CaseStatus.PASSED if passed else CaseStatus.FAILED,
                    failure_messages=tuple(str(item) for item in messages),
                )
            )

    if not cases and suite_errors:
        return CheckResult.fatal("\n".join(message for message in suite_errors if message) or stderr)
    return CheckResult.from_cases(cases)


def _diagnostic(completed: subprocess.CompletedProcess[str]) -> str:
    """Raw failure text from a run that produced no usable report."""
    text = "\n".join(part.strip() for part in (completed.stdout, completed.stderr) if part and part.strip())
    if not text:
        return f"Check suite exited with status {completed.returncode} without a report."
    return text[-MAX_FATAL_CHARS:]
