"""Core domain models for kata progression and check results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


@dataclass(frozen=True)
class KataDescriptor:
    """One catalog entry, in declared pack order."""

    id: str
    title: str
    source_path: str
    ordinal: int


@dataclass(frozen=True)
class PackLayout:
    """Fixed per-kata file names used by a training pack."""

    solution: str = "solution.py"
    test: str = "test_solution.py"
    guidance: str = "SENSEI.md"


@dataclass(frozen=True)
class TrainingPack:
    """Training pack with its ordered catalog and check settings."""

    id: str
    root: Path
    test_command: str
    reporter: str
    layout: PackLayout
    katas: tuple[KataDescriptor, ...]


@dataclass(frozen=True)
class ResolvedKata:
    """Catalog entry joined with absolute file locations."""

    id: str
    title: str
    source_path: str
    ordinal: int
    kata_dir: Path
    template_path: Path
    workspace_path: Path
    guidance_path: Path
    check_path: Path


class KataState(str, Enum):
    """Where a kata sits relative to the progress pointer."""

    COMPLETED = "completed"
    CURRENT = "current"
    UPCOMING = "upcoming"
    BROKEN = "broken"


class CaseStatus(str, Enum):
    """Outcome of one check."""

    PASSED = "passed"
    FAILED = "failed"


@dataclass(frozen=True)
class CaseResult:
    """One check in declaration order."""

    title: str
    status: CaseStatus
    failure_messages: tuple[str, ...] = ()


@dataclass(frozen=True)
class CheckResult:
    """Structured outcome of one check-suite run.

    `fatal_error` is set when the suite itself did not complete; `tests` is
    then empty and the counts carry no meaning.
    """

    total: int
    passed: int
    tests: tuple[CaseResult, ...] = field(default_factory=tuple)
    fatal_error: str | None = None

    def __post_init__(self) -> None:
        if self.passed > self.total:
            raise ValueError(f"passed ({self.passed}) exceeds total ({self.total}).")
        if self.fatal_error is not None and self.tests:
            raise ValueError("A fatal check result cannot carry test outcomes.")

    @classmethod
    def fatal(cls, message: str) -> CheckResult:
        """Build a result for a suite that crashed before reporting."""
        return cls(total=0, passed=0, tests=(), fatal_error=message.strip() or "Check suite failed to run.")

    @classmethod
    def from_cases(cls, cases: list[CaseResult]) -> CheckResult:
        """Build a result from ordered case outcomes."""
        passed = len([case for case in cases if case.status is CaseStatus.PASSED])
        return cls(total=len(cases), passed=passed, tests=tuple(cases))

    @property
    def failed(self) -> int:
        return self.total - self.passed

    @property
    def complete(self) -> bool:
        """Whether every check passed and at least one ran."""
        return self.fatal_error is None and self.total > 0 and self.passed == self.total
