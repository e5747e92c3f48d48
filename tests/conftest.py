from __future__ import annotations

import sys
from collections.abc import Callable
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

PACK_ID = "python-basics"

TEMPLATE = '''def add(a, b):
    raise NotImplementedError


def subtract(a, b):
    raise NotImplementedError


def multiply(a, b):
    raise NotImplementedError
'''

CHECKS = '''from solution import add, multiply, subtract


def test_adds_two_numbers():
    assert add(1, 2) == 3


def test_subtracts_two_numbers():
    assert subtract(5, 3) == 2


def test_multiplies_two_numbers():
    assert multiply(2, 3) == 6
'''

GUIDANCE = "# Sensei\n\nRead the failing check name, then the docstring.\n"

MakeKata = Callable[..., Path]


@pytest.fixture
def pack_root(tmp_path: Path) -> Path:
    """Empty training pack directory under a fresh project root."""
    path = tmp_path / ".dojo" / "ryu" / PACK_ID
    (path / "katas").mkdir(parents=True)
    return path


@pytest.fixture
def make_kata(pack_root: Path) -> MakeKata:
    """Create one kata directory with template, checks and guidance."""

    def _make(
        kata_id: str,
        *,
        template: str = TEMPLATE,
        checks: str = CHECKS,
        guidance: str | None = GUIDANCE,
    ) -> Path:
        kata_dir = pack_root / "katas" / kata_id
        kata_dir.mkdir(parents=True, exist_ok=True)
        (kata_dir / "solution.py").write_text(template, encoding="utf-8")
        (kata_dir / "test_solution.py").write_text(checks, encoding="utf-8")
        if guidance is not None:
            (kata_dir / "SENSEI.md").write_text(guidance, encoding="utf-8")
        return kata_dir

    return _make


@pytest.fixture
def dojo_root(tmp_path: Path, make_kata: MakeKata) -> Path:
    """Project root with a three-kata pack: 001, 002 and 010."""
    make_kata("001-first-steps")
    make_kata("002-handle-errors")
    make_kata("010-loops")
    return tmp_path
