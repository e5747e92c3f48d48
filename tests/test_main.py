from pathlib import Path
from typing import Any

import pytest

import katadojo.main as main
from katadojo.config import Settings
from katadojo.models import CaseResult, CaseStatus, CheckResult, ResolvedKata, TrainingPack
from katadojo.progress import ProgressRecord, ProgressStore
from katadojo.service import DojoService


class DummyRunner:
    def __init__(self, result: CheckResult) -> None:
        self.result = result

    def run(self, kata: ResolvedKata, pack: TrainingPack) -> CheckResult:
        return self.result


PARTIAL = CheckResult.from_cases(
    [
        CaseResult("test_adds_two_numbers", CaseStatus.PASSED),
        CaseResult("test_multiplies_two_numbers", CaseStatus.FAILED, ("assert 5 == 6",)),
    ]
)
COMPLETE = CheckResult.from_cases([CaseResult("test_adds_two_numbers", CaseStatus.PASSED)])


def _use_service(monkeypatch: Any, result: CheckResult = PARTIAL) -> None:
    monkeypatch.setattr(
        main,
        "_service",
        lambda root: DojoService(root, settings=Settings(), runner=DummyRunner(result)),  # type: ignore[arg-type]
    )


def _run(root: Path, *argv: str) -> tuple[int, str]:
    lines: list[str] = []
    code = main.run(["--root", str(root), *argv], print_fn=lines.append)
    return code, "\n".join(lines)


def _point_at(root: Path, kata_id: str | None) -> None:
    ProgressStore(root).save(ProgressRecord(active_pack="python-basics", current_exercise_id=kata_id))


def test_run_without_command_prints_help() -> None:
    lines: list[str] = []
    assert main.run([], print_fn=lines.append) == 0
    assert "usage: dojo" in lines[0]


def test_version_flag(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main.run(["--version"])
    assert excinfo.value.code == 0
    assert capsys.readouterr().out.startswith("dojo ")


def test_setup_writes_progress_file(monkeypatch: Any, dojo_root: Path) -> None:
    _use_service(monkeypatch)
    code, out = _run(dojo_root, "setup")
    assert code == 0
    assert "Dojo ready." in out
    assert "python-basics" in out
    assert (dojo_root / ".dojorc").exists()


def test_status_without_kata_in_progress(monkeypatch: Any, dojo_root: Path) -> None:
    _use_service(monkeypatch)
    code, out = _run(dojo_root, "status")
    assert code == 0
    assert "0/3 katas complete. No kata in progress." in out
    assert "Start next kata (001-first-steps) -> dojo next --approve" in out


def test_status_with_kata_in_progress(monkeypatch: Any, dojo_root: Path) -> None:
    _use_service(monkeypatch)
    _point_at(dojo_root, "002-handle-errors")
    code, out = _run(dojo_root, "status")
    assert code == 0
    assert "Kata: 002-handle-errors (in progress)" in out
    assert "1/3 complete | Workspace: katas/002-handle-errors/solution.py" in out.replace("\\", "/")


def test_status_prints_layout_warnings(monkeypatch: Any, dojo_root: Path, pack_root: Path) -> None:
    _use_service(monkeypatch)
    (pack_root / "katas" / "010-loops" / "solution.py").unlink()
    code, out = _run(dojo_root, "status")
    assert code == 0
    assert "0/2 katas complete" in out
    assert "1 kata(s) skipped" in out
    assert "010-loops" in out


def test_check_partial_pass(monkeypatch: Any, dojo_root: Path) -> None:
    _use_service(monkeypatch, PARTIAL)
    _point_at(dojo_root, "001-first-steps")
    code, out = _run(dojo_root, "check")
    assert code == 0
    assert "001-first-steps: 1/2 passing" in out
    assert "  [x] test_adds_two_numbers" in out
    assert "  [ ] test_multiplies_two_numbers" in out


def test_check_complete(monkeypatch: Any, dojo_root: Path) -> None:
    _use_service(monkeypatch, COMPLETE)
    _point_at(dojo_root, "001-first-steps")
    code, out = _run(dojo_root, "check")
    assert code == 0
    assert "001-first-steps: 1/1 complete!" in out
    assert "Move on -> dojo next --approve" in out


def test_check_fatal_error_exits_nonzero(monkeypatch: Any, dojo_root: Path) -> None:
    _use_service(monkeypatch, CheckResult.fatal("SyntaxError: invalid syntax"))
    _point_at(dojo_root, "001-first-steps")
    code, out = _run(dojo_root, "check")
    assert code == 1
    assert "001-first-steps: error" in out
    assert "SyntaxError: invalid syntax" in out


def test_check_without_kata_in_progress(monkeypatch: Any, dojo_root: Path) -> None:
    _use_service(monkeypatch)
    code, out = _run(dojo_root, "check")
    assert code == 0
    assert "No kata in progress." in out


def test_check_unknown_kata(monkeypatch: Any, dojo_root: Path) -> None:
    _use_service(monkeypatch)
    code, out = _run(dojo_root, "check", "nope")
    assert code == 1
    assert "Kata not found: nope" in out


def test_next_preview_does_not_change_progress(monkeypatch: Any, dojo_root: Path) -> None:
    _use_service(monkeypatch)
    code, out = _run(dojo_root, "next")
    assert code == 0
    assert "Next kata: 001-first-steps (First Steps)" in out
    assert "  010-loops" in out
    assert not (dojo_root / ".dojorc").exists()
    assert not (dojo_root / "katas").exists()


def test_next_approve_scaffolds_then_resumes(monkeypatch: Any, dojo_root: Path) -> None:
    _use_service(monkeypatch)
    code, out = _run(dojo_root, "next", "--approve")
    assert code == 0
    assert "Kata 001-first-steps scaffolded." in out
    assert "Open command: code " in out
    assert (dojo_root / "katas" / "001-first-steps" / "solution.py").exists()

    code, out = _run(dojo_root, "next", "first steps", "--approve")
    assert code == 0
    assert "Resuming kata 001-first-steps." in out


def test_next_preview_reports_scaffolded_target(monkeypatch: Any, dojo_root: Path) -> None:
    _use_service(monkeypatch)
    _run(dojo_root, "next", "--approve")
    code, out = _run(dojo_root, "next", "001-first-steps")
    assert code == 0
    assert "001-first-steps is already scaffolded." in out


def test_next_after_last_kata(monkeypatch: Any, dojo_root: Path) -> None:
    _use_service(monkeypatch)
    _point_at(dojo_root, "010-loops")
    code, out = _run(dojo_root, "next", "--approve")
    assert code == 0
    assert "All katas are done." in out

    code, out = _run(dojo_root, "status")
    assert "All 3 katas complete. The dojo is finished." in out


def test_next_unknown_kata(monkeypatch: Any, dojo_root: Path) -> None:
    _use_service(monkeypatch)
    code, out = _run(dojo_root, "next", "nope", "--approve")
    assert code == 1
    assert "Kata not found: nope" in out


def test_corrupt_progress_file_prints_hint(monkeypatch: Any, dojo_root: Path) -> None:
    _use_service(monkeypatch)
    (dojo_root / ".dojorc").write_text("{", encoding="utf-8")
    code, out = _run(dojo_root, "status")
    assert code == 1
    assert "is unreadable" in out
    assert "Next: fix or remove the file, then run: dojo setup" in out
    assert (dojo_root / ".dojorc").read_text(encoding="utf-8") == "{"


def test_missing_pack_prints_hint(monkeypatch: Any, tmp_path: Path) -> None:
    _use_service(monkeypatch)
    code, out = _run(tmp_path, "status")
    assert code == 1
    assert "not found" in out
    assert "Next: dojo setup --pack <name>" in out


def test_invalid_settings(monkeypatch: Any, tmp_path: Path) -> None:
    def _broken(root: Path) -> DojoService:
        raise ValueError("DOJO_CHECK_TIMEOUT must be positive")

    monkeypatch.setattr(main, "_service", _broken)
    code, out = _run(tmp_path, "status")
    assert code == 1
    assert out == "Invalid configuration: DOJO_CHECK_TIMEOUT must be positive"


def test_main_entry_raises_system_exit(monkeypatch: Any) -> None:
    monkeypatch.setattr(main, "run", lambda: 3)
    with pytest.raises(SystemExit) as excinfo:
        main.main_entry()
    assert excinfo.value.code == 3


def test_broken_current_kata_prints_layout_error(monkeypatch: Any, dojo_root: Path, pack_root: Path) -> None:
    _use_service(monkeypatch)
    _point_at(dojo_root, "010-loops")
    (pack_root / "katas" / "010-loops" / "SENSEI.md").unlink()

    for argv in (("status",), ("check",), ("next", "--approve")):
        code, out = _run(dojo_root, *argv)
        assert code == 1
        assert "Kata '010-loops' is missing required files" in out
        assert "Next: reinstall the training pack" in out

    assert ProgressStore(dojo_root).load("x").current_exercise_id == "010-loops"


def test_check_prints_layout_warnings(monkeypatch: Any, dojo_root: Path, pack_root: Path) -> None:
    _use_service(monkeypatch, COMPLETE)
    _point_at(dojo_root, "001-first-steps")
    (pack_root / "katas" / "010-loops" / "test_solution.py").unlink()
    code, out = _run(dojo_root, "check")
    assert code == 0
    assert "1 kata(s) skipped due to missing pack files" in out


def test_list_shows_every_kata_with_state(monkeypatch: Any, dojo_root: Path, pack_root: Path) -> None:
    _use_service(monkeypatch)
    _point_at(dojo_root, "002-handle-errors")
    (pack_root / "katas" / "010-loops" / "SENSEI.md").unlink()

    code, out = _run(dojo_root, "list")

    assert code == 0
    assert out.splitlines() == [
        "Katas (1/2 complete):",
        "",
        "  [x] 001-first-steps",
        "  [~] 002-handle-errors    (current)",
        "  [!] 010-loops    (missing pack files)",
    ]
