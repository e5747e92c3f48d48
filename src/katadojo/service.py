"""Application service behind the `setup`, `status`, `check`, `next` and `list` commands."""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path

from .catalog import list_packs, load_pack, packs_root
from .config import Settings, load_settings
from .errors import LayoutMismatch, PackNotFound
from .models import CheckResult, KataState, ResolvedKata, TrainingPack
from .progress import ProgressRecord, ProgressStore
from .resolver import resolve_all
from .runner import CheckRunner
from .state import completed_count, find_by_id_or_name, find_current, find_next, kata_state

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DojoSnapshot:
    """Everything one command needs, loaded fresh per invocation."""

    record: ProgressRecord
    pack: TrainingPack
    katas: tuple[ResolvedKata, ...]
    problems: tuple[LayoutMismatch, ...]


@dataclass(frozen=True)
class StatusReport:
    """Progress summary for the active pack."""

    current: ResolvedKata | None
    next: ResolvedKata | None
    completed: int
    total: int
    problems: tuple[LayoutMismatch, ...] = ()


@dataclass(frozen=True)
class CheckOutcome:
    """Result of `check`; `kata is None` means no target could be chosen."""

    kata: ResolvedKata | None
    result: CheckResult | None
    query: str | None
    next: ResolvedKata | None
    total: int
    problems: tuple[LayoutMismatch, ...] = ()

    @property
    def no_target(self) -> bool:
        return self.kata is None

    @property
    def exit_code(self) -> int:
        """Zero for passing or informational outcomes."""
        if self.kata is None:
            return 1 if self.query else 0
        if self.result is not None and self.result.fatal_error is not None:
            return 1
        return 0


@dataclass(frozen=True)
class NextPreview:
    """What `next` would start, without changing anything."""

    target: ResolvedKata | None
    upcoming: tuple[ResolvedKata, ...]
    scaffolded: bool
    query: str | None


@dataclass(frozen=True)
class Advance:
    """Outcome of moving the pointer with `next --approve`."""

    kata: ResolvedKata | None
    scaffolded: bool
    finished: bool
    query: str | None
    record: ProgressRecord


@dataclass(frozen=True)
class KataEntry:
    """One catalog entry as shown by `list`."""

    id: str
    title: str
    state: KataState
    problem: LayoutMismatch | None = None


@dataclass(frozen=True)
class KataListing:
    """The whole catalog with per-kata state."""

    entries: tuple[KataEntry, ...]
    current_id: str | None
    completed: int
    total: int


class DojoService:
    """Coordinates the progress store, catalog, resolver and check runner."""

    def __init__(
        self,
        root: Path,
        settings: Settings | None = None,
        runner: CheckRunner | None = None,
    ) -> None:
        """Initialize service for a project root."""
        self.root = root
        self.settings = settings or load_settings(root)
        self.store = ProgressStore(root)
        self.runner = runner or CheckRunner(timeout=self.settings.check_timeout)

    def default_pack(self) -> str:
        """Pack used when no progress file exists yet."""
        if self.settings.default_pack:
            return self.settings.default_pack
        packs = list_packs(self.root, self.settings.packs_dir)
        if not packs:
            raise PackNotFound("<none>", packs_root(self.root, self.settings.packs_dir))
        return packs[0]

    def load_record(self) -> ProgressRecord:
        """Load the progress record, defaulting the pack when no file exists."""
        default = self.settings.default_pack if self.store.exists() else self.default_pack()
        return self.store.load(default)

    def snapshot(self) -> DojoSnapshot:
        """Load progress, catalog and resolved katas for one command."""
        record = self.load_record()
        pack = load_pack(self.root, record.active_pack, self.settings.packs_dir)
        resolution = resolve_all(self.root, record, pack)
        return DojoSnapshot(record=record, pack=pack, katas=resolution.katas, problems=resolution.problems)

    def setup(self, pack_id: str | None = None) -> ProgressRecord:
        """Create the progress file when missing, or switch its active pack."""
        if self.store.exists():
            record = self.load_record()
            if pack_id is None or pack_id == record.active_pack:
                return record
            load_pack(self.root, pack_id, self.settings.packs_dir)
            record = record.model_copy(update={"active_pack": pack_id, "current_exercise_id": None, "finished": False})
        else:
            target = pack_id or self.default_pack()
            load_pack(self.root, target, self.settings.packs_dir)
            record = ProgressRecord.default(target)
        self.store.save(record)
        logger.info("Progress file ready for pack %s", record.active_pack)
        return record

    def status(self) -> StatusReport:
        """Return current/next kata and completion counts.

        Raises `LayoutMismatch` when the kata under the pointer is broken.
        """
        snap = self.snapshot()
        self._require_pointer(snap)
        pointer = snap.record.current_exercise_id
        return StatusReport(
            current=find_current(snap.katas, pointer),
            next=find_next(snap.katas, pointer, snap.record.finished),
            completed=completed_count(snap.katas, pointer, snap.record.finished),
            total=len(snap.katas),
            problems=snap.problems,
        )

    def check(self, query: str | None = None) -> CheckOutcome:
        """Run checks for the queried kata, or the current one."""
        snap = self.snapshot()
        pointer = snap.record.current_exercise_id
        if query:
            target = self._locate(snap, query)
        else:
            self._require_pointer(snap)
            target = find_current(snap.katas, pointer)
        upcoming = find_next(snap.katas, pointer, snap.record.finished)
        result = self.runner.run(target, snap.pack) if target is not None else None
        return CheckOutcome(
            kata=target,
            result=result,
            query=query,
            next=upcoming,
            total=len(snap.katas),
            problems=snap.problems,
        )

    def preview_next(self, query: str | None = None, limit: int = 4) -> NextPreview:
        """Return the kata `next` would start and a few upcoming ones."""
        snap = self.snapshot()
        target = self._next_target(snap, query)
        upcoming: tuple[ResolvedKata, ...] = ()
        if not snap.record.finished:
            floor = self._pointer_ordinal(snap)
            floor = -1 if floor is None else floor
            upcoming = tuple(kata for kata in snap.katas if kata.ordinal > floor)[:limit]
        return NextPreview(
            target=target,
            upcoming=upcoming,
            scaffolded=target is not None and target.workspace_path.exists(),
            query=query,
        )

    def advance(self, query: str | None = None) -> Advance:
        """Scaffold the target kata if needed and move the progress pointer to it."""
        snap = self.snapshot()
        record = snap.record
        target = self._next_target(snap, query)

        if target is None:
            if query or record.finished:
                return Advance(kata=None, scaffolded=False, finished=record.finished, query=query, record=record)
            record = record.model_copy(update={"current_exercise_id": None, "finished": True})
            self.store.save(record)
            logger.info("Pack %s finished", record.active_pack)
            return Advance(kata=None, scaffolded=False, finished=True, query=query, record=record)

        scaffolded = False
        if not target.workspace_path.exists():
            target.workspace_path.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(target.template_path, target.workspace_path)
            scaffolded = True
            logger.info("Scaffolded %s at %s", target.id, target.workspace_path)

        record = record.model_copy(update={"current_exercise_id": target.id, "finished": False})
        self.store.save(record)
        return Advance(kata=target, scaffolded=scaffolded, finished=False, query=query, record=record)

    def list_katas(self) -> KataListing:
        """Every catalog entry with its state, broken ones included."""
        snap = self.snapshot()
        current_ordinal = self._pointer_ordinal(snap)
        broken = {problem.kata_id: problem for problem in snap.problems}
        entries = []
        for descriptor in sorted(snap.pack.katas, key=lambda item: item.ordinal):
            problem = broken.get(descriptor.id)
            state = (
                KataState.BROKEN
                if problem is not None
                else kata_state(descriptor.ordinal, current_ordinal, snap.record.finished)
            )
            entries.append(KataEntry(id=descriptor.id, title=descriptor.title, state=state, problem=problem))
        return KataListing(
            entries=tuple(entries),
            current_id=snap.record.current_exercise_id,
            completed=len([entry for entry in entries if entry.state is KataState.COMPLETED]),
            total=len(snap.katas),
        )

    def _next_target(self, snap: DojoSnapshot, query: str | None) -> ResolvedKata | None:
        if query:
            return self._locate(snap, query)
        self._require_pointer(snap)
        return find_next(snap.katas, snap.record.current_exercise_id, snap.record.finished)

    def _locate(self, snap: DojoSnapshot, query: str) -> ResolvedKata | None:
        """Resolve an explicit query, raising if it names a broken kata."""
        target = find_by_id_or_name(snap.katas, query)
        if target is not None:
            return target
        wanted = query.casefold()
        for descriptor in snap.pack.katas:
            if descriptor.id == query or descriptor.title.casefold() == wanted:
                self._raise_if_broken(snap, descriptor.id)
        return None

    def _require_pointer(self, snap: DojoSnapshot) -> None:
        """Raise the layout problem of the kata under the pointer, if any."""
        self._raise_if_broken(snap, snap.record.current_exercise_id)

    def _raise_if_broken(self, snap: DojoSnapshot, kata_id: str | None) -> None:
        for problem in snap.problems:
            if problem.kata_id == kata_id:
                raise problem

    def _pointer_ordinal(self, snap: DojoSnapshot) -> int | None:
        for descriptor in snap.pack.katas:
            if descriptor.id == snap.record.current_exercise_id:
                return descriptor.ordinal
        return None
