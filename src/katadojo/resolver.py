"""Join catalog descriptors with a pack's on-disk layout."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from .config import DEFAULT_KATAS_DIR
from .errors import LayoutMismatch
from .models import KataDescriptor, ResolvedKata, TrainingPack
from .progress import ProgressRecord

logger = logging.getLogger(__name__)

DOCS_DIR = "docs"


@dataclass(frozen=True)
class Resolution:
    """Resolved katas in catalog order plus per-kata layout problems."""

    katas: tuple[ResolvedKata, ...]
    problems: tuple[LayoutMismatch, ...]


def workspace_root(root: Path, record: ProgressRecord) -> Path:
    """Return the directory holding learner workspaces."""
    return (root / (record.katas_path or DEFAULT_KATAS_DIR)).resolve()


def resolve_kata(pack: TrainingPack, descriptor: KataDescriptor, workspace_dir: Path) -> ResolvedKata:
    """Compute absolute paths for one kata, failing on a broken pack layout."""
    template_path = (pack.root / PurePosixPath(descriptor.source_path)).resolve()
    kata_dir = template_path.parent
    check_path = kata_dir / pack.layout.test
    guidance_path = kata_dir / pack.layout.guidance
    if not guidance_path.is_file():
        parallel = pack.root.resolve() / DOCS_DIR / descriptor.id / pack.layout.guidance
        if parallel.is_file():
            guidance_path = parallel

    missing = [path for path in (template_path, check_path, guidance_path) if not path.is_file()]
    if missing:
        raise LayoutMismatch(descriptor.id, missing)

    return ResolvedKata(
        id=descriptor.id,
        title=descriptor.title,
        source_path=descriptor.source_path,
        ordinal=descriptor.ordinal,
        kata_dir=kata_dir,
        template_path=template_path,
        workspace_path=workspace_dir / descriptor.id / template_path.name,
        guidance_path=guidance_path,
        check_path=check_path,
    )


def resolve_all(root: Path, record: ProgressRecord, pack: TrainingPack) -> Resolution:
    """Resolve every catalog entry; unresolvable katas are reported, not fatal."""
    workspace_dir = workspace_root(root, record)
    katas: list[ResolvedKata] = []
    problems: list[LayoutMismatch] = []
    for descriptor in pack.katas:
        try:
            katas.append(resolve_kata(pack, descriptor, workspace_dir))
        except LayoutMismatch as exc:
            logger.warning("Excluding kata %s: %s", descriptor.id, exc)
            problems.append(exc)
    return Resolution(katas=tuple(katas), problems=tuple(problems))
