"""Load the ordered kata catalog of a training pack."""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path, PurePosixPath
from typing import Any

from .config import DEFAULT_PACKS_DIR
from .errors import CatalogError, PackNotFound
from .models import KataDescriptor, PackLayout, TrainingPack

logger = logging.getLogger(__name__)

MANIFEST_NAME = "katas.json"
KATAS_DIR = "katas"
REPORTERS = ("junit", "jest-json")
DEFAULT_TEST_COMMAND = "{python} -m pytest {test} -q -p no:cacheprovider --import-mode=importlib --junitxml={report}"
KATA_DIR_PATTERN = re.compile(r"^(\d+)-(.+)$")


def packs_root(root: Path, packs_dir: str = DEFAULT_PACKS_DIR) -> Path:
    """Return the directory holding all training packs."""
    return root / packs_dir


def list_packs(root: Path, packs_dir: str = DEFAULT_PACKS_DIR) -> list[str]:
    """Return installed pack ids sorted by name."""
    base = packs_root(root, packs_dir)
    if not base.is_dir():
        return []
    return sorted(entry.name for entry in base.iterdir() if entry.is_dir() and not entry.name.startswith("."))


def load_catalog(root: Path, pack_id: str, packs_dir: str = DEFAULT_PACKS_DIR) -> tuple[KataDescriptor, ...]:
    """Load the ordered descriptors of one pack."""
    return load_pack(root, pack_id, packs_dir).katas


def load_pack(root: Path, pack_id: str, packs_dir: str = DEFAULT_PACKS_DIR) -> TrainingPack:
    """Load one pack's settings and ordered catalog."""
    base = packs_root(root, packs_dir)
    pack_root = base / pack_id
    if not pack_id or not pack_root.is_dir():
        raise PackNotFound(pack_id, base)

    manifest = _read_manifest(pack_root)
    layout = _layout_from_dict(manifest.get("files", {}))

    reporter = str(manifest.get("reporter", "junit")).strip()
    if reporter not in REPORTERS:
        raise CatalogError(f"Pack '{pack_id}' declares unknown reporter '{reporter}'.")
    test_command = str(manifest.get("test", "")).strip() or DEFAULT_TEST_COMMAND

    if "katas" in manifest:
        katas = _declared_katas(pack_id, manifest["katas"])
    else:
        katas = _discovered_katas(pack_root / KATAS_DIR, layout)
    _validate_unique_ids(pack_id, katas)

    logger.debug("Loaded %d katas from pack %s", len(katas), pack_id)
    return TrainingPack(
        id=pack_id,
        root=pack_root,
        test_command=test_command,
        reporter=reporter,
        layout=layout,
        katas=tuple(katas),
    )


def _read_manifest(pack_root: Path) -> dict[str, Any]:
    """Read the optional pack manifest."""
    path = pack_root / MANIFEST_NAME
    if not path.is_file():
        return {}
    try:
        raw = json.loads(path.read_text(encoding="utf-8-sig"))
    except json.JSONDecodeError as exc:
        raise CatalogError(f"{path} is not valid JSON: {exc}") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise CatalogError(f"{path} could not be read: {exc}") from exc
    if not isinstance(raw, dict):
        raise CatalogError(f"{path} root must be a JSON object.")
    return raw


def _layout_from_dict(raw: object) -> PackLayout:
    """Build per-kata file names, applying manifest overrides."""
    if not isinstance(raw, dict):
        raise CatalogError("Manifest 'files' must be an object.")
    defaults = PackLayout()
    return PackLayout(
        solution=str(raw.get("solution", defaults.solution)),
        test=str(raw.get("test", defaults.test)),
        guidance=str(raw.get("guidance", defaults.guidance)),
    )


def _declared_katas(pack_id: str, raw: object) -> list[KataDescriptor]:
    """Build descriptors from the manifest's declared sequence."""
    if not isinstance(raw, list):
        raise CatalogError(f"Pack '{pack_id}' manifest 'katas' must be a list.")
    katas: list[KataDescriptor] = []
    for ordinal, entry in enumerate(raw):
        if not isinstance(entry, dict) or not str(entry.get("template", "")).strip():
            raise CatalogError(f"Pack '{pack_id}' kata entry {ordinal} has no template.")
        template = PurePosixPath(str(entry["template"]).strip())
        kata_id = template.parent.name
        if not kata_id:
            raise CatalogError(f"Template '{template}' must live in a kata directory.")
        title = str(entry.get("title", "")).strip() or _title_from_id(kata_id)
        katas.append(KataDescriptor(id=kata_id, title=title, source_path=str(template), ordinal=ordinal))
    return katas


def _discovered_katas(katas_dir: Path, layout: PackLayout) -> list[KataDescriptor]:
    """Discover `<digits>-<slug>` kata directories, ordered by numeric prefix."""
    if not katas_dir.is_dir():
        return []
    found: list[tuple[int, str]] = []
    for entry in katas_dir.iterdir():
        match = KATA_DIR_PATTERN.match(entry.name)
        if not entry.is_dir() or match is None:
            logger.debug("Skipping non-kata entry %s", entry)
            continue
        found.append((int(match.group(1)), entry.name))
    found.sort()
    return [
        KataDescriptor(
            id=name,
            title=_title_from_id(name),
            source_path=f"{KATAS_DIR}/{name}/{layout.solution}",
            ordinal=ordinal,
        )
        for ordinal, (_, name) in enumerate(found)
    ]


def _title_from_id(kata_id: str) -> str:
    """Derive a display title from a kata id such as `001-hello-effect`."""
    match = KATA_DIR_PATTERN.match(kata_id)
    slug = match.group(2) if match else kata_id
    words = [word for word in re.split(r"[-_]+", slug) if word]
    return " ".join(word[:1].upper() + word[1:] for word in words) or kata_id


def _validate_unique_ids(pack_id: str, katas: list[KataDescriptor]) -> None:
    """Validate that kata ids are unique within a pack."""
    seen: set[str] = set()
    for kata in katas:
        if kata.id in seen:
            raise CatalogError(f"Duplicate kata id in pack '{pack_id}': {kata.id}")
        seen.add(kata.id)
