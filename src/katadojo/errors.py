"""Error taxonomy raised by the progression engine."""

from __future__ import annotations

from pathlib import Path


class DojoError(Exception):
    """Base class for engine failures that abort a command."""

    hint = "dojo status"


class ConfigCorrupt(DojoError):
    """The progress file exists but cannot be read as a progress record."""

    hint = "fix or remove the file, then run: dojo setup"

    def __init__(self, path: Path, detail: str) -> None:
        super().__init__(f"Progress file {path} is unreadable: {detail}")
        self.path = path
        self.detail = detail


class PackNotFound(DojoError):
    """The selected training pack has no directory under the packs root."""

    hint = "dojo setup --pack <name>"

    def __init__(self, pack_id: str, packs_root: Path) -> None:
        super().__init__(f"Training pack '{pack_id}' not found in {packs_root}")
        self.pack_id = pack_id
        self.packs_root = packs_root


class CatalogError(DojoError):
    """The pack catalog is malformed (bad manifest, duplicate ids)."""

    hint = "check the pack's katas.json"


class LayoutMismatch(DojoError):
    """One kata's files do not match the pack layout convention."""

    hint = "reinstall the training pack"

    def __init__(self, kata_id: str, missing: list[Path]) -> None:
        names = ", ".join(str(path) for path in missing)
        super().__init__(f"Kata '{kata_id}' is missing required files: {names}")
        self.kata_id = kata_id
        self.missing = missing
