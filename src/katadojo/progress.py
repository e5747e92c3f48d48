"""JSON persistence for the learner's progression pointer (`.dojorc`)."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .config import RC_FILENAME
from .errors import ConfigCorrupt

logger = logging.getLogger(__name__)


class TrackingSettings(BaseModel):
    """Git tracking flags, passed through untouched by the engine."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    enabled: bool = False
    push_on_complete: bool = Field(default=False, alias="pushOnComplete")
    remote_name: str = Field(default="origin", alias="remote")


class ProgressRecord(BaseModel):
    """Persisted learner state for one project root.

    Unknown keys are kept in `model_extra` and written back on save.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    active_pack: str = Field(alias="active", min_length=1)
    current_exercise_id: str | None = Field(default=None, alias="current")
    editor_preference: str | None = Field(default="code", alias="editor")
    allow_auto_commit: bool = Field(default=False, alias="allowCommit")
    katas_path: str | None = Field(default=None, alias="katasPath")
    finished: bool = False
    tracking: TrackingSettings = Field(default_factory=TrackingSettings)

    @classmethod
    def default(cls, active_pack: str) -> ProgressRecord:
        """Return the documented default record for a pack."""
        return cls(active_pack=active_pack)

    def to_json(self) -> str:
        """Serialize with the on-disk key names."""
        return json.dumps(self.model_dump(mode="json", by_alias=True), indent=2) + "\n"


class ProgressStore:
    """Load and save the progress record at a project root."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.path = root / RC_FILENAME

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self, default_pack: str) -> ProgressRecord:
        """Return the stored record, or the default record for `default_pack` when absent."""
        if not self.exists():
            logger.debug("No %s at %s; using defaults for pack %r", RC_FILENAME, self.root, default_pack)
            return ProgressRecord.default(default_pack)

        try:
            raw: object = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ConfigCorrupt(self.path, str(exc)) from exc
        if not isinstance(raw, dict):
            raise ConfigCorrupt(self.path, "root must be a JSON object")

        try:
            return ProgressRecord.model_validate(raw)
        except ValidationError as exc:
            errors = "; ".join(
                f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
            )
            raise ConfigCorrupt(self.path, errors) from exc

    def save(self, record: ProgressRecord) -> None:
        """Atomically replace the progress file contents."""
        self.root.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f"{RC_FILENAME}.", suffix=".tmp", dir=self.root)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(record.to_json())
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug("Saved progress to %s (current=%s)", self.path, record.current_exercise_id)
