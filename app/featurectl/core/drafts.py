"""Edit drafts for multi-step command line edits.

A draft keeps the form values of the last rendered selection and the
working constraint maps, so that ``featurectl edit check`` and friends
continue the same edit across separate invocations. Drafts live in
~/.local/state/featurectl/drafts/<feature>.json.
"""

from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Any

from featurectl.core.constraints import ConstraintMaps
from featurectl.core.paths import ensure_drafts_dir, get_drafts_dir
from featurectl.models.selection import FormSubmission

logger = logging.getLogger(__name__)

_SAFE_NAME = re.compile(r"[^a-z0-9_]")


class DraftError(Exception):
    """Raised when a draft cannot be written or removed."""


@dataclass(slots=True)
class Draft:
    """In-progress edit of one feature.

    Attributes:
        feature: Full machine name of the feature.
        bundle: Bundle the feature is edited in.
        allow_conflicts: Conflict allowance the edit was started with.
        submission: Values of the last rendered selection.
        constraints: Working excluded and required maps.
        updated: When the draft was last written (ISO 8601).
    """

    feature: str
    bundle: str
    submission: FormSubmission
    constraints: ConstraintMaps
    allow_conflicts: bool = False
    updated: str = field(default_factory=lambda: datetime.now(UTC).isoformat())

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON storage."""
        return {
            "feature": self.feature,
            "bundle": self.bundle,
            "allow_conflicts": self.allow_conflicts,
            "updated": self.updated,
            "submission": self.submission.to_dict(),
            "constraints": self.constraints.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Draft:
        """Deserialize from dictionary.

        Raises:
            KeyError: If required fields are missing.
            TypeError: If a nested value has the wrong shape.
        """
        submission = data["submission"]
        constraints = data.get("constraints", {})
        if not isinstance(submission, dict) or not isinstance(constraints, dict):
            msg = "draft submission and constraints must be objects"
            raise TypeError(msg)
        return cls(
            feature=str(data["feature"]),
            bundle=str(data["bundle"]),
            allow_conflicts=bool(data.get("allow_conflicts", False)),
            updated=str(data.get("updated", "")),
            submission=FormSubmission.from_dict(submission),
            constraints=ConstraintMaps.from_dict(constraints),
        )


class DraftStore:
    """Stores one JSON draft per feature.

    Attributes:
        drafts_dir: Directory containing the draft files.
    """

    def __init__(self, drafts_dir: Path | None = None) -> None:
        """Initialize DraftStore.

        Args:
            drafts_dir: Optional override for the drafts directory.
                Default: ~/.local/state/featurectl/drafts
        """
        self._drafts_dir = drafts_dir if drafts_dir is not None else get_drafts_dir()

    @property
    def drafts_dir(self) -> Path:
        """Directory containing the draft files."""
        return self._drafts_dir

    def path_for(self, feature: str) -> Path:
        """Get the draft file path of a feature."""
        return self._drafts_dir / f"{_SAFE_NAME.sub('_', feature.lower())}.json"

    def load(self, feature: str) -> Draft | None:
        """Load the draft of a feature.

        A corrupt draft is logged and treated as absent.

        Args:
            feature: Full machine name of the feature.

        Returns:
            The Draft, or None if there is none.
        """
        path = self.path_for(feature)
        if not path.exists():
            return None
        try:
            with path.open(encoding="utf-8") as f:
                data = json.load(f)
            return Draft.from_dict(data)
        except (OSError, json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.warning("Ignoring corrupt draft %s: %s", path, e)
            return None

    def save(self, draft: Draft) -> Path:
        """Write a draft atomically.

        Raises:
            DraftError: If the draft cannot be written.
        """
        if self._drafts_dir == get_drafts_dir():
            ensure_drafts_dir()
        else:
            self._drafts_dir.mkdir(parents=True, exist_ok=True)

        draft.updated = datetime.now(UTC).isoformat()
        path = self.path_for(draft.feature)
        tmp_path: Path | None = None
        try:
            with NamedTemporaryFile(
                mode="w",
                encoding="utf-8",
                dir=self._drafts_dir,
                delete=False,
                suffix=".tmp",
            ) as f:
                tmp_path = Path(f.name)
                json.dump(draft.to_dict(), f, indent=2, sort_keys=True)
            os.replace(str(tmp_path), str(path))
        except OSError as e:
            if tmp_path is not None and tmp_path.exists():
                tmp_path.unlink()
            raise DraftError(f"Failed to write draft for {draft.feature}: {e}") from e

        logger.debug("Saved draft %s", path)
        return path

    def discard(self, feature: str) -> bool:
        """Remove the draft of a feature.

        Returns:
            True if a draft was removed, False if there was none.

        Raises:
            DraftError: If the draft exists but cannot be removed.
        """
        path = self.path_for(feature)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise DraftError(f"Failed to remove draft for {feature}: {e}") from e
        logger.debug("Discarded draft %s", path)
        return True
