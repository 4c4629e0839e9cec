"""Baseline store: flat-file reference screenshots and their fresh captures."""

from __future__ import annotations

import hashlib
import logging
import shutil
import time
from pathlib import Path

from visualqa.models.visual_baseline import BaselineEntry
from visualqa.models.visual_result import validate_name

logger = logging.getLogger(__name__)


class BaselineStore:
    """Manages ``<baselines_dir>/<name>.png`` and ``<actuals_dir>/<name>.png``.

    Names that could resolve outside the two directories raise ValueError.
    """

    def __init__(self, baselines_dir: Path, actuals_dir: Path):
        self.baselines_dir = Path(baselines_dir)
        self.actuals_dir = Path(actuals_dir)

    def ensure_dirs(self) -> None:
        self.baselines_dir.mkdir(parents=True, exist_ok=True)
        self.actuals_dir.mkdir(parents=True, exist_ok=True)

    def baseline_path(self, name: str) -> Path:
        return self.baselines_dir / f"{validate_name(name)}.png"

    def actual_path(self, name: str) -> Path:
        return self.actuals_dir / f"{validate_name(name)}.png"

    def has_baseline(self, name: str) -> bool:
        return self.baseline_path(name).is_file()

    def promote(self, name: str) -> Path:
        """Copy the actual capture for ``name`` over its baseline."""
        src = self.actual_path(name)
        dest = self.baseline_path(name)
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(src, dest)
        logger.debug("Copied %s -> %s", src, dest)
        return dest

    def list_baselines(self) -> list[BaselineEntry]:
        """Describe every stored baseline, sorted by name."""
        if not self.baselines_dir.exists():
            return []
        entries = []
        for path in sorted(self.baselines_dir.glob("*.png")):
            data = path.read_bytes()
            entries.append(BaselineEntry(
                name=path.stem,
                image_path=str(path),
                size_bytes=len(data),
                image_hash=hashlib.sha256(data).hexdigest(),
                modified_at=time.strftime(
                    "%Y-%m-%dT%H:%M:%SZ", time.gmtime(path.stat().st_mtime)
                ),
            ))
        return entries

    def remove_baseline(self, name: str) -> bool:
        """Delete the baseline for ``name``. Returns False if there was none."""
        path = self.baseline_path(name)
        if not path.exists():
            return False
        path.unlink()
        logger.info("Removed baseline %s", path)
        return True
