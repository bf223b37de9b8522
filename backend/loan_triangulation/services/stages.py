"""
Pipeline stage tracking for progress display.

The backend reports a stage descriptor with every job snapshot. When it
omits the 1-based stage index, the index is derived from the stage label's
position in a known, ordered catalog of pipeline phases.

Catalog drift (a label the catalog does not know, with no explicit index)
is reported via `StagePosition.drift` and a warning; the previous index is
kept rather than guessed.
"""

import logging
from dataclasses import dataclass, replace
from typing import Optional, Sequence

from loan_triangulation.config import Config
from loan_triangulation.models import PipelineJobStage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StagePosition:
    """Last known stage of a job."""
    label: Optional[str]
    index: int
    total: int
    drift: bool = False


class StageTracker:
    """Folds successive stage descriptors into a StagePosition."""

    def __init__(self, catalog: Optional[Sequence[str]] = None):
        self.catalog = list(catalog) if catalog else list(Config.STAGE_CATALOG)
        self.position = StagePosition(label=None, index=0, total=len(self.catalog))

    def catalog_index(self, label: str) -> Optional[int]:
        """1-based position of a label in the catalog, or None."""
        try:
            return self.catalog.index(label) + 1
        except ValueError:
            return None

    def update(self, stage: Optional[PipelineJobStage]) -> StagePosition:
        """Apply a stage descriptor and return the new position."""
        previous = self.position
        if stage is None:
            self.position = replace(previous, drift=False)
            return self.position

        label = stage.label or previous.label
        drift = False

        if isinstance(stage.index, int):
            index = stage.index
        elif stage.label:
            derived = self.catalog_index(stage.label)
            if derived is None:
                drift = True
                index = previous.index
                logger.warning(
                    f"Stage label {stage.label!r} is not in the stage catalog "
                    f"{self.catalog}; keeping stage index {index}"
                )
            else:
                index = derived
        else:
            index = previous.index

        total = stage.total or previous.total
        self.position = StagePosition(label=label, index=index, total=total, drift=drift)
        return self.position

    def complete(self) -> StagePosition:
        """Mark the final catalog stage as reached."""
        self.position = StagePosition(
            label=self.catalog[-1],
            index=len(self.catalog),
            total=len(self.catalog),
        )
        return self.position
