"""Data models for export jobs.
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from ..errors import ExportItemFailed
from ..progress import ProgressHandle
from ..records import ImageRecord

EPHEMERAL: Literal["ephemeral"] = "ephemeral"


class ExportReport(BaseModel):
    """Outcome of an export: files written and per-item failures."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    written: list[Path] = Field(default_factory=list, description="Final paths written")
    failures: list[ExportItemFailed] = Field(
        default_factory=list, description="Records that could not be written"
    )

    @property
    def failure_count(self) -> int:
        return len(self.failures)

    @property
    def attempted(self) -> int:
        return len(self.written) + len(self.failures)


class ExportJob(BaseModel):
    """One user export action. Never reused.

    Ephemeral jobs carry no progress handle.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    records: tuple[ImageRecord, ...]
    destination: Path | Literal["ephemeral"]
    progress: ProgressHandle | None = None

    @property
    def ephemeral(self) -> bool:
        return self.destination == EPHEMERAL
