"""Pipeline data models: stage definitions, per-stage outcomes and build results."""

from datetime import datetime, timezone
from pathlib import Path
from typing import Literal
from uuid import uuid4

from pydantic import BaseModel, Field

StageKind = Literal["setup", "deploy", "start", "test"]
StageStatus = Literal["passed", "failed", "tolerated", "skipped"]
BuildStatus = Literal["SUCCESS", "FAILURE"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_run_id() -> str:
    """Generate unique run ID."""
    return f"run_{uuid4().hex[:8]}"


class StageSpec(BaseModel):
    """One named shell step of the pipeline."""

    name: str
    command: str
    kind: StageKind
    fatal: bool = True
    cwd: Path | None = None
    env: dict[str, str] = Field(default_factory=dict)
    timeout_seconds: float | None = None


class StageOutcome(BaseModel):
    """What happened to one stage during a run."""

    name: str
    kind: StageKind
    status: StageStatus
    exit_code: int | None = None
    duration_seconds: float = 0.0
    output: str = ""


class BuildResult(BaseModel):
    """Single result of one pipeline run."""

    run_id: str
    status: BuildStatus
    stage_that_failed: str | None = None
    outcomes: list[StageOutcome] = Field(default_factory=list)
    started_at: datetime = Field(default_factory=_utcnow)
    finished_at: datetime | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == "SUCCESS"

    @property
    def executed_stages(self) -> list[str]:
        return [o.name for o in self.outcomes if o.status != "skipped"]

    def __str__(self) -> str:
        if self.succeeded:
            return f"{self.run_id}: SUCCESS"
        return f"{self.run_id}: FAILURE at stage '{self.stage_that_failed}'"
