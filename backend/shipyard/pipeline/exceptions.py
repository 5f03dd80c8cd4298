"""
Pipeline Exception Hierarchy

Exception Classes:
- PipelineError: Base exception
- PipelineDefinitionError: pipeline.yaml could not be turned into stages
- StageFailure: A stage exited non-zero (or could not run at all)
  - SetupFailure: dependency/environment step failed
  - DeployFailure: service unit install failed
  - StartFailure: service failed to start (may be tolerated)
  - TestFailure: verification mismatch

No exception here is retried; a fatal StageFailure ends the run.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base exception for pipeline errors."""

    pass


class PipelineDefinitionError(PipelineError):
    """Invalid pipeline definition."""

    pass


class StageFailure(PipelineError):
    """A stage command failed."""

    def __init__(self, stage: str, exit_code: int | None, message: str | None = None):
        super().__init__(message or f"Stage '{stage}' failed with exit code {exit_code}")
        self.stage = stage
        self.exit_code = exit_code


class SetupFailure(StageFailure):
    """Dependency or environment setup failed."""

    pass


class DeployFailure(StageFailure):
    """Service unit file could not be installed."""

    pass


class StartFailure(StageFailure):
    """Service process failed to start or report healthy status."""

    pass


class TestFailure(StageFailure):
    """Verification of the running service failed."""

    __test__ = False


_FAILURES_BY_KIND: dict[str, type[StageFailure]] = {
    "setup": SetupFailure,
    "deploy": DeployFailure,
    "start": StartFailure,
    "test": TestFailure,
}


def failure_for(kind: str) -> type[StageFailure]:
    """Exception class raised for a failed stage of the given kind."""
    return _FAILURES_BY_KIND.get(kind, StageFailure)
