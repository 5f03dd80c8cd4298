"""
Pipeline Core

Components:
- PipelineRunner: Sequential stage orchestration with stop-on-first-failure
- StageSpec / StageOutcome / BuildResult: Pipeline data models
- default_stages / load_stages: Built-in and YAML stage definitions
- BuildNotifier: One pass/fail message per run
"""

from .definition import default_stages, load_stages, parse_stages
from .exceptions import (
    DeployFailure,
    PipelineDefinitionError,
    PipelineError,
    SetupFailure,
    StageFailure,
    StartFailure,
    TestFailure,
    failure_for,
)
from .models import BuildResult, StageOutcome, StageSpec, generate_run_id
from .notify import BuildNotifier, format_build_message
from .runner import CommandResult, PipelineRunner, run_pipeline, shell_executor

__all__ = [
    "PipelineRunner",
    "run_pipeline",
    "shell_executor",
    "CommandResult",
    "StageSpec",
    "StageOutcome",
    "BuildResult",
    "generate_run_id",
    "default_stages",
    "load_stages",
    "parse_stages",
    "BuildNotifier",
    "format_build_message",
    "PipelineError",
    "PipelineDefinitionError",
    "StageFailure",
    "SetupFailure",
    "DeployFailure",
    "StartFailure",
    "TestFailure",
    "failure_for",
]
