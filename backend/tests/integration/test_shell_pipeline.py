"""Integration tests that spawn real shell commands and git."""

import asyncio
import time

from shipyard.pipeline import PipelineRunner, StageSpec, shell_executor
from shipyard.pipeline.runner import SPAWN_FAILED_EXIT_CODE
from shipyard.scheduler import SourceWatcher


def test_shell_executor_reports_exit_code_and_output() -> None:
    ok = asyncio.run(shell_executor(StageSpec(name="ok", kind="setup", command="echo hello")))
    bad = asyncio.run(shell_executor(StageSpec(name="bad", kind="setup", command="echo oops >&2; exit 3")))

    assert ok.exit_code == 0
    assert ok.output.strip() == "hello"
    assert bad.exit_code == 3
    assert "oops" in bad.output


def test_shell_executor_passes_env_and_cwd(tmp_path) -> None:
    stage = StageSpec(
        name="env",
        kind="setup",
        command='echo "$SHIPYARD_MARKER" > marker.txt',
        cwd=tmp_path,
        env={"SHIPYARD_MARKER": "from-stage"},
    )

    result = asyncio.run(shell_executor(stage))

    assert result.exit_code == 0
    assert (tmp_path / "marker.txt").read_text().strip() == "from-stage"


def test_shell_executor_times_out() -> None:
    stage = StageSpec(name="slow", kind="test", command="sleep 5", timeout_seconds=0.2)

    result = asyncio.run(shell_executor(stage))

    assert result.exit_code is None
    assert "Timed out" in result.output


def test_timeout_kills_commands_started_by_the_shell(tmp_path) -> None:
    stage = StageSpec(
        name="Start",
        kind="start",
        command="(sleep 1; touch marker) && true",
        cwd=tmp_path,
        timeout_seconds=0.2,
    )

    result = asyncio.run(shell_executor(stage))
    time.sleep(1.5)

    assert result.exit_code is None
    assert not (tmp_path / "marker").exists()


def test_missing_working_directory_fails_the_stage(tmp_path) -> None:
    stage = StageSpec(name="Setup", kind="setup", command="true", cwd=tmp_path / "missing")

    command = asyncio.run(shell_executor(stage))
    result = asyncio.run(PipelineRunner([stage]).run())

    assert command.exit_code == SPAWN_FAILED_EXIT_CODE
    assert result.status == "FAILURE"
    assert result.stage_that_failed == "Setup"
    assert result.outcomes[0].exit_code == SPAWN_FAILED_EXIT_CODE


def test_command_with_nul_byte_fails_the_stage(tmp_path) -> None:
    stages = [
        StageSpec(name="Deploy", kind="deploy", command="echo \x00", cwd=tmp_path),
        StageSpec(name="Start", kind="start", command="touch started", cwd=tmp_path),
    ]

    result = asyncio.run(PipelineRunner(stages).run())

    assert result.status == "FAILURE"
    assert result.stage_that_failed == "Deploy"
    assert result.outcomes[0].exit_code == SPAWN_FAILED_EXIT_CODE
    assert result.outcomes[1].status == "skipped"
    assert not (tmp_path / "started").exists()


def test_failed_shell_stage_prevents_later_side_effects(tmp_path) -> None:
    marker = tmp_path / "deployed"
    stages = [
        StageSpec(name="Setup", kind="setup", command="exit 1", cwd=tmp_path),
        StageSpec(name="Deploy", kind="deploy", command=f"touch {marker}", cwd=tmp_path),
    ]

    result = asyncio.run(PipelineRunner(stages).run())

    assert result.status == "FAILURE"
    assert result.stage_that_failed == "Setup"
    assert not marker.exists()


def test_source_watcher_outside_repository(tmp_path) -> None:
    watcher = SourceWatcher(tmp_path)

    assert watcher.current_revision() is None
    assert not watcher.has_changed()
