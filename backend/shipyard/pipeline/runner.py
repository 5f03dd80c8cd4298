"""
PipelineRunner Orchestrator

Runs stages strictly in declared order: Setup -> Deploy -> Start -> Test.

Responsibilities:
- Execute each stage's shell command and record its outcome
- Stop at the first fatal failure and skip every remaining stage
- Tolerate failures of non-fatal stages (logged, run continues)
- Send exactly one pass/fail notification per run

Usage:
    runner = PipelineRunner(default_stages(settings), notifier=BuildNotifier(settings))
    result = await runner.run()
"""

import asyncio
import logging
import os
import signal
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable, Sequence

from shipyard.config import Settings
from shipyard.pipeline.definition import load_stages
from shipyard.pipeline.exceptions import StageFailure, failure_for
from shipyard.pipeline.models import BuildResult, StageOutcome, StageSpec, generate_run_id
from shipyard.pipeline.notify import BuildNotifier

logger = logging.getLogger(__name__)

OUTPUT_TAIL_CHARS = 4000
SPAWN_FAILED_EXIT_CODE = 127


@dataclass
class CommandResult:
    exit_code: int | None
    output: str = ""


Executor = Callable[[StageSpec], Awaitable[CommandResult]]
Notifier = Callable[[BuildResult], Awaitable[object]]


async def shell_executor(stage: StageSpec) -> CommandResult:
    """Run a stage command through the shell, capturing stdout and stderr together."""
    env = {**os.environ, **stage.env}
    try:
        process = await asyncio.create_subprocess_shell(
            stage.command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
            cwd=str(stage.cwd) if stage.cwd else None,
            env=env,
            start_new_session=True,
        )
    except (OSError, ValueError) as e:
        return CommandResult(exit_code=SPAWN_FAILED_EXIT_CODE, output=str(e))

    try:
        stdout, _ = await asyncio.wait_for(process.communicate(), timeout=stage.timeout_seconds)
    except asyncio.TimeoutError:
        _kill_process_group(process)
        await process.wait()
        return CommandResult(
            exit_code=None,
            output=f"Timed out after {stage.timeout_seconds}s",
        )

    return CommandResult(
        exit_code=process.returncode,
        output=stdout.decode("utf-8", errors="replace") if stdout else "",
    )


def _kill_process_group(process: asyncio.subprocess.Process) -> None:
    """Kill the shell and every child it started (the shell leads its own session)."""
    try:
        os.killpg(process.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass


class PipelineRunner:
    """Sequential stage runner producing one BuildResult per run."""

    def __init__(
        self,
        stages: Sequence[StageSpec],
        executor: Executor | None = None,
        notifier: Notifier | None = None,
    ):
        self.stages = list(stages)
        self.executor = executor or shell_executor
        self.notifier = notifier

    async def run(self, run_id: str | None = None) -> BuildResult:
        result = BuildResult(run_id=run_id or generate_run_id(), status="SUCCESS")
        logger.info(
            f"Run {result.run_id} starting: " + " -> ".join(s.name for s in self.stages)
        )

        try:
            for stage in self.stages:
                outcome = await self._run_stage(stage)
                result.outcomes.append(outcome)
                if outcome.status == "failed":
                    raise failure_for(stage.kind)(stage.name, outcome.exit_code)
        except StageFailure as e:
            logger.error(f"Run {result.run_id} aborted: {e}")
            result.status = "FAILURE"
            result.stage_that_failed = e.stage
            done = len(result.outcomes)
            result.outcomes.extend(
                StageOutcome(name=s.name, kind=s.kind, status="skipped")
                for s in self.stages[done:]
            )

        result.finished_at = datetime.now(timezone.utc)
        logger.info(f"Run finished: {result}")

        if self.notifier is not None:
            try:
                await self.notifier(result)
            except Exception as e:
                logger.error(f"Notification for {result.run_id} failed: {e}", exc_info=True)

        return result

    async def _run_stage(self, stage: StageSpec) -> StageOutcome:
        logger.info(f"Stage '{stage.name}' running: {stage.command}")
        started = time.monotonic()
        command = await self.executor(stage)
        duration = time.monotonic() - started

        if command.output:
            logger.debug(f"Stage '{stage.name}' output:\n{command.output}")

        if command.exit_code == 0:
            status = "passed"
            logger.info(f"Stage '{stage.name}' passed in {duration:.1f}s")
        elif stage.fatal:
            status = "failed"
        else:
            status = "tolerated"
            failure = failure_for(stage.kind)(stage.name, command.exit_code)
            logger.warning(f"{failure} (tolerated, continuing)")

        return StageOutcome(
            name=stage.name,
            kind=stage.kind,
            status=status,
            exit_code=command.exit_code,
            duration_seconds=duration,
            output=command.output[-OUTPUT_TAIL_CHARS:],
        )


async def run_pipeline(settings: Settings, run_id: str | None = None) -> BuildResult:
    """Run one full cycle with the configured stages and Telegram notification."""
    runner = PipelineRunner(load_stages(settings), notifier=BuildNotifier(settings))
    return await runner.run(run_id=run_id)
