"""Stage definitions: the built-in Setup/Deploy/Start/Test sequence and data/pipeline.yaml."""

import logging
import shlex
from pathlib import Path

import yaml
from pydantic import ValidationError

from shipyard.config import Settings
from shipyard.pipeline.exceptions import PipelineDefinitionError
from shipyard.pipeline.models import StageSpec

logger = logging.getLogger(__name__)


def default_stages(settings: Settings) -> list[StageSpec]:
    """Install dependencies, copy the unit file, restart the service, verify it."""
    cfg = settings.pipeline
    sudo = "sudo " if cfg.use_sudo else ""
    venv = shlex.quote(cfg.venv_dir)
    service = shlex.quote(cfg.service_name)
    app_dir = cfg.app_dir.resolve()

    setup = (
        f"{cfg.python} -m venv {venv}"
        f" && {venv}/bin/pip install --upgrade pip"
        f" && {venv}/bin/pip install -r {shlex.quote(cfg.requirements_file)}"
    )
    deploy = f"{sudo}cp {shlex.quote(str(cfg.unit_file))} {shlex.quote(str(cfg.unit_install_path))}"
    start = (
        f"{sudo}systemctl daemon-reload"
        f" && {sudo}systemctl enable {service}"
        f" && {sudo}systemctl restart {service}"
        f" && {sudo}systemctl status {service} --no-pager"
    )
    test = (
        f"{venv}/bin/python -m shipyard verify"
        f" --base-url {shlex.quote(settings.verify.base_url)}"
    )

    common = {"cwd": app_dir, "timeout_seconds": cfg.stage_timeout_seconds}
    return [
        StageSpec(name="Setup", kind="setup", command=setup, **common),
        StageSpec(name="Deploy", kind="deploy", command=deploy, **common),
        StageSpec(name="Start", kind="start", command=start, fatal=cfg.start_failure_fatal, **common),
        StageSpec(name="Test", kind="test", command=test, **common),
    ]


def parse_stages(raw: object, settings: Settings) -> list[StageSpec]:
    """Validate a YAML-loaded stage list (bare list or {"stages": [...]})."""
    if isinstance(raw, dict):
        raw = raw.get("stages")
    if not isinstance(raw, list) or not raw:
        raise PipelineDefinitionError("Pipeline definition must contain a non-empty 'stages' list")

    stages: list[StageSpec] = []
    seen: set[str] = set()
    for index, entry in enumerate(raw):
        if not isinstance(entry, dict):
            raise PipelineDefinitionError(f"Stage #{index + 1} must be a mapping")
        entry = dict(entry)
        entry.setdefault("cwd", settings.pipeline.app_dir.resolve())
        entry.setdefault("timeout_seconds", settings.pipeline.stage_timeout_seconds)
        try:
            stage = StageSpec.model_validate(entry)
        except ValidationError as e:
            raise PipelineDefinitionError(f"Stage #{index + 1} is invalid: {e}") from e
        if stage.name in seen:
            raise PipelineDefinitionError(f"Duplicate stage name: {stage.name}")
        seen.add(stage.name)
        stages.append(stage)
    return stages


def load_stages(settings: Settings, path: Path | None = None) -> list[StageSpec]:
    """Stages from pipeline.yaml, or the built-in sequence when the file is absent."""
    path = path or settings.pipeline_path
    if not path.exists():
        logger.info(f"No pipeline definition at {path}; using built-in stages")
        return default_stages(settings)

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise PipelineDefinitionError(f"Failed to parse {path}: {e}") from e

    stages = parse_stages(raw, settings)
    logger.info(f"Loaded {len(stages)} stages from {path}")
    return stages
