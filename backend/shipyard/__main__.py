"""Shipyard CLI entry point."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

load_dotenv(Path.cwd() / ".env")

from shipyard import __version__
from shipyard.config import Settings, get_settings
from shipyard.api.server import serve
from shipyard.pipeline import PipelineDefinitionError, default_stages, run_pipeline
from shipyard.scheduler import start_scheduler
from shipyard.verify import run_verification

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger(__name__)

CONFIG_TEMPLATE = """# Shipyard Configuration
# Secrets (TELEGRAM_BOT_TOKEN, TELEGRAM_CHAT_ID, LOGFIRE_TOKEN) belong in .env, not here.

app:
  developer_name: "Devops Bharat"
  version: "v1.0.0.0"
  host: "0.0.0.0"
  port: 5000

pipeline:
  # Checkout the pipeline builds in; must match WorkingDirectory and
  # ExecStart (<app_dir>/<venv_dir>/bin/python) in the unit file.
  app_dir: "/opt/shipyard"
  requirements_file: "requirements.txt"
  venv_dir: "venv"
  unit_file: "deploy/shipyard-app.service"
  unit_install_path: "/etc/systemd/system/shipyard-app.service"
  service_name: "shipyard-app"
  use_sudo: true
  # false tolerates a failing Start stage instead of aborting the run
  start_failure_fatal: true

scheduler:
  poll_interval_minutes: 5
  source_check_seconds: 60
  repo_dir: "/opt/shipyard"

verify:
  base_url: "http://127.0.0.1:5000"
  timeout_seconds: 10
  # retries while the restarted service is still coming up
  connect_attempts: 5
  retry_delay_seconds: 2

notify:
  enabled: true
  max_retries: 2
"""


def _init_logfire(settings: Settings) -> bool:
    """Initialize Logfire if available, without failing commands."""
    try:
        from shipyard.observability import initialize_logfire

        return initialize_logfire(settings)
    except Exception as e:
        logger.warning(f"Failed to initialize Logfire: {e}")
        return False


def _pipeline_template(settings: Settings) -> str:
    stages = [
        stage.model_dump(mode="json", exclude={"cwd", "timeout_seconds", "env"})
        for stage in default_stages(settings)
    ]
    header = "# Shipyard pipeline: stages run in order, the first fatal failure aborts the run.\n"
    return header + yaml.safe_dump({"stages": stages}, sort_keys=False)


def cmd_init(args: argparse.Namespace) -> int:
    """Create the data directory with config and pipeline templates."""
    data_dir = Path(args.data_dir).resolve()

    try:
        data_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"Created data directory: {data_dir}")

        config_path = data_dir / "config.yaml"
        if config_path.exists():
            logger.info(f"Config file already exists: {config_path}")
        else:
            config_path.write_text(CONFIG_TEMPLATE)
            logger.info(f"Created config template: {config_path}")

        pipeline_path = data_dir / "pipeline.yaml"
        if not args.pipeline:
            logger.info("Using built-in stages (pass --pipeline to write pipeline.yaml)")
        elif pipeline_path.exists():
            logger.info(f"Pipeline file already exists: {pipeline_path}")
        else:
            settings = Settings(data_dir=data_dir)
            settings.load_yaml_config()
            pipeline_path.write_text(_pipeline_template(settings))
            logger.info(f"Created pipeline template: {pipeline_path}")

        print(f"\n✓ Data directory initialized at {data_dir}\n")
        return 0

    except Exception as e:
        logger.error(f"Failed to initialize: {e}")
        print(f"\n❌ Initialization failed: {e}\n")
        return 1


def cmd_config(args: argparse.Namespace) -> int:
    """Display merged configuration."""
    try:
        settings = get_settings()

        print("\n=== Shipyard Configuration ===\n")
        print(f"Data Directory: {settings.data_dir}\n")

        print("Service:")
        print(f"  Bind: {settings.app.host}:{settings.app.port}")
        print(f"  /name -> {settings.app.developer_name!r}")
        print(f"  /version -> {settings.app.version!r}\n")

        print("Pipeline:")
        print(f"  App Directory: {settings.pipeline.app_dir.resolve()}")
        print(f"  Unit File: {settings.pipeline.unit_file} -> {settings.pipeline.unit_install_path}")
        print(f"  Service: {settings.pipeline.service_name}")
        print(f"  Start Failure Fatal: {settings.pipeline.start_failure_fatal}\n")

        print("Scheduler:")
        print(f"  Poll Interval: {settings.scheduler.poll_interval_minutes} min")
        print(f"  Source Check: {settings.scheduler.source_check_seconds}s\n")

        print(f"Verify Base URL: {settings.verify.base_url}\n")

        print("Secrets:")
        print(f"  Telegram Bot: {'✓ Set' if settings.telegram_bot_token else '✗ Not set'}")
        print(f"  Telegram Chat: {'✓ Set' if settings.telegram_chat_id else '✗ Not set'}")
        print(f"  Logfire: {'✓ Set' if settings.logfire_token else '✗ Not set'}\n")

        return 0

    except ValidationError as e:
        print("\n❌ Configuration Error:\n")
        for error in e.errors():
            print(f"  • {'.'.join(str(x) for x in error['loc'])}: {error['msg']}")
        print()
        return 1
    except Exception as e:
        logger.error(f"Failed to load config: {e}")
        print(f"\n❌ Failed to load configuration: {e}\n")
        return 1


def cmd_run(args: argparse.Namespace) -> int:
    """Run the pipeline once, or keep triggering it on schedule."""
    try:
        if args.debug:
            logging.getLogger().setLevel(logging.DEBUG)

        settings = get_settings()
        _init_logfire(settings)

        if args.once:
            result = asyncio.run(run_pipeline(settings))
            print(f"\n{result}\n")
            for outcome in result.outcomes:
                print(f"  {outcome.name:<10} {outcome.status}")
            print()
            return 0 if result.succeeded else 1

        print(f"\n=== Shipyard {__version__} ===\n")
        start_scheduler(settings)
        return 0

    except KeyboardInterrupt:
        print("\n\nReceived interrupt signal. Shutting down...\n")
        return 0
    except PipelineDefinitionError as e:
        logger.error(f"Invalid pipeline definition: {e}")
        print(f"\n❌ Invalid pipeline definition: {e}\n")
        return 1
    except Exception as e:
        logger.error(f"Pipeline failed to start: {e}", exc_info=True)
        print(f"\n❌ Failed to run pipeline: {e}\n")
        return 1


def cmd_serve(args: argparse.Namespace) -> int:
    """Serve the demo application."""
    try:
        settings = get_settings()
        instrumented = _init_logfire(settings)

        serve(settings, host=args.host, port=args.port, instrument=instrumented)
        return 0

    except Exception as e:
        logger.error(f"Service failed: {e}", exc_info=True)
        return 1


def cmd_verify(args: argparse.Namespace) -> int:
    """Check the running service; non-zero exit fails the pipeline's Test stage."""
    try:
        settings = get_settings()
        base_url = args.base_url or settings.verify.base_url
        report = asyncio.run(
            run_verification(
                base_url,
                expected_name=settings.app.developer_name,
                expected_version=settings.app.version,
                timeout_seconds=settings.verify.timeout_seconds,
                connect_attempts=settings.verify.connect_attempts,
                retry_delay_seconds=settings.verify.retry_delay_seconds,
            )
        )
    except Exception as e:
        logger.error(f"Verification could not run: {e}", exc_info=True)
        return 1

    for check in report.checks:
        print(check.describe())
    return report.exit_code


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Shipyard: build/deploy pipeline runner and demo service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"Shipyard {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    parser_init = subparsers.add_parser(
        "init",
        help="Create data directory with config and pipeline templates",
    )
    parser_init.add_argument("--data-dir", default="data", help="Directory to initialize")
    parser_init.add_argument(
        "--pipeline",
        action="store_true",
        help="Also write pipeline.yaml with the built-in stages for editing",
    )
    parser_init.set_defaults(func=cmd_init)

    parser_config = subparsers.add_parser(
        "config",
        help="Display merged configuration",
    )
    parser_config.set_defaults(func=cmd_config)

    parser_run = subparsers.add_parser(
        "run",
        help="Run the pipeline (scheduled, or once with --once)",
    )
    parser_run.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging (includes stage output)",
    )
    parser_run.add_argument(
        "--once",
        action="store_true",
        help="Run the pipeline a single time then exit with its result",
    )
    parser_run.set_defaults(func=cmd_run)

    parser_serve = subparsers.add_parser(
        "serve",
        help="Serve the demo application",
    )
    parser_serve.add_argument("--host", default=None, help="Bind host (default from config)")
    parser_serve.add_argument("--port", type=int, default=None, help="Bind port (default from config)")
    parser_serve.set_defaults(func=cmd_serve)

    parser_verify = subparsers.add_parser(
        "verify",
        help="Verify /name and /version of a running service",
    )
    parser_verify.add_argument("--base-url", default=None, help="Service URL (default from config)")
    parser_verify.set_defaults(func=cmd_verify)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
