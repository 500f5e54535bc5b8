"""Job lifecycle CLI commands.

Usage:
    joblife install definition.json
    joblife preview joblife-my-job-1
    joblife start joblife-my-job-1
    joblife stop joblife-my-job-1
    joblife uninstall joblife-my-job-1

Backend and retry settings come from the environment
(JOBLIFE_BACKEND__URL / BACKEND_URL, RETRY_MAX_RETRIES, ...).
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from joblife.app.logging import setup_logging
from joblife.core.errors import FatalError, RetriesExhaustedError
from joblife.core.generators import default_registry
from joblife.core.logging_schema import Component
from joblife.core.models import JobDefinition
from joblife.infra import BackendClient, TransformBackend
from joblife.services import JobLifecycleController

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_RETRIES_EXHAUSTED = 2


def load_definition(path: Path) -> JobDefinition:
    """Read a job definition JSON file.

    Raises:
        FatalError: If the file is missing, not UTF-8 or not a valid definition
    """
    try:
        return JobDefinition.model_validate_json(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise FatalError(f"Cannot read job definition [{path}]: {exc}") from exc
    except UnicodeDecodeError as exc:
        raise FatalError(f"Job definition [{path}] is not valid UTF-8: {exc}") from exc
    except ValidationError as exc:
        raise FatalError(f"Invalid job definition [{path}]: {exc}") from exc


async def run_command(args: argparse.Namespace, controller: JobLifecycleController) -> None:
    if args.command == "install":
        job_id = await controller.install(load_definition(args.file))
        print(job_id)
    elif args.command == "preview":
        result = await controller.preview(args.job_id)
        print(json.dumps(result, indent=2))
    elif args.command == "start":
        await controller.start(args.job_id)
    elif args.command == "stop":
        await controller.stop(args.job_id)
    elif args.command == "uninstall":
        await controller.uninstall(args.job_id)


async def _main(args: argparse.Namespace) -> int:
    client = BackendClient()
    controller = JobLifecycleController(default_registry(), TransformBackend(client))
    try:
        await run_command(args, controller)
    except RetriesExhaustedError as exc:
        print(f"Error: backend unavailable: {exc}", file=sys.stderr)
        return EXIT_RETRIES_EXHAUSTED
    except FatalError as exc:
        logger.debug("Command failed", extra={"component": Component.CLI, "error": exc.message})
        print(f"Error: {exc.message}", file=sys.stderr)
        return EXIT_FATAL
    finally:
        await client.close()
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="joblife", description="Manage external job lifecycles"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    install_parser = subparsers.add_parser("install", help="Create a job from a definition file")
    install_parser.add_argument("file", type=Path, help="Job definition JSON file")

    for command, help_text in (
        ("preview", "Dry-run a job and print the preview"),
        ("start", "Start a job (already started is ok)"),
        ("stop", "Stop a job and wait for completion (missing is ok)"),
        ("uninstall", "Delete a job (missing is ok)"),
    ):
        command_parser = subparsers.add_parser(command, help=help_text)
        command_parser.add_argument("job_id", help="Job ID")

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging()
    return asyncio.run(_main(args))


if __name__ == "__main__":
    sys.exit(main())
