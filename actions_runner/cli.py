"""
Command Line Interface
======================
`github-actions-runner run-action` — trigger a workflow run and wait for it.

Usage example:
  export GITHUB_TOKEN=<your_token>
  github-actions-runner run-action \\
    --repo owner/repo --workflow build.yml --branch main --rev abc1234 \\
    --artifacts-path ./artifacts --secret API_KEY=12345 --verbose

Exit codes:
    0 — run completed with conclusion "success" (and artifacts saved, if asked)
    1 — any fatal error, reported on stderr
    2 — invalid command line
"""
import argparse
import asyncio
import logging
from importlib.metadata import PackageNotFoundError, version as package_version
from typing import List, Optional

from pydantic import ValidationError

from actions_runner.agents.orchestrator import Orchestrator
from actions_runner.core import config
from actions_runner.core.exceptions import ActionsRunnerError, AuthMissingError
from actions_runner.models.run_request import RunRequest
from actions_runner.services.github_client import GithubApiClient
from actions_runner.utils.logging_config import setup_logging

PROG = "github-actions-runner"


def _get_version() -> str:
    try:
        return package_version(PROG)
    except PackageNotFoundError:
        return "0.0.0+local"


def _timeout_seconds(value: str) -> int:
    try:
        seconds = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid timeout: {value!r}")
    if seconds < 0:
        raise argparse.ArgumentTypeError(f"timeout must be non-negative, got {seconds}")
    return seconds


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PROG,
        description="A CLI tool for running and managing GitHub Actions workflows.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {_get_version()}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser("run-action", help="Triggers a GitHub Action workflow run")
    run.add_argument(
        "-r", "--repo", required=True,
        help='repository specified as "owner/repo", e.g., "octo-org/hello-world"',
    )
    run.add_argument("-w", "--workflow", required=True,
                     help='workflow file to trigger, e.g., "test.yml"')
    run.add_argument("-b", "--branch", required=True, help="branch name")
    run.add_argument("-c", "--rev", required=True, help="commit revision")
    run.add_argument(
        "-a", "--artifacts-path",
        help="local path for downloading artifacts; if not specified, artifacts will not be downloaded",
    )
    run.add_argument(
        "--commit-timeout", type=_timeout_seconds, default=config.DEFAULT_COMMIT_TIMEOUT,
        metavar="SECONDS",
        help="timeout in seconds to wait for the commit to appear in the repository (default: %(default)s)",
    )
    run.add_argument(
        "--branch-timeout", type=_timeout_seconds, default=config.DEFAULT_BRANCH_TIMEOUT,
        metavar="SECONDS",
        help="timeout in seconds to wait for the branch to appear in the repository (default: %(default)s)",
    )
    run.add_argument(
        "--workflow-run-creation-timeout", type=_timeout_seconds,
        default=config.DEFAULT_WORKFLOW_RUN_CREATION_TIMEOUT, metavar="SECONDS",
        help="timeout in seconds to wait for the workflow run to be created (default: %(default)s)",
    )
    run.add_argument(
        "--workflow-run-completion-timeout", type=_timeout_seconds,
        default=config.DEFAULT_WORKFLOW_RUN_COMPLETION_TIMEOUT, metavar="SECONDS",
        help="timeout in seconds to wait for the workflow run to be completed (default: %(default)s)",
    )
    run.add_argument(
        "-s", "--secret", dest="secrets", action="append", default=[], metavar="KEY=VALUE",
        help='secret key-value pair for the workflow, e.g., "API_KEY=12345"; repeat for more',
    )
    run.add_argument(
        "--sync-secrets", action="store_true",
        help="sync secrets with the repository; secrets which were not provided will be removed",
    )
    run.add_argument("-v", "--verbose", action="store_true", help="enable verbose mode")
    run.add_argument("--log-file", help="also write logs to this file")
    return parser


def build_request(args: argparse.Namespace) -> RunRequest:
    return RunRequest.from_repo_slug(
        args.repo,
        workflow=args.workflow,
        branch=args.branch,
        rev=args.rev,
        artifacts_path=args.artifacts_path,
        commit_timeout=args.commit_timeout,
        branch_timeout=args.branch_timeout,
        run_creation_timeout=args.workflow_run_creation_timeout,
        run_completion_timeout=args.workflow_run_completion_timeout,
        secrets=args.secrets,
        sync_secrets=args.sync_secrets,
    )


async def run_action(request: RunRequest, token: str, logger: logging.Logger) -> None:
    async with GithubApiClient(token, request.owner, request.repo) as client:
        await Orchestrator(client, logger).run(request)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        request = build_request(args)
    except (ValueError, ValidationError) as e:
        parser.error(str(e))

    logger = setup_logging(verbose=args.verbose, log_file=args.log_file)

    token = config.get_github_token()
    if not token:
        logger.error(str(AuthMissingError(config.GITHUB_TOKEN_ENV_VAR)))
        return 1

    try:
        asyncio.run(run_action(request, token, logger))
    except ActionsRunnerError as e:
        logger.error(str(e))
        logger.debug("Failure details", exc_info=True)
        return 1
    except Exception as e:
        logger.error("Unexpected error: %s", e, exc_info=True)
        return 1

    logger.info("Action completed successfully")
    return 0
