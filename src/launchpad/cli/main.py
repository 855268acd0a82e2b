"""
Launchpad command line entry point.

Commands:
  deploy    Run the full pipeline (provision, build, deploy, rewire, summarize)
  plan      Show phases and the ordered manifest list without executing
  discover  Poll the gateway service for its external address
  rewrite   Point the frontend manifest at a new gateway address
"""

from __future__ import annotations

import argparse
import sys
from typing import Sequence

import structlog

from launchpad import __version__
from launchpad.config.loader import load_deployment_config
from launchpad.config.settings import get_settings
from launchpad.core.errors import main_with_error_handling
from launchpad.logging import bind_context, configure_logging

logger = structlog.get_logger()


def _add_common(parser: argparse.ArgumentParser, output: bool = True) -> None:
    parser.add_argument(
        "--config",
        help="Deployment config file (default: launchpad.yaml or .launchpad/config.yaml)",
    )
    if output:
        parser.add_argument(
            "--output", choices=["text", "json"], default="text", help="Output format"
        )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="launchpad", description="Launchpad deployment CLI")
    parser.add_argument("--version", action="version", version=f"launchpad {__version__}")
    parser.add_argument("--log-level", help="Log level (default: LAUNCHPAD_LOG_LEVEL or INFO)")
    subparsers = parser.add_subparsers(dest="command")

    deploy_parser = subparsers.add_parser("deploy", help="Run the full deployment pipeline")
    _add_common(deploy_parser)
    deploy_parser.add_argument(
        "--dry-run", action="store_true", help="Print commands instead of running them"
    )

    plan_parser = subparsers.add_parser(
        "plan", help="Preview phases and manifest order (no commands run)"
    )
    _add_common(plan_parser)

    discover_parser = subparsers.add_parser(
        "discover", help="Poll the gateway service for its external address"
    )
    _add_common(discover_parser)
    discover_parser.add_argument(
        "--dry-run", action="store_true", help="Print commands instead of running them"
    )

    rewrite_parser = subparsers.add_parser(
        "rewrite", help="Replace the gateway address in the frontend manifest"
    )
    _add_common(rewrite_parser, output=False)
    rewrite_parser.add_argument("new", help="New gateway address (hostname)")
    rewrite_parser.add_argument(
        "--old", help="Value to replace (default: last recorded address, then placeholder)"
    )

    return parser


@main_with_error_handling()
def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    settings = get_settings()
    configure_logging(args.log_level or settings.log_level, settings.log_format)

    config = load_deployment_config(
        args.config or settings.config_path,
        region_override=settings.aws_region,
    )
    bind_context(project=config.project, cluster=config.cluster)
    dry_run = getattr(args, "dry_run", False) or settings.dry_run
    logger.info("command_started", command=args.command, dry_run=dry_run)

    if args.command == "deploy":
        from launchpad.cli.deploy import deploy_command

        return deploy_command(config, settings, dry_run=dry_run, output_format=args.output)

    if args.command == "plan":
        from launchpad.cli.plan import plan_command

        return plan_command(config, output_format=args.output)

    if args.command == "discover":
        from launchpad.cli.endpoint import discover_command

        return discover_command(config, settings, dry_run=dry_run, output_format=args.output)

    if args.command == "rewrite":
        from launchpad.cli.endpoint import rewrite_command

        return rewrite_command(config, args.new, old=args.old)

    parser.print_help()
    return 1


def run() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()
