"""
CLI command for running the full deployment pipeline.
"""

from __future__ import annotations

import json

from rich.markup import escape

from launchpad.cli.ux import console, header, print_key_value, step
from launchpad.config.deployment import DeploymentConfig
from launchpad.config.settings import Settings
from launchpad.core.errors import LaunchpadError, format_error_message
from launchpad.core.outcome import OutcomeKind
from launchpad.pipeline import build_pipeline, make_runner
from launchpad.pipeline.builder import make_sleep
from launchpad.pipeline.phases import Phase
from launchpad.pipeline.sequencer import RunReport

_OUTCOME_STYLE = {
    OutcomeKind.OK: ("green", "✓"),
    OutcomeKind.DEGRADED: ("yellow", "⚠"),
    OutcomeKind.FATAL: ("red", "✗"),
}


def _announce(index: int, total: int, phase: Phase) -> None:
    step(index, total, phase.name.value.replace("_", " ").title())


def print_deploy_summary(report: RunReport, config: DeploymentConfig) -> None:
    """Print the end-of-run summary with rich formatting."""
    header(f"Deployment {report.status.upper()}: {config.project}")

    for record in report.phases:
        color, icon = _OUTCOME_STYLE[record.kind]
        label = record.phase.value.replace("_", " ")
        detail = f" [dim]{escape(record.reason)}[/dim]" if record.reason else ""
        console.print(f"  [{color}]{icon} {label:<20}[/{color}]{detail}")

    summary = report.state.summary
    if summary is not None:
        print_key_value(
            {
                "Cluster": config.cluster,
                "Namespace": config.namespace,
                "Gateway": summary.gateway_url,
                "Frontend configured with": summary.frontend_gateway_url,
                "Frontend": summary.frontend_url,
            },
            title="Endpoints",
        )
        if summary.pods:
            console.print("\n[bold]Pods[/bold]")
            console.print(escape(summary.pods), highlight=False)
        if summary.services:
            console.print("\n[bold]Services[/bold]")
            console.print(escape(summary.services), highlight=False)

    if report.state.warnings:
        console.print()
        console.print("[yellow]Warnings:[/yellow]")
        for warning in report.state.warnings:
            console.print(f"  [dim]•[/dim] {escape(warning)}")

    console.print()
    duration = f" in {report.duration_seconds:.1f}s" if report.duration_seconds > 0 else ""
    if report.error is not None:
        cause = report.error.cause
        message = format_error_message(cause) if isinstance(cause, LaunchpadError) else str(cause)
        console.print(
            f"[bold red]Aborted in {report.error.phase}{duration}:[/bold red] {escape(message)}"
        )
    elif report.degraded:
        console.print(f"[bold yellow]Completed with warnings{duration}[/bold yellow]")
    else:
        console.print(f"[bold green]Completed{duration}[/bold green]")
    console.print()


def print_deploy_json(report: RunReport) -> None:
    """Print the run report in JSON format."""
    print(json.dumps(report.to_dict(), indent=2))


def deploy_command(
    config: DeploymentConfig,
    settings: Settings,
    dry_run: bool = False,
    output_format: str = "text",
) -> int:
    """
    Run every pipeline phase against the configured target.

    Args:
        config: Loaded deployment configuration
        settings: Environment settings (tool binaries)
        dry_run: Record commands instead of running them
        output_format: Output format (text, json)

    Returns:
        Exit code (0 for completed runs, including degraded ones)
    """
    runner = make_runner(dry_run)
    announce = _announce if output_format == "text" else None
    sequencer = build_pipeline(
        config, settings, runner, sleep=make_sleep(dry_run), announce=announce, dry_run=dry_run
    )

    report = sequencer.run()

    if output_format == "json":
        print_deploy_json(report)
    else:
        print_deploy_summary(report, config)

    return int(report.exit_code)
