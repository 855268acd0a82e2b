"""
CLI commands for the endpoint steps on their own: discover and rewrite.

Useful when a deploy finished before the load balancer got its address;
the frontend manifest can be advanced later without a full run.
"""

from __future__ import annotations

import json

from launchpad.cli.ux import error, info, success, warning
from launchpad.config.deployment import DeploymentConfig
from launchpad.config.settings import Settings
from launchpad.core.errors import ExitCode, ValidationError
from launchpad.pipeline.builder import (
    make_discoverer,
    make_runner,
    make_sleep,
    make_templater,
)


def discover_command(
    config: DeploymentConfig,
    settings: Settings,
    dry_run: bool = False,
    output_format: str = "text",
) -> int:
    """Poll the gateway service for its address and print it.

    Returns 0 when an address was found, 1 (warning) on timeout.
    """
    discoverer = make_discoverer(
        config, settings, make_runner(dry_run), sleep=make_sleep(dry_run), dry_run=dry_run
    )
    endpoint = discoverer.discover()

    if output_format == "json":
        payload = {
            "service": config.gateway.service,
            "address": endpoint.value,
            "available": endpoint.available,
            "attempts": endpoint.attempts,
            "url": endpoint.url(config.gateway.scheme, config.gateway.port),
        }
        print(json.dumps(payload, indent=2))
    elif endpoint.available:
        success(f"{config.gateway.service}: {config.gateway.url_for(endpoint.address)}")
    else:
        warning(
            f"{config.gateway.service}: address not assigned after {endpoint.attempts} attempts"
        )

    return ExitCode.SUCCESS if endpoint.available else ExitCode.WARNING


def rewrite_command(config: DeploymentConfig, new: str, old: str | None = None) -> int:
    """Replace the prior endpoint reference in the frontend manifest."""
    if not new or any(c.isspace() or c in "/:" for c in new):
        raise ValidationError(
            f"Invalid gateway address: {new!r} (expected a bare hostname)",
            details={"address": new},
        )
    templater = make_templater(config)
    if not templater.manifest.exists():
        error(f"Manifest not found: {templater.manifest}")
        return ExitCode.CONFIG_ERROR

    result = templater.rewire(new, old=old)
    if result.rewritten:
        success(
            f"{templater.manifest.name}: {result.old} -> {result.new} "
            f"({result.replacements} replacement{'s' if result.replacements != 1 else ''})"
        )
        return ExitCode.SUCCESS

    tried = [old] if old else templater.prior_candidates()
    warning(f"{templater.manifest.name}: no prior endpoint reference found, file unchanged")
    info(f"Looked for: {', '.join(tried) or '(nothing recorded)'}")
    return ExitCode.WARNING
