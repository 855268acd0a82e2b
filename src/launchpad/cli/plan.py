"""
CLI command for previewing a deployment without executing it.
"""

from __future__ import annotations

import json
from typing import Any

from launchpad.cli.ux import console, header, print_key_value, print_table
from launchpad.config.deployment import DeploymentConfig
from launchpad.pipeline.state import PHASE_ORDER, PHASE_POLICIES


def build_plan(config: DeploymentConfig) -> dict[str, Any]:
    """Everything a deploy would touch, in the order it would touch it."""
    return {
        "project": config.project,
        "region": config.region,
        "cluster": config.cluster,
        "namespace": config.namespace,
        "phases": [
            {"phase": phase.value, "policy": PHASE_POLICIES[phase].value} for phase in PHASE_ORDER
        ],
        "managed_resources": [
            {"name": name, "address": config.infrastructure.address_for(name)}
            for name in config.infrastructure.managed_resources
        ],
        "images": [image.name for image in config.images],
        "manifests": [
            {"stage": stage, "path": str(path)} for stage, path in config.manifests.ordered()
        ],
        "frontend_manifest": str(config.frontend_manifest),
        "gateway_service": config.gateway.service,
    }


def plan_command(config: DeploymentConfig, output_format: str = "text") -> int:
    """Print the phase table and ordered manifest list."""
    plan = build_plan(config)

    if output_format == "json":
        print(json.dumps(plan, indent=2))
        return 0

    header(f"Plan: {config.project}")
    print_key_value(
        {
            "Region": config.region,
            "Cluster": config.cluster,
            "Namespace": config.namespace,
            "Gateway service": config.gateway.service,
        }
    )
    console.print()
    print_table(
        "Phases",
        ["#", "Phase", "On failure"],
        [
            [str(i), p["phase"], "abort" if p["policy"] == "fatal" else "continue"]
            for i, p in enumerate(plan["phases"], 1)
        ],
    )
    if plan["managed_resources"]:
        print_table(
            "Adopted before apply",
            ["Name", "Address"],
            [[r["name"], r["address"]] for r in plan["managed_resources"]],
        )
    print_table(
        "Manifests",
        ["#", "Stage", "Path"],
        [[str(i), m["stage"], m["path"]] for i, m in enumerate(plan["manifests"], 1)]
        + [[str(len(plan["manifests"]) + 1), "frontend", plan["frontend_manifest"]]],
    )
    if plan["images"]:
        console.print(f"\n[bold]Images:[/bold] {', '.join(plan['images'])}")
    console.print()
    return 0
