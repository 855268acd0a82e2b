"""
CLI commands for Launchpad.
"""

from launchpad.cli.deploy import deploy_command
from launchpad.cli.endpoint import discover_command, rewrite_command
from launchpad.cli.plan import plan_command

__all__ = [
    "deploy_command",
    "discover_command",
    "plan_command",
    "rewrite_command",
]
