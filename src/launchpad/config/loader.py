"""
Deployment configuration file loading.

Search order:
1. Explicit path (--config flag or LAUNCHPAD_CONFIG_PATH)
2. launchpad.yaml (current directory)
3. .launchpad/config.yaml (current directory)
"""

from __future__ import annotations

from pathlib import Path

import structlog
import yaml

from launchpad.config.deployment import DeploymentConfig
from launchpad.core.errors import ConfigurationError

logger = structlog.get_logger()

CONFIG_CANDIDATES = ("launchpad.yaml", ".launchpad/config.yaml")


def get_config_path(explicit_path: str | Path | None = None) -> Path | None:
    """
    Find the deployment configuration file to use.

    Returns:
        Path to config file or None if not found
    """
    if explicit_path:
        path = Path(explicit_path).expanduser()
        return path if path.exists() else None

    for candidate in CONFIG_CANDIDATES:
        path = Path.cwd() / candidate
        if path.exists():
            return path

    return None


def load_deployment_config(
    path: str | Path | None = None,
    region_override: str | None = None,
) -> DeploymentConfig:
    """
    Load and validate a deployment configuration file.

    Args:
        path: Optional explicit config file path
        region_override: Region that takes precedence over the file's value

    Raises:
        ConfigurationError: if no file is found, it is not valid YAML, or a
            required key is missing
    """
    config_path = get_config_path(path)
    if config_path is None:
        searched = str(path) if path else ", ".join(CONFIG_CANDIDATES)
        raise ConfigurationError(
            f"Deployment config not found (searched: {searched})",
            details={"path": str(path) if path else None},
        )

    try:
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Deployment config must be a mapping: {config_path}")

    config = DeploymentConfig.from_dict(
        data,
        base_dir=config_path.resolve().parent,
        region_override=region_override,
    )
    logger.debug("loaded_config", path=str(config_path), project=config.project)
    return config
