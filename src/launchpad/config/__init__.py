"""
Launchpad Configuration System.

Provides:
- Pydantic-based settings (LAUNCHPAD_ environment variables, .env files)
- The deployment config model loaded from YAML
"""

from launchpad.config.deployment import (
    DeploymentConfig,
    FrontendConfig,
    GatewayConfig,
    ImageSpec,
    InfrastructureConfig,
    ManifestStages,
    ReadinessConfig,
    SummaryConfig,
)
from launchpad.config.loader import get_config_path, load_deployment_config
from launchpad.config.settings import Settings, get_settings

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    # Deployment model
    "DeploymentConfig",
    "FrontendConfig",
    "GatewayConfig",
    "ImageSpec",
    "InfrastructureConfig",
    "ManifestStages",
    "ReadinessConfig",
    "SummaryConfig",
    # Loader
    "get_config_path",
    "load_deployment_config",
]
