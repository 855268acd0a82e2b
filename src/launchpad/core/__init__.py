"""Core primitives shared across Launchpad: errors and outcomes."""

from launchpad.core.errors import (
    ArtifactError,
    ClusterError,
    CommandError,
    ConfigurationError,
    ExitCode,
    LaunchpadError,
    PhaseFailedError,
    ProviderError,
    ProvisioningError,
    ValidationError,
    main_with_error_handling,
)
from launchpad.core.outcome import Outcome, OutcomeKind

__all__ = [
    "ArtifactError",
    "ClusterError",
    "CommandError",
    "ConfigurationError",
    "ExitCode",
    "LaunchpadError",
    "Outcome",
    "OutcomeKind",
    "PhaseFailedError",
    "ProviderError",
    "ProvisioningError",
    "ValidationError",
    "main_with_error_handling",
]
