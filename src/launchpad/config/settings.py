"""
Application settings using Pydantic.

Provides environment-based configuration loading with LAUNCHPAD_ prefix.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="LAUNCHPAD_",
        extra="ignore",
    )

    # Deployment config file (overridden by --config)
    config_path: str | None = None

    # Logging
    log_level: str = "INFO"
    log_format: str = "console"  # console, json

    # AWS
    aws_region: str | None = None

    # Kubernetes API access (defaults to KUBECONFIG and the current context)
    kubeconfig: str | None = None
    kube_context: str | None = None

    # Print commands instead of running them
    dry_run: bool = False

    # External tool binaries
    terraform_bin: str = "terraform"
    kubectl_bin: str = "kubectl"
    docker_bin: str = "docker"
    aws_bin: str = "aws"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
