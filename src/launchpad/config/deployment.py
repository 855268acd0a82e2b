"""
Deployment configuration model.

One YAML file describes everything the pipeline touches: the Terraform
working directory and the registry repositories it should adopt, the images
to build, the manifests to apply (grouped by stage), and how to find the
gateway's load balancer address.

Relative paths are resolved against the directory that holds the config
file, so a deployment can be launched from anywhere.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from launchpad.core.errors import ConfigurationError

DEFAULT_ADDRESS_TEMPLATE = 'aws_ecr_repository.services["{name}"]'
DEFAULT_PLACEHOLDER = "__GATEWAY_ENDPOINT__"
DEFAULT_STATE_FILE = ".launchpad/endpoint.json"


def _require(data: dict[str, Any], key: str, section: str) -> Any:
    value = data.get(key)
    if value in (None, ""):
        raise ConfigurationError(
            f"Missing required key '{key}' in '{section}' section",
            details={"section": section, "key": key},
        )
    return value


def _section(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"Section '{key}' must be a mapping", details={"section": key})
    return value


def _resolve(base_dir: Path, value: str | Path) -> Path:
    path = Path(value).expanduser()
    return path if path.is_absolute() else base_dir / path


def _str_dict(value: dict[str, Any] | None) -> dict[str, str]:
    return {str(k): str(v) for k, v in (value or {}).items()}


@dataclass
class InfrastructureConfig:
    """Terraform working directory and the remote resources it may need to adopt."""

    working_dir: Path
    managed_resources: list[str] = field(default_factory=list)
    address_template: str = DEFAULT_ADDRESS_TEMPLATE
    init_args: list[str] = field(default_factory=lambda: ["-upgrade"])

    def address_for(self, name: str) -> str:
        """Terraform resource address for a managed resource name."""
        return self.address_template.format(name=name)

    def to_dict(self) -> dict[str, Any]:
        return {
            "working_dir": str(self.working_dir),
            "managed_resources": list(self.managed_resources),
            "address_template": self.address_template,
            "init_args": list(self.init_args),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], base_dir: Path) -> InfrastructureConfig:
        return cls(
            working_dir=_resolve(base_dir, _require(data, "working_dir", "infrastructure")),
            managed_resources=[str(n) for n in data.get("managed_resources", [])],
            address_template=data.get("address_template", DEFAULT_ADDRESS_TEMPLATE),
            init_args=[str(a) for a in data.get("init_args", ["-upgrade"])],
        )


@dataclass
class ImageSpec:
    """A container image built from a local context."""

    name: str
    context: Path
    dockerfile: Path | None = None
    platform: str = "linux/amd64"
    tag: str = "latest"
    build_args: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "context": str(self.context),
            "dockerfile": str(self.dockerfile) if self.dockerfile else None,
            "platform": self.platform,
            "tag": self.tag,
            "build_args": dict(self.build_args),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], base_dir: Path) -> ImageSpec:
        dockerfile = data.get("dockerfile")
        return cls(
            name=_require(data, "name", "images"),
            context=_resolve(base_dir, _require(data, "context", "images")),
            dockerfile=_resolve(base_dir, dockerfile) if dockerfile else None,
            platform=data.get("platform", "linux/amd64"),
            tag=str(data.get("tag", "latest")),
            build_args=_str_dict(data.get("build_args")),
        )


@dataclass
class ManifestStages:
    """Manifests grouped by rollout stage, applied in this order."""

    directory: Path
    config: list[str] = field(default_factory=list)
    stores: list[str] = field(default_factory=list)
    services: list[str] = field(default_factory=list)
    gateway: list[str] = field(default_factory=list)

    STAGES = ("config", "stores", "services", "gateway")

    def path(self, name: str) -> Path:
        return _resolve(self.directory, name)

    def stage(self, stage: str) -> list[Path]:
        """Manifest paths for one stage."""
        return [self.path(name) for name in getattr(self, stage)]

    def ordered(self) -> list[tuple[str, Path]]:
        """All manifests as (stage, path) pairs in rollout order."""
        return [(stage, path) for stage in self.STAGES for path in self.stage(stage)]

    def to_dict(self) -> dict[str, Any]:
        return {
            "directory": str(self.directory),
            **{stage: list(getattr(self, stage)) for stage in self.STAGES},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], base_dir: Path) -> ManifestStages:
        return cls(
            directory=_resolve(base_dir, _require(data, "directory", "manifests")),
            **{stage: [str(m) for m in data.get(stage, [])] for stage in cls.STAGES},
        )


@dataclass
class ReadinessConfig:
    """Best-effort readiness wait for stateful stores."""

    selectors: list[str] = field(default_factory=list)
    condition: str = "Ready"
    timeout_seconds: int = 180
    interval_seconds: int = 5

    @property
    def attempts(self) -> int:
        # One check at t=0, then one per interval until the timeout.
        return max(1, self.timeout_seconds // max(1, self.interval_seconds) + 1)

    def to_dict(self) -> dict[str, Any]:
        return {
            "selectors": list(self.selectors),
            "condition": self.condition,
            "timeout_seconds": self.timeout_seconds,
            "interval_seconds": self.interval_seconds,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ReadinessConfig:
        return cls(
            selectors=[str(s) for s in data.get("selectors", [])],
            condition=data.get("condition", "Ready"),
            timeout_seconds=int(data.get("timeout_seconds", 180)),
            interval_seconds=int(data.get("interval_seconds", 5)),
        )


@dataclass
class GatewayConfig:
    """Where to find the gateway's externally assigned address."""

    service: str = "api-gateway"
    port: int = 8090
    scheme: str = "http"
    attempts: int = 30
    interval_seconds: int = 10
    initial_delay_seconds: int = 30

    def url_for(self, address: str) -> str:
        return f"{self.scheme}://{address}:{self.port}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "service": self.service,
            "port": self.port,
            "scheme": self.scheme,
            "attempts": self.attempts,
            "interval_seconds": self.interval_seconds,
            "initial_delay_seconds": self.initial_delay_seconds,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GatewayConfig:
        attempts = int(data.get("attempts", 30))
        if attempts < 1:
            raise ConfigurationError("gateway.attempts must be at least 1")
        return cls(
            service=data.get("service", "api-gateway"),
            port=int(data.get("port", 8090)),
            scheme=data.get("scheme", "http"),
            attempts=attempts,
            interval_seconds=int(data.get("interval_seconds", 10)),
            initial_delay_seconds=int(data.get("initial_delay_seconds", 30)),
        )


@dataclass
class FrontendConfig:
    """The one artifact that embeds the gateway endpoint at build time."""

    image: str
    context: Path
    manifest: str
    placeholder: str = DEFAULT_PLACEHOLDER
    deployment: str = "frontend"
    service: str = "frontend"
    port: int = 3000
    endpoint_build_arg: str = "NEXT_PUBLIC_GATEWAY_URL"
    build_args: dict[str, str] = field(default_factory=lambda: {"NEXT_PUBLIC_USE_GATEWAY": "true"})
    dockerfile: Path | None = None
    platform: str = "linux/amd64"

    def image_spec(self, endpoint_url: str) -> ImageSpec:
        """Image spec for the rebuild with the discovered endpoint baked in."""
        return ImageSpec(
            name=self.image,
            context=self.context,
            dockerfile=self.dockerfile,
            platform=self.platform,
            build_args={self.endpoint_build_arg: endpoint_url, **self.build_args},
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "image": self.image,
            "context": str(self.context),
            "manifest": self.manifest,
            "placeholder": self.placeholder,
            "deployment": self.deployment,
            "service": self.service,
            "port": self.port,
            "endpoint_build_arg": self.endpoint_build_arg,
            "build_args": dict(self.build_args),
            "dockerfile": str(self.dockerfile) if self.dockerfile else None,
            "platform": self.platform,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], base_dir: Path) -> FrontendConfig:
        dockerfile = data.get("dockerfile")
        build_args = data.get("build_args")
        return cls(
            image=data.get("image", "frontend"),
            context=_resolve(base_dir, _require(data, "context", "frontend")),
            manifest=_require(data, "manifest", "frontend"),
            placeholder=data.get("placeholder", DEFAULT_PLACEHOLDER),
            deployment=data.get("deployment", "frontend"),
            service=data.get("service", "frontend"),
            port=int(data.get("port", 3000)),
            endpoint_build_arg=data.get("endpoint_build_arg", "NEXT_PUBLIC_GATEWAY_URL"),
            build_args=(
                _str_dict(build_args)
                if build_args is not None
                else {"NEXT_PUBLIC_USE_GATEWAY": "true"}
            ),
            dockerfile=_resolve(base_dir, dockerfile) if dockerfile else None,
            platform=data.get("platform", "linux/amd64"),
        )


@dataclass
class SummaryConfig:
    settle_seconds: int = 30

    def to_dict(self) -> dict[str, Any]:
        return {"settle_seconds": self.settle_seconds}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SummaryConfig:
        return cls(settle_seconds=int(data.get("settle_seconds", 30)))


@dataclass
class DeploymentConfig:
    """Complete description of one deployment target."""

    project: str
    region: str
    cluster: str
    namespace: str
    infrastructure: InfrastructureConfig
    manifests: ManifestStages
    frontend: FrontendConfig
    images: list[ImageSpec] = field(default_factory=list)
    readiness: ReadinessConfig = field(default_factory=ReadinessConfig)
    gateway: GatewayConfig = field(default_factory=GatewayConfig)
    summary: SummaryConfig = field(default_factory=SummaryConfig)
    state_file: Path = Path(DEFAULT_STATE_FILE)
    base_dir: Path = Path(".")

    @property
    def frontend_manifest(self) -> Path:
        return self.manifests.path(self.frontend.manifest)

    def to_dict(self) -> dict[str, Any]:
        return {
            "project": self.project,
            "region": self.region,
            "cluster": self.cluster,
            "namespace": self.namespace,
            "state_file": str(self.state_file),
            "infrastructure": self.infrastructure.to_dict(),
            "images": [i.to_dict() for i in self.images],
            "manifests": self.manifests.to_dict(),
            "readiness": self.readiness.to_dict(),
            "gateway": self.gateway.to_dict(),
            "frontend": self.frontend.to_dict(),
            "summary": self.summary.to_dict(),
        }

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        base_dir: Path | None = None,
        region_override: str | None = None,
    ) -> DeploymentConfig:
        base_dir = base_dir or Path(".")
        region = region_override or data.get("region")
        if not region:
            raise ConfigurationError(
                "Missing required key 'region' (set it in the config or LAUNCHPAD_AWS_REGION)",
                details={"key": "region"},
            )
        return cls(
            project=data.get("project") or base_dir.resolve().name,
            region=str(region),
            cluster=_require(data, "cluster", "root"),
            namespace=_require(data, "namespace", "root"),
            infrastructure=InfrastructureConfig.from_dict(
                _section(data, "infrastructure"), base_dir
            ),
            images=[ImageSpec.from_dict(i, base_dir) for i in data.get("images", [])],
            manifests=ManifestStages.from_dict(_section(data, "manifests"), base_dir),
            readiness=ReadinessConfig.from_dict(_section(data, "readiness")),
            gateway=GatewayConfig.from_dict(_section(data, "gateway")),
            frontend=FrontendConfig.from_dict(_section(data, "frontend"), base_dir),
            summary=SummaryConfig.from_dict(_section(data, "summary")),
            state_file=_resolve(base_dir, data.get("state_file", DEFAULT_STATE_FILE)),
            base_dir=base_dir,
        )
