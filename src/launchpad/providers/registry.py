"""
Container image build and publish (docker).
"""

from __future__ import annotations

import structlog

from launchpad.config.deployment import ImageSpec
from launchpad.core.errors import ArtifactError
from launchpad.runner import CommandRunner

logger = structlog.get_logger()


class ContainerRegistry:
    """Builds images locally and pushes them to one registry host."""

    def __init__(self, runner: CommandRunner, host: str, binary: str = "docker"):
        self.runner = runner
        self.host = host
        self.binary = binary

    def remote_ref(self, spec: ImageSpec) -> str:
        return f"{self.host}/{spec.name}:{spec.tag}"

    def login(self, password: str, username: str = "AWS") -> None:
        result = self.runner.run(
            [self.binary, "login", "--username", username, "--password-stdin", self.host],
            input=password,
        )
        result.raise_for_status(ArtifactError)

    def build(self, spec: ImageSpec) -> str:
        """Build an image for the pinned platform; returns the local tag."""
        if not spec.context.is_dir():
            raise ArtifactError(
                f"Build context not found: {spec.context}", details={"image": spec.name}
            )
        local_ref = f"{spec.name}:{spec.tag}"
        args = [self.binary, "build", "--platform", spec.platform]
        # Build args go in as separate list items, never interpolated.
        for key, value in spec.build_args.items():
            args.extend(["--build-arg", f"{key}={value}"])
        if spec.dockerfile:
            args.extend(["--file", str(spec.dockerfile)])
        args.extend(["-t", local_ref, str(spec.context)])

        self.runner.run(args, stream=True).raise_for_status(ArtifactError)
        return local_ref

    def publish(self, spec: ImageSpec) -> str:
        """Build, tag for the registry, and push. Returns the pushed reference."""
        local_ref = self.build(spec)
        remote_ref = self.remote_ref(spec)
        self.runner.run([self.binary, "tag", local_ref, remote_ref]).raise_for_status(ArtifactError)
        self.runner.run([self.binary, "push", remote_ref], stream=True).raise_for_status(
            ArtifactError
        )
        logger.info("image_published", image=spec.name, ref=remote_ref)
        return remote_ref
