"""
AWS identity and registry credentials.

Caller identity and the ECR authorization token come from the AWS SDK.
The kubeconfig entry for the cluster is still written by
``aws eks update-kubeconfig``, which also installs the token exec plugin
that kubectl and the Kubernetes client rely on.
"""

from __future__ import annotations

import base64
import binascii
from typing import Any

import boto3
import structlog
from botocore.exceptions import BotoCoreError, ClientError

from launchpad.core.errors import ProviderError
from launchpad.runner import CommandRunner

logger = structlog.get_logger()

DRY_RUN_ACCOUNT = "000000000000"
DRY_RUN_PASSWORD = "dry-run"


class AwsIdentity:
    """Resolves the caller's account and wires local tools to AWS."""

    def __init__(
        self,
        runner: CommandRunner,
        region: str,
        binary: str = "aws",
        session: Any = None,
        dry_run: bool = False,
    ):
        self.runner = runner
        self.region = region
        self.binary = binary
        self.dry_run = dry_run
        self._session = session

    @property
    def session(self) -> Any:
        if self._session is None:
            self._session = boto3.Session(region_name=self.region)
        return self._session

    def _call(self, service: str, operation: str) -> dict[str, Any]:
        try:
            aws_client = self.session.client(service)
            return getattr(aws_client, operation)()
        except (BotoCoreError, ClientError) as e:
            raise ProviderError(
                f"AWS {service} {operation} failed: {e}",
                details={"service": service, "region": self.region},
            ) from e

    def account_id(self) -> str:
        if self.dry_run:
            return DRY_RUN_ACCOUNT
        account = self._call("sts", "get_caller_identity").get("Account")
        if not account:
            raise ProviderError("Could not resolve AWS account id from caller identity")
        return account

    def registry_host(self, account_id: str) -> str:
        """ECR registry host for an account in this region."""
        return f"{account_id}.dkr.ecr.{self.region}.amazonaws.com"

    def update_kubeconfig(self, cluster: str) -> None:
        """Point kubectl's current context at an EKS cluster."""
        result = self.runner.run(
            [self.binary, "eks", "update-kubeconfig", "--region", self.region, "--name", cluster]
        )
        result.raise_for_status(ProviderError)

    def registry_password(self) -> str:
        """Short-lived ECR login password for docker.

        The authorization token is base64 of ``AWS:<password>``.
        """
        if self.dry_run:
            return DRY_RUN_PASSWORD
        data = self._call("ecr", "get_authorization_token").get("authorizationData") or []
        if not data:
            raise ProviderError("ECR returned no authorization data")
        try:
            token = base64.b64decode(data[0]["authorizationToken"]).decode()
        except (KeyError, binascii.Error, UnicodeDecodeError) as e:
            raise ProviderError(f"Malformed ECR authorization token: {e}") from e
        username, _, password = token.partition(":")
        if username != "AWS" or not password:
            raise ProviderError("Unexpected ECR authorization token format")
        logger.debug("registry_token_resolved", expires_at=str(data[0].get("expiresAt")))
        return password
