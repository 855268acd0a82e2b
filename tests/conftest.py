"""Root test configuration."""

import base64
import logging
from pathlib import Path

import pytest
import structlog
from botocore.exceptions import ClientError
from kubernetes import client
from kubernetes.client.exceptions import ApiException
from launchpad.config.deployment import DeploymentConfig
from launchpad.runner import CommandResult

NAMESPACE = "shop"
GATEWAY_HOST = "a1b2c3-123456.us-east-1.elb.amazonaws.com"
PLACEHOLDER = "__GATEWAY_ENDPOINT__"


def pytest_configure(config):
    """Configure structlog for tests to suppress debug/info output."""
    logging.basicConfig(level=logging.WARNING, force=True)
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


class FakeRunner:
    """Scripted CommandRunner.

    Rules match on a prefix of the full argv (binary included); the most
    recently added matching rule wins. A rule holds a queue of
    (returncode, stdout, stderr) responses; the last one repeats forever.
    Unmatched commands succeed with empty output.
    """

    def __init__(self):
        self.commands: list[tuple[str, ...]] = []
        self.calls: list[dict] = []
        self._rules: list[tuple[tuple[str, ...], list[tuple[int, str, str]]]] = []

    def on(self, *prefix, returncode=0, stdout="", stderr="", sequence=None):
        responses = list(sequence) if sequence else [(returncode, stdout, stderr)]
        responses = [r if len(r) == 3 else (r[0], r[1], "") for r in responses]
        self._rules.append((tuple(prefix), responses))
        return self

    def run(self, args, *, cwd=None, timeout=None, stream=False, input=None):
        argv = tuple(str(a) for a in args)
        self.commands.append(argv)
        self.calls.append(
            {"argv": argv, "cwd": cwd, "timeout": timeout, "stream": stream, "input": input}
        )
        for prefix, responses in reversed(self._rules):
            if argv[: len(prefix)] == prefix:
                rc, out, err = responses.pop(0) if len(responses) > 1 else responses[0]
                return CommandResult(args=argv, returncode=rc, stdout=out, stderr=err)
        return CommandResult(args=argv, returncode=0)

    def ran(self, *prefix) -> list[tuple[str, ...]]:
        """Commands that started with ``prefix``, in order."""
        return [c for c in self.commands if c[: len(prefix)] == prefix]

    def index(self, *prefix) -> int:
        """Position of the first command starting with ``prefix``."""
        for i, command in enumerate(self.commands):
            if command[: len(prefix)] == prefix:
                return i
        raise AssertionError(f"command not run: {' '.join(prefix)}")


def _next(responses: list):
    """Pop the next scripted response; the last one repeats forever."""
    return responses.pop(0) if len(responses) > 1 else responses[0]


def _pod(name: str, ready: bool, labels: dict[str, str] | None = None) -> client.V1Pod:
    return client.V1Pod(
        metadata=client.V1ObjectMeta(name=name, labels=labels or {}),
        status=client.V1PodStatus(
            phase="Running" if ready else "Pending",
            conditions=[client.V1PodCondition(type="Ready", status=str(ready))],
            container_statuses=[
                client.V1ContainerStatus(
                    name=name.rsplit("-", 1)[0],
                    image=f"{name}:latest",
                    image_id="",
                    ready=ready,
                    restart_count=0,
                )
            ],
        ),
    )


def _service(name: str, hostname: str = "", port: int = 80) -> client.V1Service:
    ingress = [client.V1LoadBalancerIngress(hostname=hostname)] if hostname else None
    return client.V1Service(
        metadata=client.V1ObjectMeta(name=name),
        spec=client.V1ServiceSpec(
            type="LoadBalancer",
            cluster_ip="10.100.0.10",
            ports=[client.V1ServicePort(port=port, protocol="TCP")],
        ),
        status=client.V1ServiceStatus(load_balancer=client.V1LoadBalancerStatus(ingress=ingress)),
    )


class FakeCoreApi:
    """Scripted stand-in for kubernetes.client.CoreV1Api.

    Calls are appended to ``log`` as ("api", method, target) so tests can
    order them against runner commands. Service addresses and pod readiness
    are scripted per name/selector; unscripted services have no address yet
    and unscripted selectors are ready.
    """

    def __init__(self, log: list):
        self.log = log
        self._addresses: dict[str, list[str]] = {}
        self._ready: dict[str, list[bool]] = {}
        self._errors: dict[tuple[str, str | None], ApiException] = {}
        self.pods = [_pod("users-0", True)]
        self.services = [_service("frontend", port=3000)]

    def address(self, service: str, *hostnames: str):
        self._addresses[service] = list(hostnames)
        return self

    def ready(self, selector: str, *states: bool):
        self._ready[selector] = list(states)
        return self

    def fail(self, method: str, target: str | None = None, status=500, reason="Internal Error"):
        self._errors[(method, target)] = ApiException(status=status, reason=reason)
        return self

    def calls(self, method: str, target: str | None = None) -> list[tuple]:
        return [
            c for c in self.log
            if c[:2] == ("api", method) and (target is None or c[2] == target)
        ]

    def _record(self, method: str, target: str) -> None:
        self.log.append(("api", method, target))
        error = self._errors.get((method, target)) or self._errors.get((method, None))
        if error:
            raise error

    def read_namespaced_service(self, name, namespace):
        self._record("read_namespaced_service", name)
        return _service(name, _next(self._addresses.get(name, [""])))

    def list_namespaced_pod(self, namespace, label_selector=None):
        self._record("list_namespaced_pod", label_selector or "")
        if label_selector:
            ready = _next(self._ready.get(label_selector, [True]))
            app = label_selector.partition("=")[2]
            return client.V1PodList(items=[_pod(f"{app}-0", ready)])
        return client.V1PodList(items=list(self.pods))

    def list_namespaced_service(self, namespace):
        self._record("list_namespaced_service", "")
        return client.V1ServiceList(items=list(self.services))


class FakeAwsSession:
    """Scripted stand-in for boto3.Session (sts and ecr only)."""

    def __init__(self, log: list, account="123456789012", password="secret-token"):
        self.log = log
        self.account = account
        self.password = password
        self.errors: dict[str, str] = {}

    def fail(self, service: str, code: str):
        self.errors[service] = code
        return self

    def client(self, service: str):
        return _FakeAwsClient(self, service)


class _FakeAwsClient:
    def __init__(self, session: FakeAwsSession, service: str):
        self.session = session
        self.service = service

    def _record(self, operation: str) -> None:
        self.session.log.append(("sdk", self.service, operation))
        code = self.session.errors.get(self.service)
        if code:
            raise ClientError({"Error": {"Code": code, "Message": code}}, operation)

    def get_caller_identity(self):
        self._record("get_caller_identity")
        return {"Account": self.session.account, "Arn": "arn:aws:iam::user/deployer"}

    def get_authorization_token(self):
        self._record("get_authorization_token")
        token = base64.b64encode(f"AWS:{self.session.password}".encode()).decode()
        registry = f"{self.session.account}.dkr.ecr.us-east-1.amazonaws.com"
        return {
            "authorizationData": [
                {
                    "authorizationToken": token,
                    "proxyEndpoint": f"https://{registry}",
                }
            ]
        }


@pytest.fixture
def runner():
    """A FakeRunner on which every command succeeds."""
    return FakeRunner()


@pytest.fixture
def cluster_api(runner):
    """Kubernetes API fake sharing the runner's command log."""
    return FakeCoreApi(runner.commands)


@pytest.fixture
def aws_session(runner):
    """AWS session fake for a healthy account, sharing the runner's command log."""
    return FakeAwsSession(runner.commands)


@pytest.fixture
def sleeps():
    """Records every sleep request instead of sleeping."""
    return []


MANIFESTS = {
    "00-namespace.yaml": "kind: Namespace\n",
    "01-configmap.yaml": "kind: ConfigMap\n",
    "02-postgres.yaml": "kind: StatefulSet\n",
    "10-users-service.yaml": "kind: Deployment\n",
    "11-orders-service.yaml": "kind: Deployment\n",
    "20-api-gateway.yaml": "kind: Service\n",
}

FRONTEND_MANIFEST = f"""apiVersion: apps/v1
kind: Deployment
metadata:
  name: frontend
spec:
  template:
    spec:
      containers:
        - name: frontend
          env:
            - name: NEXT_PUBLIC_GATEWAY_URL
              value: http://{PLACEHOLDER}:8090
"""


def deployment_data() -> dict:
    return {
        "project": "shop",
        "region": "us-east-1",
        "cluster": "shop-cluster",
        "namespace": NAMESPACE,
        "infrastructure": {
            "working_dir": "infra",
            "managed_resources": ["api-gateway", "frontend"],
        },
        "images": [
            {"name": "api-gateway", "context": "services/api-gateway"},
            {"name": "users-service", "context": "services/users-service"},
        ],
        "manifests": {
            "directory": "k8s",
            "config": ["00-namespace.yaml", "01-configmap.yaml"],
            "stores": ["02-postgres.yaml"],
            "services": ["10-users-service.yaml", "11-orders-service.yaml"],
            "gateway": ["20-api-gateway.yaml"],
        },
        "readiness": {"selectors": ["app=postgres"], "timeout_seconds": 10, "interval_seconds": 5},
        "gateway": {"attempts": 3, "interval_seconds": 10, "initial_delay_seconds": 30},
        "frontend": {"context": "frontend", "manifest": "30-frontend.yaml"},
        "summary": {"settle_seconds": 30},
    }


def write_project(root: Path, data: dict | None = None) -> DeploymentConfig:
    """Lay out a deployable project under ``root`` and return its config."""
    data = data or deployment_data()
    (root / "infra").mkdir()
    for image in ("services/api-gateway", "services/users-service", "frontend"):
        (root / image).mkdir(parents=True)
    k8s = root / "k8s"
    k8s.mkdir()
    for name, content in MANIFESTS.items():
        (k8s / name).write_text(content)
    (k8s / "30-frontend.yaml").write_text(FRONTEND_MANIFEST)
    return DeploymentConfig.from_dict(data, base_dir=root)


@pytest.fixture
def project(tmp_path):
    """A DeploymentConfig backed by real directories and manifests in tmp_path."""
    return write_project(tmp_path)


@pytest.fixture
def project_data():
    """Raw deployment config mapping used by the ``project`` fixture."""
    return deployment_data()


@pytest.fixture
def make_project(tmp_path):
    """Build a project from a (possibly modified) config mapping."""

    def _make(data: dict) -> DeploymentConfig:
        return write_project(tmp_path, data)

    return _make
