"""Tests for the launchpad command line."""

import json
from unittest.mock import patch

import pytest
import yaml
from launchpad.cli.main import build_parser, main
from launchpad.config.settings import get_settings
from launchpad.core.errors import ExitCode
from launchpad.pipeline import builder

HOST = "a1b2c3-123456.us-east-1.elb.amazonaws.com"


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    """Fresh settings per test, unaffected by the caller's environment."""
    for var in ("LAUNCHPAD_CONFIG_PATH", "LAUNCHPAD_AWS_REGION", "LAUNCHPAD_DRY_RUN"):
        monkeypatch.delenv(var, raising=False)
    get_settings.cache_clear()
    with patch("launchpad.cli.main.configure_logging"):
        yield
    get_settings.cache_clear()


@pytest.fixture
def config_file(project, project_data, tmp_path):
    path = tmp_path / "launchpad.yaml"
    path.write_text(yaml.safe_dump(project_data))
    return path


class TestParser:
    """Tests for argument parsing."""

    def test_deploy_flags(self):
        args = build_parser().parse_args(["deploy", "--dry-run", "--output", "json"])

        assert args.command == "deploy"
        assert args.dry_run is True
        assert args.output == "json"

    def test_rewrite_positional(self):
        args = build_parser().parse_args(["rewrite", HOST, "--old", "old.example"])

        assert args.new == HOST
        assert args.old == "old.example"

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 0
        assert "launchpad" in capsys.readouterr().out


class TestPlanCommand:
    """Tests for launchpad plan."""

    def test_json_plan(self, config_file, capsys):
        assert main(["plan", "--config", str(config_file), "--output", "json"]) == 0

        plan = json.loads(capsys.readouterr().out)
        assert [p["phase"] for p in plan["phases"]][0] == "provision"
        assert plan["phases"][-1] == {"phase": "summarize", "policy": "best-effort"}
        assert [m["path"].rsplit("/", 1)[-1] for m in plan["manifests"]] == [
            "00-namespace.yaml",
            "01-configmap.yaml",
            "02-postgres.yaml",
            "10-users-service.yaml",
            "11-orders-service.yaml",
            "20-api-gateway.yaml",
        ]
        assert plan["managed_resources"][0]["address"] == 'aws_ecr_repository.services["api-gateway"]'

    def test_text_plan(self, config_file, capsys):
        assert main(["plan", "--config", str(config_file)]) == 0
        assert "Plan: shop" in capsys.readouterr().out

    def test_config_found_in_current_directory(self, config_file, monkeypatch, capsys):
        monkeypatch.chdir(config_file.parent)

        assert main(["plan", "--output", "json"]) == 0

    def test_missing_config(self, tmp_path):
        assert main(["plan", "--config", str(tmp_path / "missing.yaml")]) == ExitCode.CONFIG_ERROR


class TestDeployCommand:
    """Tests for launchpad deploy."""

    def test_dry_run_completes_degraded(self, config_file, capsys):
        code = main(["deploy", "--config", str(config_file), "--dry-run", "--output", "json"])

        report = json.loads(capsys.readouterr().out)
        assert code == ExitCode.SUCCESS
        assert report["status"] == "degraded"
        assert report["state"]["registry_host"] == "000000000000.dkr.ecr.us-east-1.amazonaws.com"
        assert report["state"]["endpoint"] == "GATEWAY_URL_NOT_AVAILABLE"
        assert report["state"]["summary"]["gateway_url"] == "not available"

    def test_dry_run_from_environment(self, config_file, monkeypatch, capsys):
        monkeypatch.setenv("LAUNCHPAD_DRY_RUN", "1")

        code = main(["deploy", "--config", str(config_file), "--output", "json"])

        assert code == ExitCode.SUCCESS
        assert json.loads(capsys.readouterr().out)["status"] == "degraded"

    def test_text_summary(self, config_file, capsys):
        assert main(["deploy", "--config", str(config_file), "--dry-run"]) == ExitCode.SUCCESS

        out = capsys.readouterr().out
        assert "[1/6]" in out
        assert "Deployment DEGRADED" in out
        assert "not available" in out

    def test_fatal_phase_exit_code(self, config_file, runner, capsys):
        runner.on("terraform", "apply", returncode=1, stderr="Error: creating EKS Cluster")

        with patch("launchpad.cli.deploy.make_runner", return_value=runner):
            code = main(["deploy", "--config", str(config_file), "--output", "json"])

        report = json.loads(capsys.readouterr().out)
        assert code == ExitCode.PHASE_FAILED
        assert report["status"] == "aborted"
        assert report["phases"][0]["outcome"] == "fatal"

    def test_fatal_phase_text(self, config_file, runner, capsys):
        runner.on("terraform", "apply", returncode=1, stderr="Error: creating EKS Cluster")

        with patch("launchpad.cli.deploy.make_runner", return_value=runner):
            code = main(["deploy", "--config", str(config_file)])

        assert code == ExitCode.PHASE_FAILED
        assert "Aborted in provision" in capsys.readouterr().out


class TestEndpointCommands:
    """Tests for launchpad discover and launchpad rewrite."""

    def test_discover_timeout_in_dry_run(self, config_file, capsys):
        code = main(["discover", "--config", str(config_file), "--dry-run", "--output", "json"])

        payload = json.loads(capsys.readouterr().out)
        assert code == ExitCode.WARNING
        assert payload["available"] is False
        assert payload["attempts"] == 3

    def test_discover_found(self, config_file, cluster_api, capsys):
        cluster_api.address("api-gateway", "", HOST)

        def discoverer_with_api(config, settings, runner, sleep, dry_run=False):
            return builder.make_discoverer(
                config, settings, runner, sleep, dry_run=dry_run, core_api=cluster_api
            )

        with patch(
            "launchpad.cli.endpoint.make_discoverer", side_effect=discoverer_with_api
        ), patch("launchpad.cli.endpoint.make_sleep", return_value=lambda seconds: None):
            code = main(["discover", "--config", str(config_file), "--output", "json"])

        assert code == ExitCode.SUCCESS
        assert json.loads(capsys.readouterr().out)["url"] == f"http://{HOST}:8090"
        assert len(cluster_api.calls("read_namespaced_service", "api-gateway")) == 2

    def test_rewrite(self, config_file, project):
        assert main(["rewrite", HOST, "--config", str(config_file)]) == ExitCode.SUCCESS

        assert f"http://{HOST}:8090" in project.frontend_manifest.read_text()

    def test_rewrite_twice_follows_state(self, config_file, project):
        main(["rewrite", HOST, "--config", str(config_file)])

        assert main(["rewrite", "next.example", "--config", str(config_file)]) == ExitCode.SUCCESS
        assert "http://next.example:8090" in project.frontend_manifest.read_text()

    def test_rewrite_without_reference(self, config_file, project):
        project.frontend_manifest.write_text("value: http://hand-edited:8090\n")

        assert main(["rewrite", HOST, "--config", str(config_file)]) == ExitCode.WARNING
        assert project.frontend_manifest.read_text() == "value: http://hand-edited:8090\n"

    def test_rewrite_rejects_url(self, config_file, project):
        code = main(["rewrite", "http://lb.example:8090", "--config", str(config_file)])

        assert code == ExitCode.VALIDATION_ERROR
        assert "__GATEWAY_ENDPOINT__" in project.frontend_manifest.read_text()
