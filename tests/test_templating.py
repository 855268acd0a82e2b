"""Tests for in-place manifest endpoint rewriting."""

import json

import pytest
from launchpad.templating import (
    EndpointState,
    ManifestTemplater,
    load_state,
    rewrite_endpoint,
    save_state,
)

OLD = "old-elb-111.us-east-1.elb.amazonaws.com"
NEW = "new-elb-222.us-east-1.elb.amazonaws.com"
NEWER = "newer-elb-333.us-east-1.elb.amazonaws.com"


@pytest.fixture
def manifest(tmp_path):
    path = tmp_path / "30-frontend.yaml"
    path.write_text(
        "env:\n"
        "  - name: NEXT_PUBLIC_GATEWAY_URL\n"
        "    value: http://__GATEWAY_ENDPOINT__:8090\n"
    )
    return path


@pytest.fixture
def templater(manifest, tmp_path):
    return ManifestTemplater(manifest, "__GATEWAY_ENDPOINT__", tmp_path / ".launchpad" / "endpoint.json")


class TestRewriteEndpoint:
    """Tests for rewrite_endpoint()."""

    def test_single_occurrence(self, tmp_path):
        path = tmp_path / "m.yaml"
        path.write_text(f"value: http://{OLD}:8090\n")

        assert rewrite_endpoint(path, OLD, NEW) == 1
        assert path.read_text() == f"value: http://{NEW}:8090\n"

    def test_every_occurrence(self, tmp_path):
        path = tmp_path / "m.yaml"
        path.write_text(f"a: {OLD}\nb: {OLD}\n")

        assert rewrite_endpoint(path, OLD, NEW) == 2
        assert OLD not in path.read_text()

    def test_rewrite_keeps_mode_and_leaves_no_temp_files(self, tmp_path):
        path = tmp_path / "m.yaml"
        path.write_text(f"value: {OLD}\n")
        path.chmod(0o640)

        rewrite_endpoint(path, OLD, NEW)

        assert path.stat().st_mode & 0o777 == 0o640
        assert [p.name for p in tmp_path.iterdir()] == ["m.yaml"]

    def test_no_occurrence_leaves_file_untouched(self, tmp_path):
        path = tmp_path / "m.yaml"
        path.write_text("value: something-else\n")
        before = path.stat().st_mtime_ns

        assert rewrite_endpoint(path, OLD, NEW) == 0
        assert path.read_text() == "value: something-else\n"
        assert path.stat().st_mtime_ns == before

    def test_empty_old_rejected(self, tmp_path):
        path = tmp_path / "m.yaml"
        path.write_text("x")

        with pytest.raises(ValueError):
            rewrite_endpoint(path, "", NEW)


class TestEndpointState:
    """Tests for the endpoint state file."""

    def test_missing_file_is_empty_state(self, tmp_path):
        assert load_state(tmp_path / "missing.json") == EndpointState()

    def test_save_creates_parent_dirs(self, tmp_path):
        path = tmp_path / ".launchpad" / "endpoint.json"

        save_state(EndpointState(endpoint=NEW, manifest="m.yaml", updated_at="now"), path)

        assert json.loads(path.read_text())["endpoint"] == NEW
        assert load_state(path).endpoint == NEW

    def test_corrupt_file_is_empty_state(self, tmp_path):
        path = tmp_path / "endpoint.json"
        path.write_text("{not json")

        assert load_state(path) == EndpointState()

    def test_non_object_is_empty_state(self, tmp_path):
        path = tmp_path / "endpoint.json"
        path.write_text('["not", "an", "object"]')

        assert load_state(path) == EndpointState()


class TestManifestTemplater:
    """Tests for ManifestTemplater.rewire()."""

    def test_first_run_replaces_placeholder(self, templater, manifest):
        result = templater.rewire(NEW)

        assert result.rewritten
        assert result.old == "__GATEWAY_ENDPOINT__"
        assert f"http://{NEW}:8090" in manifest.read_text()
        assert load_state(templater.state_file).endpoint == NEW

    def test_later_runs_follow_recorded_endpoint(self, templater, manifest):
        """Three runs with three addresses each advance the manifest."""
        templater.rewire(NEW)
        result = templater.rewire(NEWER)

        assert result.old == NEW
        assert NEWER in manifest.read_text()
        assert NEW not in manifest.read_text()
        assert load_state(templater.state_file).endpoint == NEWER

    def test_explicit_old(self, tmp_path):
        manifest = tmp_path / "m.yaml"
        manifest.write_text(f"value: http://{OLD}:8090\n")
        templater = ManifestTemplater(manifest, "__GATEWAY_ENDPOINT__", tmp_path / "state.json")

        result = templater.rewire(NEW, old=OLD)

        assert result.replacements == 1
        assert NEW in manifest.read_text()

    def test_no_known_reference_is_not_an_error(self, tmp_path):
        manifest = tmp_path / "m.yaml"
        manifest.write_text("value: http://hand-edited:8090\n")
        state_file = tmp_path / "state.json"
        templater = ManifestTemplater(manifest, "__GATEWAY_ENDPOINT__", state_file)

        result = templater.rewire(NEW)

        assert not result.rewritten
        assert manifest.read_text() == "value: http://hand-edited:8090\n"
        assert not state_file.exists()

    def test_stale_state_falls_back_to_placeholder(self, templater, manifest):
        save_state(EndpointState(endpoint=OLD), templater.state_file)

        result = templater.rewire(NEW)

        assert result.old == "__GATEWAY_ENDPOINT__"
        assert templater.prior_candidates() == [NEW, "__GATEWAY_ENDPOINT__"]

    def test_corrupt_state_falls_back_to_placeholder(self, templater, manifest):
        templater.state_file.parent.mkdir(parents=True)
        templater.state_file.write_text("{not json")

        result = templater.rewire(NEW)

        assert result.old == "__GATEWAY_ENDPOINT__"
        assert f"http://{NEW}:8090" in manifest.read_text()
        assert load_state(templater.state_file).endpoint == NEW
