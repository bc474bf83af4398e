"""Unit tests for configuration and secrets loading."""

import pytest

from provisioner.errors import ConfigError
from provisioner.utils import load_config, load_secrets

VALID_CONFIG = """
app:
  name: demo-app
  workspace_root: {root}
tracker:
  team_id: team-1
code_host:
  repo_url: acme/demo-app
retry:
  max_attempts: 5
"""


class TestLoadConfig:
    """Tests for load_config."""

    def test_loads_yaml_with_defaults(self, tmp_path):
        path = tmp_path / "provisioning.yaml"
        path.write_text(VALID_CONFIG.format(root=tmp_path))

        config = load_config(path)

        assert config.app.name == "demo-app"
        assert config.workspace_path == tmp_path / "demo-app"
        assert config.tracker.enabled is True
        assert config.tracker.create_new_project is True
        assert config.retry.max_attempts == 5
        assert config.retry.initial_delay_ms == 1000
        assert config.pacing.bulk_write_delay_ms == 300
        assert config.deploy.enabled is False

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.yaml")

    @pytest.mark.parametrize("body", [
        "app:\n  name: Demo App\n",
        "app:\n  name: demo\ntracker:\n  enabled: true\n",
        "app:\n  name: demo\ntracker:\n  team_id: t\n  create_new_team: true\n",
        "app:\n  name: demo\nretry:\n  max_attempts: 0\n",
    ])
    def test_invalid_values_raise_config_error(self, tmp_path, body):
        path = tmp_path / "provisioning.yaml"
        path.write_text(body)

        with pytest.raises(ConfigError):
            load_config(path)

    def test_tracker_disabled_by_default(self, tmp_path):
        path = tmp_path / "provisioning.yaml"
        path.write_text("app:\n  name: demo\n")

        assert load_config(path).tracker.enabled is False

    def test_home_is_expanded(self, tmp_path, monkeypatch):
        monkeypatch.setenv("HOME", str(tmp_path))
        path = tmp_path / "provisioning.yaml"
        path.write_text("app:\n  name: demo\n  workspace_root: ~/apps\n")

        assert load_config(path).workspace_path == tmp_path / "apps" / "demo"


class TestLoadSecrets:
    """Tests for load_secrets."""

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("LINEAR_API_KEY", " lin_key ")
        monkeypatch.setenv("FORGE_API_KEY", "forge")
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        monkeypatch.delenv("OPENAI_BASE_URL", raising=False)

        secrets = load_secrets()

        assert secrets.linear_api_key == "lin_key"
        assert secrets.forge_api_key == "forge"
        assert secrets.openai_api_key == ""
        assert secrets.openai_base_url is None
