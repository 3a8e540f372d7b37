"""Tests for configuration loading."""

import json
import tempfile
from pathlib import Path

import pytest

from deploy_agent.core.config import Settings, load_settings
from deploy_agent.core.exceptions import ConfigError


def _write_json(path: Path, data) -> Path:
    path.write_text(json.dumps(data))
    return path


def test_load_original_camel_case_keys(tmp_path: Path):
    path = _write_json(
        tmp_path / "config.json",
        {
            "AdminPanelURL": "https://panel.example.com/",
            "VPSID": "3",
            "APIKey": "secret",
            "ReportInterval": 15,
        },
    )

    settings = load_settings(path)

    assert settings.admin_panel_url == "https://panel.example.com"
    assert settings.vps_id == "3"
    assert settings.api_key == "secret"
    assert settings.report_interval == 15


def test_load_snake_case_and_defaults(tmp_path: Path):
    path = _write_json(
        tmp_path / "config.json",
        {"admin_panel_url": "http://panel:3000", "vps_id": 12, "api_key": "k"},
    )

    settings = load_settings(path)

    assert settings.vps_id == "12"
    assert settings.port == 9090
    assert settings.report_interval == 30
    assert settings.report_timeout == 10.0
    assert settings.deploy_timeout is None
    assert settings.docker_binary == "docker"
    assert settings.workspace_root == tempfile.gettempdir()


def test_load_yaml(tmp_path: Path):
    path = tmp_path / "config.yaml"
    path.write_text("adminPanelUrl: http://panel\nvpsId: node-1\napiKey: k\ndeploy_timeout: 120\n")

    settings = load_settings(path)

    assert settings.vps_id == "node-1"
    assert settings.deploy_timeout == 120


def test_env_fills_missing_values(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("DEPLOY_AGENT_API_KEY", "from-env")
    path = _write_json(tmp_path / "config.json", {"adminPanelUrl": "http://panel", "vpsId": "1"})

    assert load_settings(path).api_key == "from-env"


def test_file_overrides_env(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("DEPLOY_AGENT_API_KEY", "from-env")
    path = _write_json(
        tmp_path / "config.json",
        {"adminPanelUrl": "http://panel", "vpsId": "1", "apiKey": "from-file"},
    )

    assert load_settings(path).api_key == "from-file"


def test_unknown_keys_ignored(tmp_path: Path):
    path = _write_json(
        tmp_path / "config.json",
        {"adminPanelUrl": "http://panel", "vpsId": "1", "apiKey": "k", "color": "blue"},
    )
    assert load_settings(path).api_key == "k"


def test_missing_file_is_config_error(tmp_path: Path):
    with pytest.raises(ConfigError) as exc_info:
        load_settings(tmp_path / "missing.json")
    assert exc_info.value.code == "config_unreadable"


def test_invalid_json_is_config_error(tmp_path: Path):
    path = tmp_path / "config.json"
    path.write_text("{broken")
    with pytest.raises(ConfigError) as exc_info:
        load_settings(path)
    assert exc_info.value.code == "config_invalid"


def test_non_object_is_config_error(tmp_path: Path):
    path = _write_json(tmp_path / "config.json", ["a", "b"])
    with pytest.raises(ConfigError):
        load_settings(path)


@pytest.mark.parametrize(
    "data",
    [
        {"vpsId": "1", "apiKey": "k"},
        {"adminPanelUrl": "panel.local", "vpsId": "1", "apiKey": "k"},
        {"adminPanelUrl": "http://panel", "vpsId": "1", "apiKey": ""},
        {"adminPanelUrl": "http://panel", "vpsId": "1", "apiKey": "k", "reportInterval": 0},
    ],
)
def test_invalid_values_are_config_errors(tmp_path: Path, data):
    path = _write_json(tmp_path / "config.json", data)
    with pytest.raises(ConfigError):
        load_settings(path)


def test_settings_are_frozen(settings: Settings):
    with pytest.raises(Exception):
        settings.api_key = "changed"


def test_cli_exits_on_config_error(tmp_path: Path):
    from deploy_agent.__main__ import main

    with pytest.raises(SystemExit) as exc_info:
        main(["--config", str(tmp_path / "missing.json")])
    assert exc_info.value.code == 1
