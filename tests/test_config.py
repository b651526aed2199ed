import pytest

from proposals_node.config import get_bind_port, get_log_level, load_config


def test_defaults_without_file(tmp_path):
    cfg = load_config(str(tmp_path))
    assert cfg["runtime"]["name_limit"] == 50
    assert cfg["runtime"]["description_limit"] == 250
    assert cfg["worker"]["resolve_every_blocks"] == 40
    assert cfg["security"]["require_signed_calls"] is True


def test_yaml_overlay_is_deep_merged(tmp_path):
    (tmp_path / "proposals_config.yaml").write_text(
        "runtime:\n  name_limit: 80\nworker:\n  resolve_every_blocks: 10\n"
    )
    cfg = load_config(str(tmp_path))

    assert cfg["runtime"]["name_limit"] == 80
    assert cfg["runtime"]["description_limit"] == 250
    assert cfg["worker"]["resolve_every_blocks"] == 10
    assert cfg["worker"]["enabled"] is True


def test_env_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv("PROPOSALS_RESOLVE_EVERY", "5")
    monkeypatch.setenv("PROPOSALS_REQUIRE_SIGNED", "0")
    monkeypatch.setenv("PROPOSALS_PORT", "9100")
    monkeypatch.setenv("PROPOSALS_LOG_LEVEL", "debug")
    monkeypatch.setenv("PROPOSALS_NAME_LIMIT", "not-a-number")

    cfg = load_config(str(tmp_path))

    assert cfg["worker"]["resolve_every_blocks"] == 5
    assert cfg["security"]["require_signed_calls"] is False
    assert get_bind_port(cfg) == 9100
    assert get_log_level(cfg) == "DEBUG"
    assert cfg["runtime"]["name_limit"] == 50


def test_non_mapping_yaml_is_an_error(tmp_path):
    path = tmp_path / "custom.yaml"
    path.write_text("- just\n- a list\n")
    with pytest.raises(ValueError):
        load_config(str(tmp_path), path=str(path))
