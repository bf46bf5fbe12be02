"""Tests for the TOML configuration layer."""

from pathlib import Path

from codebase_intel import config, config_manager


def test_defaults_without_file():
    cfg = config_manager.load_full_config()
    assert cfg == config_manager.DEFAULT_CONFIG
    assert cfg is not config_manager.DEFAULT_CONFIG


def test_save_and_load_round_trip():
    cfg = config_manager.load_full_config()
    cfg["graph"]["max_depth"] = 4
    cfg["routing"]["model_profile"] = "quality"
    assert config_manager.save_config(cfg)
    assert config.CONFIG_FILE.exists()

    assert config_manager.load_graph_config()["max_depth"] == 4
    assert config_manager.load_graph_config()["max_workers"] == config.DEFAULT_MAX_WORKERS
    assert config_manager.load_routing_config()["model_profile"] == "quality"


def test_partial_file_keeps_other_defaults(temp_dir: Path):
    path = temp_dir / "config.toml"
    path.write_text("[repo_map]\ntoken_budget = 250\n", encoding="utf-8")
    assert config_manager.load_repo_map_config(path) == {"token_budget": 250}
    assert config_manager.load_graph_config(path)["max_depth"] == config.DEFAULT_MAX_DEPTH


def test_invalid_toml_falls_back_to_defaults(temp_dir: Path):
    path = temp_dir / "config.toml"
    path.write_text("this is = = not toml [", encoding="utf-8")
    assert config_manager.load_full_config(path) == config_manager.DEFAULT_CONFIG


def test_routing_profiles_layered_over_builtin(temp_dir: Path):
    path = temp_dir / "config.toml"
    path.write_text(
        '[routing]\nmodel_profile = "fast"\n\n'
        '[routing.profiles.gsd-executor]\nfast = "haiku"\n\n'
        '[routing.profiles.reviewer]\ndeep = "opus"\n',
        encoding="utf-8",
    )
    routing = config_manager.load_routing_config(path)
    assert routing["model_profile"] == "fast"
    executor = routing["profiles"]["gsd-executor"]
    assert executor["fast"] == "haiku"
    assert executor["quality"] == "opus"
    assert routing["profiles"]["reviewer"] == {"deep": "opus"}
    # built-in table untouched
    assert "fast" not in config.MODEL_PROFILES["gsd-executor"]


def test_save_failure_reported(temp_dir: Path):
    blocker = temp_dir / "file"
    blocker.write_text("", encoding="utf-8")
    assert config_manager.save_config({}, blocker / "sub" / "config.toml") is False
