"""
Tests for config loading: defaults, YAML overrides, ${ENV} resolution.
"""

import logging
import sys

import pytest

import betty.config as config


@pytest.fixture(autouse=True)
def _fresh_config():
    config.reset_config()
    yield
    config.reset_config()


def test_defaults_without_file(tmp_path, monkeypatch):
    monkeypatch.setenv("BETTY_CONFIG", str(tmp_path / "absent.yaml"))
    cfg = config.get_config()
    assert cfg["conversation"]["max_rounds"] == 15
    assert cfg["conversation"]["history_limit"] == 50
    assert cfg["ipc"]["poll_interval"] == 0.5
    assert cfg["paths"]["ipc_input"] == "/workspace/ipc/input"
    assert cfg["backend"]["timeout"] is None


def test_yaml_merges_over_defaults(tmp_path, monkeypatch):
    f = tmp_path / "config.yaml"
    f.write_text(
        "paths:\n"
        "  workspace: /data/group\n"
        "backend:\n"
        "  default_model: qwen3-8b\n"
    )
    monkeypatch.setenv("BETTY_CONFIG", str(f))

    cfg = config.get_config()
    assert cfg["paths"]["workspace"] == "/data/group"
    # Sibling keys keep their defaults
    assert cfg["paths"]["history"] == "/workspace/group/memory/conversation-history.jsonl"
    assert cfg["backend"]["default_model"] == "qwen3-8b"
    assert cfg["backend"]["url"] == "http://192.168.65.1:11434/v1"


def test_env_vars_resolved(tmp_path, monkeypatch):
    f = tmp_path / "config.yaml"
    f.write_text("backend:\n  url: ${BETTY_TEST_URL}\n")
    monkeypatch.setenv("BETTY_TEST_URL", "http://lmstudio:1234/v1")

    cfg = config.load_config(f)
    assert cfg["backend"]["url"] == "http://lmstudio:1234/v1"


def test_config_is_cached(tmp_path, monkeypatch):
    monkeypatch.setenv("BETTY_CONFIG", str(tmp_path / "absent.yaml"))
    assert config.get_config() is config.get_config()


def test_defaults_not_mutated(tmp_path):
    f = tmp_path / "config.yaml"
    f.write_text("ipc:\n  poll_interval: 2\n")
    config.load_config(f)
    assert config.DEFAULTS["ipc"]["poll_interval"] == 0.5


def test_explicit_missing_path_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        config.load_config(tmp_path / "nope.yaml")


def test_setup_logging_uses_stderr(monkeypatch):
    captured = {}
    monkeypatch.setattr(logging, "basicConfig", lambda **kw: captured.update(kw))

    config.setup_logging({"logging": {"level": "debug"}})

    assert captured["level"] == logging.DEBUG
    (handler,) = captured["handlers"]
    assert isinstance(handler, logging.StreamHandler)
    assert handler.stream is sys.stderr
