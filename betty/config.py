"""
Config loader for betty.
Reads config.yaml once at startup and merges it over the built-in defaults,
which describe the container's fixed layout. All other modules import from here.

The file is optional: a worker started with no config.yaml runs on defaults.
Point BETTY_CONFIG at a different file to override the location.
"""

import copy
import logging
import os
import re
from pathlib import Path

import yaml
from dotenv import load_dotenv

load_dotenv()

_CONFIG_PATH = Path(__file__).parent.parent / "config.yaml"

DEFAULTS: dict = {
    "paths": {
        "workspace": "/workspace/group",
        "history": "/workspace/group/memory/conversation-history.jsonl",
        "system_prompt": "/workspace/group/CLAUDE.md",
        "ipc_input": "/workspace/ipc/input",
        "ipc_messages": "/workspace/ipc/messages",
        "staging_input": "/tmp/input.json",
        "google_credentials": "/workspace/extra/betty-config",
    },
    "ipc": {
        "poll_interval": 0.5,
        "close_sentinel": "_close",
    },
    "conversation": {
        "max_rounds": 15,
        "history_limit": 50,
    },
    "backend": {
        "url": "http://192.168.65.1:11434/v1",
        "default_model": "qwen3.5",
        "timeout": None,
    },
    "logging": {
        "level": "INFO",
        "file": None,
    },
}

_config: dict | None = None


def _resolve_env_vars(value: str) -> str:
    """Replace ${ENV_VAR} patterns with actual environment variable values."""
    def replacer(match):
        var_name = match.group(1)
        return os.environ.get(var_name, "")
    return re.sub(r"\$\{(\w+)\}", replacer, value)


def _walk_and_resolve(obj):
    """Recursively resolve env vars in all string values."""
    if isinstance(obj, dict):
        return {k: _walk_and_resolve(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_walk_and_resolve(v) for v in obj]
    elif isinstance(obj, str):
        return _resolve_env_vars(obj)
    return obj


def _merge(base: dict, override: dict) -> dict:
    """Deep-merge override into a copy of base."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _default_path() -> Path:
    env_path = os.environ.get("BETTY_CONFIG")
    return Path(env_path) if env_path else _CONFIG_PATH


def load_config(path: Path | None = None) -> dict:
    """Load and cache config from YAML file, falling back to defaults."""
    global _config
    if _config is not None and path is None:
        return _config

    config_path = path or _default_path()
    raw: dict = {}
    if config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f) or {}
    elif path is not None:
        raise FileNotFoundError(f"Config not found: {config_path}")

    _config = _merge(DEFAULTS, _walk_and_resolve(raw))
    return _config


def get_config() -> dict:
    """Return cached config, loading if necessary."""
    if _config is None:
        return load_config()
    return _config


def reset_config() -> None:
    """Drop the cached config so the next get_config() reloads it."""
    global _config
    _config = None


def setup_logging(cfg: dict):
    # stdout carries the framed protocol; diagnostics go to stderr only
    log_cfg = cfg.get("logging", {})
    level = getattr(logging, str(log_cfg.get("level", "INFO")).upper(), logging.INFO)
    log_file = log_cfg.get("file")

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=handlers,
    )
