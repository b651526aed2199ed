# proposals_node/config.py
import copy
import logging
import os
from typing import Any, Dict, Optional

import yaml

log = logging.getLogger(__name__)

CONFIG_FILENAME = "proposals_config.yaml"

# -------- Defaults --------
_DEFAULT: Dict[str, Any] = {
    "runtime": {
        # Bounds in UTF-8 bytes
        "name_limit": 50,
        "description_limit": 250,
        "initial_proposal_id": 0,
    },
    "chain": {"block_time_sec": 6.0, "start_block": 0},
    "worker": {"enabled": True, "resolve_every_blocks": 40},
    "persistence": {
        # "json" snapshots under data_dir, or "memory" for nothing on disk
        "driver": "json",
        "data_dir": "data",
        "filename": "proposals_state.json",
        "keep_backups": 2,
    },
    "security": {"require_signed_calls": True},
    "logging": {"level": "INFO"},
    "server": {"host": "127.0.0.1", "port": 8000},
}


def _as_bool(raw: str) -> bool:
    return raw.strip().lower() in ("1", "true", "yes", "on")


# -------- ENV overrides --------
_ENV_MAP = {
    ("runtime", "name_limit"): ("PROPOSALS_NAME_LIMIT", int),
    ("runtime", "description_limit"): ("PROPOSALS_DESCRIPTION_LIMIT", int),
    ("chain", "block_time_sec"): ("PROPOSALS_BLOCK_TIME_SEC", float),
    ("worker", "enabled"): ("PROPOSALS_WORKER_ENABLED", _as_bool),
    ("worker", "resolve_every_blocks"): ("PROPOSALS_RESOLVE_EVERY", int),
    ("persistence", "driver"): ("PROPOSALS_PERSISTENCE", str),
    ("persistence", "data_dir"): ("PROPOSALS_DATA_DIR", str),
    ("security", "require_signed_calls"): ("PROPOSALS_REQUIRE_SIGNED", _as_bool),
    ("logging", "level"): ("PROPOSALS_LOG_LEVEL", str),
    ("server", "host"): ("PROPOSALS_HOST", str),
    ("server", "port"): ("PROPOSALS_PORT", int),
}


def _deep_merge(base: Dict[str, Any], overlay: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(base)
    for k, v in (overlay or {}).items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


def _apply_env_overrides(cfg: Dict[str, Any]) -> Dict[str, Any]:
    for (section, key), (env_name, cast) in _ENV_MAP.items():
        val = os.getenv(env_name)
        if val is None:
            continue
        try:
            casted = cast(val)
        except ValueError:
            log.warning("ignoring %s=%r: not a valid %s", env_name, val, getattr(cast, "__name__", cast))
            continue
        cfg.setdefault(section, {})
        cfg[section][key] = casted
    return cfg


def default_config() -> Dict[str, Any]:
    return copy.deepcopy(_DEFAULT)


def load_config(repo_root: str = ".", path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load `path`, or repo_root/proposals_config.yaml, over the defaults.

    A missing file means defaults. A file that is present but not valid
    YAML is an error: silently running with the wrong limits or cadence
    would change governance outcomes.
    """
    path = path or os.path.join(repo_root, CONFIG_FILENAME)
    cfg = default_config()

    if os.path.exists(path):
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{path}: top level must be a mapping")
        cfg = _deep_merge(cfg, data)

    return _apply_env_overrides(cfg)


# -------- Small helpers --------
def get_bind_host(cfg: Dict[str, Any]) -> str:
    return str(cfg.get("server", {}).get("host", "127.0.0.1"))


def get_bind_port(cfg: Dict[str, Any]) -> int:
    return int(cfg.get("server", {}).get("port", 8000))


def get_log_level(cfg: Dict[str, Any]) -> str:
    return str(cfg.get("logging", {}).get("level", "INFO")).upper()
