from __future__ import annotations

import json
import os
import warnings
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

DEFAULT_CONFIG_PATH = Path("~/.config/soht2-admin/config.json").expanduser()
DEFAULT_NAVIGATION_PATH = "~/.config/soht2-admin/navigation.json"

CONFIG_ENV_OVERRIDES = {
    "url": "SOHT2_URL",
    "username": "SOHT2_USERNAME",
    "password": "SOHT2_PASSWORD",
    "timeout_s": "SOHT2_TIMEOUT_S",
    "debounce_ms": "SOHT2_DEBOUNCE_MS",
    "refresh_interval_s": "SOHT2_REFRESH_INTERVAL_S",
    "users_page_size": "SOHT2_USERS_PAGE_SIZE",
    "connections_page_size": "SOHT2_CONNECTIONS_PAGE_SIZE",
    "history_page_size": "SOHT2_HISTORY_PAGE_SIZE",
    "navigation_path": "SOHT2_NAVIGATION_PATH",
}

INT_KEYS = {"debounce_ms", "users_page_size", "connections_page_size", "history_page_size"}
FLOAT_KEYS = {"timeout_s", "refresh_interval_s"}
SECRET_KEYS = {"password"}


def get_config_path(path: Path | None = None) -> Path:
    candidate = path or Path(os.getenv("SOHT2_ADMIN_CONFIG", DEFAULT_CONFIG_PATH))
    return candidate.expanduser()


def read_config_file(path: Path | None = None) -> dict[str, Any]:
    config_path = get_config_path(path)
    if not config_path.exists():
        return {}
    raw = config_path.read_text()
    if not raw.strip():
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError("invalid config json") from exc
    if not isinstance(data, dict):
        raise ValueError("config must be an object")
    return data


def write_config_file(data: dict[str, Any], path: Path | None = None) -> Path:
    config_path = get_config_path(path)
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(json.dumps(data, ensure_ascii=False, indent=2) + "\n")
    return config_path


def get_env_overrides() -> dict[str, str]:
    overrides: dict[str, str] = {}
    for key, env_var in CONFIG_ENV_OVERRIDES.items():
        value = os.getenv(env_var)
        if value is not None:
            overrides[key] = value
    return overrides


@dataclass
class Soht2AdminConfig:
    url: str = "http://localhost:8080"
    username: str | None = None
    password: str | None = None
    timeout_s: float = 10.0
    debounce_ms: int = 700
    refresh_interval_s: float = 5.0

    # None keeps each view's own default page size.
    users_page_size: int | None = None
    connections_page_size: int | None = None
    history_page_size: int | None = None

    navigation_path: str = DEFAULT_NAVIGATION_PATH

    def page_size_for(self, view: str) -> int | None:
        return getattr(self, f"{view}_page_size", None)

    def redacted(self) -> dict[str, Any]:
        data = asdict(self)
        for key in SECRET_KEYS:
            if data.get(key):
                data[key] = "***"
        return data


def _parse_int(value: object, default: int | None, *, key: str) -> int | None:
    if value is None:
        return default
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        warnings.warn(f"Invalid int for {key}: {value!r}", RuntimeWarning, stacklevel=2)
        return default


def _parse_float(value: object, default: float, *, key: str) -> float:
    if value is None:
        return default
    try:
        parsed = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        warnings.warn(f"Invalid float for {key}: {value!r}", RuntimeWarning, stacklevel=2)
        return default
    if parsed <= 0:
        warnings.warn(f"Invalid float for {key}: {value!r}", RuntimeWarning, stacklevel=2)
        return default
    return parsed


def load_config(path: Path | None = None) -> Soht2AdminConfig:
    cfg = Soht2AdminConfig()
    config_path = get_config_path(path)
    if config_path.exists():
        try:
            data = json.loads(config_path.read_text() or "{}")
        except json.JSONDecodeError:
            warnings.warn(
                f"Ignoring invalid config file {config_path}", RuntimeWarning, stacklevel=2
            )
            data = {}
        if isinstance(data, dict):
            cfg = _apply_dict(cfg, data)
    cfg = _apply_env(cfg)
    return cfg


def _apply_dict(cfg: Soht2AdminConfig, data: dict[str, Any]) -> Soht2AdminConfig:
    for key, value in data.items():
        if not hasattr(cfg, key):
            continue
        if key in INT_KEYS:
            setattr(cfg, key, _parse_int(value, getattr(cfg, key), key=key))
            continue
        if key in FLOAT_KEYS:
            setattr(cfg, key, _parse_float(value, getattr(cfg, key), key=key))
            continue
        setattr(cfg, key, value)
    return cfg


def _apply_env(cfg: Soht2AdminConfig) -> Soht2AdminConfig:
    cfg.url = os.getenv("SOHT2_URL", cfg.url)
    cfg.username = os.getenv("SOHT2_USERNAME", cfg.username)
    cfg.password = os.getenv("SOHT2_PASSWORD", cfg.password)
    cfg.timeout_s = _parse_float(os.getenv("SOHT2_TIMEOUT_S"), cfg.timeout_s, key="timeout_s")
    cfg.debounce_ms = _parse_int(
        os.getenv("SOHT2_DEBOUNCE_MS"), cfg.debounce_ms, key="debounce_ms"
    )
    cfg.refresh_interval_s = _parse_float(
        os.getenv("SOHT2_REFRESH_INTERVAL_S"),
        cfg.refresh_interval_s,
        key="refresh_interval_s",
    )
    cfg.users_page_size = _parse_int(
        os.getenv("SOHT2_USERS_PAGE_SIZE"), cfg.users_page_size, key="users_page_size"
    )
    cfg.connections_page_size = _parse_int(
        os.getenv("SOHT2_CONNECTIONS_PAGE_SIZE"),
        cfg.connections_page_size,
        key="connections_page_size",
    )
    cfg.history_page_size = _parse_int(
        os.getenv("SOHT2_HISTORY_PAGE_SIZE"), cfg.history_page_size, key="history_page_size"
    )
    cfg.navigation_path = os.getenv("SOHT2_NAVIGATION_PATH", cfg.navigation_path)
    return cfg
