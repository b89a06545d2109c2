from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

COMMITS_PER_PAGE = 20
MAX_PRS_PER_REQUEST = 20

DEFAULT_BASE_URL = "https://api.github.com"
DEFAULT_WEB_HOST = "github.com"


@dataclass(frozen=True, slots=True)
class Settings:
    token: str | None = None
    base_url: str = DEFAULT_BASE_URL
    web_host: str = DEFAULT_WEB_HOST
    max_pages: int = 10
    timeout_sec: float = 30.0
    log_level: str = "INFO"


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"Invalid env var: {name} must be an integer") from None
    if value < 1:
        raise ValueError(f"Invalid env var: {name} must be >= 1")
    return value


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"Invalid env var: {name} must be a number") from None
    if value <= 0:
        raise ValueError(f"Invalid env var: {name} must be > 0")
    return value


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    """
    Read settings from the environment.

    Called once per tool invocation so a token rotated between calls is
    picked up without restarting the server.
    """
    if env is None:
        env = os.environ

    token = (env.get("GITHUB_TOKEN") or "").strip() or None
    return Settings(
        token=token,
        base_url=(env.get("GITHUB_BASE_URL") or DEFAULT_BASE_URL).rstrip("/"),
        web_host=(env.get("GITHUB_WEB_HOST") or DEFAULT_WEB_HOST).strip(),
        max_pages=_env_int(env, "GITHUB_MAX_PAGES", 10),
        timeout_sec=_env_float(env, "GITHUB_TIMEOUT_SEC", 30.0),
        log_level=(env.get("DEEPBLAME_LOG_LEVEL") or "INFO").upper(),
    )


def _parse_env_line(raw_line: str) -> tuple[str, str] | None:
    line = raw_line.strip()
    if line.startswith("export "):
        line = line[len("export ") :].lstrip()
    if not line or line.startswith("#") or "=" not in line:
        return None
    key, _, value = line.partition("=")
    key, value = key.strip(), value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        value = value[1:-1]
    return (key, value) if key else None


def load_dotenv(*paths: str | Path, override: bool = False) -> list[Path]:
    """Copy KEY=value pairs from local env files into os.environ; returns the files read."""
    loaded: list[Path] = []
    for env_path in map(Path, paths or (".env",)):
        if not env_path.is_file():
            continue
        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            pair = _parse_env_line(raw_line)
            if pair is None:
                continue
            key, value = pair
            if override or key not in os.environ:
                os.environ[key] = value
        loaded.append(env_path)
    return loaded
