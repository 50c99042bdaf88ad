from __future__ import annotations

import logging
import os
import sys
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from loco_common.errors import ConfigurationError

API_KEY_ENV = "LOCALISE_API_KEY"
DEFAULT_API_BASE = "https://localise.biz/api"


def _find_repo_root(start: Path) -> Optional[Path]:
    """Nearest directory at or above `start` holding the loco-mcp checkout (pyproject.toml or .git)."""
    start = start.resolve()
    for p in (start, *start.parents):
        if (p / "pyproject.toml").exists() or (p / ".git").exists():
            return p
    return None


@lru_cache(maxsize=1)
def repo_root() -> Path:
    """
    Directory that anchors the .env files and the default telemetry location.

    LOCO_REPO_ROOT wins (and must exist); otherwise the checkout is found from
    the working directory, then from the installed package location.
    """
    explicit = os.getenv("LOCO_REPO_ROOT")
    if explicit:
        p = Path(explicit).expanduser().resolve()
        if not p.is_dir():
            raise ConfigurationError(f"LOCO_REPO_ROOT does not exist or is not a directory: {p}")
        return p

    cwd = Path.cwd().resolve()
    root = _find_repo_root(cwd)
    if root:
        return root

    here_dir = Path(__file__).resolve().parent
    root = _find_repo_root(here_dir)
    if root:
        return root

    # installed from a source tree without markers: <root>/src/loco_config
    if len(here_dir.parents) >= 2:
        return here_dir.parents[1]

    return cwd


@lru_cache(maxsize=1)
def load_env_once() -> Optional[Path]:
    """
    Load the first dotenv file found so LOCALISE_API_KEY can live outside the
    MCP client config: LOCO_ENV_FILE, then <root>/.env, then <root>/config/.env.

    Variables already in the environment (e.g. set by the MCP client) are kept.
    Returns the file loaded, or None.
    """
    explicit = os.getenv("LOCO_ENV_FILE")
    candidates = []

    if explicit:
        candidates.append(Path(explicit).expanduser())
    candidates.append(repo_root() / ".env")
    candidates.append(repo_root() / "config" / ".env")

    for p in candidates:
        p = p.resolve()
        if p.exists() and p.is_file():
            load_dotenv(dotenv_path=str(p), override=False)
            return p

    return None


def api_key() -> str:
    """
    Return the Loco project API key.

    Read on every call so a key exported after startup is picked up;
    a missing key only fails the tool call that needs it.
    """
    key = (os.getenv(API_KEY_ENV) or "").strip()
    if not key:
        raise ConfigurationError(f"{API_KEY_ENV} environment variable is not set")
    return key


def api_base_url() -> str:
    return (os.getenv("LOCO_API_BASE") or DEFAULT_API_BASE).rstrip("/")


def http_timeout() -> float | None:
    """
    Optional request timeout in seconds (LOCO_HTTP_TIMEOUT). Unset means wait
    for the remote service indefinitely.
    """
    raw = os.getenv("LOCO_HTTP_TIMEOUT")
    if not raw:
        return None
    try:
        value = float(raw)
    except ValueError:
        raise ConfigurationError(f"LOCO_HTTP_TIMEOUT must be a number, got {raw!r}")
    return value if value > 0 else None


def telemetry_dir() -> Path:
    """Where tool-call JSONL lands: LOCO_TELEMETRY_DIR, else <root>/artifacts/telemetry."""
    p = os.getenv("LOCO_TELEMETRY_DIR")
    if p:
        return Path(p).expanduser().resolve()
    return (repo_root() / "artifacts" / "telemetry").resolve()


def configure_logging() -> None:
    """
    Send server logs to stderr; stdout carries the MCP stdio transport and must
    only see protocol frames.

    Level and format come from LOCO_LOG_LEVEL / LOCO_LOG_FORMAT. Leaves an
    already configured root logger (e.g. under pytest) alone.
    """
    root = logging.getLogger()
    if root.handlers:
        return

    level_name = os.getenv("LOCO_LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = os.getenv(
        "LOCO_LOG_FORMAT",
        "%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    logging.basicConfig(level=level, format=fmt, stream=sys.stderr)


def init_runtime(*, configure_logs: bool = True, load_env: bool = True) -> None:
    """Server startup: load the dotenv key file, then set up stderr logging. Not run on import."""
    if load_env:
        load_env_once()
    if configure_logs:
        configure_logging()
