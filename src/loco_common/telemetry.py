from __future__ import annotations

import datetime as _dt
import json
import logging
import os
import uuid
from contextvars import ContextVar
from typing import Any

from loco_common.errors import REDACT_TOKEN
from loco_config.settings import telemetry_dir

logger = logging.getLogger(__name__)

TELEMETRY_FILE = "mcp-telemetry.jsonl"

_SECRET_KEYS = {"authorization", "api_key", "apikey", "key", "token", "access_token"}

_request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)


def new_request_id() -> str:
    return uuid.uuid4().hex


def get_request_id() -> str | None:
    return _request_id_ctx.get()


def set_request_id(rid: str | None) -> None:
    if rid:
        _request_id_ctx.set(rid)


def telemetry_disabled() -> bool:
    return os.getenv("LOCO_DISABLE_TELEMETRY", "0").strip().lower() in {"1", "true", "yes"}


def redact_secrets(obj: Any) -> Any:
    if isinstance(obj, dict):
        out = {}
        for k, v in obj.items():
            if isinstance(k, str) and k.strip().lower() in _SECRET_KEYS:
                if isinstance(v, str) and v.strip().lower().startswith("loco "):
                    out[k] = "Loco " + REDACT_TOKEN
                else:
                    out[k] = REDACT_TOKEN
            else:
                out[k] = redact_secrets(v)
        return out
    if isinstance(obj, list):
        return [redact_secrets(x) for x in obj]
    return obj


def log_event(
    kind: str,
    name: str,
    args: dict | None = None,
    ok: bool = True,
    ms: int = 0,
    *,
    client_id: str | None = None,
    corr_id: str | None = None,
    telemetry_file: str = TELEMETRY_FILE,
) -> None:
    """
    Append JSONL telemetry for tool calls.
    """
    if telemetry_disabled():
        return

    rid = get_request_id()
    payload = {} if args is None else dict(args)

    rec = {
        "ts": _dt.datetime.now(_dt.timezone.utc).isoformat().replace("+00:00", "Z"),
        "kind": kind,
        "name": name,
        "client_id": client_id,
        "request_id": rid,
        "corr_id": corr_id or rid,
        "args": payload,
        "ok": bool(ok),
        "ms": int(ms),
    }

    line = json.dumps(redact_secrets(rec), ensure_ascii=False, default=str)
    d = telemetry_dir()
    try:
        d.mkdir(parents=True, exist_ok=True)
        with (d / telemetry_file).open("a", encoding="utf-8") as f:
            f.write(line + "\n")
    except OSError as e:
        # telemetry must never fail the tool call it describes
        logger.warning("telemetry write to %s failed: %s", d / telemetry_file, e)
