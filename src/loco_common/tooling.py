from __future__ import annotations

import functools
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Mapping

from loco_common.errors import LocoError, typed_error
from loco_common.telemetry import log_event, new_request_id, set_request_id

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Shared helpers for MCP tool handlers
# ---------------------------------------------------------------------------


_REDACTION_KEYS = {"authorization", "token", "access_token", "api_key", "apikey"}


def sanitize_args_for_log(args: Mapping[str, Any] | None) -> dict:
    """Remove obvious secrets from args (telemetry layer also redacts)."""
    out: dict[str, Any] = {}
    for k, v in (args or {}).items():
        out[str(k)] = "***redacted***" if str(k).lower() in _REDACTION_KEYS else v
    return out


@dataclass(frozen=True)
class InstrumentConfig:
    kind: str
    name: str
    client_id: str
    telemetry_file: str = "mcp-telemetry.jsonl"


def instrument_sync_tool(cfg: InstrumentConfig):
    """
    Decorator for tool runners called as ``fn(arguments, ...)``.

    Records one telemetry line per call. Errors are logged and re-raised so the
    protocol layer can report them to the client.
    """

    def decorator(fn: Callable[..., Any]):
        @functools.wraps(fn)
        def wrapper(arguments: Mapping[str, Any] | None, *args: Any, **kwargs: Any):
            # every call gets its own correlation id
            corr_id = new_request_id()
            set_request_id(corr_id)

            t0 = time.perf_counter()
            args_for_log: dict[str, Any] = {"args": sanitize_args_for_log(arguments)}
            ok = True
            try:
                return fn(arguments, *args, **kwargs)
            except LocoError as e:
                ok = False
                args_for_log["error"] = e.to_typed_error()["error"]
                logger.info("tool %s failed: %s", cfg.name, e)
                raise
            except Exception as e:
                ok = False
                args_for_log["error"] = typed_error("internal", str(e))["error"]
                logger.exception("tool %s crashed", cfg.name)
                raise
            finally:
                ms = int((time.perf_counter() - t0) * 1000)
                log_event(
                    cfg.kind,
                    cfg.name,
                    args_for_log,
                    ok=ok,
                    ms=ms,
                    client_id=cfg.client_id,
                    corr_id=corr_id,
                    telemetry_file=cfg.telemetry_file,
                )

        return wrapper

    return decorator
