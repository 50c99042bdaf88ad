from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Callable, Mapping

import pydantic

from loco_common.errors import ValidationError
from loco_common.tooling import InstrumentConfig, instrument_sync_tool
from loco_mcp.client import LocoClient
from loco_mcp.models import ToolInput

MCP_CLIENT_ID = os.getenv("MCP_CLIENT_ID", "LOCO_MCP_CLIENT")

Handler = Callable[[LocoClient, Any], str]


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    input_model: type[ToolInput]
    runner: Callable[..., str]

    def input_schema(self) -> dict:
        return self.input_model.model_json_schema(by_alias=True)


REGISTRY: dict[str, ToolSpec] = {}


def validate_arguments(model: type[ToolInput], arguments: Mapping[str, Any] | None) -> ToolInput:
    try:
        return model.model_validate(dict(arguments or {}))
    except pydantic.ValidationError as e:
        details = [
            {"loc": ".".join(str(p) for p in err["loc"]), "msg": err["msg"], "type": err["type"]}
            for err in e.errors()
        ]
        summary = "; ".join(f"{d['loc'] or '<root>'}: {d['msg']}" for d in details)
        raise ValidationError(f"Invalid arguments: {summary}", details=details) from e


def loco_tool(name: str, *, description: str, input_model: type[ToolInput]):
    """
    Register a handler ``fn(client, args) -> str`` under ``name``.

    The registered runner validates raw arguments against ``input_model`` before
    the handler (and therefore any HTTP call) runs, and is instrumented for telemetry.
    """

    def decorator(fn: Handler) -> Handler:
        if name in REGISTRY:
            raise ValueError(f"duplicate tool name: {name}")

        def run(arguments: Mapping[str, Any] | None, client: LocoClient | None = None) -> str:
            args = validate_arguments(input_model, arguments)
            return fn(client or LocoClient(), args)

        cfg = InstrumentConfig(kind="tool", name=name, client_id=MCP_CLIENT_ID)
        REGISTRY[name] = ToolSpec(
            name=name,
            description=description,
            input_model=input_model,
            runner=instrument_sync_tool(cfg)(run),
        )
        return fn

    return decorator


def get_tool(name: str) -> ToolSpec:
    try:
        return REGISTRY[name]
    except KeyError:
        raise ValidationError(f"Unknown tool: {name}") from None


def invoke(name: str, arguments: Mapping[str, Any] | None = None, *, client: LocoClient | None = None) -> str:
    """Validate ``arguments`` for tool ``name`` and run it. Errors propagate."""
    return get_tool(name).runner(arguments, client)
