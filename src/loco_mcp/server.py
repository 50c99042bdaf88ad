from __future__ import annotations

import inspect
import logging
import os
import sys
from typing import Any

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.tools import Tool
from mcp.server.fastmcp.utilities.func_metadata import ArgModelBase
from pydantic import ConfigDict

from loco_config.settings import init_runtime
from loco_mcp import tools as _tools  # noqa: F401  (registers the tools)
from loco_mcp.registry import REGISTRY, ToolSpec, invoke

logger = logging.getLogger(__name__)

SERVER_NAME = "localise-biz"
SERVER_VERSION = "1.0.0"


class RawArguments(ArgModelBase):
    """
    Pass-through argument model: keeps every key the client sent, untouched.

    FastMCP would otherwise validate against its own model built from the
    function signature, dropping unknown keys and JSON-decoding some strings.
    Validation belongs to the registry's input models.
    """

    model_config = ConfigDict(extra="allow")

    def model_dump_one_level(self) -> dict[str, Any]:
        return dict(self.model_extra or {})


def build_tool(spec: ToolSpec) -> Tool:
    """FastMCP tool for ``spec``: advertises the input model schema, forwards raw arguments."""

    def tool_fn(**arguments: Any) -> str:
        return invoke(spec.name, arguments)

    tool_fn.__name__ = spec.name
    tool_fn.__signature__ = inspect.Signature(return_annotation=str)  # type: ignore[attr-defined]

    tool = Tool.from_function(tool_fn, name=spec.name, description=spec.description)
    return tool.model_copy(
        update={
            "parameters": spec.input_schema(),
            "fn_metadata": tool.fn_metadata.model_copy(update={"arg_model": RawArguments}),
        }
    )


mcp = FastMCP(
    name=SERVER_NAME,
    instructions="Manage a localise.biz (Loco) translation project: locales, assets, translations and exports.",
    tools=[build_tool(spec) for spec in REGISTRY.values()],
)
# FastMCP has no version argument; the low-level server reports this one on initialize.
mcp._mcp_server.version = SERVER_VERSION


def main() -> None:
    # Entry points (console_scripts) call main() directly, so we must perform
    # runtime initialization here (dotenv + logging).
    init_runtime()
    transport = os.environ.get("MCP_TRANSPORT", "stdio")
    try:
        logger.info("%s MCP server running on %s", SERVER_NAME, transport)
        mcp.run(transport=transport)
    except Exception:
        logger.exception("Fatal")
        sys.exit(1)


if __name__ == "__main__":
    main()
