"""MCP server exposing the localise.biz (Loco) translation API as tools.

Intended for use by MCP clients over the stdio transport.
"""
