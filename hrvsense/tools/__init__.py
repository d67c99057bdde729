"""Tool definitions for MCP exposure."""

from .hrv import run as run_hrv_mcp_server, server as hrv_mcp_server

__all__ = ["hrv_mcp_server", "run_hrv_mcp_server"]
