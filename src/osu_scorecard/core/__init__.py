"""Core scorecard logic — normalization, presentation, layout and API clients.

This module is framework-agnostic. It has no dependency on MCP, FastMCP,
or any server framework.
"""
