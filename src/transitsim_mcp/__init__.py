"""Simulated transit vehicle positions served over MCP."""

__version__ = "0.1.0"
