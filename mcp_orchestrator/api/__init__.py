"""
FastAPI server module for MCP Orchestrator.

Provides the /api/mcp conversation endpoints.
"""

from .main import app, create_app

__all__ = ["app", "create_app"]
