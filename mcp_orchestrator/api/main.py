"""
FastAPI application for MCP Orchestrator.

Exposes the orchestration loop over HTTP. The tool host is spawned and its
catalog loaded during startup; a missing API key or an unreachable tool host
aborts startup.

Usage:
    # Development server
    SERVER_SCRIPT_PATH=./weather/server.py uvicorn mcp_orchestrator.api.main:app --reload

    # Debug mode (verbose logging)
    LOG_LEVEL=DEBUG uvicorn mcp_orchestrator.api.main:app --host 0.0.0.0 --port 4000
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..config import config
from ..orchestrator import MCPOrchestrator
from ..tracing import init_tracing_client, shutdown_tracing
from .routes import health, mcp


def configure_logging():
    """Configure logging based on LOG_LEVEL environment variable."""
    log_level = getattr(logging, config.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("mcp_orchestrator").setLevel(log_level)


configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Connect to the tool host on startup and release it on shutdown."""
    logger.info("Starting MCP Orchestrator API server")

    tracing_client = init_tracing_client(
        public_key=config.langfuse.public_key,
        secret_key=config.langfuse.secret_key,
        host=config.langfuse.host,
        debug=config.langfuse.debug,
    )

    owns_orchestrator = app.state.orchestrator is None
    if owns_orchestrator:
        orchestrator = MCPOrchestrator()
        await orchestrator.connect(config.tool_host.server_script_path)
        app.state.orchestrator = orchestrator

    orchestrator = app.state.orchestrator
    logger.info("=" * 60)
    logger.info("INFERENCE")
    logger.info(f"  Provider: {config.inference.provider}")
    logger.info(f"  Model: {config.inference.model}")
    logger.info(f"  Max Tokens: {config.inference.max_tokens}")
    logger.info("-" * 60)
    logger.info("TOOL HOST")
    logger.info(f"  Script: {config.tool_host.server_script_path}")
    for line in orchestrator.catalog.get_tools_summary().splitlines():
        logger.info(f"  {line[:80]}")
    logger.info("-" * 60)
    logger.info(f"SESSION TURN CEILING: {config.sessions.max_turns}")
    logger.info(f"LANGFUSE TRACING: {'ENABLED' if tracing_client.enabled else 'DISABLED'}")
    logger.info("=" * 60)

    yield

    logger.info("Shutting down MCP Orchestrator API server")
    if owns_orchestrator:
        await orchestrator.cleanup()
        app.state.orchestrator = None
    shutdown_tracing()


def create_app(orchestrator: Optional[MCPOrchestrator] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        orchestrator: A ready orchestrator to serve. When omitted one is
            created and connected during startup.

    Returns:
        Configured FastAPI application instance.
    """
    app = FastAPI(
        title="MCP Orchestrator API",
        description="Multi-turn conversations with a language model and an MCP tool host.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.orchestrator = orchestrator

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router, tags=["Health"])
    app.include_router(mcp.router, tags=["Conversation"])

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Report malformed requests with the API's error body."""
        logger.warning(
            f"Validation error on {request.method} {request.url.path}: {exc.errors()}"
        )
        return JSONResponse(status_code=400, content={"error": "Invalid request body"})

    return app


# Create the application instance
app = create_app()


def run_server():
    """Run the server using uvicorn."""
    import uvicorn

    uvicorn.run(
        "mcp_orchestrator.api.main:app",
        host=config.server.host,
        port=config.server.port,
    )


if __name__ == "__main__":
    run_server()
