"""
Conversation endpoints.

``POST /api/mcp`` takes ``{sessionId, query}`` as JSON; ``GET /api/mcp``
takes ``sessionId`` and ``prompt`` as query parameters. Both return
``{result}`` on success and ``{error}`` with status 400 or 500 otherwise.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from ...orchestrator import MCPOrchestrator
from ...tracing import get_tracing_client
from ..schemas import ErrorResponse, QueryRequest, QueryResponse

logger = logging.getLogger(__name__)

router = APIRouter()

ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Missing parameter"},
    500: {"model": ErrorResponse, "description": "Internal server error"},
}


def get_orchestrator(request: Request) -> MCPOrchestrator:
    """Return the orchestrator created at startup."""
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise RuntimeError("Orchestrator is not initialized")
    return orchestrator


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def _process(
    orchestrator: MCPOrchestrator, session_id: str, query: str
) -> QueryResponse | JSONResponse:
    logger.info(f"[{session_id}] Processing query: {query[:100]}")
    try:
        result = await orchestrator.process_query(session_id, query)
    except Exception as e:
        logger.exception(f"[{session_id}] Error processing query: {e}")
        return _error(500, "Internal server error")
    finally:
        _flush_tracing()
    return QueryResponse(result=result)


@router.post(
    "/api/mcp",
    response_model=QueryResponse,
    responses=ERROR_RESPONSES,
    summary="Send a message",
    description="Run one orchestration round for the session with the given query.",
)
async def post_query(
    body: QueryRequest,
    orchestrator: MCPOrchestrator = Depends(get_orchestrator),
) -> QueryResponse | JSONResponse:
    if not body.sessionId or not body.query:
        return _error(400, "Missing sessionId or query parameter")
    return await _process(orchestrator, body.sessionId, body.query)


@router.get(
    "/api/mcp",
    response_model=QueryResponse,
    responses=ERROR_RESPONSES,
    summary="Send a message (query string)",
    description="Same as POST /api/mcp with the message passed as the 'prompt' parameter.",
)
async def get_query(
    sessionId: Optional[str] = Query(default=None),
    prompt: Optional[str] = Query(default=None),
    orchestrator: MCPOrchestrator = Depends(get_orchestrator),
) -> QueryResponse | JSONResponse:
    if not sessionId or not prompt:
        return _error(400, "Missing sessionId or prompt parameter")
    return await _process(orchestrator, sessionId, prompt)


def _flush_tracing() -> None:
    """Flush tracing client if available."""
    client = get_tracing_client()
    if client:
        client.flush()
