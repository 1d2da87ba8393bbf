from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from f1_mcp.core.rate_limit import enforce_rate_limit, get_container
from f1_mcp.mcp.protocol import INVALID_REQUEST, PARSE_ERROR, jsonrpc_error

logger = logging.getLogger(__name__)

router = APIRouter(tags=["MCP"])


@router.post("/mcp", dependencies=[Depends(enforce_rate_limit)])
async def mcp_endpoint(request: Request) -> Response:
    """JSON-RPC 2.0 endpoint for MCP.

    Handles ``initialize``, ``tools/list``, ``tools/call`` and ``ping``.
    Rate limiting runs first as a dependency, so a rejected client gets an
    HTTP 400/429 before its body is read. A batch counts as one request.

    Returns:
        JSONResponse with one JSON-RPC response, a list for batches, or 204
        when every message was a notification.
    """
    protocol = get_container(request).protocol

    try:
        body: Any = await request.json()
    except ValueError:
        return JSONResponse(jsonrpc_error(None, PARSE_ERROR, "Parse error"))

    if isinstance(body, list):
        if not body:
            return JSONResponse(jsonrpc_error(None, INVALID_REQUEST, "Empty batch"))
        responses = []
        for item in body:
            resp = await protocol.handle_message(item)
            if resp is not None:
                responses.append(resp)
        if not responses:
            return Response(status_code=204)
        return JSONResponse(responses)

    result = await protocol.handle_message(body)
    if result is None:
        return Response(status_code=204)
    return JSONResponse(result)
