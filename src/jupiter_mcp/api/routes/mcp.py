"""JSON-RPC over HTTP."""

import json
import logging
from typing import Any, Optional

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse
from mcp import types
from mcp.shared.exceptions import McpError

logger = logging.getLogger(__name__)

router = APIRouter()


def _error(request_id: Optional[Any], code: int, message: str) -> JSONResponse:
    error = types.ErrorData(code=code, message=message)
    return JSONResponse(
        {"jsonrpc": "2.0", "id": request_id, "error": error.model_dump(exclude_none=True)}
    )


def _request_id(message: dict) -> Optional[Any]:
    request_id = message.get("id")
    if isinstance(request_id, bool) or not isinstance(request_id, (str, int)):
        return None
    return request_id


@router.post("/mcp")
async def handle_mcp(request: Request):
    """Handle one JSON-RPC message; messages without an id get 204."""
    server = request.app.state.mcp_server
    body = await request.body()
    try:
        message = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.warning(f"Unparseable HTTP message: {e}")
        return _error(None, types.PARSE_ERROR, "Parse error")

    if not isinstance(message, dict):
        return _error(None, types.INVALID_REQUEST, "Request must be a JSON object")

    method = message.get("method")
    if message.get("jsonrpc") != "2.0" or not isinstance(method, str):
        return _error(_request_id(message), types.INVALID_REQUEST, "Invalid JSON-RPC request")

    if "id" not in message:
        # No id means no way to report an outcome, so nothing is executed
        if not method.startswith("notifications/"):
            logger.warning(f"Ignoring {method} sent without an id")
        return Response(status_code=204)

    request_id = _request_id(message)
    if request_id is None:
        return _error(None, types.INVALID_REQUEST, "Request id must be a string or integer")

    try:
        result = await server.handle_method(method, message.get("params"), request_id)
    except McpError as e:
        return _error(request_id, e.error.code, e.error.message)
    except Exception:
        logger.exception(f"Internal error handling {method}")
        return _error(request_id, types.INTERNAL_ERROR, "Internal error")

    return JSONResponse({"jsonrpc": "2.0", "id": request_id, "result": result})
