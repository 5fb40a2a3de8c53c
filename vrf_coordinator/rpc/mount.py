"""
vrf_coordinator.rpc.mount
-------------------------

Mount HTTP + JSON-RPC endpoints for a Coordinator:

- REST (prefix `/vrf` by default):
    GET  /params                  → pricing/refund parameters
    GET  /stats                   → fulfilment statistics
    GET  /quote/{budget}          → price for a callback budget
    GET  /requests/{id}           → request row
    GET  /requests/{id}/pending   → pending flag
    GET  /requests/{id}/result    → (wasSuccess, wasFulfilled)
    GET  /nonce/{address}         → consumer nonce and next request id
    GET  /logs                    → canonical receipt-encoded events

- JSON-RPC 2.0:
    POST /rpc                     → dispatches to `RPC_METHODS`

This module is transport glue only; all logic lives in the Coordinator.
Like `methods`, it is meant for local/devnet use: callers name their own
`sender`.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Union

from fastapi import APIRouter, FastAPI, HTTPException, Query
from pydantic import BaseModel, Field, ValidationError

from ..errors import CoordinatorError, RequestNotFound
from ..coordinator import Coordinator
from .methods import RPC_METHODS, _address, _hex_to_bytes, _request_id

logger = logging.getLogger(__name__)

# JSON-RPC 2.0 error codes
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
COORDINATOR_ERROR = -32000


class JsonRpcRequest(BaseModel):
    jsonrpc: str = Field("2.0")
    id: Optional[Union[int, str]] = None
    method: str
    params: Optional[Union[List[Any], Dict[str, Any]]] = None


def _normalize_params(params: Optional[Union[List[Any], Dict[str, Any]]]) -> Dict[str, Any]:
    """Accept `{...}`, `[{...}]` or nothing."""
    if params is None:
        return {}
    if isinstance(params, dict):
        return params
    if len(params) == 0:
        return {}
    if len(params) == 1 and isinstance(params[0], dict):
        return params[0]
    raise ValueError("params must be an object or a single-object array")


def _error(id_: Any, code: int, message: str, data: Any = None) -> Dict[str, Any]:
    err: Dict[str, Any] = {"code": code, "message": message}
    if data is not None:
        err["data"] = data
    return {"jsonrpc": "2.0", "id": id_, "error": err}


def handle_jsonrpc(coord: Coordinator, payload: Mapping[str, Any]) -> Dict[str, Any]:
    """Execute one JSON-RPC request object and build the response object."""
    try:
        req = JsonRpcRequest(**payload)
    except ValidationError as e:
        return _error(payload.get("id"), INVALID_REQUEST, "invalid request", e.errors(include_url=False, include_context=False))

    fn = RPC_METHODS.get(req.method)
    if fn is None:
        return _error(req.id, METHOD_NOT_FOUND, f"method not found: {req.method}")
    try:
        args = _normalize_params(req.params)
        result = fn(coord, args)
    except ValidationError as e:
        return _error(req.id, INVALID_PARAMS, "invalid params", e.errors(include_url=False, include_context=False))
    except CoordinatorError as e:
        return _error(req.id, COORDINATOR_ERROR, e.message, e.to_dict())
    except ValueError as e:
        return _error(req.id, INVALID_PARAMS, str(e))
    return {"jsonrpc": "2.0", "id": req.id, "result": result}


def _http_error(e: CoordinatorError) -> HTTPException:
    status = 404 if isinstance(e, RequestNotFound) else 400
    return HTTPException(status_code=status, detail=e.to_dict())


# --------------------------------------------------------------------------------------
# Router
# --------------------------------------------------------------------------------------

def get_router(coord: Coordinator, *, prefix: str = "/vrf") -> APIRouter:
    r = APIRouter(prefix=prefix, tags=["vrf"])

    def _rid(raw: str) -> int:
        try:
            return _request_id(raw)
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e)) from e

    @r.get("/params")
    def params() -> dict:
        return coord.params()

    @r.get("/stats")
    def stats() -> dict:
        return coord.get_fulfillment_stats().to_dict()

    @r.get("/quote/{budget}")
    def quote(budget: int) -> dict:
        try:
            return {"price": coord.calculate_request_price(budget)}
        except CoordinatorError as e:
            raise _http_error(e) from e

    @r.get("/requests/{request_id}")
    def get_request(request_id: str) -> dict:
        rid = _rid(request_id)
        req = coord.get_request(rid)
        if not req.exists:
            raise _http_error(RequestNotFound(request_id=rid))
        return req.to_dict()

    @r.get("/requests/{request_id}/pending")
    def is_pending(request_id: str) -> dict:
        return {"pending": coord.is_request_pending(_rid(request_id))}

    @r.get("/requests/{request_id}/result")
    def result(request_id: str) -> dict:
        res = coord.get_request_result(_rid(request_id))
        return {"wasSuccess": res.was_success, "wasFulfilled": res.was_fulfilled}

    @r.get("/nonce/{address}")
    def nonce(address: str) -> dict:
        try:
            addr = _hex_to_bytes(_address(address))
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e)) from e
        return {
            "nonce": coord.get_nonce(addr),
            "nextRequestId": hex(coord.calculate_next_request_id(addr)),
        }

    @r.get("/logs")
    def logs(
        name: Optional[str] = Query(None),
        start: int = Query(0, ge=0),
    ) -> list:
        return RPC_METHODS["vrf.getLogs"](coord, {"name": name, "start": start})

    return r


# --------------------------------------------------------------------------------------
# Mount helper
# --------------------------------------------------------------------------------------

def mount_vrf_rpc(
    app: FastAPI,
    *,
    service: Coordinator,
    rest_prefix: str = "/vrf",
    rpc_path: str = "/rpc",
) -> None:
    """
    Mount REST routes and a JSON-RPC endpoint on the given FastAPI app.

    Parameters
    ----------
    app : FastAPI
        The main application instance.
    service : Coordinator
        The coordinator every route delegates to.
    rest_prefix : str
        Prefix for REST endpoints (default: '/vrf').
    rpc_path : str
        Path for the JSON-RPC 2.0 endpoint (default: '/rpc').
    """
    app.include_router(get_router(service, prefix=rest_prefix))

    def rpc(payload: Dict[str, Any]) -> dict:
        return handle_jsonrpc(service, payload)

    app.add_api_route(rpc_path, rpc, methods=["POST"], tags=["vrf"])
    logger.debug("vrf endpoints mounted at %s and %s", rest_prefix, rpc_path)


__all__ = ["mount_vrf_rpc", "get_router", "handle_jsonrpc", "JsonRpcRequest"]
