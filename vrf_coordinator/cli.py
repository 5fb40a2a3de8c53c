"""
vrf_coordinator.cli
-------------------

Small convenience CLI for interacting with a coordinator via JSON-RPC.

Commands:
  - params       : Show pricing/refund parameters.
  - quote        : Price of a request for a callback budget.
  - request      : Open a request on behalf of an account.
  - pending      : Is a request still pending?
  - status       : Request row and (wasSuccess, wasFulfilled).
  - stats        : Fulfilment statistics.
  - fulfill-mock : Manually fulfil a request (oracle accounts only).

Environment:
  VRF_RPC_URL may be set to override the default RPC endpoint.

Example:
  python -m vrf_coordinator.cli quote 100000
  python -m vrf_coordinator.cli request --sender 0x11.. --budget 100000 --words 3 --value 301000000000000
"""

from __future__ import annotations

import json
import os
import sys
from typing import Any, Dict, List, Optional, Sequence

import requests
import typer

__all__ = ["app", "main"]

_DEFAULT_RPC = os.getenv("VRF_RPC_URL") or "http://127.0.0.1:8545"


def _rpc_call(url: str, method: str, params: Optional[Sequence[Any]] = None, timeout: float = 10.0) -> Any:
    """
    Minimal JSON-RPC 2.0 helper.
    """
    body = {
        "jsonrpc": "2.0",
        "id": 1,
        "method": method,
        "params": list(params or []),
    }
    try:
        r = requests.post(url, json=body, timeout=timeout)
    except requests.RequestException as e:
        raise SystemExit(f"RPC POST failed: {e}")
    if r.status_code != 200:
        raise SystemExit(f"RPC error HTTP {r.status_code}: {r.text}")
    try:
        data = r.json()
    except ValueError:
        raise SystemExit(f"RPC response not JSON: {r.text}")
    if "error" in data and data["error"]:
        raise SystemExit(f"RPC error: {json.dumps(data['error'], indent=2)}")
    return data.get("result")


app = typer.Typer(
    name="vrf",
    help="VRF coordinator CLI (quote → request → fulfil).",
    no_args_is_help=True,
    add_completion=False,
)


def _opt_rpc() -> str:
    return typer.Option(_DEFAULT_RPC, "--rpc", help=f"JSON-RPC endpoint (default: {_DEFAULT_RPC})")  # type: ignore[return-value]


def _echo(res: Any) -> None:
    typer.echo(json.dumps(res, indent=2))


@app.command("params")
def cmd_params(rpc: str = _opt_rpc()) -> None:
    """Show pricing/refund parameters."""
    _echo(_rpc_call(rpc, "vrf.getParams"))


@app.command("quote")
def cmd_quote(
    budget: int = typer.Argument(..., help="Callback gas budget."),
    rpc: str = _opt_rpc(),
) -> None:
    """Price of a request with the given callback budget."""
    _echo(_rpc_call(rpc, "vrf.quote", [{"callbackGasLimit": budget}]))


@app.command("request")
def cmd_request(
    sender: str = typer.Option(..., "--sender", "-s", help="0x-hex consumer account."),
    budget: int = typer.Option(..., "--budget", "-b", help="Callback gas budget."),
    words: int = typer.Option(1, "--words", "-n", help="Number of random words."),
    value: Optional[int] = typer.Option(None, "--value", "-v", help="Value to attach (defaults to the quote)."),
    refundee: Optional[str] = typer.Option(None, "--refundee", "-r", help="0x-hex refund recipient."),
    rpc: str = _opt_rpc(),
) -> None:
    """
    Open a request on behalf of `sender`.

    Without --value the current quote is fetched and attached exactly.
    """
    if value is None:
        value = _rpc_call(rpc, "vrf.quote", [{"callbackGasLimit": budget}])["price"]
    params: Dict[str, Any] = {
        "sender": sender,
        "callbackGasLimit": budget,
        "numWords": words,
        "value": value,
    }
    if refundee is not None:
        params["refundee"] = refundee
    _echo(_rpc_call(rpc, "vrf.request", [params]))


@app.command("pending")
def cmd_pending(
    request_id: str = typer.Argument(..., help="Request id (0x-hex or decimal)."),
    rpc: str = _opt_rpc(),
) -> None:
    """Is the request still pending?"""
    _echo(_rpc_call(rpc, "vrf.isPending", [{"requestId": request_id}]))


@app.command("status")
def cmd_status(
    request_id: str = typer.Argument(..., help="Request id (0x-hex or decimal)."),
    rpc: str = _opt_rpc(),
) -> None:
    """Show the request row and its result flags."""
    req = _rpc_call(rpc, "vrf.getRequest", [{"requestId": request_id}])
    res = _rpc_call(rpc, "vrf.getRequestResult", [{"requestId": request_id}])
    _echo({"request": req, "result": res})


@app.command("stats")
def cmd_stats(rpc: str = _opt_rpc()) -> None:
    """Show fulfilment statistics."""
    _echo(_rpc_call(rpc, "vrf.getStats"))


@app.command("fulfill-mock")
def cmd_fulfill_mock(
    request_id: str = typer.Argument(..., help="Request id (0x-hex or decimal)."),
    sender: str = typer.Option(..., "--sender", "-s", help="0x-hex oracle account."),
    word: Optional[List[int]] = typer.Option(None, "--word", "-w", help="Explicit word (repeatable)."),
    rpc: str = _opt_rpc(),
) -> None:
    """Manually fulfil a request; pseudorandom words when no --word is given."""
    params: Dict[str, Any] = {"sender": sender, "requestId": request_id}
    if word:
        params["words"] = list(word)
    _echo(_rpc_call(rpc, "vrf.fulfillMock", [params]))


def main(argv: Optional[Sequence[str]] = None) -> None:  # pragma: no cover - thin wrapper
    """Entry-point to run as `python -m vrf_coordinator.cli`."""
    try:
        app(args=list(argv) if argv is not None else None, prog_name="vrf")
    except KeyboardInterrupt:
        typer.echo("", err=True)
        sys.exit(130)


if __name__ == "__main__":  # pragma: no cover
    main()
