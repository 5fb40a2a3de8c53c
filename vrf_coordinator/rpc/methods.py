"""
vrf_coordinator.rpc.methods
---------------------------

JSON-RPC method shims for the VRF coordinator.

These are intentionally thin: they validate/normalize inputs with pydantic,
build a CallContext where the method acts on behalf of an account, then
delegate to the `Coordinator`.

Exposed methods:

- vrf.getParams()
- vrf.quote(callbackGasLimit)
- vrf.request(sender, callbackGasLimit, numWords, value, refundee?, timestamp?)
- vrf.isPending(requestId)
- vrf.fulfill(sender, requestId, consumer, callbackGasLimit, numWords, refundee,
              gasPricePaid, proof, timestamp?)
- vrf.fulfillMock(sender, requestId, words?, timestamp?)
- vrf.getRequest(requestId)
- vrf.getRequestResult(requestId)
- vrf.getStats()
- vrf.getNonce(consumer)
- vrf.nextRequestId(consumer)
- vrf.isOracle(address)
- vrf.getLogs(name?, start?)

Addresses, request ids and proof scalars are 0x-hex; amounts are ints.

Local/devnet transport only: `sender` is taken at face value, nothing
authenticates it, so the oracle check on `vrf.fulfill` and `vrf.fulfillMock`
and the payer of `vrf.request` are only as trustworthy as the caller. Do not
expose these methods on a shared network without an authenticating proxy
in front of them.
"""

from __future__ import annotations

import time
from typing import Any, Callable, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..context import CallContext
from ..coordinator import Coordinator
from ..verifier import Proof


# ---------- helpers ----------

def _strip_0x(s: str) -> str:
    return s[2:] if s.startswith("0x") or s.startswith("0X") else s


def _hex_to_bytes(s: str) -> bytes:
    return bytes.fromhex(_strip_0x(s))


def _bytes_to_hex(b: bytes) -> str:
    return "0x" + b.hex()


def _address(v: str) -> str:
    if len(_hex_to_bytes(v)) != 20:
        raise ValueError("address must be 20 bytes of 0x-hex")
    return v


def _request_id(v: Any) -> int:
    if isinstance(v, bool):
        raise ValueError("requestId must be int or 0x-hex")
    if isinstance(v, int):
        n = v
    elif isinstance(v, str):
        n = int(v, 16) if v.lower().startswith("0x") else int(v)
    else:
        raise ValueError("requestId must be int or 0x-hex")
    if n < 0 or n >= 1 << 256:
        raise ValueError("requestId out of u256 range")
    return n


# ---------- request models ----------

class _Model(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class QuoteParams(_Model):
    callback_gas_limit: int = Field(..., alias="callbackGasLimit", ge=0)


class _SenderArg(_Model):
    sender: str = Field(..., description="0x-hex account acting in the call.")
    timestamp: Optional[int] = Field(default=None, ge=0)

    @field_validator("sender")
    @classmethod
    def _sender_hex(cls, v: str) -> str:
        return _address(v)

    def ctx(self, value: int = 0) -> CallContext:
        ts = self.timestamp if self.timestamp is not None else int(time.time())
        return CallContext(sender=_hex_to_bytes(self.sender), value=value, timestamp=ts)


class RequestParams(_SenderArg):
    callback_gas_limit: int = Field(..., alias="callbackGasLimit", ge=0)
    num_words: int = Field(..., alias="numWords", ge=0)
    value: int = Field(..., ge=0)
    refundee: Optional[str] = None

    @field_validator("refundee")
    @classmethod
    def _refundee_hex(cls, v: Optional[str]) -> Optional[str]:
        return v if v is None else _address(v)


class RequestIdArg(_Model):
    request_id: int = Field(..., alias="requestId")

    @field_validator("request_id", mode="before")
    @classmethod
    def _rid(cls, v: Any) -> int:
        return _request_id(v)


class ProofModel(_Model):
    public_key: List[str] = Field(..., alias="publicKey", min_length=2, max_length=2)
    proof: List[str] = Field(..., min_length=4, max_length=4)
    u_point: List[str] = Field(..., alias="uPoint", min_length=2, max_length=2)
    v_components: List[str] = Field(..., alias="vComponents", min_length=4, max_length=4)
    proof_ctr: int = Field(0, alias="proofCtr", ge=0)

    def to_proof(self) -> Proof:
        return Proof.from_dict(
            {
                "public_key": self.public_key,
                "proof": self.proof,
                "u_point": self.u_point,
                "v_components": self.v_components,
                "proof_ctr": self.proof_ctr,
            }
        )


class FulfillParams(_SenderArg):
    request_id: int = Field(..., alias="requestId")
    consumer: str
    callback_gas_limit: int = Field(..., alias="callbackGasLimit", ge=0)
    num_words: int = Field(..., alias="numWords", ge=0)
    refundee: str
    gas_price_paid: int = Field(..., alias="gasPricePaid", ge=0)
    proof: ProofModel

    @field_validator("request_id", mode="before")
    @classmethod
    def _rid(cls, v: Any) -> int:
        return _request_id(v)

    @field_validator("consumer", "refundee")
    @classmethod
    def _addr(cls, v: str) -> str:
        return _address(v)


class FulfillMockParams(_SenderArg):
    request_id: int = Field(..., alias="requestId")
    words: Optional[List[int]] = Field(
        default=None, description="Explicit words; pseudorandom words when omitted."
    )

    @field_validator("request_id", mode="before")
    @classmethod
    def _rid(cls, v: Any) -> int:
        return _request_id(v)


class ConsumerArg(_Model):
    consumer: str

    @field_validator("consumer")
    @classmethod
    def _addr(cls, v: str) -> str:
        return _address(v)


class AddressArg(_Model):
    address: str

    @field_validator("address")
    @classmethod
    def _addr(cls, v: str) -> str:
        return _address(v)


class LogsQuery(_Model):
    name: Optional[str] = None
    start: int = Field(default=0, ge=0)


# ---------- method handlers ----------

def vrf_get_params(coord: Coordinator, _args: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    """Pricing/refund parameters and the coordinator address."""
    return coord.params()


def vrf_quote(coord: Coordinator, args: Mapping[str, Any]) -> Dict[str, Any]:
    p = QuoteParams(**args)
    return {"price": coord.calculate_request_price(p.callback_gas_limit)}


def vrf_request(coord: Coordinator, args: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Open a request on behalf of `sender` with `value` attached.

    Returns:
      - requestId (0x-hex)
      - nonce
    """
    p = RequestParams(**args)
    refundee = _hex_to_bytes(p.refundee) if p.refundee is not None else None
    rid = coord.request_random_words(
        p.ctx(p.value), p.callback_gas_limit, p.num_words, refundee=refundee
    )
    return {"requestId": hex(rid), "nonce": coord.get_nonce(_hex_to_bytes(p.sender))}


def vrf_is_pending(coord: Coordinator, args: Mapping[str, Any]) -> Dict[str, Any]:
    p = RequestIdArg(**args)
    return {"pending": coord.is_request_pending(p.request_id)}


def vrf_fulfill(coord: Coordinator, args: Mapping[str, Any]) -> Dict[str, Any]:
    p = FulfillParams(**args)
    ok = coord.fulfill_random_words(
        p.ctx(),
        p.request_id,
        _hex_to_bytes(p.consumer),
        p.callback_gas_limit,
        p.num_words,
        _hex_to_bytes(p.refundee),
        p.gas_price_paid,
        p.proof.to_proof(),
    )
    return {"requestId": hex(p.request_id), "success": ok}


def vrf_fulfill_mock(coord: Coordinator, args: Mapping[str, Any]) -> Dict[str, Any]:
    p = FulfillMockParams(**args)
    if p.words is None:
        ok = coord.fulfill_request_mock_with_random_words(p.ctx(), p.request_id)
    else:
        ok = coord.fulfill_request_mock(p.ctx(), p.request_id, p.words)
    return {"requestId": hex(p.request_id), "success": ok}


def vrf_get_request(coord: Coordinator, args: Mapping[str, Any]) -> Dict[str, Any]:
    p = RequestIdArg(**args)
    return coord.get_request(p.request_id).to_dict()


def vrf_get_request_result(coord: Coordinator, args: Mapping[str, Any]) -> Dict[str, Any]:
    p = RequestIdArg(**args)
    r = coord.get_request_result(p.request_id)
    return {"wasSuccess": r.was_success, "wasFulfilled": r.was_fulfilled}


def vrf_get_stats(coord: Coordinator, _args: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    return coord.get_fulfillment_stats().to_dict()


def vrf_get_nonce(coord: Coordinator, args: Mapping[str, Any]) -> Dict[str, Any]:
    p = ConsumerArg(**args)
    return {"nonce": coord.get_nonce(_hex_to_bytes(p.consumer))}


def vrf_next_request_id(coord: Coordinator, args: Mapping[str, Any]) -> Dict[str, Any]:
    p = ConsumerArg(**args)
    return {"requestId": hex(coord.calculate_next_request_id(_hex_to_bytes(p.consumer)))}


def vrf_is_oracle(coord: Coordinator, args: Mapping[str, Any]) -> Dict[str, Any]:
    p = AddressArg(**args)
    return {"isOracle": coord.is_oracle(_hex_to_bytes(p.address))}


def vrf_get_logs(coord: Coordinator, args: Optional[Mapping[str, Any]] = None) -> List[Dict[str, Any]]:
    """Canonical receipt-encoded events, optionally filtered by name."""
    q = LogsQuery(**(args or {}))
    events = [ev.to_dict() for ev in coord.events.events_for_receipt(q.start)]
    if q.name is not None:
        events = [ev for ev in events if ev["name"] == q.name]
    return events


# Public registry mapping JSON-RPC method names to callables.
# Each callable has signature: (coordinator, args_dict) -> result
RPC_METHODS: Dict[str, Callable[..., Any]] = {
    "vrf.getParams": vrf_get_params,
    "vrf.quote": vrf_quote,
    "vrf.request": vrf_request,
    "vrf.isPending": vrf_is_pending,
    "vrf.fulfill": vrf_fulfill,
    "vrf.fulfillMock": vrf_fulfill_mock,
    "vrf.getRequest": vrf_get_request,
    "vrf.getRequestResult": vrf_get_request_result,
    "vrf.getStats": vrf_get_stats,
    "vrf.getNonce": vrf_get_nonce,
    "vrf.nextRequestId": vrf_next_request_id,
    "vrf.isOracle": vrf_is_oracle,
    "vrf.getLogs": vrf_get_logs,
}

__all__ = [
    "QuoteParams",
    "RequestParams",
    "RequestIdArg",
    "ProofModel",
    "FulfillParams",
    "FulfillMockParams",
    "ConsumerArg",
    "AddressArg",
    "LogsQuery",
    "RPC_METHODS",
]
