"""
vrf_coordinator
===============

Commit-then-reveal coordinator for verifiable randomness requests:

- `pricing`    : quotes and gas price history
- `nonces`     : per-consumer nonces and request id derivation
- `commitment` : binding hash over a request's parameters
- `ledger`     : open/close state machine
- `dispatcher` : metered, sandboxed consumer callbacks with failure decoding
- `refunds`    : request-time and fulfilment-time refunds
- `stats`      : fulfilment counters
- `verifier`   : proof verification seam (+ pseudorandom stand-in)
- `coordinator`: the facade tying it together

Quick start
-----------
    from vrf_coordinator import Coordinator, CallContext

    coord = Coordinator(signer=oracle_addr)
    coord.host.treasury.credit(consumer_addr, 10**18)
    price = coord.calculate_request_price(100_000)
    rid = coord.request_random_words(CallContext(sender=consumer_addr, value=price), 100_000, 2)
    coord.fulfill_request_mock_with_random_words(CallContext(sender=oracle_addr), rid)
"""

from .version import __version__
from .config import CoordinatorConfig, PricingParams, RefundPolicy
from .context import CallContext
from .coordinator import Coordinator
from .errors import CoordinatorError
from .host import Host
from .types import CallbackStatus, FulfillmentStats, Request, RequestResult
from .verifier import Proof, PseudoRandomVerifier

__all__ = [
    "__version__",
    "CoordinatorConfig",
    "PricingParams",
    "RefundPolicy",
    "CallContext",
    "Coordinator",
    "CoordinatorError",
    "Host",
    "CallbackStatus",
    "FulfillmentStats",
    "Request",
    "RequestResult",
    "Proof",
    "PseudoRandomVerifier",
]
