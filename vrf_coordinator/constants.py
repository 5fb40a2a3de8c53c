"""
VRF coordinator constants.

This module centralizes:
- Domain separation tags for request ids, commitments and test-double words
- Pricing defaults (callback budget bounds, fixed overhead, unit price)
- Refund policy defaults (retained margin, minimum worthwhile refund)
- Address and word sizes used by the hashing/encoding helpers

Networks may override the operational knobs via
`vrf_coordinator.config.CoordinatorConfig`; code that needs stable
defaults can import from here.
"""

from __future__ import annotations

# -----------------------------
# Domain separation (bytes tags)
# -----------------------------
# Keep these stable; changing them invalidates every open commitment.
DOMAIN_PREFIX: bytes = b"vrf.coord."

DOMAIN_REQUEST_ID: bytes = DOMAIN_PREFIX + b"request.id.v1"
DOMAIN_COMMITMENT: bytes = DOMAIN_PREFIX + b"commitment.v1"
DOMAIN_PSEUDO_WORDS: bytes = DOMAIN_PREFIX + b"pseudo.words.v1"

# -----------------------------
# Sizes
# -----------------------------
ADDRESS_LEN: int = 20
WORD_BYTES: int = 32
MAX_UINT256: int = (1 << 256) - 1
ZERO_ADDRESS: bytes = b"\x00" * ADDRESS_LEN

# -----------------------------
# Pricing defaults
# -----------------------------
MIN_CONSUMER_GAS_LIMIT: int = 5_000
MAX_CONSUMER_GAS_LIMIT: int = 6_000_000
# Gas the oracle spends on verification + bookkeeping, charged on every request.
FULFILLMENT_GAS_OVERHEAD: int = 300_000
GWEI: int = 10**9
DEFAULT_UNIT_PRICE: int = 1 * GWEI
DEFAULT_MAX_NUM_WORDS: int = 500
# Hard ceiling for any configured max_num_words; also the event log array limit.
MAX_NUM_WORDS_LIMIT: int = 1024

# -----------------------------
# Callback metering
# -----------------------------
# Gas per bytecode instruction the callback executes, on top of explicit charges.
CALLBACK_INSTRUCTION_GAS: int = 3

# -----------------------------
# Refund policy
# -----------------------------
REFUND_PERCENT: int = 90  # 10% of every refund is retained as protocol margin
PERCENT_DENOMINATOR: int = 100
# Below this a transfer costs more than it returns.
MIN_REFUND_AMOUNT: int = 21_000 * GWEI

# -----------------------------
# Gas price history
# -----------------------------
DEFAULT_GAS_PRICE_HISTORY_WINDOW: int = 32
MAX_GAS_PRICE_HISTORY_WINDOW: int = 1024

# -----------------------------
# Callback failure decoding
# -----------------------------
# Standard `Error(string)` revert selector (first 4 bytes of keccak256("Error(string)")).
ERROR_STRING_SELECTOR: bytes = bytes.fromhex("08c379a0")
SELECTOR_LEN: int = 4

REASON_PREFIX: str = "callback failed: "
REASON_SUCCESS: str = "callback succeeded"
REASON_EMPTY_ERROR_STRING: str = REASON_PREFIX + "Error(string) with no message"
REASON_LOW_LEVEL_WITH_DATA: str = REASON_PREFIX + "low level revert with data"
REASON_LOW_LEVEL: str = REASON_PREFIX + "low level revert"
# Longer reasons are cut (with an ellipsis) before they reach the event log.
MAX_REASON_LEN: int = 512

__all__ = [
    "DOMAIN_PREFIX",
    "DOMAIN_REQUEST_ID",
    "DOMAIN_COMMITMENT",
    "DOMAIN_PSEUDO_WORDS",
    "ADDRESS_LEN",
    "WORD_BYTES",
    "MAX_UINT256",
    "ZERO_ADDRESS",
    "MIN_CONSUMER_GAS_LIMIT",
    "MAX_CONSUMER_GAS_LIMIT",
    "FULFILLMENT_GAS_OVERHEAD",
    "GWEI",
    "DEFAULT_UNIT_PRICE",
    "DEFAULT_MAX_NUM_WORDS",
    "MAX_NUM_WORDS_LIMIT",
    "CALLBACK_INSTRUCTION_GAS",
    "REFUND_PERCENT",
    "PERCENT_DENOMINATOR",
    "MIN_REFUND_AMOUNT",
    "DEFAULT_GAS_PRICE_HISTORY_WINDOW",
    "MAX_GAS_PRICE_HISTORY_WINDOW",
    "ERROR_STRING_SELECTOR",
    "SELECTOR_LEN",
    "REASON_PREFIX",
    "REASON_SUCCESS",
    "REASON_EMPTY_ERROR_STRING",
    "REASON_LOW_LEVEL_WITH_DATA",
    "REASON_LOW_LEVEL",
    "MAX_REASON_LEN",
]
