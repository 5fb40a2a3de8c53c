"""
VRF coordinator configuration.

Three dataclasses, validated on load:
- Pricing (callback budget bounds, fixed fulfilment overhead, unit price,
  maximum words per request, gas price history window)
- Refund policy (percentage returned, minimum worthwhile refund)
- Environment binding (environment id mixed into every commitment, the
  coordinator's own account address)

`CoordinatorConfig.from_env` and `CoordinatorConfig.from_file` (JSON or YAML)
build the same structure through `from_mapping`.
"""

from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, Mapping, Tuple

import yaml

from .constants import (
    ADDRESS_LEN,
    CALLBACK_INSTRUCTION_GAS,
    DEFAULT_GAS_PRICE_HISTORY_WINDOW,
    DEFAULT_MAX_NUM_WORDS,
    DEFAULT_UNIT_PRICE,
    FULFILLMENT_GAS_OVERHEAD,
    MAX_CONSUMER_GAS_LIMIT,
    MAX_GAS_PRICE_HISTORY_WINDOW,
    MAX_NUM_WORDS_LIMIT,
    MIN_CONSUMER_GAS_LIMIT,
    MIN_REFUND_AMOUNT,
    REFUND_PERCENT,
)

# Deterministic placeholder account for the coordinator in local setups.
DEFAULT_COORDINATOR_ADDRESS = "0x" + "c0" * ADDRESS_LEN

# -------------------------
# Sub-configs
# -------------------------


@dataclass
class PricingParams:
    """
    Quote parameters.

    min_callback_gas / max_callback_gas: accepted callback budget range (inclusive)
    fulfillment_gas_overhead: gas charged on top of every budget for proof
                              verification and bookkeeping
    unit_price: native units per gas; snapshotted into each request
    max_num_words: upper bound on words per request (lower bound is 1)
    gas_price_history_window: how many recent request prices are retained
    """

    min_callback_gas: int = MIN_CONSUMER_GAS_LIMIT
    max_callback_gas: int = MAX_CONSUMER_GAS_LIMIT
    fulfillment_gas_overhead: int = FULFILLMENT_GAS_OVERHEAD
    unit_price: int = DEFAULT_UNIT_PRICE
    max_num_words: int = DEFAULT_MAX_NUM_WORDS
    gas_price_history_window: int = DEFAULT_GAS_PRICE_HISTORY_WINDOW

    def validate(self) -> None:
        if self.min_callback_gas <= 0:
            raise ValueError("min_callback_gas must be > 0")
        if self.max_callback_gas < self.min_callback_gas:
            raise ValueError("max_callback_gas must be >= min_callback_gas")
        if self.fulfillment_gas_overhead < 0:
            raise ValueError("fulfillment_gas_overhead must be >= 0")
        if self.unit_price <= 0:
            raise ValueError("unit_price must be > 0")
        if not (1 <= self.max_num_words <= MAX_NUM_WORDS_LIMIT):
            raise ValueError(f"max_num_words must be within [1, {MAX_NUM_WORDS_LIMIT}]")
        if not (1 <= self.gas_price_history_window <= MAX_GAS_PRICE_HISTORY_WINDOW):
            raise ValueError(
                f"gas_price_history_window must be within [1, {MAX_GAS_PRICE_HISTORY_WINDOW}]"
            )


@dataclass
class RefundPolicy:
    """
    refund_percent: share of an excess/unused amount returned (rest is retained)
    min_refund: refunds strictly below this are skipped silently
    """

    refund_percent: int = REFUND_PERCENT
    min_refund: int = MIN_REFUND_AMOUNT

    def validate(self) -> None:
        if not (0 <= self.refund_percent <= 100):
            raise ValueError("refund_percent must be between 0 and 100")
        if self.min_refund < 0:
            raise ValueError("min_refund must be >= 0")


# -------------------------
# Top-level config
# -------------------------


@dataclass
class CoordinatorConfig:
    """
    environment_id: chain/network identifier bound into every commitment so a
                    commitment from one environment never verifies in another
    coordinator_address: 0x-hex account of the coordinator itself (used to
                         skip self-refunds and as the callback sender)
    callback_instruction_gas: gas charged per bytecode instruction a consumer
                              callback executes (0 = explicit charges only)

    Pricing / Refunds: nested sub-configs
    """

    environment_id: int = 1
    coordinator_address: str = DEFAULT_COORDINATOR_ADDRESS
    callback_instruction_gas: int = CALLBACK_INSTRUCTION_GAS

    pricing: PricingParams = field(default_factory=PricingParams)
    refunds: RefundPolicy = field(default_factory=RefundPolicy)

    def address(self) -> bytes:
        """Coordinator address as raw 20 bytes."""
        return _hex_address(self.coordinator_address)

    def validate(self) -> None:
        if self.environment_id < 0:
            raise ValueError("environment_id must be >= 0")
        if self.callback_instruction_gas < 0:
            raise ValueError("callback_instruction_gas must be >= 0")
        try:
            addr = self.address()
        except ValueError as e:
            raise ValueError(f"coordinator_address invalid: {e}") from e
        if addr == b"\x00" * ADDRESS_LEN:
            raise ValueError("coordinator_address must not be the zero address")

        # Sub-configs
        self.pricing.validate()
        self.refunds.validate()

    # -------------------------
    # Serialization helpers
    # -------------------------

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, sort_keys=True)

    # -------------------------
    # Loaders
    # -------------------------

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "CoordinatorConfig":
        """Build and validate a config from nested plain data; missing keys keep defaults."""
        pricing = data.get("pricing") or {}
        refunds = data.get("refunds") or {}
        top = {k: data[k] for k in _TOP_KEYS if k in data}
        cfg = cls(
            pricing=PricingParams(**{k: pricing[k] for k in _PRICING_KEYS if k in pricing}),
            refunds=RefundPolicy(**{k: refunds[k] for k in _REFUND_KEYS if k in refunds}),
            **top,
        )
        cfg.validate()
        return cfg

    @classmethod
    def from_env(cls, prefix: str = "VRF_") -> "CoordinatorConfig":
        """
        Read overrides from `<prefix><FIELD>` environment variables, e.g.

            VRF_ENVIRONMENT_ID=1
            VRF_COORDINATOR_ADDRESS=0xc0c0...
            VRF_UNIT_PRICE=0x3b9aca00
            VRF_GAS_PRICE_HISTORY_WINDOW=32
            VRF_REFUND_PERCENT=90

        Field names are the upper-cased dataclass fields of any section.
        Integers accept any Python literal base (`int(x, 0)`).
        """

        def section(keys: Tuple[str, ...]) -> Dict[str, Any]:
            out: Dict[str, Any] = {}
            for name in keys:
                env_key = prefix + name.upper()
                raw = os.environ.get(env_key)
                if raw is None:
                    continue
                if name == "coordinator_address":
                    out[name] = raw.strip()
                    continue
                try:
                    out[name] = int(raw.strip(), 0)
                except ValueError as e:
                    raise ValueError(f"{env_key}={raw!r} is not an integer") from e
            return out

        data = section(_TOP_KEYS)
        data["pricing"] = section(_PRICING_KEYS)
        data["refunds"] = section(_REFUND_KEYS)
        return cls.from_mapping(data)

    @classmethod
    def from_file(cls, path: str) -> "CoordinatorConfig":
        """
        Read a JSON or YAML document shaped like `to_dict()`:

            environment_id: 7
            pricing:
              unit_price: 2000000000
              max_num_words: 100
            refunds:
              refund_percent: 80
        """
        with open(path, "r", encoding="utf-8") as fh:
            text = fh.read()
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            try:
                data = yaml.safe_load(text) or {}
            except yaml.YAMLError as e:
                raise ValueError(f"{path}: neither JSON nor YAML ({e})") from e
        if not isinstance(data, dict):
            raise ValueError(f"{path}: top level must be a mapping, got {type(data).__name__}")
        return cls.from_mapping(data)


_TOP_KEYS: Tuple[str, ...] = ("environment_id", "coordinator_address", "callback_instruction_gas")
_PRICING_KEYS: Tuple[str, ...] = tuple(f.name for f in fields(PricingParams))
_REFUND_KEYS: Tuple[str, ...] = tuple(f.name for f in fields(RefundPolicy))


def _hex_address(s: str) -> bytes:
    h = s[2:] if s.startswith(("0x", "0X")) else s
    raw = bytes.fromhex(h)
    if len(raw) != ADDRESS_LEN:
        raise ValueError(f"address must be {ADDRESS_LEN} bytes, got {len(raw)}")
    return raw


DEFAULT: CoordinatorConfig = CoordinatorConfig()


__all__ = [
    "PricingParams",
    "RefundPolicy",
    "CoordinatorConfig",
    "DEFAULT",
    "DEFAULT_COORDINATOR_ADDRESS",
]
