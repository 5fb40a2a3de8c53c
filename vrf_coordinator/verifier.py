"""
Proof verification seam.

The coordinator never trusts an oracle's words directly: a `ProofVerifier`
turns proof material into verified words, or raises InvalidProof /
InvalidPublicKey. Real elliptic-curve VRF verification lives outside this
package; `PseudoRandomVerifier` is a deterministic, non-cryptographic stand-in
that checks proof *shape* only and derives words by hashing.
"""

from __future__ import annotations

from dataclasses import dataclass
from hashlib import sha3_256
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

from .commitment import u256
from .constants import DOMAIN_PSEUDO_WORDS, MAX_UINT256
from .errors import InvalidProof, InvalidPublicKey


@dataclass(frozen=True, slots=True)
class Proof:
    """
    VRF proof material as presented by an oracle.

    public_key  : oracle public key point (x, y)
    proof       : (gamma_x, gamma_y, c, s)
    u_point     : helper point (x, y)
    v_components: (s_h_x, s_h_y, c_gamma_x, c_gamma_y)
    proof_ctr   : hash-to-curve counter
    """

    public_key: Tuple[int, ...]
    proof: Tuple[int, ...]
    u_point: Tuple[int, ...]
    v_components: Tuple[int, ...]
    proof_ctr: int = 0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Proof":
        def _ints(key: str) -> Tuple[int, ...]:
            return tuple(_to_int(x) for x in d.get(key, ()))

        return cls(
            public_key=_ints("public_key"),
            proof=_ints("proof"),
            u_point=_ints("u_point"),
            v_components=_ints("v_components"),
            proof_ctr=_to_int(d.get("proof_ctr", 0)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "public_key": [hex(x) for x in self.public_key],
            "proof": [hex(x) for x in self.proof],
            "u_point": [hex(x) for x in self.u_point],
            "v_components": [hex(x) for x in self.v_components],
            "proof_ctr": self.proof_ctr,
        }


def _to_int(x: Any) -> int:
    if isinstance(x, bool):
        raise TypeError("bool is not a valid proof scalar")
    if isinstance(x, int):
        return x
    if isinstance(x, str):
        return int(x, 0)
    raise TypeError(f"cannot convert {type(x).__name__} to int")


class ProofVerifier(Protocol):
    def verify(
        self,
        proof: Proof,
        *,
        request_id: int,
        num_words: int,
        seed: bytes,
    ) -> List[int]: ...


def pseudo_random_words(seed: bytes, num_words: int, *, salt: bytes = b"") -> List[int]:
    """word_i = int(SHA3-256(DOMAIN_PSEUDO_WORDS || seed || salt || u256(i)))"""
    out: List[int] = []
    for i in range(num_words):
        h = sha3_256()
        h.update(DOMAIN_PSEUDO_WORDS)
        h.update(seed)
        h.update(salt)
        h.update(u256(i))
        out.append(int.from_bytes(h.digest(), "big"))
    return out


def _check_scalars(name: str, values: Sequence[int], n: int) -> None:
    if len(values) != n:
        raise InvalidProof(f"{name} must have {n} components, got {len(values)}")
    for v in values:
        if not isinstance(v, int) or v < 0 or v > MAX_UINT256:
            raise InvalidProof(f"{name} component out of range")


class PseudoRandomVerifier:
    """
    Structural verifier for tests and local networks.

    If `public_key` is given, proofs must carry exactly that key.
    """

    def __init__(self, public_key: Optional[Sequence[int]] = None) -> None:
        self.public_key = tuple(public_key) if public_key is not None else None

    def verify(
        self,
        proof: Proof,
        *,
        request_id: int,
        num_words: int,
        seed: bytes,
    ) -> List[int]:
        pk = tuple(proof.public_key)
        if len(pk) != 2 or not any(pk):
            raise InvalidPublicKey()
        if any(not isinstance(v, int) or v < 0 or v > MAX_UINT256 for v in pk):
            raise InvalidPublicKey()
        if self.public_key is not None and pk != self.public_key:
            raise InvalidPublicKey()

        _check_scalars("proof", proof.proof, 4)
        _check_scalars("u_point", proof.u_point, 2)
        _check_scalars("v_components", proof.v_components, 4)
        if proof.proof_ctr < 0:
            raise InvalidProof("proof_ctr must be non-negative")

        material = b"".join(
            u256(v) for v in (*proof.proof, *proof.u_point, *proof.v_components)
        ) + u256(proof.proof_ctr)
        return pseudo_random_words(seed + u256(request_id), num_words, salt=material)


__all__ = ["Proof", "ProofVerifier", "PseudoRandomVerifier", "pseudo_random_words"]
