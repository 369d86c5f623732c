"""
BLS12-381 aggregate signature verification.

This module provides:
- BLSBackend: point decoding with subgroup checks, key aggregation and
  the pairing check, built on py_ecc (min-pk: keys in G1, signatures in G2)
- AggregateSignatureVerifier: selects the signing subset of a committee
  from a participation bitmap and verifies one aggregate signature for it

Proof material comes from untrusted peers, so every point is decoded and
subgroup-checked before use. Decoding problems raise MalformedPointError;
a well-formed signature that does not verify is simply False.
"""

import logging
from functools import lru_cache, reduce
from hashlib import sha256
from typing import Any, Protocol, Sequence

from py_ecc.bls.g2_primitives import pubkey_to_G1, signature_to_G2, subgroup_check
from py_ecc.bls.hash_to_curve import hash_to_G2
from py_ecc.fields import optimized_bls12_381_FQ12 as FQ12
from py_ecc.optimized_bls12_381 import (
    G1,
    Z1,
    add,
    final_exponentiate,
    is_inf,
    neg,
    pairing,
)

from ..exceptions import MalformedPointError, StructuralError
from .committee import Committee
from .constants import BLS_DST, PUBLIC_KEY_LENGTH, SIGNATURE_LENGTH
from .types import ParticipationBitmap, short_hex

logger = logging.getLogger(__name__)


class SignatureBackend(Protocol):
    """Curve operations the verifier needs."""

    def decode_public_key(self, data: bytes) -> Any:
        ...

    def decode_signature(self, data: bytes) -> Any:
        ...

    def aggregate_public_keys(self, points: Sequence[Any]) -> Any:
        ...

    def verify(self, public_key: Any, message: bytes, signature: Any) -> bool:
        ...


@lru_cache(maxsize=4096)
def _decode_g1(data: bytes):
    """Decode and subgroup-check a compressed G1 point (cached per key)."""
    try:
        point = pubkey_to_G1(data)
    except ValueError as e:
        raise MalformedPointError(f"Invalid public key encoding: {e}") from e
    if is_inf(point):
        raise MalformedPointError("Public key is the point at infinity")
    if not subgroup_check(point):
        raise MalformedPointError("Public key is not in the G1 subgroup")
    return point


class BLSBackend:
    """
    py_ecc implementation of SignatureBackend.

    The domain separation tag is the one Axon validators sign with.
    """

    def __init__(self, dst: bytes = BLS_DST):
        self.dst = dst

    def decode_public_key(self, data: bytes):
        if len(data) != PUBLIC_KEY_LENGTH:
            raise MalformedPointError(
                f"Public key must be {PUBLIC_KEY_LENGTH} bytes, got {len(data)}"
            )
        return _decode_g1(bytes(data))

    def decode_signature(self, data: bytes):
        if len(data) != SIGNATURE_LENGTH:
            raise MalformedPointError(
                f"Signature must be {SIGNATURE_LENGTH} bytes, got {len(data)}"
            )
        try:
            point = signature_to_G2(bytes(data))
        except ValueError as e:
            raise MalformedPointError(f"Invalid signature encoding: {e}") from e
        if not subgroup_check(point):
            raise MalformedPointError("Signature is not in the G2 subgroup")
        return point

    def aggregate_public_keys(self, points: Sequence[Any]):
        """Sum of G1 points; order does not matter."""
        return reduce(add, points, Z1)

    def verify(self, public_key, message: bytes, signature) -> bool:
        """Check e(sig, G1) == e(H(msg), pk)."""
        if is_inf(public_key):
            return False
        message_point = hash_to_G2(message, self.dst, sha256)
        result = final_exponentiate(
            pairing(signature, G1, final_exponentiate=False)
            * pairing(message_point, neg(public_key), final_exponentiate=False)
        )
        return result == FQ12.one()

    def __repr__(self) -> str:
        return f"BLSBackend(dst={self.dst!r})"


class AggregateSignatureVerifier:
    """
    Verifies a committee's aggregate signature.

    Usage:
        verifier = AggregateSignatureVerifier()
        ok = verifier.verify(committee, bitmap, message, signature)
    """

    def __init__(self, backend: SignatureBackend = None):
        self.backend = backend or BLSBackend()

    def select_public_keys(
        self,
        committee: Committee,
        bitmap: ParticipationBitmap,
    ) -> list[bytes]:
        """
        Public keys of members whose bit is set, in committee order.

        Raises:
            StructuralError: If the bitmap length differs from the committee size
        """
        if len(bitmap) != len(committee):
            raise StructuralError(
                f"Bitmap length {len(bitmap)} does not match committee size {len(committee)}",
                expected=len(committee),
                actual=len(bitmap),
            )
        return [
            member.public_key
            for member, bit in zip(committee.members, bitmap.bits)
            if bit
        ]

    def check(
        self,
        committee: Committee,
        bitmap: ParticipationBitmap,
        message: bytes,
        signature: bytes,
    ) -> bool:
        """
        Verify the aggregate signature, reporting malformed input by exception.

        Returns:
            True if the pairing check passes, False if nobody signed or the
            signature does not match

        Raises:
            StructuralError: Bitmap length mismatch
            MalformedPointError: A selected key or the signature is not a
                valid subgroup point
        """
        selected = self.select_public_keys(committee, bitmap)
        if not selected:
            logger.debug("No participating members in bitmap")
            return False

        points = []
        for index, public_key in zip(bitmap.participants(), selected):
            try:
                points.append(self.backend.decode_public_key(public_key))
            except MalformedPointError as e:
                raise MalformedPointError(
                    f"Member {index} ({short_hex(public_key)}): {e.message}",
                    index=index,
                ) from e

        signature_point = self.backend.decode_signature(signature)
        aggregate = self.backend.aggregate_public_keys(points)

        ok = self.backend.verify(aggregate, message, signature_point)
        logger.debug(f"Aggregate signature over {len(points)} keys: {'ok' if ok else 'mismatch'}")
        return ok

    def verify(
        self,
        committee: Committee,
        bitmap: ParticipationBitmap,
        message: bytes,
        signature: bytes,
    ) -> bool:
        """Boolean form of check(); malformed input is just False."""
        try:
            return self.check(committee, bitmap, message, signature)
        except (StructuralError, MalformedPointError) as e:
            logger.debug(f"Aggregate signature rejected: {e.message}")
            return False
