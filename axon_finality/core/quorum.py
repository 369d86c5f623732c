"""
Byzantine quorum evaluation.

A block is final when the signing members hold strictly more than two
thirds of the committee's vote weight. Exactly two thirds is not enough.
All arithmetic is on integers so the threshold is exact.
"""

import logging

from ..exceptions import StructuralError
from .committee import Committee
from .constants import QUORUM_DENOMINATOR, QUORUM_NUMERATOR
from .types import ParticipationBitmap

logger = logging.getLogger(__name__)


def _check_length(committee: Committee, bitmap: ParticipationBitmap) -> None:
    if len(bitmap) != len(committee):
        raise StructuralError(
            f"Bitmap length {len(bitmap)} does not match committee size {len(committee)}",
            expected=len(committee),
            actual=len(bitmap),
        )


def participating_weight(committee: Committee, bitmap: ParticipationBitmap) -> int:
    """
    Sum of vote weights of members whose bit is set.

    Raises:
        StructuralError: If the bitmap length differs from the committee size
    """
    _check_length(committee, bitmap)
    return sum(
        member.vote_weight
        for member, bit in zip(committee.members, bitmap.bits)
        if bit
    )


def quorum_threshold(committee: Committee) -> int:
    """Smallest participating weight that reaches quorum."""
    return committee.total_weight() * QUORUM_NUMERATOR // QUORUM_DENOMINATOR + 1


def weight_has_quorum(weight: int, total_weight: int) -> bool:
    return weight * QUORUM_DENOMINATOR > total_weight * QUORUM_NUMERATOR


def has_quorum(committee: Committee, bitmap: ParticipationBitmap) -> bool:
    """
    Check the strict two-thirds supermajority.

    Args:
        committee: Committee the bitmap indexes into
        bitmap: Participation bitmap

    Returns:
        True if 3 * participating_weight > 2 * total_weight

    Raises:
        StructuralError: If the bitmap length differs from the committee size
    """
    weight = participating_weight(committee, bitmap)
    total = committee.total_weight()
    ok = weight_has_quorum(weight, total)
    logger.debug(f"Quorum: {weight}/{total} weight participating ({'reached' if ok else 'short'})")
    return ok
