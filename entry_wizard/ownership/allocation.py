"""
Ownership Allocation

Splits 100% ownership of a record across household members and keeps the
split consistent when a single slider moves.

adjust() is the slider handler:
1. Clamp the requested value to [0, 100]
2. If nobody else holds a share, or the member takes everything,
   only the changed member moves (degenerate branch)
3. Otherwise scale every other member to the remaining percentage in
   proportion to their previous shares, rounding each one, and hand the
   rounding residual to the first other member so the total is exactly 100

Without step 3's residual correction the total drifts away from 100 after
a few adjustments (e.g. three members at 1/3 each round to 33+33+33).

All functions are pure: they return new dicts and never touch their input.
Percentages are ints in [0, 100].
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Hashable, Iterable, Mapping, TypeVar

import structlog


MemberId = TypeVar("MemberId", bound=Hashable)

FULL_SHARE = 100
MIN_RECEIVING_SHARE = 1

logger = structlog.get_logger(__name__)


def round_half_up(value: float | Decimal) -> int:
    """Round to the nearest int, .5 away from zero (slider semantics)."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def clamp_percentage(value: float | int | str) -> int:
    """
    Coerce a slider value to an int in [0, 100].

    Raises:
        ValueError: If value is not a finite number
    """
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValueError(f"Not a percentage: {value!r}") from None
    if not number.is_finite():
        raise ValueError(f"Not a percentage: {value!r}")
    return max(0, min(FULL_SHARE, round_half_up(number)))


def allocation_total(allocation: Mapping[MemberId, int]) -> int:
    return sum(allocation.values())


def is_balanced(allocation: Mapping[MemberId, int]) -> bool:
    """True when the shares add up to exactly 100."""
    return allocation_total(allocation) == FULL_SHARE


def _absorb_residual(
    result: dict[MemberId, int],
    order: Iterable[MemberId],
    residual: int,
) -> int:
    """
    Push a rounding residual onto members in iteration order.

    The first member takes as much as it can while staying in [0, 100];
    only what it cannot take moves on to the next one.
    Returns whatever could not be placed (0 unless every member is saturated).
    """
    for member in order:
        if residual == 0:
            break
        current = result[member]
        target = max(0, min(FULL_SHARE, current + residual))
        residual -= target - current
        result[member] = target
    return residual


def _scale_to(
    shares: Mapping[MemberId, int],
    target: int,
) -> dict[MemberId, int]:
    """Scale shares proportionally so they sum to exactly `target`."""
    basis = sum(shares.values())
    scaled = {
        member: round_half_up(Decimal(target) * Decimal(share) / Decimal(basis))
        for member, share in shares.items()
    }
    _absorb_residual(scaled, list(shares), target - sum(scaled.values()))
    return scaled


def adjust(
    current: Mapping[MemberId, int],
    changed_member: MemberId,
    new_value: float | int | str,
) -> dict[MemberId, int]:
    """
    Move one member's share and rebalance the others.

    Args:
        current: member id -> percentage, left untouched
        changed_member: the member whose slider moved
        new_value: requested percentage (clamped to [0, 100])

    Returns:
        A new allocation. When other members hold shares and the new
        value is below 100, it sums to exactly 100.

    Raises:
        KeyError: If changed_member is not part of the allocation
        ValueError: If new_value is not a finite number
    """
    if changed_member not in current:
        raise KeyError(changed_member)

    value = clamp_percentage(new_value)
    result = dict(current)
    other_sum = allocation_total(current) - current[changed_member]

    if other_sum <= 0 or value >= FULL_SHARE:
        # Degenerate: nothing to redistribute from (or nothing left to give).
        # Others stay as they are even if the total is no longer 100.
        result[changed_member] = value
        return result

    others = {m: share for m, share in current.items() if m != changed_member}
    result[changed_member] = value
    result.update(_scale_to(others, FULL_SHARE - value))
    return result


def equal_split(member_ids: Iterable[MemberId]) -> dict[MemberId, int]:
    """
    Initial shares for a newly shared record.

    Every member gets 100 // n; the remainder goes to the first member.
    """
    members = list(dict.fromkeys(member_ids))
    if not members:
        return {}
    base, remainder = divmod(FULL_SHARE, len(members))
    result = {member: base for member in members}
    result[members[0]] += remainder
    return result


def remove_member(
    current: Mapping[MemberId, int],
    member_id: MemberId,
) -> dict[MemberId, int]:
    """
    Drop a member and hand their share to the remaining owners.

    Only members that already hold at least 1% receive anything, in
    proportion to what they hold. If no such member remains, the share
    is dropped and a warning is logged - the total then falls below 100
    and surfaces as an allocation warning later.
    """
    if member_id not in current:
        return dict(current)

    freed = current[member_id]
    result = {m: share for m, share in current.items() if m != member_id}
    receivers = {m: share for m, share in result.items() if share >= MIN_RECEIVING_SHARE}

    if freed <= 0:
        return result
    if not receivers:
        logger.warning(
            "allocation_share_dropped",
            member_id=str(member_id),
            share=freed,
        )
        return result

    receiving_total = sum(receivers.values())
    result.update(_scale_to(receivers, receiving_total + freed))
    return result
