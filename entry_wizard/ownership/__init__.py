"""Ownership percentage allocation across household members."""

from entry_wizard.ownership.allocation import (
    FULL_SHARE,
    adjust,
    allocation_total,
    clamp_percentage,
    equal_split,
    is_balanced,
    remove_member,
    round_half_up,
)

__all__ = [
    "FULL_SHARE",
    "adjust",
    "allocation_total",
    "clamp_percentage",
    "equal_split",
    "is_balanced",
    "remove_member",
    "round_half_up",
]
