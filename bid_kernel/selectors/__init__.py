"""Selectors for the bid kernel (read side)."""

from bid_kernel.selectors.bid_selector import BidSelector

__all__ = [
    "BidSelector",
]
