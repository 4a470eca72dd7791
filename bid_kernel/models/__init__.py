"""ORM models for bids and their financial components."""

from bid_kernel.models.bid import Bid
from bid_kernel.models.cost_lines import LaborLine, MaterialLine, TravelLine
from bid_kernel.models.financial import FinancialBreakdown, OperatingExpenseConfig
from bid_kernel.models.timeline import BidHistoryEntry, BidTimelineEvent

__all__ = [
    "Bid",
    "FinancialBreakdown",
    "OperatingExpenseConfig",
    "MaterialLine",
    "LaborLine",
    "TravelLine",
    "BidTimelineEvent",
    "BidHistoryEntry",
]
