"""Services for the bid kernel (write side)."""

from bid_kernel.services.bid_service import BidService
from bid_kernel.services.cost_component_service import CostComponentService
from bid_kernel.services.recalculation_service import RecalculationService
from bid_kernel.services.sequence_service import (
    DatabaseCounterProvider,
    SequenceGenerator,
    SequenceService,
)
from bid_kernel.services.timeline_service import TimelineService

__all__ = [
    "BidService",
    "CostComponentService",
    "DatabaseCounterProvider",
    "RecalculationService",
    "SequenceGenerator",
    "SequenceService",
    "TimelineService",
]
