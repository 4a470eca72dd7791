"""
Module: bid_kernel.models.snapshots
Responsibility: Conversion of ORM rows into the frozen DTOs of
    domain/dtos.py.  Shared by services (write results) and selectors (reads)
    so that both hand callers the same snapshots.
Architecture position: Kernel > Models.  May import from domain/dtos.py.
"""

from dataclasses import fields
from typing import Any, TypeVar

from bid_kernel.domain.dtos import (
    BidInfo,
    BidJobType,
    BidPriority,
    BidStatus,
    FinancialBreakdownInfo,
    HistoryEntryInfo,
    LaborLineInfo,
    MaterialLineInfo,
    OperatingExpenseInfo,
    TimelineEventInfo,
    TravelLineInfo,
)
from bid_kernel.models.bid import Bid
from bid_kernel.models.cost_lines import LaborLine, MaterialLine, TravelLine
from bid_kernel.models.financial import FinancialBreakdown, OperatingExpenseConfig
from bid_kernel.models.timeline import BidHistoryEntry, BidTimelineEvent

DTO = TypeVar("DTO")


def _copy_columns(dto_cls: type[DTO], row: Any, **overrides: Any) -> DTO:
    values = {
        f.name: overrides[f.name] if f.name in overrides else getattr(row, f.name)
        for f in fields(dto_cls)
    }
    return dto_cls(**values)


def bid_to_dto(bid: Bid) -> BidInfo:
    return _copy_columns(
        BidInfo,
        bid,
        job_type=BidJobType(bid.job_type),
        status=BidStatus(bid.status),
        priority=BidPriority(bid.priority),
    )


def breakdown_to_dto(breakdown: FinancialBreakdown) -> FinancialBreakdownInfo:
    return _copy_columns(FinancialBreakdownInfo, breakdown)


def operating_expense_to_dto(config: OperatingExpenseConfig) -> OperatingExpenseInfo:
    return _copy_columns(OperatingExpenseInfo, config)


def material_to_dto(line: MaterialLine) -> MaterialLineInfo:
    return _copy_columns(MaterialLineInfo, line)


def labor_to_dto(line: LaborLine) -> LaborLineInfo:
    return _copy_columns(LaborLineInfo, line)


def travel_to_dto(line: TravelLine) -> TravelLineInfo:
    return _copy_columns(TravelLineInfo, line)


def timeline_event_to_dto(event: BidTimelineEvent) -> TimelineEventInfo:
    return _copy_columns(TimelineEventInfo, event)


def history_entry_to_dto(entry: BidHistoryEntry) -> HistoryEntryInfo:
    return _copy_columns(HistoryEntryInfo, entry)
