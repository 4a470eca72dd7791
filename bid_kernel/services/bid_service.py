"""
BidService -- bid lifecycle: create, edit, soft-delete, expire.

Responsibility:
    Validates and writes the Bid aggregate root.  On create it allocates the
    bid number, seeds the zeroed financial breakdown and operating-expense
    rows, and records the creation milestones, all in one SAVEPOINT.

Architecture position:
    Kernel > Services -- imperative shell.
    Uses SequenceGenerator for numbering, TimelineService for milestones and
    history, and the injected EmployeeDirectory for reference checks.

Invariants enforced:
    - end_date >= creation date (same day allowed).  On update the check
      is made against the bid's original creation date, not the time of
      the edit.
    - Supervisor / primary technician ids resolve to existing employees
      before any row is written.
    - bid_number, bid_amount and organization_id are never writable by
      callers; bid_amount belongs to RecalculationService.
    - A failed create leaves no rows behind.

Failure modes:
    - MissingReferenceError: no organization or job type.
    - InvalidJobTypeError / InvalidBidStatusError / ValidationError: bad
      enumerated values or malformed fields.
    - UnknownFieldError: a field the bid does not have (or may not write).
    - EmployeeNotFoundError: dangling employee reference.
    - InvalidEndDateError: end date before the creation date.
    - DuplicateBidNumberError: the allocated number already exists (only
      reachable through the degraded fallback).
    - BidNotFoundError: unknown or deleted bid.
"""

from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Any, Mapping
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from bid_kernel.domain.clock import Clock, SystemClock
from bid_kernel.domain.collaborators import EmployeeDirectory
from bid_kernel.domain.dtos import BidInfo, BidJobType, BidPriority, BidStatus
from bid_kernel.exceptions import (
    BidNotFoundError,
    DuplicateBidNumberError,
    EmployeeNotFoundError,
    InvalidBidStatusError,
    InvalidEndDateError,
    InvalidJobTypeError,
    MissingReferenceError,
    UnknownFieldError,
    ValidationError,
)
from bid_kernel.logging_config import LogContext, get_logger
from bid_kernel.models.bid import Bid
from bid_kernel.models.cost_lines import LaborLine, MaterialLine, TravelLine
from bid_kernel.models.financial import FinancialBreakdown, OperatingExpenseConfig
from bid_kernel.models.snapshots import bid_to_dto
from bid_kernel.services.base import BaseService
from bid_kernel.services.field_coercion import coerce_fields
from bid_kernel.services.sequence_service import DatabaseCounterProvider, SequenceGenerator
from bid_kernel.services.timeline_service import STATUS_CHANGED, TimelineService

logger = get_logger("services.bid")

# Fields callers may set on create and update
BID_WRITABLE_FIELDS: frozenset[str] = frozenset({
    "title",
    "job_type",
    "status",
    "priority",
    "project_name",
    "site_address",
    "scope_of_work",
    "description",
    "end_date",
    "planned_start_date",
    "estimated_completion",
    "estimated_duration",
    "profit_margin",
    "supervisor_manager_id",
    "primary_technician_id",
    "assigned_to",
})

EXPIRED_DESCRIPTION = "Bid automatically expired (end date passed)"

# (field, role name used in the error message)
_EMPLOYEE_REFERENCES = (
    ("supervisor_manager_id", "Supervisor manager"),
    ("primary_technician_id", "Primary technician"),
)


def _enum_member(enum_cls: type[Enum], value: Any, error: Exception) -> Enum:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        raise error from None


class BidService(BaseService[Bid]):
    """
    Write side of the Bid aggregate.

    Contract:
        Public methods return frozen ``BidInfo`` snapshots and flush within
        the caller's transaction.

    Non-goals:
        - Does NOT call ``session.commit()``.
        - Does NOT enforce an order on status transitions; only the
          automatic expiration is driven from here.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        employee_directory: EmployeeDirectory | None = None,
        sequence_generator: SequenceGenerator | None = None,
        timeline: TimelineService | None = None,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._employees = employee_directory
        self._sequence = sequence_generator or SequenceGenerator(
            session, DatabaseCounterProvider(session), clock=self._clock
        )
        self._timeline = timeline or TimelineService(session, clock=self._clock)

    # =========================================================================
    # Create
    # =========================================================================

    def create_bid(
        self,
        organization_id: UUID | None,
        actor_id: UUID,
        title: str,
        job_type: str | BidJobType | None,
        values: Mapping[str, Any] | None = None,
    ) -> BidInfo:
        """
        Create a bid with its financial rows and milestones.

        Args:
            organization_id: Owning organization (required).
            actor_id: Creating user.
            title: Bid title.
            job_type: One of BidJobType (required).
            values: Optional further fields from BID_WRITABLE_FIELDS.

        Returns:
            BidInfo of the new bid.
        """
        if organization_id is None:
            raise MissingReferenceError("organization_id")
        if job_type is None or (isinstance(job_type, str) and not job_type.strip()):
            raise MissingReferenceError("job_type")

        fields = self._validated_fields(dict(values or {}))
        fields["title"] = title
        fields["job_type"] = _enum_member(
            BidJobType, job_type, InvalidJobTypeError(str(job_type))
        ).value
        fields.setdefault("status", BidStatus.DRAFT.value)
        fields.setdefault("priority", BidPriority.MEDIUM.value)

        created_at = self._clock.now()
        self._check_employees(fields)
        self._check_end_date(fields.get("end_date"), created_at.date())

        with LogContext.bind(organization_id=str(organization_id)):
            with self.session.begin_nested():
                bid_number = self._sequence.next_number(organization_id)
                bid = Bid(
                    organization_id=organization_id,
                    bid_number=bid_number,
                    created_at=created_at,
                    created_by_id=actor_id,
                    **fields,
                )
                self.session.add(bid)
                try:
                    self.session.flush()
                except IntegrityError as exc:
                    raise DuplicateBidNumberError(
                        str(organization_id), bid_number
                    ) from exc

                self.session.add_all([
                    FinancialBreakdown(
                        bid_id=bid.id, created_at=created_at, created_by_id=actor_id
                    ),
                    OperatingExpenseConfig(
                        bid_id=bid.id, created_at=created_at, created_by_id=actor_id
                    ),
                ])
                self.session.flush()
                self._timeline.record_creation_milestones(bid, actor_id)

            logger.info(
                "bid_created",
                extra={
                    "bid_id": str(bid.id),
                    "bid_number": bid.bid_number,
                    "job_type": bid.job_type,
                    "status": bid.status,
                },
            )
        return bid_to_dto(bid)

    # =========================================================================
    # Update
    # =========================================================================

    def update_bid(
        self,
        bid_id: UUID,
        organization_id: UUID,
        changes: Mapping[str, Any],
        actor_id: UUID,
    ) -> BidInfo:
        """
        Apply a partial update to a bid.

        A status change appends a ``status_changed`` history entry.

        Raises:
            InvalidEndDateError: If end_date falls before the bid's original
                creation date.
        """
        bid = self._live_bid(bid_id, organization_id)
        fields = self._validated_fields(dict(changes))
        if "job_type" in fields:
            fields["job_type"] = _enum_member(
                BidJobType, fields["job_type"], InvalidJobTypeError(str(fields["job_type"]))
            ).value
        if "title" in fields and fields["title"] is None:
            raise ValidationError("title", "cannot be null")

        self._check_employees(fields)
        if "end_date" in fields:
            self._check_end_date(fields["end_date"], bid.created_date)

        old_status = bid.status
        with LogContext.bind(bid_id=str(bid.id), organization_id=str(organization_id)):
            with self.session.begin_nested():
                for name, value in fields.items():
                    setattr(bid, name, value)
                bid.updated_by_id = actor_id
                self.session.flush()
                if "status" in fields and fields["status"] != old_status:
                    self._timeline.record_history(
                        bid,
                        STATUS_CHANGED,
                        performed_by_id=actor_id,
                        old_value=old_status,
                        new_value=fields["status"],
                        description=f"Status changed from {old_status} to {fields['status']}",
                    )
            logger.info("bid_updated", extra={"fields": sorted(fields)})
        return bid_to_dto(bid)

    # =========================================================================
    # Delete / expire
    # =========================================================================

    def delete_bid(self, bid_id: UUID, organization_id: UUID, actor_id: UUID) -> None:
        """Soft-delete a bid together with its financial rows and cost lines."""
        bid = self._live_bid(bid_id, organization_id)
        now = self._clock.now()

        with LogContext.bind(bid_id=str(bid.id), organization_id=str(organization_id)):
            with self.session.begin_nested():
                bid.is_deleted = True
                bid.deleted_at = now
                bid.updated_by_id = actor_id

                labor_ids = select(LaborLine.id).where(LaborLine.bid_id == bid.id)
                for model, criterion in (
                    (TravelLine, TravelLine.bid_labor_id.in_(labor_ids)),
                    (LaborLine, LaborLine.bid_id == bid.id),
                    (MaterialLine, MaterialLine.bid_id == bid.id),
                    (FinancialBreakdown, FinancialBreakdown.bid_id == bid.id),
                    (OperatingExpenseConfig, OperatingExpenseConfig.bid_id == bid.id),
                ):
                    self.session.execute(
                        update(model)
                        .where(criterion, model.is_deleted.is_(False))
                        .values(is_deleted=True, updated_by_id=actor_id)
                        .execution_options(synchronize_session="fetch")
                    )
                self.session.flush()
            logger.info("bid_deleted")

    def expire_bid(self, bid_id: UUID, system_actor_id: UUID) -> BidInfo:
        """
        Move a bid to EXPIRED and record the change as the system actor.

        Used by the expiration sweep; the caller selects which bids qualify.
        """
        bid = self.session.execute(
            select(Bid).where(Bid.id == bid_id, Bid.is_deleted.is_(False))
        ).scalar_one_or_none()
        if bid is None:
            raise BidNotFoundError(str(bid_id))

        old_status = bid.status
        with LogContext.bind(bid_id=str(bid.id), organization_id=str(bid.organization_id)):
            with self.session.begin_nested():
                bid.status = BidStatus.EXPIRED.value
                bid.updated_by_id = system_actor_id
                self.session.flush()
                self._timeline.record_history(
                    bid,
                    STATUS_CHANGED,
                    performed_by_id=system_actor_id,
                    old_value=old_status,
                    new_value=BidStatus.EXPIRED.value,
                    description=EXPIRED_DESCRIPTION,
                )
            logger.info(
                "bid_expired",
                extra={"old_status": old_status, "end_date": str(bid.end_date)},
            )
        return bid_to_dto(bid)

    # =========================================================================
    # Validation helpers
    # =========================================================================

    def _live_bid(self, bid_id: UUID, organization_id: UUID) -> Bid:
        bid = self.session.execute(
            select(Bid).where(
                Bid.id == bid_id,
                Bid.organization_id == organization_id,
                Bid.is_deleted.is_(False),
            )
        ).scalar_one_or_none()
        if bid is None:
            raise BidNotFoundError(str(bid_id))
        return bid

    @staticmethod
    def _validated_fields(values: dict[str, Any]) -> dict[str, Any]:
        for name in values:
            if name not in BID_WRITABLE_FIELDS:
                raise UnknownFieldError("bid", name)

        for name in ("status", "priority", "job_type"):
            if name in values and values[name] is None:
                raise ValidationError(name, "cannot be null")

        status = values.pop("status", None)
        priority = values.pop("priority", None)
        job_type = values.pop("job_type", None)

        fields = coerce_fields(Bid, "bid", values)
        if status is not None:
            fields["status"] = _enum_member(
                BidStatus, status, InvalidBidStatusError(str(status))
            ).value
        if priority is not None:
            fields["priority"] = _enum_member(
                BidPriority,
                priority,
                ValidationError("priority", f"'{priority}' is not a known priority"),
            ).value
        if job_type is not None:
            fields["job_type"] = job_type
        return fields

    def _check_employees(self, fields: Mapping[str, Any]) -> None:
        for field, role in _EMPLOYEE_REFERENCES:
            employee_id = fields.get(field)
            if employee_id is None:
                continue
            if self._employees is None or not self._employees.employee_exists(employee_id):
                raise EmployeeNotFoundError(role, employee_id)

    @staticmethod
    def _check_end_date(end_date: date | None, created_date: date) -> None:
        if end_date is not None and end_date < created_date:
            raise InvalidEndDateError(end_date.isoformat(), created_date.isoformat())
