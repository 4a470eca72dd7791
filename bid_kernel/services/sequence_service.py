"""
SequenceService / SequenceGenerator -- collision-free bid numbers.

Responsibility:
    ``SequenceService`` hands out strictly increasing integers per
    (organization, counter name) from a dedicated counter table with
    row-level locking (``SELECT ... FOR UPDATE``).  ``SequenceGenerator``
    formats those integers as ``{PREFIX}-{year}-{n}`` and owns the degraded
    fallback used when the counter primitive is unavailable.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.
    Called by BidService during bid creation.

Invariants enforced:
    - The locked counter row is the source of truth for the next value.
      The aggregate-max-plus-one scan is used ONLY by the fallback path,
      which logs ``sequence_fallback_used`` at WARNING every time it runs.
    - Transactional: a counter increment is only visible after the caller's
      transaction commits.  Rollback returns the value.
    - Fallback duplicates cannot be stored silently: ``bids`` carries a
      UNIQUE (organization_id, bid_number) constraint.

Failure modes:
    - IntegrityError: concurrent counter creation race (handled via
      savepoint rollback and retry).
    - CounterUnavailableError: the counter primitive failed; consumed by
      SequenceGenerator, which switches to the fallback path.

Known limitation:
    The fallback scans existing numbers for the current year and adds one.
    Two concurrent callers on that path can compute the same number; the
    second insert then fails with DuplicateBidNumberError.
"""

from uuid import UUID

from sqlalchemy import BigInteger, String, UniqueConstraint, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Mapped, Session, mapped_column

from bid_kernel.db.base import Base, UUIDString
from bid_kernel.domain.bid_numbers import (
    DEFAULT_MIN_DIGITS,
    DEFAULT_PREFIX,
    format_bid_number,
    next_value_from_existing,
)
from bid_kernel.domain.clock import Clock, SystemClock
from bid_kernel.domain.collaborators import CounterProvider
from bid_kernel.exceptions import CounterUnavailableError
from bid_kernel.logging_config import get_logger
from bid_kernel.models.bid import Bid

logger = get_logger("services.sequence")

BID_NUMBER_COUNTER = "bid_number"


class SequenceCounter(Base):
    """
    Sequence counter table.

    Each row is a named counter for one organization with its current value.
    Row-level locking ensures monotonicity under concurrency.
    """

    __tablename__ = "sequence_counters"

    __table_args__ = (
        UniqueConstraint("organization_id", "name", name="uq_sequence_counter_org_name"),
    )

    organization_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    # Counter name (e.g., "bid_number")
    name: Mapped[str] = mapped_column(String(50), nullable=False)

    current_value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)


class SequenceService:
    """
    Service for generating transactional sequence numbers.

    Guarantees:
        - Strictly monotonic values per (organization, name) via a locked
          counter row.
        - ``SELECT ... FOR UPDATE`` serializes concurrent allocations.
        - Does NOT call ``session.commit()``.

    Usage:
        with session.begin():
            value = SequenceService(session).next_value(org_id, "bid_number")
    """

    def __init__(self, session: Session):
        self._session = session

    def _locked_counter(self, organization_id: UUID, name: str) -> SequenceCounter | None:
        return self._session.execute(
            select(SequenceCounter)
            .where(
                SequenceCounter.organization_id == organization_id,
                SequenceCounter.name == name,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def next_value(self, organization_id: UUID, name: str) -> int:
        """
        Get the next value for an organization's named counter.

        1. Locks the counter row (or creates it if missing)
        2. Increments the counter
        3. Returns the new value

        Returns:
            The next value (always > 0).
        """
        # expire_on_commit=False sessions may hold a stale counter
        self._session.expire_all()

        counter = self._locked_counter(organization_id, name)

        if counter is None:
            # First use of this counter.  Another transaction may create it
            # concurrently; the savepoint keeps the caller's work intact.
            savepoint = self._session.begin_nested()
            try:
                counter = SequenceCounter(
                    organization_id=organization_id, name=name, current_value=1
                )
                self._session.add(counter)
                self._session.flush()
                savepoint.commit()
                logger.debug(
                    "sequence_allocated",
                    extra={"sequence_name": name, "value": 1},
                )
                return 1
            except IntegrityError:
                logger.debug(
                    "sequence_counter_race_retry",
                    extra={"sequence_name": name},
                )
                savepoint.rollback()
                self._session.expire_all()
                counter = self._locked_counter(organization_id, name)
                if counter is None:
                    raise

        counter.current_value += 1
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": name, "value": counter.current_value},
        )
        return counter.current_value

    def current_value(self, organization_id: UUID, name: str) -> int | None:
        """Current value of a counter without incrementing, or None."""
        counter = self._session.execute(
            select(SequenceCounter).where(
                SequenceCounter.organization_id == organization_id,
                SequenceCounter.name == name,
            )
        ).scalar_one_or_none()

        return counter.current_value if counter else None

    def reset(self, organization_id: UUID, name: str, value: int = 0) -> None:
        """
        Reset a counter to a specific value.

        WARNING: Only for tests and data migrations.
        """
        counter = self._locked_counter(organization_id, name)

        if counter is None:
            counter = SequenceCounter(
                organization_id=organization_id, name=name, current_value=value
            )
            self._session.add(counter)
        else:
            counter.current_value = value

        self._session.flush()


class DatabaseCounterProvider:
    """CounterProvider backed by the locked ``sequence_counters`` row."""

    def __init__(self, session: Session):
        self._session = session
        self._sequences = SequenceService(session)

    def next_counter_value(self, organization_id: UUID, counter_name: str) -> int:
        try:
            with self._session.begin_nested():
                return self._sequences.next_value(organization_id, counter_name)
        except SQLAlchemyError as exc:
            raise CounterUnavailableError(counter_name, str(exc)) from exc


class SequenceGenerator:
    """
    Produces human-readable bid numbers.

    Contract:
        ``next_number(organization_id)`` never returns the same value twice
        for the same organization and counter while the atomic path is
        available.

    Guarantees:
        - Atomic path: one ``CounterProvider.next_counter_value`` call.
        - Fallback path (provider missing or raising CounterUnavailableError):
          max existing suffix for the current year plus one, logged at
          WARNING as unsafe under concurrency.
    """

    def __init__(
        self,
        session: Session,
        counter_provider: CounterProvider | None = None,
        clock: Clock | None = None,
        prefix: str = DEFAULT_PREFIX,
        counter_name: str = BID_NUMBER_COUNTER,
        min_digits: int = DEFAULT_MIN_DIGITS,
    ):
        self._session = session
        self._counter_provider = counter_provider
        self._clock = clock or SystemClock()
        self._prefix = prefix
        self._counter_name = counter_name
        self._min_digits = min_digits

    def next_number(self, organization_id: UUID, counter_name: str | None = None) -> str:
        """
        Allocate the next bid number for an organization.

        Args:
            organization_id: Owning organization.
            counter_name: Counter to draw from (defaults to the configured one).

        Returns:
            e.g. "BID-2025-0001".
        """
        name = counter_name or self._counter_name
        year = self._clock.today().year

        if self._counter_provider is None:
            value = self._fallback_value(organization_id, year, name, "no counter provider")
            path = "fallback"
        else:
            try:
                value = self._counter_provider.next_counter_value(organization_id, name)
                path = "atomic"
            except CounterUnavailableError as exc:
                value = self._fallback_value(organization_id, year, name, exc.reason)
                path = "fallback"

        bid_number = format_bid_number(value, year, self._prefix, self._min_digits)
        logger.info(
            "bid_number_allocated",
            extra={
                "organization_id": str(organization_id),
                "counter_name": name,
                "bid_number": bid_number,
                "allocation_path": path,
            },
        )
        return bid_number

    def _fallback_value(
        self, organization_id: UUID, year: int, counter_name: str, reason: str
    ) -> int:
        logger.warning(
            "sequence_fallback_used",
            extra={
                "organization_id": str(organization_id),
                "counter_name": counter_name,
                "reason": reason,
                "unsafe_under_concurrency": True,
            },
        )
        existing = self._session.execute(
            select(Bid.bid_number).where(
                Bid.organization_id == organization_id,
                Bid.bid_number.like(f"{self._prefix}-{year}-%"),
            )
        ).scalars()
        return next_value_from_existing(existing, year, self._prefix)
