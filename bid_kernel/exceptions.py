"""
Typed Exception Hierarchy for the Bid Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (routing/controller layers, the expiration sweep, tests) must be
able to tell a user-correctable input problem from a missing record or a
broken reference without parsing message strings:
  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (the offending field, the id, ...)

Example:
    try:
        bid_service.update_bid(bid_id, organization_id, {"end_date": ...})
    except InvalidEndDateError as e:
        api_response(code=e.code, field=e.field, reason=e.reason)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    BidEngineError (base)
    |
    +-- ValidationError
    |   +-- InvalidEndDateError
    |   +-- MalformedNumberError
    |   +-- UnknownFieldError
    |   +-- MissingReferenceError
    |   +-- InvalidJobTypeError
    |   +-- InvalidBidStatusError
    |   +-- NegativeDirectCostError
    |   +-- LaborTravelMismatchError
    |
    +-- NotFoundError
    |   +-- BidNotFoundError
    |   +-- CostLineNotFoundError
    |
    +-- ReferentialIntegrityError
    |   +-- EmployeeNotFoundError
    |
    +-- SequenceError
        +-- CounterUnavailableError
        +-- DuplicateBidNumberError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                   | When Raised
----------------|------------------------|----------------------------------------
Validation      | INVALID_END_DATE       | endDate before the bid's creation date
                | MALFORMED_NUMBER       | Numeric string cannot be parsed
                | UNKNOWN_FIELD          | Update names a field the entity lacks
                | MISSING_REFERENCE      | Required reference absent (org, job)
                | INVALID_JOB_TYPE       | Job type outside the fixed enumeration
                | INVALID_BID_STATUS     | Status outside the fixed enumeration
                | NEGATIVE_DIRECT_COST   | Overhead enabled with direct cost < 0
                | LABOR_TRAVEL_MISMATCH  | Bulk create with unequal list lengths
----------------|------------------------|----------------------------------------
Not found       | BID_NOT_FOUND          | Bid id unknown or soft-deleted
                | COST_LINE_NOT_FOUND    | Material/labor/travel line unknown
----------------|------------------------|----------------------------------------
Referential     | EMPLOYEE_NOT_FOUND     | Supervisor/technician does not exist
----------------|------------------------|----------------------------------------
Sequence        | COUNTER_UNAVAILABLE    | Atomic counter primitive unavailable
                | DUPLICATE_BID_NUMBER   | Bid number collided (fallback race)

===============================================================================
HANDLING PATTERNS
===============================================================================

1. Validation and referential errors are surfaced to the caller as-is;
   they are never retried.

2. CounterUnavailableError is consumed by SequenceGenerator, which drops
   to the degraded fallback path and logs it.  Callers normally never see
   it.

3. DuplicateBidNumberError means the fallback path raced another writer.
   The create can be retried once the atomic counter is back.
"""


class BidEngineError(Exception):
    """
    Base exception for all bid kernel errors.

    All subclasses have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "BID_ENGINE_ERROR"


# Validation exceptions


class ValidationError(BidEngineError):
    """User-correctable input problem, identified by field."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


class InvalidEndDateError(ValidationError):
    """End date falls before the bid's creation date."""

    code: str = "INVALID_END_DATE"

    def __init__(self, end_date: str, created_date: str):
        self.end_date = end_date
        self.created_date = created_date
        super().__init__(
            "end_date",
            f"{end_date} is before created date {created_date}; "
            "it must be the same date or a future date",
        )


class MalformedNumberError(ValidationError):
    """A numeric input could not be parsed."""

    code: str = "MALFORMED_NUMBER"

    def __init__(self, field: str, value: str):
        self.value = value
        super().__init__(field, f"'{value}' is not a valid number")


class UnknownFieldError(ValidationError):
    """An update named a field the entity does not have."""

    code: str = "UNKNOWN_FIELD"

    def __init__(self, entity: str, field: str):
        self.entity = entity
        super().__init__(field, f"not a writable field of {entity}")


class MissingReferenceError(ValidationError):
    """A required reference (organization, bid, labor line) is absent."""

    code: str = "MISSING_REFERENCE"

    def __init__(self, field: str):
        super().__init__(field, "is required")


class InvalidJobTypeError(ValidationError):
    """Job type is not one of the fixed enumeration."""

    code: str = "INVALID_JOB_TYPE"

    def __init__(self, job_type: str):
        self.job_type = job_type
        super().__init__("job_type", f"'{job_type}' is not a known job type")


class InvalidBidStatusError(ValidationError):
    """Status is not one of the fixed enumeration."""

    code: str = "INVALID_BID_STATUS"

    def __init__(self, status: str):
        self.status = status
        super().__init__("status", f"'{status}' is not a known bid status")


class NegativeDirectCostError(ValidationError):
    """Operating expenses are enabled but the direct cost is negative."""

    code: str = "NEGATIVE_DIRECT_COST"

    def __init__(self, bid_id: str, direct_cost: str):
        self.bid_id = bid_id
        self.direct_cost = direct_cost
        super().__init__(
            "total_cost",
            f"direct cost {direct_cost} of bid {bid_id} is negative",
        )


class LaborTravelMismatchError(ValidationError):
    """Bulk create received a different number of labor and travel entries."""

    code: str = "LABOR_TRAVEL_MISMATCH"

    def __init__(self, labor_count: int, travel_count: int):
        self.labor_count = labor_count
        self.travel_count = travel_count
        super().__init__(
            "travel_entries",
            f"{labor_count} labor entries but {travel_count} travel entries",
        )


# Not-found exceptions


class NotFoundError(BidEngineError):
    """Base exception for missing records."""

    code: str = "NOT_FOUND"


class BidNotFoundError(NotFoundError):
    """Bid with given ID was not found (or is soft-deleted)."""

    code: str = "BID_NOT_FOUND"

    def __init__(self, bid_id: str):
        self.bid_id = bid_id
        super().__init__(f"Bid not found: {bid_id}")


class CostLineNotFoundError(NotFoundError):
    """Material, labor, or travel line was not found."""

    code: str = "COST_LINE_NOT_FOUND"

    def __init__(self, line_kind: str, line_id: str):
        self.line_kind = line_kind
        self.line_id = line_id
        super().__init__(f"{line_kind} line not found: {line_id}")


# Referential integrity exceptions


class ReferentialIntegrityError(BidEngineError):
    """Base exception for references that do not resolve."""

    code: str = "REFERENTIAL_INTEGRITY"


class EmployeeNotFoundError(ReferentialIntegrityError):
    """Supervisor or primary technician does not resolve to an employee."""

    code: str = "EMPLOYEE_NOT_FOUND"

    def __init__(self, role: str, employee_id: int):
        self.role = role
        self.employee_id = employee_id
        super().__init__(f"{role} with ID {employee_id} does not exist")


# Sequence exceptions


class SequenceError(BidEngineError):
    """Base exception for sequence number allocation."""

    code: str = "SEQUENCE_ERROR"


class CounterUnavailableError(SequenceError):
    """The atomic counter primitive could not be used."""

    code: str = "COUNTER_UNAVAILABLE"

    def __init__(self, counter_name: str, reason: str):
        self.counter_name = counter_name
        self.reason = reason
        super().__init__(f"Counter '{counter_name}' unavailable: {reason}")


class DuplicateBidNumberError(SequenceError):
    """A bid number collided with an existing one for the organization."""

    code: str = "DUPLICATE_BID_NUMBER"

    def __init__(self, organization_id: str, bid_number: str):
        self.organization_id = organization_id
        self.bid_number = bid_number
        super().__init__(
            f"Bid number {bid_number} already exists for organization {organization_id}"
        )
