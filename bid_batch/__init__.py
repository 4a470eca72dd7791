"""
bid_batch -- Batch processing for the bid engine.

Provides a batch executor with per-item SAVEPOINT isolation and the
expiration sweep that moves stale bids to EXPIRED.

Architecture:
    bid_batch/ is a top-level package.  Nothing in bid_kernel imports from
    bid_batch.

Invariants:
    - SAVEPOINT isolation per item: one failing bid never aborts the sweep.
    - Clock injection: "today" comes from the injected Clock.
    - Items run one at a time; there is no concurrency within a run.
"""
