"""
Bid Kernel - financial reconciliation engine for mechanical-services bids.

Computes, stores, and reconciles the cost and price of a bid from its
itemized components, with:
- Dual-track (initial / actual) values on every cost component
- Order-dependent propagation from the initial track to the actual track
- Operating-expense overhead and integer-dollar headline pricing
- Atomic, per-organization bid number allocation
- Automatic expiration of stale bids
"""

__version__ = "0.1.0"
