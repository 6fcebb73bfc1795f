"""
Market Kernel - admin approval engine for a social-engagement marketplace.

Moves balance requests, engagement orders and tasks through their
lifecycles with:
- Exactly-once transitions (compare-and-set status updates)
- A guarded user balance ledger that never goes negative
- Per-item isolation for bulk moderation
- An append-only admin activity log
"""

__version__ = "0.1.0"
