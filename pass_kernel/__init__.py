"""
Pass Kernel - visitor vehicle pass allowance and eligibility engine.

A ledger of time-limited visitor passes with:
- Monthly free-pass allowance per unit, paid overflow
- Party days that make every pass for a unit free for one day
- At most one active pass per vehicle, enforced at the storage layer
- One-way payment status transitions for admins
"""

__version__ = "0.1.0"
