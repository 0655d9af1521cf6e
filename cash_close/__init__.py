"""
Cash Close - Source Package

Daily cash-closing bookkeeping for a small restaurant: sales by channel,
staff payouts, customer debts, vendor pendencies and rider commissions.

DESIGN PRINCIPLES:
1. One record per calendar date, keyed by its date string
2. Every save leaves an audit entry behind
3. Unpaid staff obligations are never silently lost between days
4. Failures surface as operator messages, never as crashes
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Cash Close Team"
