"""
Budget Tracker - Source Package

A personal budget engine: records income, expense and savings events,
aggregates them, normalizes recurring charges to a monthly cost, records
scheduled income exactly once per month, and projects a short cash-flow
trend.

DESIGN PRINCIPLES:
1. Amounts are magnitudes; direction comes from the entry kind
2. Engine functions are pure; "today" is always passed in
3. No silent corrections on import
4. Every state change is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Budget Tracker Team"
