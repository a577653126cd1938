"""
Expense Tracker - Source Package

The recurring-expense engine and storage layer of a personal expense
tracker: recurring templates are turned into dated expenses on demand,
and every change to the stored collections is auditable.

DESIGN PRINCIPLES:
1. The recurrence engine is pure: data in, delta out
2. Re-running generation never duplicates or loses occurrences
3. No silent corrections
4. Every change must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Expense Tracker Team"
