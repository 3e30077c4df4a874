"""
Ledger Core - Source Package

The calculation core of a personal-finance ledger: recurring transaction
expansion, multi-currency normalization, monthly aggregation and budget
alerts.

DESIGN PRINCIPLES:
1. Pure functions over explicit state
2. Fail early, fail visibly
3. No silent corrections
4. Every step must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Ledger Core Team"
