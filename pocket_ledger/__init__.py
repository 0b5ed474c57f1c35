"""
Pocket Ledger - Source Package

A personal multi-currency ledger. Users record income, expense, transfer
and adjustment events against a handful of accounts; everything else
(balances, net worth, trends, statistics) is derived from that log.

DESIGN PRINCIPLES:
1. The transaction log is the only source of truth
2. Derived values are recomputed, never stored
3. Engines are pure functions of (log, config)
4. Bad rows are skipped and counted, never silently repaired
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Pocket Ledger Team"
