"""
Gem Ledger - Source Package

Ledger reconciliation core for an inventory/accounting tool that keeps
every business record as an independent JSON blob in a flat key-value
store.

DESIGN PRINCIPLES:
1. The ledger is always re-derived, never persisted
2. One bad partition never hides the good ones
3. No silent corrections (currency fallbacks are flagged)
4. Every write to an owning entity is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Gem Ledger Team"
