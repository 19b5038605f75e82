"""
Core modules for the usage ledger.

This package contains the ledger itself, the derived analytics views,
and export formatting.
"""

from .ledger import UsageLedger

__all__ = ["UsageLedger"]
