"""
Ledger Kernel

The multi-vault cash ledger underneath the founder dashboard:
- Per-owner vault balances (business, personal, tax reserve)
- Append-only movement log with atomic balance adjustment
- Balance-vs-log reconciliation
"""

__version__ = "0.1.0"
