"""
Personal Finance Ledger - Source Package

A ledger for income, expense and transfer entries against accounts and
credit cards, with recurring series, card installments and monthly
category goals.

DESIGN PRINCIPLES:
1. Derived totals are always re-derivable from the entries
2. Reject before writing, never half-validate
3. Partial bulk writes are reported, never hidden
4. Every mutation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Personal Finance Ledger Team"
