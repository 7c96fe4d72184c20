"""Validation package."""

from finledger.validation.validator import EntryValidator

__all__ = ["EntryValidator"]
