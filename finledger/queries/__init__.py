"""Read-only reports package."""

from finledger.queries.executor import ReportExecutor

__all__ = ["ReportExecutor"]
