"""
Error types shared across BudgetWatch.
"""


class BudgetWatchError(Exception):
    """Base exception for BudgetWatch."""

    pass


class StoreError(BudgetWatchError):
    """Client store read or write failed."""

    pass


class CalendarError(BudgetWatchError):
    """Calendar event could not be created."""

    pass


class SyncError(BudgetWatchError):
    """Ads platform balance could not be fetched."""

    pass


class AnalysisError(BudgetWatchError):
    """Narrative summary could not be produced."""

    pass
