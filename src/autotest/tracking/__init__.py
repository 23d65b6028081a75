"""Per-folder baseline tracking."""

from autotest.tracking.tracker import ReadWriteLock, ResultTracker, coverage_diff, has_changes

__all__ = ["ReadWriteLock", "ResultTracker", "coverage_diff", "has_changes"]
