"""
Error types raised while replaying a snapshot traversal.
"""


class ScopeStackError(RuntimeError):
    """Raised when the traversal leaves a scope that was never entered."""


class TruncatedSnapshotError(EOFError):
    """Raised by a walker when the snapshot ends before the traversal completes."""
