"""
Closure execution: ClosureOrder list -> broker close calls, aggregate failure reporting.
"""

from execution.closure_executor import ClosureBatchError, ClosureExecutor, ClosureFailure

__all__ = ["ClosureBatchError", "ClosureExecutor", "ClosureFailure"]
