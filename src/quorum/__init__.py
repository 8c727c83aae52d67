"""
quorum - Repeated remote test runs, reduced to a consensus.

Dispatch, correlate callbacks, retry failures, flag outliers.
"""

from quorum.consensus import compute_consensus
from quorum.correlation import make_key
from quorum.models.results import ComparisonResult, RunResult, TestCombination

__version__ = "0.1.0"
__all__ = [
    "ComparisonResult",
    "RunResult",
    "TestCombination",
    "__version__",
    "compute_consensus",
    "make_key",
]
