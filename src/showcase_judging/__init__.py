"""Showcase Judging.

Judging groups, judge sessions, weighted criteria, scoring and result
rollups for a community app-showcase site.
"""

from showcase_judging.system import JudgingSystem, create_system

__version__ = "0.1.0"
__all__ = [
    "JudgingSystem",
    "__version__",
    "create_system",
]
