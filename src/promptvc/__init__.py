"""
promptvc - Version control and A/B testing for LLM prompts.

Commit prompts, compare versions, keep the numbers.
"""

from promptvc.engine import RunnerOptions, TestRunner, render_template
from promptvc.repository import Repository
from promptvc.stats import compare_versions, t_test

__version__ = "0.2.0"
__all__ = [
    "Repository",
    "RunnerOptions",
    "TestRunner",
    "__version__",
    "compare_versions",
    "render_template",
    "t_test",
]
