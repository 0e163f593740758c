"""
Utility helpers: the research cache and small text helpers.
"""

from utils.cache import ResearchCache
from utils.helpers import normalize_package_name, truncate

__all__ = [
    "ResearchCache",
    "normalize_package_name",
    "truncate",
]
