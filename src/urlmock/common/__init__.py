"""
URLMock Common Utilities

Shared utilities and helpers used across URLMock modules.
"""

from .url_utils import URLPath

__all__ = [
    'URLPath'
]
