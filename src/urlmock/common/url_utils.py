"""
URLMock URL Utilities

Shared URL parsing used by the pattern compiler and the match evaluator, so
patterns and requests are always split the same way.
"""

from urllib.parse import urlsplit, parse_qs
from typing import Any, Dict, List, Optional


class URLPath:
    """Extracts and splits the part of a URL that participates in matching."""

    @staticmethod
    def as_text(url: Any) -> Optional[str]:
        """
        Convert a URL value to text.

        Bytes are decoded as UTF-8 (undecodable bytes replaced); other
        objects go through str().

        Returns:
            URL text, or None for a missing URL
        """
        if url is None:
            return None
        if isinstance(url, (bytes, bytearray)):
            return bytes(url).decode('utf-8', errors='replace')
        return str(url)

    @staticmethod
    def extract_path(url: Any) -> str:
        """
        Extract the path component of a URL.

        Scheme, host, query string and fragment are dropped. The path is
        returned as-is, without percent-decoding.

        Args:
            url: Absolute URL, bare path, bytes, or an object whose str() is one

        Returns:
            Path string (empty for a missing or unparseable URL)
        """
        text = URLPath.as_text(url)
        if text is None:
            return ''
        try:
            return urlsplit(text).path
        except ValueError:
            return ''

    @staticmethod
    def split_path(path: str) -> List[str]:
        """
        Split a path on '/' and drop the empty segments produced by leading
        and trailing slashes.

        Args:
            path: URL path

        Returns:
            List of raw path segments
        """
        segments = path.split('/')

        start, end = 0, len(segments)
        while start < end and not segments[start]:
            start += 1
        while end > start and not segments[end - 1]:
            end -= 1

        return segments[start:end]

    @staticmethod
    def path_segments(url: Any) -> List[str]:
        """
        Get the matchable path segments of a URL.

        Args:
            url: Absolute URL or path

        Returns:
            List of raw path segments
        """
        return URLPath.split_path(URLPath.extract_path(url))

    @staticmethod
    def extract_query(url: Any) -> str:
        """Raw query string of a URL (empty for a missing or unparseable URL)."""
        text = URLPath.as_text(url)
        if text is None:
            return ''
        try:
            return urlsplit(text).query
        except ValueError:
            return ''

    @staticmethod
    def parse_query(url: Any) -> Dict[str, List[str]]:
        """
        Parse the query string of a URL.

        Matching never looks at the query; this is for predicates and
        responder generation functions.

        Args:
            url: Absolute URL or path

        Returns:
            Dict mapping parameter names to lists of values (empty for a
            missing or unparseable URL)
        """
        query = URLPath.extract_query(url)
        if not query:
            return {}
        return parse_qs(query, keep_blank_values=True)
