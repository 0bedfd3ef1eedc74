"""
URLMock Pattern Compiler

Parses URL patterns such as ``http://api.example.com/users/:id/posts/:post_id``
into an immutable sequence of segment descriptors. Patterns are compiled once,
when a mock rule is built, and never re-parsed per request.

Only the path participates: scheme, host, query string and fragment are
dropped, so query parameter ordering can never change a match result.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple, Union
from urllib.parse import urlsplit

from ..common import URLPath
from .errors import MalformedPatternError


CAPTURE_PREFIX = ':'


@dataclass(frozen=True)
class Literal:
    """Segment that must equal the request segment exactly (case-sensitive)."""

    text: str


@dataclass(frozen=True)
class Capture:
    """Segment that matches any request segment and records it under a name."""

    name: str


Segment = Union[Literal, Capture]


@dataclass(frozen=True)
class CompiledPattern:
    """Parsed, immutable form of a URL pattern."""

    source: str
    segments: Tuple[Segment, ...]

    def __len__(self) -> int:
        return len(self.segments)

    @property
    def capture_names(self) -> Tuple[str, ...]:
        """Names of the capture segments, in pattern order."""
        return tuple(s.name for s in self.segments if isinstance(s, Capture))

    def bind(self, request_segments: Sequence[str]) -> Optional[Dict[str, str]]:
        """
        Walk the pattern and request segments together.

        Args:
            request_segments: Raw path segments of the request

        Returns:
            Parameter mapping if every segment matches, otherwise None
        """
        # Segment count is the fast rejection test
        if len(request_segments) != len(self.segments):
            return None

        parameters: Dict[str, str] = {}
        for descriptor, value in zip(self.segments, request_segments):
            if isinstance(descriptor, Capture):
                parameters[descriptor.name] = value
            elif descriptor.text != value:
                return None

        return parameters

    def __str__(self) -> str:
        return self.source


def compile_pattern(pattern: str) -> CompiledPattern:
    """
    Compile a URL pattern string.

    A segment starting with ':' becomes a named capture; every other segment
    is a literal.

    Args:
        pattern: URL pattern, e.g. '/users/:id' or 'https://host/users/:id'

    Returns:
        CompiledPattern

    Raises:
        MalformedPatternError: If the pattern is empty, has a capture with no
            name, uses the same capture name twice, or is not a parseable URL
    """
    if not pattern or not isinstance(pattern, str):
        raise MalformedPatternError(pattern, "pattern must be a non-empty string")

    try:
        urlsplit(pattern)
    except ValueError as e:
        raise MalformedPatternError(pattern, f"invalid URL ({e})") from e

    segments: List[Segment] = []
    seen = set()

    for text in URLPath.path_segments(pattern):
        if not text.startswith(CAPTURE_PREFIX):
            segments.append(Literal(text))
            continue

        name = text[len(CAPTURE_PREFIX):]
        if not name:
            raise MalformedPatternError(pattern, "capture segment has an empty name")
        if name in seen:
            raise MalformedPatternError(pattern, f"duplicate capture name '{name}'")

        seen.add(name)
        segments.append(Capture(name))

    return CompiledPattern(source=pattern, segments=tuple(segments))
