"""
URLMock Request

Narrow request value handed to mock rules by the adapters. The matching core
only reads ``url`` and ``method``; headers and body are carried for
predicates and responder generation functions.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..common import URLPath


@dataclass(frozen=True)
class MockRequest:
    """An inbound request as seen by mock rules."""

    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b''

    @property
    def path(self) -> str:
        """Raw URL path (not percent-decoded)."""
        return URLPath.extract_path(self.url)

    @property
    def query(self) -> str:
        """Raw query string."""
        return URLPath.extract_query(self.url)

    @property
    def query_params(self) -> Dict[str, List[str]]:
        """Parsed query string."""
        return URLPath.parse_query(self.url)

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Case-insensitive header lookup."""
        name = name.lower()
        for key, value in self.headers.items():
            if key.lower() == name:
                return value
        return default

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'method': self.method,
            'url': self.url,
            'headers': dict(self.headers),
            'body': self.body.decode('utf-8', errors='replace')
        }

    @classmethod
    def from_httpx(cls, request: Any) -> 'MockRequest':
        """
        Build a MockRequest from an ``httpx.Request``.

        The request body must already be read.

        Args:
            request: httpx.Request

        Returns:
            MockRequest
        """
        return cls(
            method=request.method,
            url=str(request.url),
            headers=dict(request.headers),
            body=request.content
        )
