"""
URLMock Errors

Exception hierarchy shared by the pattern compiler, mock rules, registry and
adapters.
"""


class URLMockError(Exception):
    """Base class for all URLMock errors."""


class MalformedPatternError(URLMockError, ValueError):
    """URL pattern is empty, has an unnamed capture, or repeats a capture name."""

    def __init__(self, pattern, message: str):
        self.pattern = pattern
        super().__init__(f"Malformed URL pattern {pattern!r}: {message}")


class ConfigurationError(URLMockError, ValueError):
    """A mock rule or rule file is missing required pieces or is invalid."""


class ContractViolation(URLMockError, AssertionError):
    """
    A responder generation function returned None for a committed match.

    This is a programming error in the generation function. It is never
    reported as a non-match.
    """

    def __init__(self, url_pattern: str, request_url: str = ""):
        self.url_pattern = url_pattern
        self.request_url = request_url
        super().__init__(
            f"Responder generation function for pattern {url_pattern!r} "
            f"returned None for {request_url or 'request'}"
        )


class UnmockedRequestError(URLMockError):
    """No registered mock rule matched a request sent through a strict transport."""

    def __init__(self, method: str, url: str):
        self.method = method
        self.url = url
        super().__init__(f"No mock rule matches {method} {url}")
