"""
URLMock Pattern Matcher

Pattern-matching mock requests and the evaluator that decides whether one of
them applies to an inbound request.

A PatternMatchingMockRequest binds:
- a URL pattern (compiled once), e.g. /users/:id/posts/:post_id
- an optional set of HTTP methods
- an optional request-matching predicate
- a responder generation function

Evaluation runs these checks in order and stops at the first failure:
1. HTTP method (case-insensitive), when a method set is given
2. Path segment count
3. Literal segments (case-sensitive); captures record the raw segment
4. Request-matching predicate, when one is given
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, Iterable, Optional, Union

from ..common import URLPath
from .errors import ConfigurationError, ContractViolation
from .pattern import CompiledPattern, compile_pattern


RequestMatchingFunction = Callable[[Any], bool]
ResponderGenerationFunction = Callable[[Any, Dict[str, str]], Any]


@dataclass
class MatchResult:
    """Result of evaluating a mock rule against a request."""

    matched: bool
    parameters: Dict[str, str] = field(default_factory=dict)
    reason: str = ""

    def __bool__(self) -> bool:
        return self.matched

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'matched': self.matched,
            'parameters': dict(self.parameters),
            'reason': self.reason
        }


class PatternMatchingMockRequest:
    """
    Mock request that matches URL requests by URL pattern.

    Only the path of the request URL is compared with the pattern. Query
    parameters never take part; inspect them in a request matcher if needed.

    Example:
        rule = PatternMatchingMockRequest(
            '/users/:id',
            lambda request, params: MockResponder.json({'id': params['id']}),
            http_methods=['GET']
        )

        result = rule.evaluate(MockRequest('GET', 'https://api.example.com/users/42'))
        if result.matched:
            responder = rule.responder_for_request(request, result.parameters)
    """

    __slots__ = (
        '_url_pattern',
        '_compiled_pattern',
        '_http_methods',
        '_request_matcher',
        '_responder_generator'
    )

    def __init__(
        self,
        url_pattern: str,
        responder_generator: ResponderGenerationFunction,
        http_methods: Optional[Union[str, Iterable[str]]] = None,
        request_matcher: Optional[RequestMatchingFunction] = None
    ):
        """
        Initialize a pattern-matching mock request.

        Args:
            url_pattern: URL pattern; may not be None
            responder_generator: Called with (request, parameters) to build a
                responder; may not be None and must never return None
            http_methods: Methods to match; None matches any method
            request_matcher: Extra predicate run after the pattern checks

        Raises:
            ConfigurationError: If the pattern or generation function is
                missing, a callable is not callable, or http_methods is empty
            MalformedPatternError: If the pattern cannot be compiled
        """
        if url_pattern is None:
            raise ConfigurationError("URL pattern may not be None")
        if responder_generator is None:
            raise ConfigurationError("Responder generation function may not be None")
        if not callable(responder_generator):
            raise ConfigurationError("Responder generation function must be callable")
        if request_matcher is not None and not callable(request_matcher):
            raise ConfigurationError("Request matcher must be callable")

        self._url_pattern = url_pattern
        self._compiled_pattern = compile_pattern(url_pattern)
        self._http_methods = self._normalize_methods(http_methods)
        self._request_matcher = request_matcher
        self._responder_generator = responder_generator

    @classmethod
    def for_pattern(
        cls,
        url_pattern: str,
        responder_generator: ResponderGenerationFunction
    ) -> 'PatternMatchingMockRequest':
        """Create a mock request that matches any HTTP method."""
        return cls(url_pattern, responder_generator)

    @classmethod
    def with_methods(
        cls,
        url_pattern: str,
        http_methods: Union[str, Iterable[str]],
        responder_generator: ResponderGenerationFunction
    ) -> 'PatternMatchingMockRequest':
        """Create a mock request restricted to the given HTTP methods."""
        return cls(url_pattern, responder_generator, http_methods=http_methods)

    def with_request_matcher(
        self,
        request_matcher: Optional[RequestMatchingFunction]
    ) -> 'PatternMatchingMockRequest':
        """Return a copy of this mock request that uses another request matcher."""
        return PatternMatchingMockRequest(
            self._url_pattern,
            self._responder_generator,
            http_methods=self._http_methods,
            request_matcher=request_matcher
        )

    @staticmethod
    def _normalize_methods(
        http_methods: Optional[Union[str, Iterable[str]]]
    ) -> Optional[FrozenSet[str]]:
        if http_methods is None:
            return None
        if isinstance(http_methods, str):
            http_methods = [http_methods]

        methods = frozenset(m.upper() for m in http_methods)
        if not methods:
            raise ConfigurationError("HTTP methods may not be empty; use None to match any method")

        return methods

    @property
    def url_pattern(self) -> str:
        return self._url_pattern

    @property
    def compiled_pattern(self) -> CompiledPattern:
        return self._compiled_pattern

    @property
    def http_methods(self) -> Optional[FrozenSet[str]]:
        return self._http_methods

    @property
    def request_matcher(self) -> Optional[RequestMatchingFunction]:
        return self._request_matcher

    @property
    def responder_generator(self) -> ResponderGenerationFunction:
        return self._responder_generator

    def evaluate(self, request: Any) -> MatchResult:
        """
        Evaluate this mock request against an inbound request.

        Malformed request data (no method, no URL) fails the corresponding
        check instead of raising.

        Args:
            request: Object with ``url`` and ``method`` attributes

        Returns:
            MatchResult with the path parameters when matched
        """
        if self._http_methods is not None:
            method = getattr(request, 'method', None)
            if not isinstance(method, str) or method.upper() not in self._http_methods:
                return MatchResult(matched=False, reason=f"Method {method!r} not allowed")

        segments = URLPath.path_segments(getattr(request, 'url', None))
        if len(segments) != len(self._compiled_pattern):
            return MatchResult(
                matched=False,
                reason=f"Segment count {len(segments)} != {len(self._compiled_pattern)}"
            )

        parameters = self._compiled_pattern.bind(segments)
        if parameters is None:
            return MatchResult(matched=False, reason="Literal segment mismatch")

        if self._request_matcher is not None and not self._request_matcher(request):
            return MatchResult(matched=False, reason="Request matcher rejected request")

        return MatchResult(matched=True, parameters=parameters, reason="Pattern match")

    def matches(self, request: Any) -> bool:
        """Whether this mock request matches the request."""
        return self.evaluate(request).matched

    def responder_for_request(
        self,
        request: Any,
        parameters: Optional[Dict[str, str]] = None
    ) -> Any:
        """
        Generate the responder for a matched request.

        Args:
            request: The matched request
            parameters: Path parameters from evaluate(); computed if omitted

        Returns:
            Responder returned by the generation function

        Raises:
            ValueError: If parameters are omitted and the request does not match
            ContractViolation: If the generation function returns None
        """
        if parameters is None:
            result = self.evaluate(request)
            if not result.matched:
                raise ValueError(f"Request does not match {self!r}: {result.reason}")
            parameters = result.parameters

        responder = self._responder_generator(request, parameters)
        if responder is None:
            raise ContractViolation(self._url_pattern, str(getattr(request, 'url', '')))

        return responder

    def __repr__(self) -> str:
        methods = sorted(self._http_methods) if self._http_methods else 'ANY'
        return f"<PatternMatchingMockRequest {methods} {self._url_pattern}>"


def evaluate(rule: PatternMatchingMockRequest, request: Any) -> MatchResult:
    """
    Evaluate a mock rule against a request.

    Args:
        rule: Pattern-matching mock request
        request: Inbound request

    Returns:
        MatchResult
    """
    return rule.evaluate(request)
