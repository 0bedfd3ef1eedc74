"""
URLMock httpx Transport

Routes httpx client requests into a RuleRegistry instead of the network.

Example:
    registry = RuleRegistry()
    registry.register(PatternMatchingMockRequest(
        '/users/:id', template_generator(MockResponder.json({'id': '{{id}}'}))
    ))

    transport = MockTransport(registry, strict=True)
    with httpx.Client(transport=transport, base_url='https://api.example.com') as client:
        assert client.get('/users/42').json() == {'id': '42'}
"""

import logging
import threading
from typing import Any, List

import httpx

from .errors import UnmockedRequestError
from .generator import MockErrorResponder, MockResponder
from .registry import RuleRegistry
from .request import MockRequest


logger = logging.getLogger("urlmock.mock.transport")


class MockTransport(httpx.AsyncBaseTransport, httpx.BaseTransport):
    """
    httpx transport (sync and async) answering from a RuleRegistry.

    Matched requests get the responder of the first matching rule:
    - MockResponder: converted to an httpx.Response
    - MockErrorResponder: raises httpx.ConnectError

    Unmatched requests raise UnmockedRequestError in strict mode, otherwise
    they receive a JSON fallback response.
    """

    def __init__(
        self,
        registry: RuleRegistry,
        strict: bool = False,
        fallback_status: int = 404
    ):
        """
        Initialize transport.

        Args:
            registry: Rules to answer from
            strict: Raise for requests no rule matches
            fallback_status: Status of the fallback response in non-strict mode
        """
        self.registry = registry
        self.strict = strict
        self.fallback_status = fallback_status

        self._lock = threading.Lock()
        self.serviced_requests: List[MockRequest] = []
        self.unmatched_requests: List[MockRequest] = []

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        request.read()
        return self._dispatch(request)

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        await request.aread()
        return self._dispatch(request)

    def reset(self):
        """Forget serviced and unmatched requests."""
        with self._lock:
            self.serviced_requests.clear()
            self.unmatched_requests.clear()

    def _dispatch(self, request: httpx.Request) -> httpx.Response:
        mock_request = MockRequest.from_httpx(request)
        result = self.registry.responder_for_request(mock_request)

        if result is None:
            with self._lock:
                self.unmatched_requests.append(mock_request)
            logger.warning(f"No mock rule matched {mock_request.method} {mock_request.url}")

            if self.strict:
                raise UnmockedRequestError(mock_request.method, mock_request.url)

            return httpx.Response(
                self.fallback_status,
                json={
                    'error': 'No matching mock rule',
                    'method': mock_request.method,
                    'url': mock_request.url
                },
                request=request
            )

        with self._lock:
            self.serviced_requests.append(mock_request)

        return self._create_response(result.responder, request)

    def _create_response(self, responder: Any, request: httpx.Request) -> httpx.Response:
        if isinstance(responder, MockErrorResponder):
            raise httpx.ConnectError(responder.message, request=request)

        if isinstance(responder, MockResponder):
            return httpx.Response(
                responder.status_code,
                headers=responder.headers,
                content=responder.body_bytes(),
                request=request
            )

        raise TypeError(f"Unsupported responder type for httpx transport: {type(responder).__name__}")
