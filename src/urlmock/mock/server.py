"""
URLMock Mock Server

FastAPI-based HTTP mock server that answers requests from a RuleRegistry.

Features:
- Pattern-based request matching with path parameters
- Responses from responder generation functions
- Admin API for metrics, rules and recordings
- Request recording and logging
"""

from __future__ import annotations  # Enable forward references for type hints

import json
import logging
import time
from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any, Dict, List, Optional

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from .errors import ConfigurationError
from .generator import MockErrorResponder, MockResponder
from .registry import DispatchResult, RuleRegistry
from .request import MockRequest
from .rules_config import RuleSet


@dataclass
class MockConfig:
    """Configuration for mock server behavior."""

    # Server options
    host: str = "127.0.0.1"
    port: int = 8080
    log_level: str = "info"
    verbose_mode: bool = False  # Show each request and its match in the console

    # Request recording
    recording_enabled: bool = False
    recording_limit: int = 1000  # Maximum number of requests to record (0 = unlimited)

    # Fallback behavior
    fallback_status: int = 404
    fallback_body: str = '{"error": "No matching mock rule"}'

    # Admin API
    admin_enabled: bool = True
    admin_prefix: str = "/__admin__"

    @classmethod
    def from_settings(cls, settings: Dict[str, Any]) -> MockConfig:
        """
        Create config from the ``settings`` section of a rule file.

        Raises:
            ConfigurationError: If a setting is unknown
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(settings) - known)
        if unknown:
            raise ConfigurationError(f"Unknown server settings: {unknown}")
        return cls(**settings)


@dataclass
class MockMetrics:
    """Track mock server metrics."""

    total_requests: int = 0
    matched_requests: int = 0
    unmatched_requests: int = 0
    error_responses: int = 0
    start_time: str = field(default_factory=lambda: datetime.now().isoformat())

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        uptime_seconds = (datetime.now() - datetime.fromisoformat(self.start_time)).total_seconds()
        return {
            'total_requests': self.total_requests,
            'matched_requests': self.matched_requests,
            'unmatched_requests': self.unmatched_requests,
            'error_responses': self.error_responses,
            'match_rate': round((self.matched_requests / self.total_requests * 100) if self.total_requests > 0 else 0, 2),
            'uptime_seconds': round(uptime_seconds, 2),
            'start_time': self.start_time
        }


class MockServer:
    """
    FastAPI-based mock server answering from pattern-matching mock rules.

    Example:
        registry = RuleRegistry()
        registry.register(PatternMatchingMockRequest.with_methods(
            '/users/:id', ['GET'], template_generator(MockResponder.json({'id': '{{id}}'}))
        ))

        server = MockServer(registry, config=MockConfig(port=9090))
        server.start()
    """

    def __init__(
        self,
        registry: Optional[RuleRegistry] = None,
        config: Optional[MockConfig] = None
    ):
        """
        Initialize mock server.

        Args:
            registry: Rules to answer from (an empty registry is created if None)
            config: Optional MockConfig for server behavior
        """
        self.registry = registry if registry is not None else RuleRegistry()
        self.config = config or MockConfig()
        self.metrics = MockMetrics()
        self.recorded_requests: List[Dict[str, Any]] = []

        self.logger = logging.getLogger("urlmock.mock.server")
        self.logger.setLevel(getattr(logging, self.config.log_level.upper()))

        self.app = self._create_app()

    def _create_app(self) -> FastAPI:
        """Create FastAPI application with routes."""
        app = FastAPI(
            title="URLMock Mock Server",
            description="Mock HTTP server answering from pattern-matching mock rules",
            version="1.0.0"
        )

        # Admin API routes
        if self.config.admin_enabled:
            @app.get(f"{self.config.admin_prefix}/metrics")
            async def get_metrics():
                """Get server metrics."""
                return JSONResponse(content=self.metrics.to_dict())

            @app.post(f"{self.config.admin_prefix}/reset")
            async def reset_metrics():
                """Reset metrics."""
                self.metrics = MockMetrics()
                return JSONResponse(content={'status': 'reset'})

            @app.get(f"{self.config.admin_prefix}/rules")
            async def list_rules():
                """List registered mock rules in match order."""
                rules = [
                    {
                        'pattern': rule.url_pattern,
                        'methods': sorted(rule.http_methods) if rule.http_methods else None,
                        'parameters': list(rule.compiled_pattern.capture_names),
                        'has_request_matcher': rule.request_matcher is not None
                    }
                    for rule in self.registry.rules
                ]
                return JSONResponse(content={'total': len(rules), 'rules': rules})

            @app.get(f"{self.config.admin_prefix}/recordings")
            async def get_recordings():
                """Get all recorded requests."""
                return JSONResponse(content={
                    'total': len(self.recorded_requests),
                    'limit': self.config.recording_limit,
                    'recording_enabled': self.config.recording_enabled,
                    'recordings': self.recorded_requests
                })

            @app.delete(f"{self.config.admin_prefix}/recordings")
            async def clear_recordings():
                """Clear all recorded requests."""
                count = len(self.recorded_requests)
                self.recorded_requests.clear()
                return JSONResponse(content={
                    'status': 'cleared',
                    'cleared_count': count
                })

        # Main catch-all route for mocking
        @app.api_route("/{path:path}", methods=["GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"])
        async def mock_request(request: Request, path: str):
            """Handle incoming requests and serve mock responses."""
            return await self._handle_request(request)

        return app

    async def _handle_request(self, request: Request) -> Response:
        """
        Handle incoming request and serve mock response.

        Args:
            request: FastAPI Request object

        Returns:
            Response built from the matched rule's responder, or the fallback
        """
        start_time = time.time()
        self.metrics.total_requests += 1

        mock_request = MockRequest(
            method=request.method,
            url=str(request.url),
            headers=dict(request.headers),
            body=await request.body()
        )

        self.logger.debug(f"Incoming: {mock_request.method} {mock_request.url}")

        result = self.registry.responder_for_request(mock_request)

        if result is not None:
            self.metrics.matched_requests += 1
            response = self._create_response(result)
        else:
            self.metrics.unmatched_requests += 1
            self.logger.warning(f"No match found for {mock_request.method} {mock_request.url}")
            response = Response(
                content=self.config.fallback_body,
                status_code=self.config.fallback_status,
                media_type="application/json",
                headers={'X-URLMock-Matched': 'false'}
            )

        if self.config.recording_enabled:
            self._record_request(mock_request, result, response)

        if self.config.verbose_mode:
            elapsed_ms = (time.time() - start_time) * 1000
            timestamp = datetime.now().strftime('%H:%M:%S')
            matched = f"matched {result.rule.url_pattern} {result.parameters}" if result else "no match"
            print(f"[{timestamp}] {mock_request.method} {mock_request.url} -> {matched} "
                  f"({response.status_code}, {elapsed_ms:.1f}ms)")

        return response

    def _create_response(self, result: DispatchResult) -> Response:
        """
        Create FastAPI Response from a responder.

        Args:
            result: Dispatch result with the selected rule and its responder

        Returns:
            FastAPI Response with URLMock debug headers
        """
        responder = result.responder
        debug_headers = {
            'X-URLMock-Matched': 'true',
            'X-URLMock-Pattern': result.rule.url_pattern
        }

        if isinstance(responder, MockErrorResponder):
            self.metrics.error_responses += 1
            return Response(
                content=json.dumps(responder.to_dict()),
                status_code=502,
                media_type="application/json",
                headers=debug_headers
            )

        if not isinstance(responder, MockResponder):
            raise TypeError(f"Unsupported responder type for mock server: {type(responder).__name__}")

        # Filter headers that FastAPI shouldn't set manually
        headers_to_skip = {'content-length', 'transfer-encoding', 'connection'}
        headers = {
            k: v for k, v in responder.headers.items()
            if k.lower() not in headers_to_skip
        }
        headers.update(debug_headers)

        return Response(
            content=responder.body_bytes(),
            status_code=responder.status_code,
            headers=headers
        )

    def _record_request(
        self,
        mock_request: MockRequest,
        result: Optional[DispatchResult],
        response: Response
    ):
        """Record a request (FIFO when the recording limit is reached)."""
        if self.config.recording_limit > 0 and len(self.recorded_requests) >= self.config.recording_limit:
            self.recorded_requests.pop(0)

        entry = mock_request.to_dict()
        entry.update({
            'timestamp': datetime.now().isoformat(),
            'matched': result is not None,
            'matched_pattern': result.rule.url_pattern if result else None,
            'parameters': dict(result.parameters) if result else {},
            'response_status': response.status_code
        })
        self.recorded_requests.append(entry)

        self.logger.debug(f"Recorded request: {mock_request.method} {mock_request.url} (matched: {result is not None})")

    def start(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        access_log: bool = True
    ):
        """
        Start the mock server.

        Args:
            host: Host to bind to (overrides config)
            port: Port to bind to (overrides config)
            access_log: Enable access logging
        """
        actual_host = host or self.config.host
        actual_port = port or self.config.port

        print(f"🚀 URLMock Mock Server starting...")
        print(f"   Host: {actual_host}:{actual_port}")
        print(f"   Rules loaded: {len(self.registry)}")

        if self.config.admin_enabled:
            print(f"   Admin API: http://{actual_host}:{actual_port}{self.config.admin_prefix}/metrics")

        print()

        uvicorn.run(
            self.app,
            host=actual_host,
            port=actual_port,
            log_level=self.config.log_level,
            access_log=access_log
        )

    def get_app(self) -> FastAPI:
        """
        Get the FastAPI app instance for testing or custom deployment.

        Returns:
            FastAPI application instance
        """
        return self.app


def create_mock_server(
    rules_file: str,
    host: Optional[str] = None,
    port: Optional[int] = None,
    log_level: Optional[str] = None,
    admin_enabled: Optional[bool] = None,
    verbose_mode: Optional[bool] = None,
    recording_enabled: Optional[bool] = None
) -> MockServer:
    """
    Convenience function to create a mock server from a YAML rule file.

    Settings from the file's ``settings`` section are applied first; explicit
    arguments that are not None override them.

    Args:
        rules_file: Path to YAML rule file
        host: Host to bind to
        port: Port to bind to
        log_level: Log level (debug, info, warning, error)
        admin_enabled: Enable the admin API
        verbose_mode: Print each request and its match
        recording_enabled: Enable request recording

    Returns:
        Configured MockServer instance

    Example:
        server = create_mock_server('rules.yaml', port=8080)
        server.start()
    """
    rule_set = RuleSet.from_yaml(rules_file)
    config = MockConfig.from_settings(rule_set.settings)

    overrides = {
        'host': host,
        'port': port,
        'log_level': log_level,
        'admin_enabled': admin_enabled,
        'verbose_mode': verbose_mode,
        'recording_enabled': recording_enabled
    }
    for key, value in overrides.items():
        if value is not None:
            setattr(config, key, value)

    return MockServer(rule_set.register_all(), config=config)
