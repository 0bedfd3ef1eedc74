"""
URLMock Mock Module

Pattern-based request matching and mock response dispatch.

This module provides:
- URL pattern compiler with named path parameters
- Pattern-matching mock requests (rules)
- Thread-safe rule registry
- Responders and responder generation helpers
- httpx transport and FastAPI mock server adapters
- YAML rule files
"""

from .errors import (
    URLMockError,
    MalformedPatternError,
    ConfigurationError,
    ContractViolation,
    UnmockedRequestError
)
from .pattern import Literal, Capture, CompiledPattern, compile_pattern
from .matcher import MatchResult, PatternMatchingMockRequest, evaluate
from .registry import RuleRegistry, RuleMatch, DispatchResult, ReadWriteLock
from .request import MockRequest
from .generator import (
    MockResponder,
    MockErrorResponder,
    static_generator,
    template_generator,
    sequence_generator,
    with_transformers,
    add_timestamp_transformer,
    cors_headers_transformer,
    pretty_json_transformer
)
from .rules_config import RuleDefinition, RuleSet, load_rules
from .transport import MockTransport
from .server import MockServer, MockConfig, MockMetrics, create_mock_server

__all__ = [
    # Errors
    'URLMockError',
    'MalformedPatternError',
    'ConfigurationError',
    'ContractViolation',
    'UnmockedRequestError',

    # Pattern
    'Literal',
    'Capture',
    'CompiledPattern',
    'compile_pattern',

    # Matcher
    'MatchResult',
    'PatternMatchingMockRequest',
    'evaluate',

    # Registry
    'RuleRegistry',
    'RuleMatch',
    'DispatchResult',
    'ReadWriteLock',

    # Request
    'MockRequest',

    # Generator
    'MockResponder',
    'MockErrorResponder',
    'static_generator',
    'template_generator',
    'sequence_generator',
    'with_transformers',
    'add_timestamp_transformer',
    'cors_headers_transformer',
    'pretty_json_transformer',

    # Rule files
    'RuleDefinition',
    'RuleSet',
    'load_rules',

    # Adapters
    'MockTransport',
    'MockServer',
    'MockConfig',
    'MockMetrics',
    'create_mock_server',
]

__version__ = '1.0.0'
