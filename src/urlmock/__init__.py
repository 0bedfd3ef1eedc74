"""
URLMock

Pattern-based mock rules for HTTP requests: match by URL pattern, HTTP method
and custom predicates, then answer with generated responders.
"""

from .mock import (
    ConfigurationError,
    ContractViolation,
    MalformedPatternError,
    MockErrorResponder,
    MockRequest,
    MockResponder,
    MockTransport,
    PatternMatchingMockRequest,
    RuleRegistry,
    URLMockError,
    compile_pattern,
    template_generator
)

__all__ = [
    'ConfigurationError',
    'ContractViolation',
    'MalformedPatternError',
    'MockErrorResponder',
    'MockRequest',
    'MockResponder',
    'MockTransport',
    'PatternMatchingMockRequest',
    'RuleRegistry',
    'URLMockError',
    'compile_pattern',
    'template_generator',
]

__version__ = '1.0.0'
