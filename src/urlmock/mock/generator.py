"""
URLMock Responders and Generators

Responder values and helpers for building responder generation functions.

Features:
- Static responders (status, headers, body)
- Template substitution of path parameters ({{name}} syntax)
- Stateful response sequences
- Response transformers (CORS headers, pretty JSON, timestamps)
- Error responders that simulate transport failures
"""

import json
import re
import threading
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from .errors import ConfigurationError
from .matcher import ResponderGenerationFunction


Transformer = Callable[['MockResponder', Any, Dict[str, str]], 'MockResponder']

_PLACEHOLDER = re.compile(r'\{\{\s*([A-Za-z0-9_\-]+)\s*\}\}')


def _substitute(text: str, context: Dict[str, Any]) -> str:
    """Replace {{name}} placeholders; unknown names are left untouched."""
    def replacer(match):
        key = match.group(1)
        return str(context[key]) if key in context else match.group(0)

    return _PLACEHOLDER.sub(replacer, text)


@dataclass(frozen=True)
class MockResponder:
    """A canned HTTP response."""

    status_code: int = 200
    headers: Dict[str, str] = field(default_factory=dict)
    body: Union[str, bytes] = ''

    @classmethod
    def json(
        cls,
        data: Any,
        status_code: int = 200,
        headers: Optional[Dict[str, str]] = None
    ) -> 'MockResponder':
        """Create a JSON responder."""
        all_headers = {'Content-Type': 'application/json'}
        all_headers.update(headers or {})
        return cls(status_code=status_code, headers=all_headers, body=json.dumps(data))

    @classmethod
    def text(
        cls,
        text: str,
        status_code: int = 200,
        headers: Optional[Dict[str, str]] = None
    ) -> 'MockResponder':
        """Create a plain text responder."""
        all_headers = {'Content-Type': 'text/plain; charset=utf-8'}
        all_headers.update(headers or {})
        return cls(status_code=status_code, headers=all_headers, body=text)

    def body_bytes(self) -> bytes:
        """Body encoded as UTF-8 bytes."""
        if isinstance(self.body, bytes):
            return self.body
        return self.body.encode('utf-8')

    def render(self, context: Dict[str, Any]) -> 'MockResponder':
        """
        Render {{name}} placeholders in the body and headers.

        Args:
            context: Variables for substitution (usually path parameters)

        Returns:
            New MockResponder with substituted values
        """
        body = self.body
        if isinstance(body, str):
            body = _substitute(body, context)

        headers = {key: _substitute(value, context) for key, value in self.headers.items()}
        return replace(self, headers=headers, body=body)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'status': self.status_code,
            'headers': dict(self.headers),
            'body': self.body_bytes().decode('utf-8', errors='replace')
        }


@dataclass(frozen=True)
class MockErrorResponder:
    """Responder that simulates a failed connection instead of a response."""

    message: str = "Simulated connection failure"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {'error': self.message}


def static_generator(responder: Any) -> ResponderGenerationFunction:
    """
    Build a generation function that always returns the same responder.

    Args:
        responder: Responder to return

    Returns:
        Generation function
    """
    if responder is None:
        raise ConfigurationError("Static responder may not be None")

    def generate(request, parameters):
        return responder

    return generate


def template_generator(template: MockResponder) -> ResponderGenerationFunction:
    """
    Build a generation function that renders a responder with the path
    parameters of each matched request.

    Example:
        template_generator(MockResponder.json({'id': '{{id}}'}))

    Args:
        template: Responder whose body/headers contain {{name}} placeholders

    Returns:
        Generation function
    """
    if template is None:
        raise ConfigurationError("Responder template may not be None")

    def generate(request, parameters):
        return template.render(parameters)

    return generate


def sequence_generator(
    responders: Sequence[Any],
    cycle: bool = False
) -> ResponderGenerationFunction:
    """
    Build a generation function that returns responders in order.

    Once the sequence is exhausted the last responder is repeated, or the
    sequence restarts when ``cycle`` is True. Safe to call from several
    threads.

    Args:
        responders: Responders to return, in order
        cycle: Restart from the first responder when exhausted

    Returns:
        Generation function
    """
    responders = list(responders)
    if not responders:
        raise ConfigurationError("Response sequence may not be empty")

    lock = threading.Lock()
    position = [0]

    def generate(request, parameters):
        with lock:
            index = position[0]
            if index >= len(responders):
                index = 0 if cycle else len(responders) - 1
            position[0] = index + 1
        return responders[index]

    return generate


def with_transformers(
    generator: ResponderGenerationFunction,
    *transformers: Transformer
) -> ResponderGenerationFunction:
    """
    Wrap a generation function so its responders pass through transformers.

    Transformers only apply to MockResponder results; other responders are
    returned unchanged.

    Args:
        generator: Generation function to wrap
        *transformers: Functions (responder, request, parameters) -> responder

    Returns:
        Generation function
    """
    def generate(request, parameters):
        responder = generator(request, parameters)
        if isinstance(responder, MockResponder):
            for transformer in transformers:
                responder = transformer(responder, request, parameters)
        return responder

    return generate


# Common transformer functions

def add_timestamp_transformer(
    responder: MockResponder,
    request: Any,
    parameters: Dict[str, str]
) -> MockResponder:
    """Add current timestamp to JSON object bodies."""
    try:
        data = json.loads(responder.body_bytes())
    except (json.JSONDecodeError, UnicodeDecodeError):
        return responder

    if not isinstance(data, dict):
        return responder

    data['timestamp'] = datetime.now().isoformat()
    return replace(responder, body=json.dumps(data))


def cors_headers_transformer(
    responder: MockResponder,
    request: Any,
    parameters: Dict[str, str]
) -> MockResponder:
    """Add CORS headers to response."""
    headers = dict(responder.headers)
    headers.update({
        'Access-Control-Allow-Origin': '*',
        'Access-Control-Allow-Methods': 'GET, POST, PUT, DELETE, OPTIONS',
        'Access-Control-Allow-Headers': 'Content-Type, Authorization'
    })
    return replace(responder, headers=headers)


def pretty_json_transformer(
    responder: MockResponder,
    request: Any,
    parameters: Dict[str, str]
) -> MockResponder:
    """Pretty-print JSON responses."""
    try:
        data = json.loads(responder.body_bytes())
    except (json.JSONDecodeError, UnicodeDecodeError):
        return responder

    return replace(responder, body=json.dumps(data, indent=2))


TRANSFORMERS: Dict[str, Transformer] = {
    'timestamp': add_timestamp_transformer,
    'cors': cors_headers_transformer,
    'pretty_json': pretty_json_transformer,
}


def get_transformers(names: List[str]) -> List[Transformer]:
    """
    Look up transformers by name.

    Raises:
        ConfigurationError: If a name is unknown
    """
    unknown = [name for name in names if name not in TRANSFORMERS]
    if unknown:
        raise ConfigurationError(
            f"Unknown transformers {unknown}; available: {sorted(TRANSFORMERS)}"
        )
    return [TRANSFORMERS[name] for name in names]
