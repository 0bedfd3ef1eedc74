"""
URLMock Rule Configuration

YAML-based mock rule files.

Example file:

    name: "User API"
    settings:
      port: 8080
      fallback_status: 404

    rules:
      - name: get-user
        pattern: /users/:id
        methods: [GET]
        response:
          status: 200
          json: {id: "{{id}}", name: "User {{id}}"}
        transform: [cors]

      - pattern: /search
        query: {sort: desc}
        headers: {Accept: application/json}
        response:
          body: '{"results": []}'

      - pattern: /flaky
        sequence:
          - error: "connection reset"
          - status: 200
            body: ok
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from ..common import URLPath
from .errors import ConfigurationError
from .generator import (
    MockErrorResponder,
    MockResponder,
    get_transformers,
    sequence_generator,
    static_generator,
    with_transformers
)
from .matcher import (
    PatternMatchingMockRequest,
    RequestMatchingFunction,
    ResponderGenerationFunction
)
from .registry import RuleRegistry


def responder_from_dict(data: Dict[str, Any]) -> Any:
    """
    Build a responder from a response definition.

    Supported keys: status, headers, body, json, error.

    Raises:
        ConfigurationError: If the definition is invalid
    """
    if not isinstance(data, dict):
        raise ConfigurationError(f"Response definition must be a mapping, got {type(data).__name__}")

    if 'error' in data:
        return MockErrorResponder(message=str(data['error']))

    if 'body' in data and 'json' in data:
        raise ConfigurationError("Response definition may not have both 'body' and 'json'")

    status = data.get('status', 200)
    if not isinstance(status, int):
        raise ConfigurationError(f"Response status must be an integer, got {status!r}")

    headers = {str(k): str(v) for k, v in (data.get('headers') or {}).items()}

    if 'json' in data:
        return MockResponder.json(data['json'], status_code=status, headers=headers)

    body = data.get('body', '')
    if not isinstance(body, str):
        body = json.dumps(body)

    return MockResponder(status_code=status, headers=headers, body=body)


def _header_value(request: Any, name: str) -> Optional[str]:
    headers = getattr(request, 'headers', None) or {}
    name = name.lower()
    for key, value in headers.items():
        if key.lower() == name:
            return value
    return None


def build_request_matcher(
    query: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, Any]] = None
) -> Optional[RequestMatchingFunction]:
    """
    Build a request-matching predicate from required query parameters and
    headers. Header names are case-insensitive; values are compared exactly.

    Returns:
        Predicate, or None when nothing is required
    """
    if not query and not headers:
        return None

    required_query = {str(k): str(v) for k, v in (query or {}).items()}
    required_headers = {str(k): str(v) for k, v in (headers or {}).items()}

    def request_matcher(request: Any) -> bool:
        params = URLPath.parse_query(getattr(request, 'url', None))
        for key, value in required_query.items():
            if value not in params.get(key, []):
                return False

        for key, value in required_headers.items():
            if _header_value(request, key) != value:
                return False

        return True

    return request_matcher


@dataclass
class RuleDefinition:
    """A single mock rule as written in a rule file."""

    pattern: str
    name: str = ""
    methods: Optional[List[str]] = None
    query: Dict[str, Any] = field(default_factory=dict)
    headers: Dict[str, Any] = field(default_factory=dict)
    response: Optional[Dict[str, Any]] = None
    sequence: Optional[List[Dict[str, Any]]] = None
    cycle: bool = False
    transform: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RuleDefinition':
        """Create RuleDefinition from dictionary."""
        if not isinstance(data, dict):
            raise ConfigurationError(f"Rule definition must be a mapping, got {type(data).__name__}")
        if not data.get('pattern'):
            raise ConfigurationError(f"Rule definition is missing 'pattern': {data}")
        if 'response' in data and 'sequence' in data:
            raise ConfigurationError(f"Rule {data['pattern']!r} may not have both 'response' and 'sequence'")

        methods = data.get('methods')
        if isinstance(methods, str):
            methods = [methods]

        return cls(
            pattern=data['pattern'],
            name=data.get('name', ''),
            methods=methods,
            query=data.get('query') or {},
            headers=data.get('headers') or {},
            response=data.get('response'),
            sequence=data.get('sequence'),
            cycle=bool(data.get('cycle', False)),
            transform=list(data.get('transform') or [])
        )

    def to_rule(self) -> PatternMatchingMockRequest:
        """
        Build the pattern-matching mock request for this definition.

        Raises:
            ConfigurationError: If the response part is invalid
            MalformedPatternError: If the pattern is malformed
        """
        if self.sequence is not None:
            generator = sequence_generator(
                [responder_from_dict(item) for item in self.sequence],
                cycle=self.cycle
            )
        else:
            generator = static_generator(responder_from_dict(self.response or {}))
        generator = rendering(generator)

        transformers = get_transformers(self.transform)
        if transformers:
            generator = with_transformers(generator, *transformers)

        return PatternMatchingMockRequest(
            self.pattern,
            generator,
            http_methods=self.methods,
            request_matcher=build_request_matcher(self.query, self.headers)
        )


def rendering(generator: ResponderGenerationFunction) -> ResponderGenerationFunction:
    """Render path parameters into generated MockResponders; pass others through."""
    def generate(request, parameters):
        responder = generator(request, parameters)
        if isinstance(responder, MockResponder):
            return responder.render(parameters)
        return responder

    return generate


@dataclass
class RuleSet:
    """A complete rule file: optional settings plus ordered rules."""

    name: str = "Unnamed Rule Set"
    settings: Dict[str, Any] = field(default_factory=dict)
    rules: List[RuleDefinition] = field(default_factory=list)

    @classmethod
    def from_yaml(cls, yaml_path: str) -> 'RuleSet':
        """
        Load rule set from YAML file.

        Raises:
            FileNotFoundError: If the file does not exist
            ConfigurationError: If the YAML is invalid
        """
        path = Path(yaml_path)
        if not path.exists():
            raise FileNotFoundError(f"Rule file not found: {path}")

        with open(path, 'r', encoding='utf-8') as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

        return cls.from_dict(data or {})

    @classmethod
    def from_dict(cls, data: Any) -> 'RuleSet':
        """Create rule set from dictionary (or a bare list of rules)."""
        if isinstance(data, list):
            data = {'rules': data}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Rule file must be a mapping or list, got {type(data).__name__}")

        rules = data.get('rules') or []
        if not isinstance(rules, list):
            raise ConfigurationError("'rules' must be a list")

        settings = data.get('settings') or {}
        if not isinstance(settings, dict):
            raise ConfigurationError("'settings' must be a mapping")

        return cls(
            name=data.get('name', 'Unnamed Rule Set'),
            settings=settings,
            rules=[RuleDefinition.from_dict(rule) for rule in rules]
        )

    def to_rules(self) -> List[PatternMatchingMockRequest]:
        """Build all rules, in file order."""
        return [definition.to_rule() for definition in self.rules]

    def register_all(self, registry: Optional[RuleRegistry] = None) -> RuleRegistry:
        """
        Register all rules into a registry.

        Args:
            registry: Registry to use (a new one is created if None)

        Returns:
            The registry
        """
        registry = registry if registry is not None else RuleRegistry()
        for rule in self.to_rules():
            registry.register(rule)
        return registry


def load_rules(yaml_path: str, registry: Optional[RuleRegistry] = None) -> RuleRegistry:
    """Load a YAML rule file into a registry."""
    return RuleSet.from_yaml(yaml_path).register_all(registry)
