"""
URLMock Rule Registry

Ordered collection of pattern-matching mock requests. Lookups return the
first rule, in registration order, that matches a request.

The registry is safe to share between threads: lookups take a shared lock,
register/unregister take an exclusive one. Rules are immutable once built,
so evaluation and responder generation run outside the lock on the calling
thread.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple

from .matcher import PatternMatchingMockRequest


logger = logging.getLogger("urlmock.mock.registry")


class ReadWriteLock:
    """
    Readers-writer lock built on a single Condition.

    Any number of readers may hold the lock together; a writer holds it
    alone. Waiting writers block new readers so registry updates are not
    starved by a steady stream of lookups. Not reentrant.
    """

    def __init__(self):
        self._condition = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer_active = False
        self._writers_waiting = 0

    def acquire_read(self):
        with self._condition:
            while self._writer_active or self._writers_waiting:
                self._condition.wait()
            self._readers += 1

    def release_read(self):
        with self._condition:
            self._readers -= 1
            if self._readers == 0:
                self._condition.notify_all()

    def acquire_write(self):
        with self._condition:
            self._writers_waiting += 1
            try:
                while self._writer_active or self._readers:
                    self._condition.wait()
            finally:
                self._writers_waiting -= 1
            self._writer_active = True

    def release_write(self):
        with self._condition:
            self._writer_active = False
            self._condition.notify_all()

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()


@dataclass
class RuleMatch:
    """A registered rule together with the parameters it extracted."""

    rule: PatternMatchingMockRequest
    parameters: Dict[str, str] = field(default_factory=dict)


@dataclass
class DispatchResult:
    """Outcome of dispatching a request: the selected rule and its responder."""

    rule: PatternMatchingMockRequest
    parameters: Dict[str, str]
    responder: Any


class RuleRegistry:
    """
    Registry of pattern-matching mock requests.

    Create one registry per test (or per mock server) instead of sharing a
    process-wide instance.

    Example:
        registry = RuleRegistry()
        registry.register(PatternMatchingMockRequest.with_methods(
            '/users/:id', ['GET'], template_generator(MockResponder.json({'id': '{{id}}'}))
        ))

        result = registry.responder_for_request(MockRequest('GET', 'http://api/users/7'))
        if result:
            print(result.parameters)  # {'id': '7'}
    """

    def __init__(self, rules: Optional[List[PatternMatchingMockRequest]] = None):
        """
        Initialize registry.

        Args:
            rules: Optional rules to register, in order
        """
        self._rules: List[PatternMatchingMockRequest] = []
        self._lock = ReadWriteLock()

        for rule in rules or []:
            self.register(rule)

    def register(self, rule: PatternMatchingMockRequest) -> PatternMatchingMockRequest:
        """
        Append a rule. Registering a rule that is already present keeps its
        original position.

        Args:
            rule: Rule to register

        Returns:
            The registered rule
        """
        with self._lock.write_locked():
            if any(existing is rule for existing in self._rules):
                return rule
            self._rules.append(rule)
            count = len(self._rules)

        logger.info(f"Registered mock rule {rule!r} ({count} total)")
        return rule

    def unregister(self, rule: PatternMatchingMockRequest) -> bool:
        """
        Remove a rule.

        Args:
            rule: Rule to remove

        Returns:
            True if the rule was registered
        """
        with self._lock.write_locked():
            for index, existing in enumerate(self._rules):
                if existing is rule:
                    del self._rules[index]
                    break
            else:
                return False

        logger.info(f"Unregistered mock rule {rule!r}")
        return True

    def clear(self):
        """Remove all rules."""
        with self._lock.write_locked():
            self._rules.clear()
        logger.debug("Cleared mock rule registry")

    @property
    def rules(self) -> Tuple[PatternMatchingMockRequest, ...]:
        """Snapshot of the registered rules in registration order."""
        with self._lock.read_locked():
            return tuple(self._rules)

    def __len__(self) -> int:
        with self._lock.read_locked():
            return len(self._rules)

    def __contains__(self, rule: object) -> bool:
        return any(existing is rule for existing in self.rules)

    def __iter__(self) -> Iterator[PatternMatchingMockRequest]:
        return iter(self.rules)

    def find_match(self, request: Any) -> Optional[RuleMatch]:
        """
        Find the first registered rule that matches a request.

        Args:
            request: Inbound request

        Returns:
            RuleMatch with the rule and its parameters, or None
        """
        for rule in self.rules:
            result = rule.evaluate(request)
            if result.matched:
                logger.debug(f"{rule!r} matched {getattr(request, 'url', None)} {result.parameters}")
                return RuleMatch(rule=rule, parameters=result.parameters)

        logger.debug(f"No mock rule matched {getattr(request, 'method', None)} {getattr(request, 'url', None)}")
        return None

    def first_match(self, request: Any) -> Optional[PatternMatchingMockRequest]:
        """
        Get the first registered rule that matches a request.

        Args:
            request: Inbound request

        Returns:
            Matching rule or None
        """
        match = self.find_match(request)
        return match.rule if match else None

    def responder_for_request(self, request: Any) -> Optional[DispatchResult]:
        """
        Select a rule and generate its responder.

        The generation function of the selected rule is called exactly once;
        rules that did not match are never asked for a responder.

        Args:
            request: Inbound request

        Returns:
            DispatchResult, or None when no rule matches

        Raises:
            ContractViolation: If the selected rule's generation function
                returns None
        """
        match = self.find_match(request)
        if match is None:
            return None

        responder = match.rule.responder_for_request(request, match.parameters)
        return DispatchResult(rule=match.rule, parameters=match.parameters, responder=responder)
