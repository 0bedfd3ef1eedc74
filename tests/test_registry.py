"""
Tests for URLMock Rule Registry

Tests the rule registry including:
- Registration order and tie-breaking
- Unregistering and clearing
- Responder dispatch (generation called once, only for the selected rule)
- Concurrent lookups and the readers-writer lock
"""

import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest
from unittest.mock import Mock

from urlmock.mock.errors import ContractViolation
from urlmock.mock.generator import MockResponder, static_generator, template_generator
from urlmock.mock.matcher import PatternMatchingMockRequest
from urlmock.mock.registry import ReadWriteLock, RuleRegistry
from urlmock.mock.request import MockRequest


def make_rule(pattern, body='', **kwargs):
    """Create a rule returning a static text responder."""
    return PatternMatchingMockRequest(pattern, static_generator(MockResponder.text(body)), **kwargs)


@pytest.fixture
def registry():
    """Fresh registry per test."""
    return RuleRegistry()


class TestRegistration:
    """Test register/unregister/clear."""

    def test_register_keeps_order(self, registry):
        """Test rules are kept in registration order."""
        first = registry.register(make_rule('/a'))
        second = registry.register(make_rule('/b'))

        assert registry.rules == (first, second)
        assert len(registry) == 2
        assert first in registry

    def test_register_twice_is_noop(self, registry):
        """Test re-registering keeps the original position."""
        first = registry.register(make_rule('/a'))
        second = registry.register(make_rule('/b'))
        registry.register(first)

        assert registry.rules == (first, second)

    def test_initial_rules(self):
        """Test registering rules through the constructor."""
        rules = [make_rule('/a'), make_rule('/b')]

        assert RuleRegistry(rules).rules == tuple(rules)

    def test_unregister(self, registry):
        """Test unregistering a rule."""
        rule = registry.register(make_rule('/a'))

        assert registry.unregister(rule) is True
        assert rule not in registry
        assert registry.unregister(rule) is False

    def test_unregister_uses_identity(self, registry):
        """Test unregister removes the exact rule object."""
        registry.register(make_rule('/a'))

        assert registry.unregister(make_rule('/a')) is False
        assert len(registry) == 1

    def test_clear(self, registry):
        """Test clearing the registry."""
        registry.register(make_rule('/a'))
        registry.register(make_rule('/b'))

        registry.clear()

        assert len(registry) == 0
        assert list(registry) == []

    def test_registries_are_independent(self):
        """Test separate registries share nothing."""
        one, two = RuleRegistry(), RuleRegistry()
        one.register(make_rule('/a'))

        assert len(two) == 0


class TestLookup:
    """Test first_match and find_match."""

    def test_first_match_returns_matching_rule(self, registry):
        """Test lookup returns the matching rule."""
        registry.register(make_rule('/users'))
        users = registry.register(make_rule('/users/:id'))

        assert registry.first_match(MockRequest('GET', 'http://h/users/1')) is users

    def test_no_match_returns_none(self, registry):
        """Test lookup with no matching rule."""
        registry.register(make_rule('/users/:id'))

        assert registry.first_match(MockRequest('GET', 'http://h/orders/1')) is None
        assert registry.find_match(MockRequest('GET', 'http://h/orders/1')) is None

    def test_empty_registry(self, registry):
        """Test lookup on an empty registry."""
        assert registry.first_match(MockRequest('GET', 'http://h/')) is None

    def test_first_registered_wins(self, registry):
        """Test ties go to the earlier registration, and unregistering promotes the next."""
        generic = registry.register(make_rule('/users/:id'))
        specific = registry.register(make_rule('/users/me'))
        request = MockRequest('GET', 'http://h/users/me')

        assert registry.first_match(request) is generic

        registry.unregister(generic)

        assert registry.first_match(request) is specific

    def test_method_filter_skips_rule(self, registry):
        """Test rules failing the method check are skipped."""
        registry.register(make_rule('/users/:id', http_methods=['POST']))
        getter = registry.register(make_rule('/users/:id', http_methods=['GET']))

        assert registry.first_match(MockRequest('get', 'http://h/users/1')) is getter

    def test_find_match_parameters(self, registry):
        """Test find_match returns the extracted parameters."""
        rule = registry.register(make_rule('/users/:user_id/posts/:post_id'))

        match = registry.find_match(MockRequest('GET', 'http://h/users/3/posts/9?x=1'))

        assert match.rule is rule
        assert match.parameters == {'user_id': '3', 'post_id': '9'}

    def test_malformed_url_does_not_abort_lookup(self, registry):
        """Test an unparseable request URL is simply unmatched."""
        registry.register(make_rule('/users/:id'))

        assert registry.find_match(MockRequest('GET', 'http://[::1/users/1')) is None

    def test_lookup_does_not_call_generators(self, registry):
        """Test lookups never generate responders."""
        generator = Mock(return_value=MockResponder())
        registry.register(PatternMatchingMockRequest('/users/:id', generator))

        registry.first_match(MockRequest('GET', 'http://h/users/1'))

        generator.assert_not_called()


class TestResponderForRequest:
    """Test dispatch through the registry."""

    def test_dispatch_generates_once_for_selected_rule(self, registry):
        """Test only the selected rule's generator runs, exactly once."""
        skipped = Mock(return_value=MockResponder())
        selected = Mock(return_value=MockResponder.text('selected'))
        shadowed = Mock(return_value=MockResponder())

        registry.register(PatternMatchingMockRequest('/orders/:id', skipped))
        registry.register(PatternMatchingMockRequest('/users/:id', selected))
        registry.register(PatternMatchingMockRequest('/users/:id', shadowed))

        request = MockRequest('GET', 'http://h/users/1')
        result = registry.responder_for_request(request)

        assert result.responder.body == 'selected'
        assert result.parameters == {'id': '1'}
        selected.assert_called_once_with(request, {'id': '1'})
        skipped.assert_not_called()
        shadowed.assert_not_called()

    def test_dispatch_no_match(self, registry):
        """Test dispatch returns None when nothing matches."""
        assert registry.responder_for_request(MockRequest('GET', 'http://h/x')) is None

    def test_dispatch_renders_template(self, registry):
        """Test template generators receive the parameters."""
        registry.register(PatternMatchingMockRequest(
            '/users/:id',
            template_generator(MockResponder.json({'id': '{{id}}'}))
        ))

        result = registry.responder_for_request(MockRequest('GET', 'http://h/users/77'))

        assert result.responder.body == '{"id": "77"}'

    def test_dispatch_none_responder_raises(self, registry):
        """Test a None responder is a contract violation, not a non-match."""
        registry.register(PatternMatchingMockRequest('/users/:id', lambda request, params: None))
        registry.register(make_rule('/users/:id'))

        with pytest.raises(ContractViolation):
            registry.responder_for_request(MockRequest('GET', 'http://h/users/1'))

    def test_generator_may_use_registry(self, registry):
        """Test generation functions can register rules without deadlocking."""
        follow_up = make_rule('/next')

        def generate(request, parameters):
            registry.register(follow_up)
            return MockResponder()

        registry.register(PatternMatchingMockRequest('/start', generate))

        registry.responder_for_request(MockRequest('GET', 'http://h/start'))

        assert registry.first_match(MockRequest('GET', 'http://h/next')) is follow_up


class TestConcurrency:
    """Test concurrent lookups."""

    def test_concurrent_lookups_are_consistent(self, registry):
        """Test many simultaneous lookups each get the right rule and parameters."""
        users = registry.register(make_rule('/users/:id', http_methods=['GET']))
        posts = registry.register(make_rule('/users/:id/posts/:post_id'))
        registry.register(make_rule('/orders/:id', http_methods=['POST']))

        def lookup(i):
            if i % 2:
                request = MockRequest('GET', f'http://h/users/{i}')
                expected = (users, {'id': str(i)})
            else:
                request = MockRequest('DELETE', f'http://h/users/{i}/posts/{i * 10}')
                expected = (posts, {'id': str(i), 'post_id': str(i * 10)})

            match = registry.find_match(request)
            return (match.rule, match.parameters) == expected

        with ThreadPoolExecutor(max_workers=16) as executor:
            results = list(executor.map(lookup, range(2000)))

        assert all(results)

    def test_lookups_during_registration(self, registry):
        """Test lookups stay correct while unrelated rules are registered."""
        target = registry.register(make_rule('/target/:id'))
        stop = threading.Event()
        errors = []

        def mutate():
            while not stop.is_set():
                rule = registry.register(make_rule('/noise/:id'))
                registry.unregister(rule)
                time.sleep(0.001)

        def lookup(i):
            match = registry.find_match(MockRequest('GET', f'http://h/target/{i}'))
            if match is None or match.rule is not target or match.parameters != {'id': str(i)}:
                errors.append(i)

        writer = threading.Thread(target=mutate)
        writer.start()
        try:
            with ThreadPoolExecutor(max_workers=8) as executor:
                list(executor.map(lookup, range(1000)))
        finally:
            stop.set()
            writer.join()

        assert errors == []


class TestReadWriteLock:
    """Test ReadWriteLock."""

    def test_readers_share_lock(self):
        """Test several readers can hold the lock together."""
        lock = ReadWriteLock()
        inside = threading.Barrier(3, timeout=5)

        def reader():
            with lock.read_locked():
                inside.wait()

        threads = [threading.Thread(target=reader) for _ in range(3)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=5)

        assert not any(thread.is_alive() for thread in threads)

    def test_writer_excludes_readers(self):
        """Test a reader waits while a writer holds the lock."""
        lock = ReadWriteLock()
        events = []

        lock.acquire_write()

        def reader():
            with lock.read_locked():
                events.append('read')

        thread = threading.Thread(target=reader)
        thread.start()
        time.sleep(0.05)
        events.append('write-done')
        lock.release_write()
        thread.join(timeout=5)

        assert events == ['write-done', 'read']

    def test_writer_waits_for_readers(self):
        """Test a writer waits until readers release the lock."""
        lock = ReadWriteLock()
        events = []

        lock.acquire_read()

        def writer():
            with lock.write_locked():
                events.append('write')

        thread = threading.Thread(target=writer)
        thread.start()
        time.sleep(0.05)
        events.append('read-done')
        lock.release_read()
        thread.join(timeout=5)

        assert events == ['read-done', 'write']
