"""
URLMock CLI

Command-line interface for URLMock rule files and the mock server.

Commands:
    serve       - Start mock HTTP server from a rule file
    check       - Validate a rule file and list its rules
    match       - Show which rule a request would match

Examples:
    # Start mock server
    urlmock serve rules.yaml --port 8080

    # Validate rules
    urlmock check rules.yaml

    # Dry-run a request
    urlmock match rules.yaml GET https://api.example.com/users/42
"""

import argparse
import logging
import sys

from .mock import MockRequest, RuleSet, URLMockError, create_mock_server


def _load_rule_set(rules_file: str) -> RuleSet:
    try:
        return RuleSet.from_yaml(rules_file)
    except (FileNotFoundError, URLMockError) as e:
        print(f"❌ Failed to load rules: {e}")
        sys.exit(1)


def cmd_serve(args):
    """
    Start the mock server.

    Args:
        args: Parsed command-line arguments
    """
    try:
        server = create_mock_server(
            args.rules_file,
            host=args.host,
            port=args.port,
            log_level=args.log_level,
            admin_enabled=False if args.no_admin else None,
            verbose_mode=True if args.verbose else None,
            recording_enabled=True if args.record else None
        )
    except (FileNotFoundError, URLMockError) as e:
        print(f"❌ Failed to create mock server: {e}")
        sys.exit(1)

    try:
        server.start()
    except KeyboardInterrupt:
        print("\n\n👋 Mock server stopped")


def cmd_check(args):
    """
    Validate a rule file and list its rules in match order.

    Args:
        args: Parsed command-line arguments
    """
    rule_set = _load_rule_set(args.rules_file)

    try:
        rules = rule_set.to_rules()
    except URLMockError as e:
        print(f"❌ Invalid rule: {e}")
        sys.exit(1)

    print(f"✅ {rule_set.name}: {len(rules)} rules")
    for index, (definition, rule) in enumerate(zip(rule_set.rules, rules)):
        methods = ', '.join(sorted(rule.http_methods)) if rule.http_methods else 'ANY'
        label = f" ({definition.name})" if definition.name else ""
        print(f"  [{index}] {methods} {rule.url_pattern}{label}")


def cmd_match(args):
    """
    Show which rule a request would match, without generating a response.

    Args:
        args: Parsed command-line arguments
    """
    rule_set = _load_rule_set(args.rules_file)

    try:
        registry = rule_set.register_all()
    except URLMockError as e:
        print(f"❌ Invalid rule: {e}")
        sys.exit(1)

    match = registry.find_match(MockRequest(method=args.method, url=args.url))
    if match is None:
        print(f"✗ No rule matches {args.method.upper()} {args.url}")
        sys.exit(1)

    print(f"✓ Matched {match.rule!r}")
    for name, value in match.parameters.items():
        print(f"    {name} = {value}")


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog='urlmock',
        description="URLMock - pattern-based HTTP mock rules and mock server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s serve rules.yaml --port 8080
  %(prog)s check rules.yaml
  %(prog)s match rules.yaml GET https://api.example.com/users/42
        """
    )
    parser.add_argument('--log-level', choices=['debug', 'info', 'warning', 'error'],
                        help='Log level (default: warning; serve falls back to the rule file\'s log_level setting)')

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    # --- SERVE command ---
    serve_parser = subparsers.add_parser('serve', help='Start mock HTTP server')
    serve_parser.add_argument('rules_file', help='YAML rule file')
    serve_parser.add_argument('--host', help='Host to bind (default: from rule file or 127.0.0.1)')
    serve_parser.add_argument('-p', '--port', type=int, help='Port to bind (default: from rule file or 8080)')
    serve_parser.add_argument('--no-admin', action='store_true', help='Disable admin API')
    serve_parser.add_argument('--verbose', action='store_true', help='Show each request and its match')
    serve_parser.add_argument('--record', action='store_true', help='Record incoming requests')

    # --- CHECK command ---
    check_parser = subparsers.add_parser('check', help='Validate a rule file')
    check_parser.add_argument('rules_file', help='YAML rule file')

    # --- MATCH command ---
    match_parser = subparsers.add_parser('match', help='Show which rule a request matches')
    match_parser.add_argument('rules_file', help='YAML rule file')
    match_parser.add_argument('method', help='HTTP method')
    match_parser.add_argument('url', help='Request URL')

    return parser


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, (args.log_level or 'warning').upper()),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

    if args.command == 'serve':
        cmd_serve(args)
    elif args.command == 'check':
        cmd_check(args)
    elif args.command == 'match':
        cmd_match(args)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == '__main__':
    main()
