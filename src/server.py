"""Protean Engine runner for the ordering domain.

Starts the Engine workers that process events asynchronously in production:
- OutboxProcessor: polls the outbox table and publishes events to Redis Streams
- StreamSubscriptions: read Redis Streams and invoke the notification handlers

Usage:
    python src/server.py
"""

import argparse

from protean.server.engine import Engine


def _get_domain():
    from ordering.domain import ordering

    ordering.init()
    return ordering


def main():
    parser = argparse.ArgumentParser(description="Ordering Engine runner")
    parser.add_argument("--test-mode", action="store_true", help="Process pending messages and exit")
    args = parser.parse_args()

    engine = Engine(_get_domain(), test_mode=args.test_mode)
    engine.run()


if __name__ == "__main__":
    main()
