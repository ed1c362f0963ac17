"""Gemcart management CLI.

Usage:
    python src/manage.py setup-db       # Create all tables
    python src/manage.py drop-db        # Drop all tables
    python src/manage.py expire-carts   # Delete carts past their TTL
    python src/manage.py expire-unpaid-orders  # Cancel online orders left unpaid
"""

import argparse
import sys


def _domain():
    from ordering.domain import ordering

    ordering.init()
    return ordering


def setup_database():
    from ordering.utils.db import setup_db

    providers = setup_db(_domain())
    print(f"Schema ready for providers: {', '.join(providers) or 'none (in-memory)'}")


def drop_database():
    from ordering.utils.db import drop_db

    providers = drop_db(_domain())
    print(f"Schema dropped for providers: {', '.join(providers) or 'none (in-memory)'}")


def expire_carts():
    from ordering.cart.management import ExpireCarts

    domain = _domain()
    with domain.domain_context():
        count = domain.process(ExpireCarts(), asynchronous=False)
    print(f"Expired {count} cart(s).")


def expire_unpaid_orders():
    from ordering.order.cancellation import ExpireUnpaidOrders

    domain = _domain()
    with domain.domain_context():
        count = domain.process(ExpireUnpaidOrders(), asynchronous=False)
    print(f"Cancelled {count} unpaid order(s).")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Gemcart management")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")
    subparsers.add_parser("expire-carts", help="Delete carts whose TTL has elapsed")
    subparsers.add_parser("expire-unpaid-orders", help="Cancel online orders whose payment window has elapsed")

    args = parser.parse_args(argv)

    commands = {
        "setup-db": setup_database,
        "drop-db": drop_database,
        "expire-carts": expire_carts,
        "expire-unpaid-orders": expire_unpaid_orders,
    }
    handler = commands.get(args.command)
    if handler is None:
        parser.print_help()
        sys.exit(1)
    handler()


if __name__ == "__main__":
    main()
