#!/usr/bin/env python3
"""
Ledgerlink CLI - Categorize and reconcile bank transactions.

Usage:
    python -m cli <command> <subcommand> [options]

Commands:
    accounts     Manage accounts
    categories   Manage the category taxonomy
    rules        Manage categorization rules
    transactions Add, categorize and link transactions
    migrate      Database migrations

Examples:
    python -m cli accounts list
    python -m cli rules import rules.yaml
    python -m cli transactions apply-rules --month 2025/03
    python -m cli transactions cover <covering-id> <covered-id>
    python -m cli migrate apply
"""

import sys
import argparse
from cli import accounts, categories, migrate, rules, transactions
from config import load_config
from services.base import Services
from db.manager import DatabaseManager
from logger import setup_logging, get_logger


def main():
    """Main CLI entry point with subcommands."""
    parser = argparse.ArgumentParser(
        prog="ledgerlink",
        description="Ledgerlink - Bank transaction categorization and reconciliation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    # Create subparsers for each command
    subparsers = parser.add_subparsers(
        title="commands",
        description="Available commands",
        dest="command",
        required=True,
    )

    # Register each command's subparser
    accounts.setup_parser(subparsers)
    categories.setup_parser(subparsers)
    rules.setup_parser(subparsers)
    transactions.setup_parser(subparsers)
    migrate.setup_parser(subparsers)

    args = parser.parse_args()

    if hasattr(args, "func"):
        try:
            config = load_config()
            setup_logging(config)

            if args.command == "migrate":
                # Migrate commands need db_manager for raw database operations
                args.func(args, DatabaseManager(config))
            else:
                args.func(args, Services(config))
        except Exception as e:
            get_logger().error(f"Error: {e}")
            sys.exit(1)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
