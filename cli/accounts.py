#!/usr/bin/env python3

import sys
import sqlite3
from logger import get_logger

logger = get_logger()


def cmd_list(args, services):
    """List all accounts in the database."""
    accounts = services.accounts.find_all()

    if not accounts:
        logger.info("No accounts found.")
        return

    logger.info("\nAccounts:")
    logger.info("=" * 80)
    for account in accounts:
        logger.info(f"ID: {account.id}")
        logger.info(f"Name: {account.name}")
        if account.description:
            logger.info(f"Description: {account.description}")
        logger.info("-" * 80)

    logger.info(f"\nTotal accounts: {len(accounts)}")


def cmd_create(args, services):
    """Create a new account."""
    name = args.name.strip()
    if not name:
        logger.error("Account name cannot be empty.")
        sys.exit(1)

    try:
        account = services.accounts.create(name, args.description or "")
    except sqlite3.IntegrityError:
        logger.error(f"An account named '{name}' already exists.")
        sys.exit(1)

    logger.info(f"✓ Account created successfully with ID: {account.id}")
    logger.info(f"  Name: {account.name}")
    if account.description:
        logger.info(f"  Description: {account.description}")


def cmd_delete(args, services):
    """Delete an account by ID."""
    account = services.accounts.find(args.account_id)
    if not account:
        logger.error(f"Account with ID {args.account_id} not found.")
        sys.exit(1)

    if not args.yes:
        confirm = (
            input(f"\nDelete account '{account.name}'? (yes/no): ").strip().lower()
        )
        if confirm != "yes":
            logger.info("Deletion cancelled.")
            return

    try:
        services.accounts.delete(account.id)
    except sqlite3.IntegrityError:
        logger.error(
            f"Account '{account.name}' still has transactions and cannot be deleted."
        )
        sys.exit(1)

    logger.info(f"✓ Account '{account.name}' deleted successfully.")


def setup_parser(subparsers):
    """Setup accounts subcommand parser.

    Args:
        subparsers: The subparsers object from the main CLI
    """
    parser = subparsers.add_parser(
        "accounts",
        help="Manage accounts",
        description="Create, list and delete bank accounts",
    )

    accounts_subparsers = parser.add_subparsers(
        title="subcommands",
        description="Available account commands",
        dest="subcommand",
        required=True,
    )

    # accounts list
    list_parser = accounts_subparsers.add_parser("list", help="List all accounts")
    list_parser.set_defaults(func=cmd_list)

    # accounts create
    create_parser = accounts_subparsers.add_parser("create", help="Create a new account")
    create_parser.add_argument("name", help="Account name (e.g., Checking)")
    create_parser.add_argument("--description", help="Human readable description")
    create_parser.set_defaults(func=cmd_create)

    # accounts delete
    delete_parser = accounts_subparsers.add_parser(
        "delete", help="Delete an account by ID"
    )
    delete_parser.add_argument("account_id", type=int, help="ID of the account to delete")
    delete_parser.add_argument(
        "-y", "--yes", action="store_true", help="Do not ask for confirmation"
    )
    delete_parser.set_defaults(func=cmd_delete)
