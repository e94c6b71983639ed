#!/usr/bin/env python3

import sys
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Optional, Tuple
from dateutil.relativedelta import relativedelta
from models.transaction import Transaction, TransactionType
from reconciliation.errors import ReconciliationError
from logger import get_logger

logger = get_logger()


def month_range(month: str) -> Tuple[date, date]:
    """Parse YYYY/MM into the first and last day of that month.

    Raises:
        ValueError: If the month is malformed.
    """
    try:
        year, month_number = (int(part) for part in month.split("/"))
    except ValueError:
        raise ValueError(f"Invalid month '{month}', expected YYYY/MM") from None
    if month_number < 1 or month_number > 12:
        raise ValueError("Month must be between 1 and 12")

    start = date(year, month_number, 1)
    return start, start + relativedelta(day=31)


def to_minor_units(amount: str) -> int:
    """Convert a decimal amount such as -12.50 into minor units (-1250)."""
    try:
        value = Decimal(amount)
    except InvalidOperation:
        raise ValueError(f"Invalid amount '{amount}'") from None
    return int((value * 100).to_integral_value())


def format_amount(minor_units: int) -> str:
    return f"{Decimal(minor_units) / 100:.2f}"


def _resolve_accounts(args, services) -> Optional[list]:
    if not args.account:
        return None
    account = services.accounts.find_by_name(args.account)
    if not account:
        logger.error(f"Account '{args.account}' not found.")
        logger.info("Use 'python -m cli accounts list' to see available accounts.")
        sys.exit(1)
    return [account.id]


def _resolve_period(args) -> Tuple[Optional[date], Optional[date]]:
    if args.month:
        try:
            return month_range(args.month)
        except ValueError as e:
            logger.error(str(e))
            sys.exit(1)
    return args.start_date, args.end_date


def _run(operation, *args, **kwargs):
    """Call a reconciliation operation, exiting on a refused request."""
    try:
        return operation(*args, **kwargs)
    except (ReconciliationError, ValueError) as e:
        logger.error(str(e))
        sys.exit(1)


def cmd_list(args, services):
    """List transactions for a period."""
    start_date, end_date = _resolve_period(args)
    transactions = services.transactions.find_by_period(
        start_date, end_date, _resolve_accounts(args, services)
    )

    if not transactions:
        logger.info("No transactions found.")
        return

    accounts = services.accounts.name_map()
    taxonomy = services.categories.build_taxonomy()

    for t in transactions:
        category = ""
        if t.app_category_id is not None:
            main = taxonomy.get(t.app_category_id)
            category = main.name if main else str(t.app_category_id)
            if t.app_sub_category_id is not None:
                sub = taxonomy.get(t.app_sub_category_id)
                category += f"/{sub.name if sub else t.app_sub_category_id}"

        amount = format_amount(t.amount)
        if t.corrected_amount is not None:
            amount += f" ({format_amount(t.corrected_amount)})"

        logger.info(
            f"{t.id[:12]}  {t.date.isoformat()}  {accounts.get(t.account_id, t.account_id):<12}"
            f"  {amount:>20}  {t.status.value:<16}  {t.type.value:<17}"
            f"  {category:<28}  {t.display_description()[:40]}"
        )
        if t.linked_transaction_id:
            logger.info(f"{'':14}transfer ↔ {t.linked_transaction_id[:12]}")
        if t.linked_cost_id:
            logger.info(f"{'':14}cost ↔ {t.linked_cost_id[:12]}")

    logger.info(f"\nTotal transactions: {len(transactions)}")


def cmd_add(args, services):
    """Add a single transaction by hand."""
    account = services.accounts.find_by_name(args.account)
    if not account:
        logger.error(f"Account '{args.account}' not found.")
        sys.exit(1)

    try:
        amount = to_minor_units(args.amount)
    except ValueError as e:
        logger.error(str(e))
        sys.exit(1)

    raw_data = "|".join(
        [str(account.id), args.date.isoformat(), str(amount), args.description]
    )
    transaction = Transaction.create_with_checksum(
        raw_data,
        account.id,
        args.date,
        amount,
        args.description,
        bank_category=args.bank_category,
        bank_sub_category=args.bank_sub_category,
    )

    if services.transactions.find(transaction.id):
        logger.info(f"⊘ Transaction already exists: {transaction.id}")
        return

    services.transactions.create(transaction)
    logger.info(f"✓ Transaction added: {transaction.id}")


def cmd_apply_rules(args, services):
    """Run the categorization batch over a period."""
    start_date, end_date = _resolve_period(args)
    result = services.reconciliation.apply_rules(
        start_date, end_date, _resolve_accounts(args, services)
    )

    if not result.success:
        logger.error(f"Batch failed, nothing was saved: {result.error_reason}")
        sys.exit(1)

    stats = result.stats
    logger.info("\nRule application complete!")
    logger.info(f"Processed: {stats.processed}")
    logger.info(f"Skipped (approved): {stats.skipped}")
    logger.info(f"Matched by rule: {stats.rules_applied}")
    logger.info(f"Matched by bank category: {stats.bank_matched}")
    logger.info(f"Transfers linked: {stats.auto_matched}")
    if stats.ambiguous_transfers:
        logger.info(f"Transfers with several candidates: {stats.ambiguous_transfers}")
    logger.info(f"Auto-approved: {stats.auto_approved}")
    logger.info(f"Updated: {result.committed}")


def cmd_match_transfer(args, services):
    """Link two transactions as one internal transfer."""
    count = _run(services.reconciliation.match_transfer, args.first_id, args.second_id)
    logger.info(f"✓ Transfer linked ({count} transaction(s) updated)")


def cmd_unlink_transfer(args, services):
    count = _run(services.reconciliation.unlink_transfer, args.transaction_id)
    logger.info(f"✓ Transfer unlinked ({count} transaction(s) updated)")


def cmd_cover(args, services):
    """Link a covering transaction to the cost it pays down."""
    if not args.covered_id:
        candidates = _run(services.reconciliation.coverage_candidates, args.covering_id)
        if not candidates:
            logger.info("No candidate transactions found.")
            return
        logger.info("\nCandidates:")
        for t in candidates:
            logger.info(
                f"{t.id[:12]}  {t.date.isoformat()}  {format_amount(t.amount):>12}"
                f"  {t.display_description()[:50]}"
            )
        return

    result = _run(
        services.reconciliation.link_partial_coverage, args.covering_id, args.covered_id
    )
    if not result.success:
        logger.error(f"Coverage not linked: {result.error_reason}")
        sys.exit(1)
    logger.info(f"✓ Covered {format_amount(result.amount_covered)}")


def cmd_unlink_cost(args, services):
    count = _run(services.reconciliation.unlink_cost, args.transaction_id)
    logger.info(f"✓ Cost coverage unlinked ({count} transaction(s) updated)")


def cmd_set_category(args, services):
    """Set the category, and optionally type, of a transaction."""
    main = services.categories.find_by_name(args.category)
    if not main:
        logger.error(f"Category '{args.category}' not found.")
        logger.info("Use 'python -m cli categories list' to see available categories.")
        sys.exit(1)

    values = {"app_category_id": main.id, "app_sub_category_id": None}
    if args.subcategory:
        sub = services.categories.find_by_name(args.subcategory, main.id)
        if not sub:
            logger.error(f"Subcategory '{args.subcategory}' not found under '{main.name}'.")
            sys.exit(1)
        values["app_sub_category_id"] = sub.id
    if args.type:
        values["type"] = TransactionType(args.type)
    if args.note is not None:
        values["user_description"] = args.note or None

    count = _run(services.reconciliation.edit, args.transaction_id, **values)
    logger.info(f"✓ Transaction categorized ({count} transaction(s) updated)")


def cmd_approve(args, services):
    _run(services.reconciliation.approve, args.transaction_id)
    logger.info("✓ Transaction approved")


def cmd_link_savings(args, services):
    """File a transaction as a savings contribution."""
    main = services.categories.find_by_name(args.category)
    if not main:
        logger.error(f"Category '{args.category}' not found.")
        sys.exit(1)

    _run(
        services.reconciliation.link_savings,
        args.transaction_id,
        args.savings_target,
        main.id,
    )
    logger.info(f"✓ Linked to savings target '{args.savings_target}'")


def cmd_verify_links(args, services):
    """Report broken transfer and cost links, and optionally repair them."""
    broken = services.reconciliation.verify_links()

    if not broken:
        logger.info("✓ All links are consistent.")
    else:
        for link in broken:
            logger.info(
                f"{link.transaction_id[:12]}  {link.slot.name.lower():<8}"
                f"  → {link.linked_id[:12]}  {link.reason}"
            )
        logger.info(f"\nBroken links: {len(broken)}")

        if args.repair:
            count = services.reconciliation.repair_links()
            logger.info(f"✓ Repaired ({count} transaction(s) updated)")

    if args.recalculate:
        count = services.reconciliation.recalculate_statuses()
        logger.info(f"✓ Statuses recalculated ({count} transaction(s) updated)")


def _add_period_arguments(parser):
    date_group = parser.add_mutually_exclusive_group()
    date_group.add_argument(
        "--month",
        help="Month in YYYY/MM format (e.g., 2025/10 for October 2025)",
    )
    date_group.add_argument(
        "--start-date",
        type=date.fromisoformat,
        help="First date in YYYY-MM-DD format",
    )
    parser.add_argument(
        "--end-date",
        type=date.fromisoformat,
        help="Last date in YYYY-MM-DD format",
    )
    parser.add_argument("--account", help="Limit to one account, by name")


def setup_parser(subparsers):
    """Setup transactions subcommand parser.

    Args:
        subparsers: The subparsers object from the main CLI
    """
    parser = subparsers.add_parser(
        "transactions",
        help="Add, categorize and link transactions",
        description="Categorize transactions with rules and reconcile links between them",
    )

    transactions_subparsers = parser.add_subparsers(
        title="subcommands",
        description="Available transaction commands",
        dest="subcommand",
        required=True,
    )

    # transactions list
    list_parser = transactions_subparsers.add_parser("list", help="List transactions")
    _add_period_arguments(list_parser)
    list_parser.set_defaults(func=cmd_list)

    # transactions add
    add_parser = transactions_subparsers.add_parser(
        "add",
        help="Add a transaction by hand",
        epilog="""
Examples:
  python -m cli transactions add --account Checking --date 2025-10-03 \\
      --amount -42.50 --description "ALBERT HEIJN 1234"
        """,
    )
    add_parser.add_argument("--account", required=True, help="Account name")
    add_parser.add_argument(
        "--date", type=date.fromisoformat, required=True, help="Date (YYYY-MM-DD)"
    )
    add_parser.add_argument(
        "--amount", required=True, help="Signed amount, negative for money going out"
    )
    add_parser.add_argument("--description", required=True, help="Bank description")
    add_parser.add_argument("--bank-category", help="Category assigned by the bank")
    add_parser.add_argument("--bank-sub-category", help="Subcategory assigned by the bank")
    add_parser.set_defaults(func=cmd_add)

    # transactions apply-rules
    apply_parser = transactions_subparsers.add_parser(
        "apply-rules",
        help="Categorize transactions with the active rules",
        epilog="""
Examples:
  python -m cli transactions apply-rules --month 2025/10
  python -m cli transactions apply-rules --start-date 2025-01-01 --account Checking
        """,
    )
    _add_period_arguments(apply_parser)
    apply_parser.set_defaults(func=cmd_apply_rules)

    # transactions match-transfer
    match_parser = transactions_subparsers.add_parser(
        "match-transfer", help="Link two transactions as an internal transfer"
    )
    match_parser.add_argument("first_id", help="First transaction ID")
    match_parser.add_argument("second_id", help="Second transaction ID")
    match_parser.set_defaults(func=cmd_match_transfer)

    # transactions unlink-transfer
    unlink_transfer_parser = transactions_subparsers.add_parser(
        "unlink-transfer", help="Break an internal transfer link"
    )
    unlink_transfer_parser.add_argument("transaction_id", help="Either side's ID")
    unlink_transfer_parser.set_defaults(func=cmd_unlink_transfer)

    # transactions cover
    cover_parser = transactions_subparsers.add_parser(
        "cover",
        help="Cover (part of) a cost with an incoming payment",
        epilog="""
Examples:
  # List payments that could cover a cost
  python -m cli transactions cover <cost_id>

  # Cover the cost with a payment
  python -m cli transactions cover <payment_id> <cost_id>
        """,
    )
    cover_parser.add_argument(
        "covering_id",
        help="Covering (positive) transaction ID, or the cost ID when listing candidates",
    )
    cover_parser.add_argument(
        "covered_id", nargs="?", help="Covered (negative) transaction ID"
    )
    cover_parser.set_defaults(func=cmd_cover)

    # transactions unlink-cost
    unlink_cost_parser = transactions_subparsers.add_parser(
        "unlink-cost", help="Undo a cost coverage link"
    )
    unlink_cost_parser.add_argument("transaction_id", help="Either side's ID")
    unlink_cost_parser.set_defaults(func=cmd_unlink_cost)

    # transactions set-category
    set_category_parser = transactions_subparsers.add_parser(
        "set-category",
        help="Set category for a transaction",
        description="Assign a main category and subcategory to a transaction",
    )
    set_category_parser.add_argument("transaction_id", help="Transaction ID (SHA256 hash)")
    set_category_parser.add_argument("category", help="Main category name")
    set_category_parser.add_argument("subcategory", nargs="?", help="Subcategory name")
    set_category_parser.add_argument(
        "--type", choices=[t.value for t in TransactionType], help="Transaction type"
    )
    set_category_parser.add_argument("--note", help="Your own description")
    set_category_parser.set_defaults(func=cmd_set_category)

    # transactions approve
    approve_parser = transactions_subparsers.add_parser(
        "approve", help="Approve a fully categorized transaction"
    )
    approve_parser.add_argument("transaction_id", help="Transaction ID (SHA256 hash)")
    approve_parser.set_defaults(func=cmd_approve)

    # transactions link-savings
    savings_parser = transactions_subparsers.add_parser(
        "link-savings", help="File a transaction as a savings contribution"
    )
    savings_parser.add_argument("transaction_id", help="Transaction ID (SHA256 hash)")
    savings_parser.add_argument("savings_target", help="Savings target identifier")
    savings_parser.add_argument("category", help="Main category name")
    savings_parser.set_defaults(func=cmd_link_savings)

    # transactions verify-links
    verify_parser = transactions_subparsers.add_parser(
        "verify-links", help="Check transfer and cost links for consistency"
    )
    verify_parser.add_argument(
        "--repair", action="store_true", help="Clear broken links on both sides"
    )
    verify_parser.add_argument(
        "--recalculate",
        action="store_true",
        help="Also bring stored statuses in line with their transactions",
    )
    verify_parser.set_defaults(func=cmd_verify_links)
