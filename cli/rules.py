#!/usr/bin/env python3

import sys
from pathlib import Path
from rules_file import load_rules_file
from logger import get_logger

logger = get_logger()


def _describe_condition(rule) -> str:
    if rule.bank_category:
        condition = f"bank category '{rule.bank_category}'"
        if rule.bank_sub_category:
            condition += f" / '{rule.bank_sub_category}'"
        return condition
    return f"{rule.rule_type.value} '{rule.match_value}'"


def cmd_list(args, services):
    """List all rules in evaluation order."""
    rules = services.rules.find_all()

    if not rules:
        logger.info("No rules found.")
        return

    taxonomy = services.categories.build_taxonomy()

    logger.info("\nRules (lowest priority value first):")
    logger.info("=" * 80)
    for rule in rules:
        state = "active" if rule.is_active else "disabled"
        logger.info(f"[{rule.id}] {rule.name} (priority {rule.priority}, {state})")
        logger.info(f"  When: {_describe_condition(rule)}")
        if rule.transaction_direction.value != "all":
            logger.info(f"  Direction: {rule.transaction_direction.value}")
        if rule.applicable_account_ids:
            logger.info(f"  Accounts: {sorted(rule.applicable_account_ids)}")
        if rule.target_main_category_id is not None:
            main = taxonomy.get(rule.target_main_category_id)
            target = main.name if main else str(rule.target_main_category_id)
            if rule.target_sub_category_id is not None:
                sub = taxonomy.get(rule.target_sub_category_id)
                target += f" / {sub.name if sub else rule.target_sub_category_id}"
            logger.info(f"  Category: {target}")
        logger.info(
            f"  Types: +{rule.positive_result_type.value} "
            f"-{rule.negative_result_type.value}"
        )
        if rule.auto_approval:
            logger.info("  Auto approval: yes")
        logger.info("-" * 80)

    logger.info(f"\nTotal rules: {len(rules)}")


def cmd_import(args, services):
    """Import rules from a YAML file."""
    taxonomy = services.categories.build_taxonomy()
    account_ids = {account.name: account.id for account in services.accounts.find_all()}

    try:
        definitions = load_rules_file(Path(args.file), taxonomy, account_ids)
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Could not load rules: {e}")
        sys.exit(1)

    for definition in definitions:
        rule = services.rules.create(**definition)
        logger.info(f"✓ Created rule '{rule.name}' (ID: {rule.id})")

    logger.info(f"\nImported {len(definitions)} rule(s).")


def _set_active(args, services, is_active: bool):
    if not services.rules.set_active(args.rule_id, is_active):
        logger.error(f"Rule with ID {args.rule_id} not found.")
        sys.exit(1)
    logger.info(f"✓ Rule {args.rule_id} {'enabled' if is_active else 'disabled'}.")


def cmd_enable(args, services):
    _set_active(args, services, True)


def cmd_disable(args, services):
    _set_active(args, services, False)


def cmd_delete(args, services):
    """Delete a rule by ID."""
    if not services.rules.delete(args.rule_id):
        logger.error(f"Rule with ID {args.rule_id} not found.")
        sys.exit(1)
    logger.info(f"✓ Rule {args.rule_id} deleted.")


def setup_parser(subparsers):
    """Setup rules subcommand parser.

    Args:
        subparsers: The subparsers object from the main CLI
    """
    parser = subparsers.add_parser(
        "rules",
        help="Manage categorization rules",
        description="Import, list, enable, disable and delete categorization rules",
    )

    rules_subparsers = parser.add_subparsers(
        title="subcommands",
        description="Available rule commands",
        dest="subcommand",
        required=True,
    )

    list_parser = rules_subparsers.add_parser("list", help="List all rules")
    list_parser.set_defaults(func=cmd_list)

    import_parser = rules_subparsers.add_parser(
        "import", help="Import rules from a YAML file"
    )
    import_parser.add_argument("file", help="Path to the rules YAML file")
    import_parser.set_defaults(func=cmd_import)

    for name, func, help_text in (
        ("enable", cmd_enable, "Enable a rule"),
        ("disable", cmd_disable, "Disable a rule"),
        ("delete", cmd_delete, "Delete a rule"),
    ):
        sub_parser = rules_subparsers.add_parser(name, help=help_text)
        sub_parser.add_argument("rule_id", type=int, help="ID of the rule")
        sub_parser.set_defaults(func=func)
