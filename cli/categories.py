#!/usr/bin/env python3

import sys
import json
import sqlite3
from config import get_seed_dir
from logger import get_logger

logger = get_logger()


def cmd_list(args, services):
    """List the category taxonomy as a tree."""
    mains = services.categories.find_main_categories()

    if not mains:
        logger.info("No categories found.")
        return

    logger.info("\nCategories:")
    logger.info("=" * 80)
    total = 0
    for main in mains:
        line = f"[{main.id}] {main.name}"
        if main.description:
            line += f" - {main.description}"
        logger.info(line)
        total += 1
        for sub in services.categories.find_subcategories(main.id):
            logger.info(f"    [{sub.id}] {sub.name}")
            total += 1

    logger.info(f"\nTotal categories: {total}")


def cmd_create(args, services):
    """Create a main category, or a subcategory with --parent."""
    name = args.name.strip()
    if not name:
        logger.error("Category name cannot be empty.")
        sys.exit(1)

    try:
        category = services.categories.create(name, args.description, args.parent)
    except ValueError as e:
        logger.error(str(e))
        sys.exit(1)
    except sqlite3.IntegrityError:
        logger.error(f"Category '{name}' already exists at this level.")
        sys.exit(1)

    logger.info(f"✓ Category created successfully with ID: {category.id}")
    logger.info(f"  Name: {category.name}")
    if category.parent_id:
        logger.info(f"  Parent ID: {category.parent_id}")


def cmd_delete(args, services):
    """Delete a category by ID."""
    category_id = args.category_id

    category = services.categories.find(category_id)
    if not category:
        logger.error(f"Category with ID {category_id} not found.")
        sys.exit(1)

    logger.info("\nCategory to delete:")
    logger.info(f"  ID: {category.id}")
    logger.info(f"  Name: {category.name}")
    if category.is_main:
        children = services.categories.find_subcategories(category.id)
        if children:
            logger.info(f"  Subcategories also deleted: {len(children)}")

    if not args.yes:
        confirm = (
            input("\nAre you sure you want to delete this category? (yes/no): ")
            .strip()
            .lower()
        )
        if confirm != "yes":
            logger.info("Deletion cancelled.")
            return

    if services.categories.delete(category_id):
        logger.info(f"✓ Category '{category.name}' deleted successfully.")
    else:
        logger.error("Failed to delete category.")
        sys.exit(1)


def cmd_seed(args, services):
    """Seed categories from JSON file."""
    seed_file = get_seed_dir() / "categories.json"

    if not seed_file.exists():
        logger.error(f"Seed file not found: {seed_file}")
        sys.exit(1)

    try:
        with open(seed_file, "r") as f:
            categories_data = json.load(f)
    except json.JSONDecodeError as e:
        logger.error(f"Error parsing JSON file: {e}")
        sys.exit(1)

    logger.info(f"\nSeeding categories from {seed_file.name}")
    logger.info("=" * 80)

    created_count = 0
    skipped_count = 0

    for category_data in categories_data:
        name = category_data.get("name")
        if not name:
            logger.warning("Skipping category with no name")
            continue

        parent = services.categories.find_by_name(name)
        if parent:
            logger.info(f"⊘ Skipped '{name}' (already exists)")
            skipped_count += 1
        else:
            parent = services.categories.create(name, category_data.get("description"))
            logger.info(f"✓ Created '{name}' (ID: {parent.id})")
            created_count += 1

        for child_data in category_data.get("children", []):
            child_name = child_data.get("name")
            if not child_name:
                logger.warning(f"Skipping child of '{name}' with no name")
                continue

            if services.categories.find_by_name(child_name, parent.id):
                logger.info(f"  ⊘ Skipped '{name}/{child_name}' (already exists)")
                skipped_count += 1
                continue

            child = services.categories.create(
                child_name, child_data.get("description"), parent.id
            )
            logger.info(f"  ✓ Created '{name}/{child_name}' (ID: {child.id})")
            created_count += 1

    logger.info("=" * 80)
    logger.info("\nSeeding complete!")
    logger.info(f"Created: {created_count}")
    logger.info(f"Skipped: {skipped_count}")


def setup_parser(subparsers):
    """Setup categories subcommand parser.

    Args:
        subparsers: The subparsers object from the main CLI
    """
    parser = subparsers.add_parser(
        "categories",
        help="Manage categories",
        description="Create, list, and delete main categories and subcategories",
    )

    categories_subparsers = parser.add_subparsers(
        title="subcommands",
        description="Available category commands",
        dest="subcommand",
        required=True,
    )

    # categories list
    list_parser = categories_subparsers.add_parser("list", help="List all categories")
    list_parser.set_defaults(func=cmd_list)

    # categories create
    create_parser = categories_subparsers.add_parser(
        "create", help="Create a new category"
    )
    create_parser.add_argument("name", help="Category name (e.g., Groceries)")
    create_parser.add_argument("--description", help="Optional description")
    create_parser.add_argument(
        "--parent", type=int, help="Main category ID, to create a subcategory"
    )
    create_parser.set_defaults(func=cmd_create)

    # categories delete
    delete_parser = categories_subparsers.add_parser(
        "delete", help="Delete a category by ID"
    )
    delete_parser.add_argument(
        "category_id",
        type=int,
        help="ID of the category to delete",
    )
    delete_parser.add_argument(
        "-y", "--yes", action="store_true", help="Do not ask for confirmation"
    )
    delete_parser.set_defaults(func=cmd_delete)

    # categories seed
    seed_parser = categories_subparsers.add_parser(
        "seed", help="Seed categories from JSON file"
    )
    seed_parser.set_defaults(func=cmd_seed)
