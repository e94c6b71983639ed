"""Category model for the two-level app taxonomy."""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Category:
    """Represents a user-defined transaction category.

    Main categories have no parent; subcategories point at their main
    category through parent_id. Deeper nesting is not used.

    Attributes:
        id: Unique identifier (auto-generated).
        name: Category name (unique among its siblings).
        description: Optional description of what belongs in this category.
        parent_id: Main category ID for subcategories, None for main categories.
    """

    id: int
    name: str
    description: Optional[str]
    parent_id: Optional[int] = None

    @property
    def is_main(self) -> bool:
        return self.parent_id is None
