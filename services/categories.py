"""Category service for database operations."""

from typing import List, Optional
from models.category import Category
from models.taxonomy import Taxonomy

_CATEGORY_SELECT = "SELECT id, name, description, parent_id FROM categories"


class CategoryService:
    """Service for managing the two-level category taxonomy."""

    def __init__(self, db_manager):
        """Initialize the category service.

        Args:
            db_manager: Database manager instance for database operations.
        """
        self.db_manager = db_manager

    def find_all(self) -> List[Category]:
        """Get all categories from the database.

        Returns:
            List of Category objects, ordered by name.
        """
        with self.db_manager.connect() as conn:
            cursor = conn.execute(f"{_CATEGORY_SELECT} ORDER BY name, id")
            return [self._row_to_category(row) for row in cursor.fetchall()]

    def find_main_categories(self) -> List[Category]:
        """Get all main (top-level) categories, ordered by name."""
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                f"{_CATEGORY_SELECT} WHERE parent_id IS NULL ORDER BY name"
            )
            return [self._row_to_category(row) for row in cursor.fetchall()]

    def find_subcategories(self, main_category_id: int) -> List[Category]:
        """Get the subcategories of a main category, ordered by name."""
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                f"{_CATEGORY_SELECT} WHERE parent_id = ? ORDER BY name",
                (main_category_id,),
            )
            return [self._row_to_category(row) for row in cursor.fetchall()]

    def find(self, category_id: int) -> Optional[Category]:
        """Get a single category by ID.

        Args:
            category_id: The category ID to find.

        Returns:
            Category object if found, None otherwise.
        """
        with self.db_manager.connect() as conn:
            cursor = conn.execute(f"{_CATEGORY_SELECT} WHERE id = ?", (category_id,))
            row = cursor.fetchone()

            if row:
                return self._row_to_category(row)
            return None

    def find_by_name(
        self, name: str, parent_id: Optional[int] = None
    ) -> Optional[Category]:
        """Get a category by exact name.

        Args:
            name: The category name to find.
            parent_id: Main category to look under. None looks up a main category.

        Returns:
            Category object if found, None otherwise.
        """
        with self.db_manager.connect() as conn:
            if parent_id is None:
                cursor = conn.execute(
                    f"{_CATEGORY_SELECT} WHERE name = ? AND parent_id IS NULL",
                    (name,),
                )
            else:
                cursor = conn.execute(
                    f"{_CATEGORY_SELECT} WHERE name = ? AND parent_id = ?",
                    (name, parent_id),
                )
            row = cursor.fetchone()

            if row:
                return self._row_to_category(row)
            return None

    def build_taxonomy(self) -> Taxonomy:
        """Load the whole taxonomy for in-memory lookups."""
        return Taxonomy(self.find_all())

    def create(
        self,
        name: str,
        description: Optional[str] = None,
        parent_id: Optional[int] = None,
    ) -> Category:
        """Create a new category.

        Args:
            name: Category name (unique among its siblings).
            description: Optional description of the category.
            parent_id: Main category ID when creating a subcategory.

        Returns:
            The created Category object with id populated.

        Raises:
            ValueError: If parent_id is not a main category.
            sqlite3.IntegrityError: If a sibling with the same name exists.
        """
        if parent_id is not None:
            parent = self.find(parent_id)
            if parent is None:
                raise ValueError(f"Parent category with ID {parent_id} not found")
            if not parent.is_main:
                raise ValueError("Subcategories cannot have subcategories")

        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                "INSERT INTO categories (name, description, parent_id) VALUES (?, ?, ?)",
                (name, description, parent_id),
            )
            conn.commit()

            return Category(
                id=cursor.lastrowid,
                name=name,
                description=description,
                parent_id=parent_id,
            )

    def update(
        self,
        category_id: int,
        name: str,
        description: Optional[str] = None,
    ) -> Category:
        """Rename or re-describe a category. Its place in the tree is fixed.

        Raises:
            ValueError: If the category is not found.
        """
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                "UPDATE categories SET name = ?, description = ? WHERE id = ?",
                (name, description, category_id),
            )
            conn.commit()

            if cursor.rowcount == 0:
                raise ValueError(f"Category with ID {category_id} not found")

        return self.find(category_id)

    def delete(self, category_id: int) -> bool:
        """Delete a category and, for a main category, its subcategories.

        Args:
            category_id: The category ID to delete.

        Returns:
            True if category was deleted, False if not found.
        """
        with self.db_manager.connect() as conn:
            conn.execute("DELETE FROM categories WHERE parent_id = ?", (category_id,))
            cursor = conn.execute("DELETE FROM categories WHERE id = ?", (category_id,))
            conn.commit()
            return cursor.rowcount > 0

    def _row_to_category(self, row: tuple) -> Category:
        return Category(id=row[0], name=row[1], description=row[2], parent_id=row[3])
