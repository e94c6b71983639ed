"""In-memory lookup over the category taxonomy."""

from typing import Dict, Iterable, List, Optional
from models.category import Category


def _normalize(name: str) -> str:
    return name.strip().lower()


class Taxonomy:
    """Main categories and their subcategories, keyed by id and by name.

    Name lookups are case-insensitive and ignore surrounding whitespace,
    which is how bank category strings are compared against the taxonomy.
    """

    def __init__(self, categories: Iterable[Category]):
        self._by_id: Dict[int, Category] = {}
        self._mains_by_name: Dict[str, Category] = {}
        self._subs_by_name: Dict[int, Dict[str, Category]] = {}

        for category in categories:
            self._by_id[category.id] = category

        for category in self._by_id.values():
            key = _normalize(category.name)
            if category.is_main:
                # First one wins if names collide
                self._mains_by_name.setdefault(key, category)
            else:
                siblings = self._subs_by_name.setdefault(category.parent_id, {})
                siblings.setdefault(key, category)

    def get(self, category_id: int) -> Optional[Category]:
        return self._by_id.get(category_id)

    def main_categories(self) -> List[Category]:
        return sorted(
            (c for c in self._by_id.values() if c.is_main), key=lambda c: c.name
        )

    def subcategories(self, main_category_id: int) -> List[Category]:
        siblings = self._subs_by_name.get(main_category_id, {})
        return sorted(siblings.values(), key=lambda c: c.name)

    def find_main_by_name(self, name: Optional[str]) -> Optional[Category]:
        """Find a main category by case-insensitive name."""
        if not name or not name.strip():
            return None
        return self._mains_by_name.get(_normalize(name))

    def find_sub_by_name(
        self, main_category_id: int, name: Optional[str]
    ) -> Optional[Category]:
        """Find a subcategory of the given main category by case-insensitive name."""
        if not name or not name.strip():
            return None
        return self._subs_by_name.get(main_category_id, {}).get(_normalize(name))

    def is_subcategory_of(self, sub_category_id: int, main_category_id: int) -> bool:
        sub = self._by_id.get(sub_category_id)
        return sub is not None and sub.parent_id == main_category_id

    def __len__(self) -> int:
        return len(self._by_id)
