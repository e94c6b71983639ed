"""Categorization rule service for database operations."""

import json
from dataclasses import fields
from typing import List, Optional

from models.category_rule import CategoryRule

_RULE_FIELDS = """id, name, priority, rule_type, match_value, bank_category,
       bank_sub_category, transaction_direction, applicable_account_ids,
       target_main_category_id, target_sub_category_id, positive_result_type,
       negative_result_type, auto_approval, is_active"""

# Everything but the auto-generated id
_RULE_INSERT_FIELDS = [f.name for f in fields(CategoryRule) if f.name != "id"]


class RuleService:
    """Service for managing categorization rules."""

    def __init__(self, db_manager):
        """Initialize the rule service.

        Args:
            db_manager: Database manager instance for database operations.
        """
        self.db_manager = db_manager

    def find_all(self) -> List[CategoryRule]:
        """Get all rules, active or not, in evaluation order."""
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                f"SELECT {_RULE_FIELDS} FROM category_rules ORDER BY priority, id"
            )
            return [self._row_to_rule(row) for row in cursor.fetchall()]

    def find_active(self) -> List[CategoryRule]:
        """Get the active rules, lowest priority value first.

        Ties keep insertion order, so the earlier rule wins.
        """
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                f"""
                SELECT {_RULE_FIELDS}
                FROM category_rules
                WHERE is_active = 1
                ORDER BY priority, id
                """
            )
            return [self._row_to_rule(row) for row in cursor.fetchall()]

    def find(self, rule_id: int) -> Optional[CategoryRule]:
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                f"SELECT {_RULE_FIELDS} FROM category_rules WHERE id = ?", (rule_id,)
            )
            row = cursor.fetchone()

            if row:
                return self._row_to_rule(row)
            return None

    def create(self, **values) -> CategoryRule:
        """Create a new rule.

        Args:
            **values: CategoryRule fields other than id.

        Returns:
            The created CategoryRule with id populated.

        Raises:
            ValueError: If the rule definition is inconsistent.
        """
        # Validate through the model before touching the database
        rule = CategoryRule(id=0, **values)

        placeholders = ", ".join(["?"] * len(_RULE_INSERT_FIELDS))
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                f"""
                INSERT INTO category_rules ({", ".join(_RULE_INSERT_FIELDS)})
                VALUES ({placeholders})
                """,
                self._rule_to_row(rule),
            )
            conn.commit()
            rule.id = cursor.lastrowid

        return rule

    def set_active(self, rule_id: int, is_active: bool) -> bool:
        """Enable or disable a rule.

        Returns:
            True if the rule exists, False otherwise.
        """
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                "UPDATE category_rules SET is_active = ? WHERE id = ?",
                (int(is_active), rule_id),
            )
            conn.commit()
            return cursor.rowcount > 0

    def delete(self, rule_id: int) -> bool:
        with self.db_manager.connect() as conn:
            cursor = conn.execute("DELETE FROM category_rules WHERE id = ?", (rule_id,))
            conn.commit()
            return cursor.rowcount > 0

    def _rule_to_row(self, rule: CategoryRule) -> tuple:
        row = []
        for name in _RULE_INSERT_FIELDS:
            value = getattr(rule, name)
            if name == "applicable_account_ids":
                value = json.dumps(sorted(value))
            elif name in ("auto_approval", "is_active"):
                value = int(value)
            elif hasattr(value, "value"):
                value = value.value
            row.append(value)
        return tuple(row)

    def _row_to_rule(self, row: tuple) -> CategoryRule:
        return CategoryRule(
            id=row[0],
            name=row[1],
            priority=row[2],
            rule_type=row[3],
            match_value=row[4],
            bank_category=row[5],
            bank_sub_category=row[6],
            transaction_direction=row[7],
            applicable_account_ids=json.loads(row[8]) if row[8] else [],
            target_main_category_id=row[9],
            target_sub_category_id=row[10],
            positive_result_type=row[11],
            negative_result_type=row[12],
            auto_approval=bool(row[13]),
            is_active=bool(row[14]),
        )
