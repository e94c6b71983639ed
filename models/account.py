from dataclasses import dataclass


@dataclass
class Account:
    id: int
    name: str  # [a-z_] format, e.g., "household_checking"
    description: str  # human readable, e.g., "Household checking account"

    def to_dict(self) -> dict:
        """Convert account to dictionary for database storage."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
        }
