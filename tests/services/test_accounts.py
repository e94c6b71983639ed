import pytest
import sqlite3


class TestAccountService:
    """Tests for AccountService."""

    def test_create_account(self, services):
        """Test creating a new account."""
        account = services.accounts.create("Checking", "Everyday account")

        assert account.id is not None
        assert account.id > 0
        assert account.name == "Checking"
        assert account.description == "Everyday account"

    def test_create_account_without_description(self, services):
        account = services.accounts.create("Savings")

        assert services.accounts.find(account.id).description == ""

    def test_find_account_by_id(self, services):
        """Test finding an account by ID."""
        created = services.accounts.create("Credit card", "Visa")

        found = services.accounts.find(created.id)

        assert found is not None
        assert found.id == created.id
        assert found.name == "Credit card"
        assert found.description == "Visa"

    def test_find_account_by_id_not_found(self, services):
        """Test finding a non-existent account by ID returns None."""
        assert services.accounts.find(9999) is None

    def test_find_by_name(self, services):
        """Test finding an account by name."""
        services.accounts.create("Checking")

        found = services.accounts.find_by_name("Checking")

        assert found is not None
        assert found.name == "Checking"

    def test_find_by_name_case_sensitive(self, services):
        """Test that account name lookup is case-sensitive."""
        services.accounts.create("Checking")

        assert services.accounts.find_by_name("checking") is None

    def test_duplicate_name_rejected(self, services):
        """Test that account names are unique."""
        services.accounts.create("Checking")

        with pytest.raises(sqlite3.IntegrityError):
            services.accounts.create("Checking")

    def test_find_all_and_name_map(self, services):
        """Test listing accounts and the ID to name mapping."""
        checking = services.accounts.create("Checking")
        savings = services.accounts.create("Savings")

        assert [a.name for a in services.accounts.find_all()] == ["Checking", "Savings"]
        assert services.accounts.name_map() == {
            checking.id: "Checking",
            savings.id: "Savings",
        }

    def test_delete_account(self, services):
        account = services.accounts.create("Old account")

        assert services.accounts.delete(account.id) is True
        assert services.accounts.find(account.id) is None
        assert services.accounts.delete(account.id) is False
