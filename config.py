"""Configuration management for Ledgerlink.

Reads configuration from ~/.config/ledgerlink.toml and creates default config if needed.
"""

from pathlib import Path
from dataclasses import dataclass
import tomllib
import tomli_w


@dataclass
class Config:
    """Application configuration."""

    base_dir: Path
    db_data_dir: Path
    db_filename: str
    log_level: str
    log_dir: Path
    coverage_window_days: int = 30
    protect_manual_changes: bool = False

    @property
    def db_path(self) -> Path:
        """Get the full database path (data_dir/filename)."""
        return self.db_data_dir / self.db_filename

    @classmethod
    def default(cls) -> "Config":
        """Create a Config with default values."""
        home = Path.home()
        base_dir = home / "data" / "ledgerlink"
        return cls(
            base_dir=base_dir,
            db_data_dir=base_dir / "db",
            db_filename="ledgerlink.db",
            log_level="INFO",
            log_dir=base_dir / "logs",
            coverage_window_days=30,
            protect_manual_changes=False,
        )


def get_config_path() -> Path:
    """Get the path to the config file."""
    return Path.home() / ".config" / "ledgerlink.toml"


def get_migrations_dir() -> Path:
    """Get the path to the migrations directory.

    This is always relative to the code location, not configurable.
    """
    return Path(__file__).parent / "db" / "migrations"


def get_seed_dir() -> Path:
    """Get the path to the seed data directory."""
    return Path(__file__).parent / "db" / "seed"


def load_config() -> Config:
    """Load configuration from file, creating default if it doesn't exist.

    Returns:
        Config object with loaded or default values.
    """
    config_path = get_config_path()

    # If config doesn't exist, create it with defaults
    if not config_path.exists():
        config = Config.default()
        _write_config(config)
        return config

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    return _config_from_dict(data)


def _config_from_dict(data: dict) -> Config:
    """Build a Config from parsed TOML data, filling in defaults.

    Args:
        data: Parsed TOML document.

    Returns:
        Config object.

    Raises:
        ValueError: If coverage_window_days is negative.
    """
    base_dir = Path(data.get("base_dir", Path.home() / "data" / "ledgerlink"))

    db_config = data.get("database", {})
    db_data_dir = Path(db_config.get("data_dir", base_dir / "db"))
    db_filename = db_config.get("filename", "ledgerlink.db")

    log_config = data.get("logging", {})
    log_level = log_config.get("level", "INFO")
    log_dir = Path(log_config.get("log_dir", base_dir / "logs"))

    reconciliation_config = data.get("reconciliation", {})
    coverage_window_days = int(reconciliation_config.get("coverage_window_days", 30))
    if coverage_window_days < 0:
        raise ValueError("reconciliation.coverage_window_days cannot be negative")
    protect_manual_changes = bool(
        reconciliation_config.get("protect_manual_changes", False)
    )

    return Config(
        base_dir=base_dir,
        db_data_dir=db_data_dir,
        db_filename=db_filename,
        log_level=log_level,
        log_dir=log_dir,
        coverage_window_days=coverage_window_days,
        protect_manual_changes=protect_manual_changes,
    )


def _write_config(config: Config) -> None:
    """Write config to the config file.

    Args:
        config: Config object to write.
    """
    config_path = get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    data = {
        "base_dir": str(config.base_dir),
        "database": {
            "data_dir": str(config.db_data_dir),
            "filename": config.db_filename,
        },
        "logging": {
            "level": config.log_level,
            "log_dir": str(config.log_dir),
        },
        "reconciliation": {
            "coverage_window_days": config.coverage_window_days,
            "protect_manual_changes": config.protect_manual_changes,
        },
    }

    with open(config_path, "wb") as f:
        tomli_w.dump(data, f)
