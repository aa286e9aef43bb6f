"""
Configuration and constants for the daily ledger.

This module provides:
- Cylinder sizes, note denominations and the spreadsheet column contract
- Header aliases used when importing spreadsheets
- Support for user-configurable settings via environment variables
- Loading overrides from YAML files
"""
import logging
import os
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

logger = logging.getLogger(__name__)

# =============================================================================
# Cylinder Sizes
# =============================================================================

# (canonical size, spreadsheet label, stored blob key) in display order
CYLINDER_SIZES: List[Tuple[str, str, str]] = [
    ("14.2kg", "14.2 Kg", "cylinder14_2kg"),
    ("10kg", "10 Kg", "cylinder10kg"),
    ("5kg", "5 Kg", "cylinder5kg"),
    ("19kg", "19 Kg", "cylinder19kg"),
]

# =============================================================================
# Cash Denominations
# =============================================================================

NOTE_DENOMINATIONS: List[int] = [500, 200, 100, 50, 20, 10]

# Signed adjustments added on top of the note count total
CASH_ADJUSTMENT_FIELDS: List[str] = ["old_pending", "old_balance", "coins"]

# Prefix for member ids synthesized for rows that match nobody on the roster
PLACEHOLDER_ID_PREFIX: str = "temp_"

# =============================================================================
# Spreadsheet Layout
# =============================================================================

SHEET_NAME: str = "Daily Updates"
EXPORT_FILENAME_TEMPLATE: str = "Daily_Updates_{date}.xlsx"


def _build_export_headers() -> List[str]:
    headers = ["D MAN", "Date"]
    for _, label, _ in CYLINDER_SIZES:
        headers.extend([f"{label} Amount", f"{label} Quantity", f"{label} Total"])
    headers.extend(["Cylinder Total", "Online Payment", "Cash"])
    headers.extend(f"₹{face} Notes" for face in NOTE_DENOMINATIONS)
    headers.extend([
        "Old Pending",
        "Old Balance",
        "Coins",
        "Cash Denomination Total",
        "Grand Total",
    ])
    return headers


# Column order is part of the external contract
EXPORT_HEADERS: List[str] = _build_export_headers()


def _build_import_aliases() -> Dict[str, List[str]]:
    aliases: Dict[str, List[str]] = {
        "member_name": ["D MAN", "Member", "Member Name", "Delivery Man"],
        "date": ["Date"],
    }
    for size, label, _ in CYLINDER_SIZES:
        aliases[f"{size}:unit_price"] = [f"{label} Amount", f"{label} Price"]
        aliases[f"{size}:quantity"] = [f"{label} Quantity", f"{label} Qty"]
    aliases["online_payment"] = ["Online Payment", "Online"]
    aliases["cash"] = ["Cash"]
    for face in NOTE_DENOMINATIONS:
        aliases[f"denomination{face}"] = [
            f"₹{face} Notes",
            f"{face} Notes",
            f"Rs {face} Notes",
            f"Rs. {face} Notes",
        ]
    aliases["old_pending"] = ["Old Pending"]
    aliases["old_balance"] = ["Old Balance"]
    aliases["coins"] = ["Coins"]
    return aliases


# Canonical input field -> accepted header texts, in preference order
IMPORT_COLUMN_ALIASES: Dict[str, List[str]] = _build_import_aliases()

# Derived columns are recomputed on import, never read
DERIVED_COLUMN_HEADERS: List[str] = (
    [f"{label} Total" for _, label, _ in CYLINDER_SIZES]
    + ["Cylinder Total", "Cash Denomination Total", "Grand Total"]
)

# =============================================================================
# Date Formats
# =============================================================================

# Supported date formats in order of preference
DATE_FORMATS: List[str] = [
    "%Y-%m-%d",      # YYYY-MM-DD (what the ledger stores)
    "%Y-%m-%d %H:%M:%S",  # pandas str() of an Excel date cell
    "%d/%m/%Y",      # DD/MM/YYYY
    "%d-%m-%Y",      # DD-MM-YYYY
    "%d/%m/%y",      # DD/MM/YY
    "%d-%m-%y",      # DD-MM-YY
    "%d %b %Y",      # DD MMM YYYY (like "15 Jan 2025")
    "%d-%b-%Y",      # DD-MMM-YYYY (like "15-Jan-2025")
    "%d %B %Y",      # DD Month YYYY (like "15 January 2025")
    "%d.%m.%Y",      # DD.MM.YYYY
]

ISO_DATE_FORMAT: str = "%Y-%m-%d"

# =============================================================================
# Daily Update Records
# =============================================================================

UPDATE_STATUSES: List[str] = ["completed", "in-progress", "pending"]
MEMBER_STATUSES: List[str] = ["active", "inactive"]

COL_UPDATES: str = "dailyUpdates"
COL_MEMBERS: str = "members"

# =============================================================================
# Application Info
# =============================================================================

APP_NAME: str = "Daily Cylinder Ledger"
APP_VERSION: str = "1.0.0"

DEFAULT_STORE_PATH: str = str(Path.home() / ".daily_ledger" / "store.json")


# =============================================================================
# Flexible Configuration System
# =============================================================================

class Config:
    """
    Configuration manager that supports:
    - Environment variables
    - A YAML configuration file
    - Runtime overrides
    """

    _instance: Optional["Config"] = None
    _settings: Dict[str, Any] = {}

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._load_defaults()
            cls._instance._load_custom_config()
        return cls._instance

    def _load_defaults(self) -> None:
        """Load default settings."""
        self._settings = {
            "store_path": os.environ.get("LEDGER_STORE_PATH", DEFAULT_STORE_PATH),
            "default_status": os.environ.get("DEFAULT_UPDATE_STATUS", "completed"),
            "log_level": os.environ.get("LOG_LEVEL", "INFO"),
            "max_upload_mb": int(os.environ.get("MAX_UPLOAD_MB", "16")),
            "header_scan_rows": int(os.environ.get("HEADER_SCAN_ROWS", "10")),
        }

    def _load_custom_config(self) -> None:
        """Load overrides from a YAML file if one is available."""
        config_paths = [
            Path.cwd() / "config.yaml",
            Path.cwd() / "config.yml",
            Path.home() / ".daily_ledger" / "config.yaml",
        ]

        for config_path in config_paths:
            if config_path.exists():
                try:
                    with open(config_path, 'r', encoding='utf-8') as f:
                        custom_config = yaml.safe_load(f) or {}
                except (OSError, yaml.YAMLError) as e:
                    logger.warning("Could not load config from %s: %s", config_path, e)
                    continue
                if not isinstance(custom_config, dict):
                    logger.warning("Ignoring %s: top level must be a mapping", config_path)
                    continue
                self._settings.update(custom_config)
                logger.info("Loaded config from %s", config_path)
                break

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value."""
        return self._settings.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Set a configuration value at runtime."""
        self._settings[key] = value

    @property
    def store_path(self) -> str:
        return str(self.get("store_path", DEFAULT_STORE_PATH))

    @property
    def default_status(self) -> str:
        status = self.get("default_status", "completed")
        if status not in UPDATE_STATUSES:
            logger.warning("Unknown default_status %r, using 'completed'", status)
            return "completed"
        return status

    def reload(self) -> None:
        """Reload configuration from environment and files."""
        self._load_defaults()
        self._load_custom_config()


def get_config() -> Config:
    """Get the global configuration instance."""
    return Config()


def get_column_aliases() -> Dict[str, List[str]]:
    """Get the import alias table."""
    return IMPORT_COLUMN_ALIASES


def export_filename(date_str: Optional[str] = None) -> str:
    """
    Build the export filename for a batch date.

    Args:
        date_str: Batch date as YYYY-MM-DD, or None for today

    Returns:
        Filename like Daily_Updates_2025_01_15.xlsx
    """
    if not date_str:
        date_str = date.today().strftime(ISO_DATE_FORMAT)
    return EXPORT_FILENAME_TEMPLATE.format(date=date_str.replace("-", "_"))
