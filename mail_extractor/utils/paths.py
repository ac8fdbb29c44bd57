"""Centralized path definitions for the mail extractor.

Single source of truth for every on-disk location. The base directory
defaults to ``~/.mail_extractor`` and can be moved with the
``MAIL_EXTRACTOR_HOME`` environment variable.
"""

import os
from pathlib import Path

# Base application directory
MAIL_EXTRACTOR_DIR = Path(
    os.getenv("MAIL_EXTRACTOR_HOME", str(Path.home() / ".mail_extractor"))
).expanduser()

# Subdirectories
DATA_DIR = MAIL_EXTRACTOR_DIR / "data"
LOGS_DIR = MAIL_EXTRACTOR_DIR / "logs"

# Specific files
DATABASE_PATH = DATA_DIR / "mail_extractor.db"
CONFIG_PATH = MAIL_EXTRACTOR_DIR / "config.json"
