"""Centralized path definitions for slashmail.

All on-disk locations are derived from a single base directory so tests
and packagers can relocate them with the ``SLASHMAIL_HOME`` environment
variable.
"""

import os
from pathlib import Path

# Base application directory
SLASHMAIL_DIR = Path(os.environ.get("SLASHMAIL_HOME", Path.home() / ".slashmail"))

# Subdirectories
LOGS_DIR = SLASHMAIL_DIR / "logs"

# Specific files
CONFIG_PATH = SLASHMAIL_DIR / "config.json"
