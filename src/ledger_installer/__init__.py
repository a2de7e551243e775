"""Command-line installer and manager for Ledger hardware wallets."""

import logging

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())
