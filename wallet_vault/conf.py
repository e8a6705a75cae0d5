"""Wallet Vault defaults.

Module-level settings read once from the environment. ``VaultConfig``
uses them as defaults; every one of them can be overridden per instance.
"""
import os
from pathlib import Path

ENV_PREFIX = os.environ.get("WALLET_VAULT_ENV_PREFIX", "WALLET_VAULT")

DEFAULT_HOME = Path.home() / ".wallet-vault"

# seconds
DEFAULT_SESSION_TTL = 300

# Cache interactively prompted passwords in the session cache.
CACHE_PROMPTED_PASSWORDS = True

RECORDS_FILENAME = "wallets.json"
SETTINGS_FILENAME = "config.json"
SESSION_FILENAME = "session.json"
SESSION_KEY_FILENAME = "session.key"
