"""Wallet Vault.

Local credential vault for blockchain account keys.
"""
from .version import __version__

__all__ = ["__version__"]
