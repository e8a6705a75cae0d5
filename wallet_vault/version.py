"""Wallet Vault Meta information.
   Wallet Vault stores named account keys on disk and resolves signing keys.
"""
__title__ = 'wallet_vault'
__description__ = (
   'Wallet Vault stores named account keys on disk, optionally '
   'password-encrypted, and resolves a usable signing key per alias.'
)
__version__ = '0.3.0'
__copyright__ = 'Copyright (c) 2025 Wallet Vault Authors'
__author__ = 'Wallet Vault Authors'
__license__ = 'Apache-2.0'
