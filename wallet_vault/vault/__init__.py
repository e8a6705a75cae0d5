"""Wallet Vault — Named account keys on disk, resolved to signing keys.

Security Note (Threat Model):
    Encrypted keys are protected by scrypt + AES-256-GCM. Cached session
    passwords are encrypted with a random session key whose only
    protection is owner-only file permissions. Decrypted keys live in
    process memory for the resolver's lifetime. There is no cross-process
    locking and no hardware-backed key isolation.
"""

from .config import VaultConfig
from .exceptions import (
    ErrorKind,
    VaultError,
    EmptyPasswordError,
    WrongPasswordError,
    CorruptedCipherError,
    MalformedStoreError,
    AliasNotFoundError,
    AliasExistsError,
    NoDefaultWalletError,
    PasswordRequiredError,
    NotEncryptedError,
    CredentialResolutionError,
    InvalidKeyOverrideError,
)
from .models import CipherPayload, KeyRecord, GlobalSettings, SessionEntry
from .store import RecordStore, is_encrypted
from .session_cache import SessionCache
from .resolver import CredentialResolver, ResolvedKey, KeySource, tty_prompt
from .password import set_password, remove_password

__all__ = [
    "VaultConfig",
    "ErrorKind",
    "VaultError",
    "EmptyPasswordError",
    "WrongPasswordError",
    "CorruptedCipherError",
    "MalformedStoreError",
    "AliasNotFoundError",
    "AliasExistsError",
    "NoDefaultWalletError",
    "PasswordRequiredError",
    "NotEncryptedError",
    "CredentialResolutionError",
    "InvalidKeyOverrideError",
    "CipherPayload",
    "KeyRecord",
    "GlobalSettings",
    "SessionEntry",
    "RecordStore",
    "is_encrypted",
    "SessionCache",
    "CredentialResolver",
    "ResolvedKey",
    "KeySource",
    "tty_prompt",
    "set_password",
    "remove_password",
]
