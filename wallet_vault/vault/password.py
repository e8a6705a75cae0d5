"""
Wallet password management — Encrypt, re-encrypt or decrypt stored keys.

Each operation decrypts the current credential, re-encrypts it under the
new password (or stores it in plaintext) and rewrites the record. A
cached session password for the alias is discarded, since it no longer
matches the record.

Security Note:
    Plaintext keys exist in memory only during re-encryption.
    Never log passwords or key material.
"""
import logging
from typing import Optional

from . import crypto
from .exceptions import NotEncryptedError, PasswordRequiredError
from .models import KeyRecord
from .session_cache import SessionCache
from .store import RecordStore

logger = logging.getLogger("wallet_vault.vault")


def _current_key(alias: str, record: KeyRecord, password: Optional[str]) -> str:
    if record.private_key is not None:
        return record.private_key
    if not password or not password.strip():
        raise PasswordRequiredError(alias, hint="The current password is required.")
    return crypto.decrypt_private_key(password, record.cipher)


def set_password(
    store: RecordStore,
    alias: str,
    new_password: str,
    current_password: Optional[str] = None,
    session: Optional[SessionCache] = None,
) -> KeyRecord:
    """Encrypt a wallet with a password, or change the password of an encrypted one.

    Args:
        store: Wallet records.
        alias: Wallet to update.
        new_password: Password to encrypt with.
        current_password: Required when the wallet is already encrypted.
        session: Session cache to discard the alias from.

    Returns:
        The updated record.

    Raises:
        AliasNotFoundError: If the alias is not stored.
        EmptyPasswordError: If ``new_password`` is empty.
        PasswordRequiredError: If the wallet is encrypted and no current
            password was given.
        WrongPasswordError: If ``current_password`` is wrong.
    """
    crypto.require_password(new_password)
    record = store.get(alias)
    private_key = _current_key(alias, record, current_password)
    cipher = crypto.encrypt_private_key(new_password, private_key)
    updated = KeyRecord(
        address=record.address, created_at=record.created_at, cipher=cipher,
    )
    store.replace(alias, updated)
    if session is not None:
        session.discard(alias)
    logger.info(
        "Password %s for wallet %r",
        "changed" if record.is_encrypted else "set", alias,
    )
    return updated


def remove_password(
    store: RecordStore,
    alias: str,
    password: str,
    session: Optional[SessionCache] = None,
) -> KeyRecord:
    """Decrypt a wallet and store its key in plaintext.

    Raises:
        AliasNotFoundError: If the alias is not stored.
        NotEncryptedError: If the wallet has no password.
        PasswordRequiredError: If ``password`` is empty.
        WrongPasswordError: If ``password`` is wrong.
        CorruptedCipherError: If the record cannot be decrypted.
    """
    record = store.get(alias)
    if not record.is_encrypted:
        raise NotEncryptedError(alias)
    private_key = _current_key(alias, record, password)
    updated = KeyRecord(
        address=record.address, created_at=record.created_at, private_key=private_key,
    )
    store.replace(alias, updated)
    if session is not None:
        session.discard(alias)
    logger.info("Password removed for wallet %r", alias)
    return updated
