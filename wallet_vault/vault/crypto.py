"""
Vault Crypto Core — Key derivation, key encryption and the session primitive.

Two layers share AES-256-GCM:
- Record layer: scrypt(password, salt) → AES-GCM → {ct, iv, salt, tag}
- Session layer: random 32-byte session key → AES-GCM → {ct, iv, tag}

Security Note:
    Never log plaintext, passwords or key material.
    scrypt is deliberately slow (hundreds of milliseconds); every call to
    ``derive_key`` blocks the calling thread.
"""
import os
import logging
from collections.abc import Mapping
from typing import Any, Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt
from pydantic import ValidationError

from .exceptions import CorruptedCipherError, EmptyPasswordError, WrongPasswordError
from .models import IV_SIZE, SALT_SIZE, TAG_SIZE, CipherPayload, normalize_key_hex

logger = logging.getLogger("wallet_vault.vault")

KEY_LENGTH = 32  # AES-256

# scrypt cost parameters by version: (n, r, p)
KDF_PARAMS: dict[int, tuple[int, int, int]] = {
    1: (2 ** 14, 8, 1),
}
KDF_VERSION = 1


# ---------------------------------------------------------------------------
# Key derivation
# ---------------------------------------------------------------------------

def derive_key(password: str, salt: bytes, version: int = KDF_VERSION) -> bytes:
    """Derive a 32-byte encryption key from a password using scrypt.

    Args:
        password: User password.
        salt: Random per-payload salt.
        version: Cost parameter set from ``KDF_PARAMS``.

    Returns:
        32-byte derived key.

    Raises:
        ValueError: If ``version`` is unknown.
    """
    try:
        n, r, p = KDF_PARAMS[version]
    except KeyError:
        raise ValueError(f"Unknown KDF version: {version}") from None
    kdf = Scrypt(salt=salt, length=KEY_LENGTH, n=n, r=r, p=p)
    return kdf.derive(password.encode("utf-8"))


# ---------------------------------------------------------------------------
# Record layer (password based)
# ---------------------------------------------------------------------------

def require_password(password: str) -> None:
    if not password or not password.strip():
        raise EmptyPasswordError("Password cannot be empty.")


def encrypt(password: str, plaintext: bytes) -> CipherPayload:
    """Encrypt ``plaintext`` under a password.

    A fresh salt and IV are generated on every call.

    Raises:
        EmptyPasswordError: If the password is empty or whitespace-only.
    """
    require_password(password)
    if not plaintext:
        raise ValueError("Nothing to encrypt")
    salt = os.urandom(SALT_SIZE)
    iv = os.urandom(IV_SIZE)
    key = derive_key(password, salt)
    sealed = AESGCM(key).encrypt(iv, plaintext, None)
    ct, tag = sealed[:-TAG_SIZE], sealed[-TAG_SIZE:]
    return CipherPayload(ct=ct.hex(), iv=iv.hex(), salt=salt.hex(), tag=tag.hex())


def validate_payload(payload: Union[CipherPayload, Mapping[str, Any]]) -> CipherPayload:
    """Check the structure of a payload before any cryptography runs.

    Raises:
        CorruptedCipherError: If a field is missing, not hex or mis-sized.
    """
    if isinstance(payload, CipherPayload):
        return payload
    if not isinstance(payload, Mapping):
        raise CorruptedCipherError("Cipher payload must be an object.")
    try:
        return CipherPayload.model_validate(dict(payload))
    except ValidationError as err:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in e['loc']) or 'payload'}: {e['msg']}"
            for e in err.errors()
        )
        raise CorruptedCipherError(f"Malformed cipher payload ({problems}).") from err


def decrypt(password: str, payload: Union[CipherPayload, Mapping[str, Any]]) -> bytes:
    """Decrypt a password-encrypted payload.

    Returns:
        Decrypted plaintext bytes.

    Raises:
        CorruptedCipherError: Structurally invalid payload, or any decryption
            failure other than authentication.
        WrongPasswordError: Authentication tag mismatch.
    """
    cipher = validate_payload(payload)
    key = derive_key(password, cipher.salt_bytes)
    try:
        return AESGCM(key).decrypt(
            cipher.iv_bytes, cipher.ciphertext + cipher.tag_bytes, None,
        )
    except InvalidTag:
        raise WrongPasswordError("Wrong password.") from None
    except (ValueError, TypeError, OverflowError) as err:
        raise CorruptedCipherError(f"Corrupted cipher: {err}") from err


# ---------------------------------------------------------------------------
# Hex key helpers
# ---------------------------------------------------------------------------

def normalize_private_key(value: str) -> str:
    """Return ``value`` as a 0x-prefixed hex string.

    Raises:
        ValueError: If the value is empty or not hex.
    """
    return normalize_key_hex(value)


def encrypt_private_key(password: str, private_key: str) -> CipherPayload:
    """Encrypt a hex private key (with or without 0x)."""
    raw = bytes.fromhex(normalize_private_key(private_key)[2:])
    return encrypt(password, raw)


def decrypt_private_key(
    password: str, payload: Union[CipherPayload, Mapping[str, Any]]
) -> str:
    """Decrypt a payload into a 0x-prefixed hex private key."""
    return "0x" + decrypt(password, payload).hex()


# ---------------------------------------------------------------------------
# Session layer (raw key)
# ---------------------------------------------------------------------------

def generate_session_key() -> bytes:
    """Return a fresh random 32-byte session key."""
    return os.urandom(KEY_LENGTH)


def encrypt_with_key(key: bytes, plaintext: str) -> dict[str, str]:
    """Encrypt a string under a raw 32-byte key.

    Returns:
        Hex fields ``ct``, ``iv`` and ``tag``.
    """
    iv = os.urandom(IV_SIZE)
    sealed = AESGCM(key).encrypt(iv, plaintext.encode("utf-8"), None)
    return {
        "ct": sealed[:-TAG_SIZE].hex(),
        "iv": iv.hex(),
        "tag": sealed[-TAG_SIZE:].hex(),
    }


def decrypt_with_key(key: bytes, ct: str, iv: str, tag: str) -> str:
    """Decrypt a string encrypted by ``encrypt_with_key``.

    Raises:
        cryptography.exceptions.InvalidTag: Wrong key or tampered data.
        ValueError: Malformed fields.
    """
    sealed = bytes.fromhex(ct) + bytes.fromhex(tag)
    return AESGCM(key).decrypt(bytes.fromhex(iv), sealed, None).decode("utf-8")
