"""
Vault error taxonomy.

Every error raised by the vault is a ``VaultError`` tagged with an
``ErrorKind``, so callers can dispatch on ``err.kind`` instead of
guessing from messages. ``hint`` tells the operator what to do next.
"""
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    EMPTY_PASSWORD = "empty_password"
    WRONG_PASSWORD = "wrong_password"
    CORRUPTED_CIPHER = "corrupted_cipher"
    MALFORMED_STORE = "malformed_store"
    ALIAS_NOT_FOUND = "alias_not_found"
    ALIAS_EXISTS = "alias_exists"
    NO_DEFAULT_WALLET = "no_default_wallet"
    PASSWORD_REQUIRED = "password_required"
    NOT_ENCRYPTED = "not_encrypted"
    CREDENTIAL_RESOLUTION = "credential_resolution"
    INVALID_KEY_OVERRIDE = "invalid_key_override"


class VaultError(Exception):
    """Base class for all vault errors."""

    kind: ErrorKind
    hint: str = ""

    def __init__(self, message: str, *, hint: Optional[str] = None):
        super().__init__(message)
        if hint is not None:
            self.hint = hint

    def __str__(self) -> str:
        message = super().__str__()
        if self.hint:
            return f"{message} {self.hint}"
        return message


class EmptyPasswordError(VaultError):
    kind = ErrorKind.EMPTY_PASSWORD
    hint = "Choose a non-empty password."


class WrongPasswordError(VaultError):
    """Authentication failed on a structurally valid cipher payload."""

    kind = ErrorKind.WRONG_PASSWORD
    hint = "Re-enter the password."


class CorruptedCipherError(VaultError):
    """The cipher payload is malformed or cannot be decrypted."""

    kind = ErrorKind.CORRUPTED_CIPHER
    hint = "The record is unrecoverable; re-import the key under a new alias."


class MalformedStoreError(VaultError):
    kind = ErrorKind.MALFORMED_STORE
    hint = "Fix or remove the file; it is not valid JSON."


class AliasNotFoundError(VaultError):
    kind = ErrorKind.ALIAS_NOT_FOUND
    hint = "Create or import the wallet first."

    def __init__(self, alias: str, **kwargs):
        self.alias = alias
        super().__init__(f'Wallet "{alias}" not found.', **kwargs)


class AliasExistsError(VaultError):
    kind = ErrorKind.ALIAS_EXISTS
    hint = "Use another name or remove the existing wallet first."

    def __init__(self, alias: str, **kwargs):
        self.alias = alias
        super().__init__(f'Wallet "{alias}" already exists.', **kwargs)


class NoDefaultWalletError(VaultError):
    kind = ErrorKind.NO_DEFAULT_WALLET
    hint = "Pass a wallet name or set a default wallet."

    def __init__(self, message: str = "No wallet specified and no default wallet.", **kwargs):
        super().__init__(message, **kwargs)


class PasswordRequiredError(VaultError):
    kind = ErrorKind.PASSWORD_REQUIRED

    def __init__(self, alias: str, env_name: Optional[str] = None, **kwargs):
        self.alias = alias
        self.env_name = env_name
        if env_name and "hint" not in kwargs:
            kwargs["hint"] = f"Set {env_name} or run in a terminal to type the password."
        super().__init__(f'Password required for wallet "{alias}".', **kwargs)


class NotEncryptedError(VaultError):
    kind = ErrorKind.NOT_ENCRYPTED
    hint = "The wallet is stored without a password."

    def __init__(self, alias: str, **kwargs):
        self.alias = alias
        super().__init__(f'Wallet "{alias}" is not password-protected.', **kwargs)


class InvalidKeyOverrideError(VaultError, ValueError):
    """A ``<PREFIX>_KEY_<ALIAS>`` variable does not hold a hex private key."""

    kind = ErrorKind.INVALID_KEY_OVERRIDE

    def __init__(self, alias: str, env_name: str, reason: str = "", **kwargs):
        self.alias = alias
        self.env_name = env_name
        kwargs.setdefault("hint", f"Set {env_name} to a hex private key or unset it.")
        message = f'Key override for wallet "{alias}" is invalid'
        super().__init__(f"{message}: {reason}." if reason else f"{message}.", **kwargs)


class CredentialResolutionError(VaultError):
    """A cached password failed to decrypt the record.

    ``cause`` is the underlying ``WrongPasswordError`` or
    ``CorruptedCipherError``.
    """

    kind = ErrorKind.CREDENTIAL_RESOLUTION
    hint = "Run lock to clear cached passwords, then retry."

    def __init__(self, alias: str, cause: VaultError, **kwargs):
        self.alias = alias
        self.cause = cause
        super().__init__(
            f'Cached password for wallet "{alias}" failed: {cause.kind.value}.',
            **kwargs,
        )

    @property
    def cause_kind(self) -> ErrorKind:
        return self.cause.kind
