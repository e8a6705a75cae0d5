"""
CredentialResolver — Alias to usable private key.

Resolution order for a request (first hit wins):

1. no alias given → ``default`` from global settings
2. ``<PREFIX>_KEY_<ALIAS>`` raw key override (store never consulted)
3. record lookup in the RecordStore
4. plaintext record → its key
5. process-local memo of already decrypted keys
6. password from the SessionCache (failures wrapped in
   ``CredentialResolutionError``, never retried)
7. ``<PREFIX>_PASSWORD_<ALIAS>`` password override
8. interactive prompt

Security Note:
    Decrypted keys live only in the resolver's memo, never on disk.
    The session cache stores passwords, never keys.
"""
import os
import sys
import getpass
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from . import crypto
from .config import VaultConfig
from .exceptions import (
    AliasNotFoundError,
    CorruptedCipherError,
    CredentialResolutionError,
    InvalidKeyOverrideError,
    NoDefaultWalletError,
    PasswordRequiredError,
    WrongPasswordError,
)
from .session_cache import SessionCache
from .store import RecordStore

logger = logging.getLogger("wallet_vault.vault")

# Asks the user for a line of input; None when nobody can answer.
Prompt = Callable[[str], Optional[str]]


class KeySource(str, Enum):
    OVERRIDE = "override"
    PLAINTEXT = "plaintext"
    MEMO = "memo"
    SESSION = "session"
    ENV_PASSWORD = "env_password"
    PROMPT = "prompt"


@dataclass(frozen=True)
class ResolvedKey:
    alias: str
    private_key: str
    source: KeySource

    def __repr__(self) -> str:
        return f"ResolvedKey(alias={self.alias!r}, source={self.source.value})"


def tty_prompt(message: str) -> Optional[str]:
    """Read a hidden password from the terminal; None when stdin is not a TTY."""
    if not sys.stdin or not sys.stdin.isatty():
        return None
    try:
        return getpass.getpass(f"{message} ")
    except EOFError:
        return None


class CredentialResolver:
    """Resolves wallet aliases to private keys.

    One instance is one logical session: it owns the memo of decrypted
    keys, so an alias is decrypted at most once per instance.

    Args:
        config: Vault configuration (env prefix, caching policy).
        store: Wallet records.
        session: Password cache.
        prompt: Interactive capability; None for non-interactive use.
        environ: Mapping to read overrides from instead of ``os.environ``.
    """

    def __init__(
        self,
        config: VaultConfig,
        store: RecordStore,
        session: SessionCache,
        prompt: Optional[Prompt] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        self.config = config
        self.store = store
        self.session = session
        self._prompt = prompt
        self._environ = environ
        self._memo: dict[str, str] = {}

    @classmethod
    def from_config(
        cls,
        config: Optional[VaultConfig] = None,
        prompt: Optional[Prompt] = tty_prompt,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "CredentialResolver":
        """Build a file-backed resolver.

        Args:
            config: Vault configuration; read from the environment if omitted.
            prompt: Interactive capability, the terminal by default.
            environ: Mapping to read overrides from.

        Returns:
            CredentialResolver over the files under ``config.home``.
        """
        config = config or VaultConfig.from_env(environ)
        return cls(
            config=config,
            store=RecordStore.from_config(config),
            session=SessionCache.from_config(config),
            prompt=prompt,
            environ=environ,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _env(self, name: str) -> Optional[str]:
        env = os.environ if self._environ is None else self._environ
        value = env.get(name)
        return value if value else None

    def _ask_password(self, alias: str) -> str:
        env_name = self.config.password_env_name(alias)
        if self._prompt is None:
            raise PasswordRequiredError(alias, env_name)
        password = self._prompt(f'Password for wallet "{alias}":')
        if not password:
            raise PasswordRequiredError(alias, env_name)
        return password

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def default_alias(self) -> str:
        """Return the default alias.

        Raises:
            NoDefaultWalletError: If no default is configured.
        """
        alias = self.store.get_default()
        if not alias:
            raise NoDefaultWalletError()
        return alias

    def resolve(self, alias: Optional[str] = None) -> ResolvedKey:
        """Resolve ``alias`` (or the default alias) to a private key.

        Raises:
            NoDefaultWalletError: No alias given and no default set.
            InvalidKeyOverrideError: The key override is not a hex key.
            AliasNotFoundError: The alias is not stored.
            CredentialResolutionError: A cached password failed to decrypt.
            WrongPasswordError: An env or prompted password is wrong.
            CorruptedCipherError: The record cannot be decrypted.
            PasswordRequiredError: No password source is available.
        """
        if alias is None:
            alias = self.default_alias()

        key_env = self.config.key_env_name(alias)
        override = self._env(key_env)
        if override is not None:
            try:
                private_key = crypto.normalize_private_key(override)
            except ValueError as err:
                raise InvalidKeyOverrideError(alias, key_env, str(err)) from err
            logger.debug("Resolved wallet %r from key override", alias)
            return ResolvedKey(alias, private_key, KeySource.OVERRIDE)

        record = self.store.load().get(alias)
        if record is None:
            raise AliasNotFoundError(alias)

        if record.private_key is not None:
            return ResolvedKey(alias, record.private_key, KeySource.PLAINTEXT)

        memo = self._memo.get(alias)
        if memo is not None:
            return ResolvedKey(alias, memo, KeySource.MEMO)

        cached = self.session.get(alias)
        if cached is not None:
            try:
                private_key = crypto.decrypt_private_key(cached, record.cipher)
            except (WrongPasswordError, CorruptedCipherError) as err:
                raise CredentialResolutionError(alias, err) from err
            self._remember(alias, private_key, cached, cache_password=True)
            logger.debug("Resolved wallet %r from session cache", alias)
            return ResolvedKey(alias, private_key, KeySource.SESSION)

        password = self._env(self.config.password_env_name(alias))
        if password is not None:
            source = KeySource.ENV_PASSWORD
        else:
            password = self._ask_password(alias)
            source = KeySource.PROMPT

        private_key = crypto.decrypt_private_key(password, record.cipher)
        self._remember(
            alias,
            private_key,
            password,
            cache_password=(
                source is KeySource.PROMPT and self.config.cache_prompted_passwords
            ),
        )
        logger.debug("Resolved wallet %r from %s", alias, source.value)
        return ResolvedKey(alias, private_key, source)

    def resolve_private_key(self, alias: Optional[str] = None) -> str:
        return self.resolve(alias).private_key

    def _remember(
        self, alias: str, private_key: str, password: str, cache_password: bool
    ) -> None:
        self._memo[alias] = private_key
        if not cache_password:
            return
        try:
            self.session.set(alias, password)
        except OSError as err:
            logger.debug(
                "Session entry for %r could not be written (%s)", alias, type(err).__name__,
            )

    def forget(self, alias: Optional[str] = None) -> None:
        """Drop memoized keys, for one alias or all of them."""
        if alias is None:
            self._memo.clear()
        else:
            self._memo.pop(alias, None)

    def lock(self) -> None:
        """Clear the session cache and the memo."""
        self.session.clear()
        self._memo.clear()
