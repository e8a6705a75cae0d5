"""
SessionCache — Short-lived, encrypted-at-rest password cache.

Provides the public API for cached wallet passwords:
- ``get(alias)`` — decrypt and return a cached password (None on any miss)
- ``set(alias, password, ttl)`` — encrypt and persist a password with a deadline
- ``discard(alias)`` — drop one cached password
- ``clear()`` — drop every cached password, keeping the session key

Session store file::

    {"wallets": {"<alias>": {"ct", "iv", "tag", "expiresAt"}}}

Session key file: 32 raw random bytes, owner-only.

Security Note:
    The session key is not password protected; its confidentiality rests
    on filesystem permissions. Never log passwords or the session key.
    The cache is an optimization: every failure reading it is a miss.
"""
import time
import logging
from typing import Any, Callable, Optional

import orjson
from cryptography.exceptions import InvalidTag
from pydantic import ValidationError

from .. import conf
from ..storage import BlobStorage, FileStorage
from .config import VaultConfig
from .crypto import (
    KEY_LENGTH,
    decrypt_with_key,
    encrypt_with_key,
    generate_session_key,
)
from .models import SessionEntry

logger = logging.getLogger("wallet_vault.vault")


class SessionCache:
    """TTL-scoped password cache keyed by alias.

    Expiry is lazy: an entry past its deadline is ignored on read and
    pruned on the next write.

    Args:
        store: Storage for the session store document.
        key: Storage for the raw session key.
        ttl: Default time-to-live in seconds.
        clock: Wall-clock source in seconds, for tests.
    """

    def __init__(
        self,
        store: BlobStorage,
        key: BlobStorage,
        ttl: int = conf.DEFAULT_SESSION_TTL,
        clock: Callable[[], float] = time.time,
    ):
        self._store = store
        self._key = key
        self._ttl = ttl
        self._clock = clock

    @classmethod
    def from_config(cls, config: VaultConfig) -> "SessionCache":
        config.ensure_home()
        return cls(
            store=FileStorage(config.session_path, private=True),
            key=FileStorage(config.session_key_path, private=True),
            ttl=config.session_ttl,
        )

    @property
    def ttl(self) -> int:
        return self._ttl

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _load_raw(self) -> dict[str, Any]:
        """Read the raw entry map; an unreadable store is empty."""
        try:
            blob = self._store.load()
        except OSError as err:
            logger.debug("Session store unreadable: %s", err)
            return {}
        if blob is None:
            return {}
        try:
            document = orjson.loads(blob)
        except orjson.JSONDecodeError:
            logger.debug("Session store is not valid JSON, treating as empty")
            return {}
        if not isinstance(document, dict) or not isinstance(document.get("wallets"), dict):
            return {}
        return document["wallets"]

    def _load_entries(self) -> dict[str, SessionEntry]:
        entries: dict[str, SessionEntry] = {}
        for alias, raw in self._load_raw().items():
            try:
                entries[alias] = SessionEntry.model_validate(raw)
            except ValidationError:
                logger.debug("Ignoring malformed session entry for %r", alias)
        return entries

    def _save_entries(self, entries: dict[str, SessionEntry]) -> None:
        document = {
            "wallets": {alias: entry.to_json() for alias, entry in entries.items()}
        }
        self._store.save(orjson.dumps(document, option=orjson.OPT_INDENT_2))

    def _session_key(self) -> bytes:
        """Return the session key, creating it on first use.

        A key file shorter than 32 bytes is replaced.
        """
        stored = self._key.load()
        if stored is not None and len(stored) >= KEY_LENGTH:
            return stored[:KEY_LENGTH]
        key = generate_session_key()
        self._key.save(key)
        logger.debug("Created new session key")
        return key

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get(self, alias: str) -> Optional[str]:
        """Return the cached password for ``alias``.

        Returns:
            The password, or None if absent, expired or undecryptable.
        """
        entry = self._load_entries().get(alias)
        if entry is None:
            return None
        if entry.expired(self._now_ms()):
            logger.debug("Session entry for %r expired", alias)
            return None
        try:
            return decrypt_with_key(self._session_key(), entry.ct, entry.iv, entry.tag)
        except (InvalidTag, ValueError, OSError) as err:
            logger.debug(
                "Session entry for %r could not be decrypted (%s)",
                alias, type(err).__name__,
            )
            return None

    def set(self, alias: str, password: str, ttl: Optional[int] = None) -> None:
        """Encrypt and persist ``password`` for ``alias``.

        Args:
            alias: Wallet alias.
            password: Password to cache.
            ttl: Seconds until expiry; defaults to the cache TTL.
        """
        ttl = self._ttl if ttl is None else ttl
        if ttl < 0:
            raise ValueError("ttl cannot be negative")
        sealed = encrypt_with_key(self._session_key(), password)
        now = self._now_ms()
        entries = {
            name: entry for name, entry in self._load_entries().items()
            if not entry.expired(now)
        }
        entries[alias] = SessionEntry(expires_at=now + ttl * 1000, **sealed)
        self._save_entries(entries)
        logger.debug("Session set: wallet=%s ttl=%ds", alias, ttl)

    def discard(self, alias: str) -> bool:
        """Drop the cached password for ``alias``.

        Returns:
            True if an entry was removed.
        """
        raw = self._load_raw()
        if alias not in raw:
            return False
        entries = self._load_entries()
        entries.pop(alias, None)
        self._save_entries(entries)
        logger.debug("Session discard: wallet=%s", alias)
        return True

    def clear(self) -> None:
        """Drop every cached password. The session key is kept."""
        self._save_entries({})
        logger.info("Session cleared")
