"""
RecordStore — Named wallet records and global settings.

Records file::

    {"wallets": {"<alias>": {"address", "createdAt"?, "privateKey"? | "cipher"?}}}

Settings file::

    {"default"?: "<alias>"}   # legacy "defaultWallet" is migrated on read

Loading is tolerant per entry and strict per file: a file that is not a
JSON object raises ``MalformedStoreError``; entries failing the
``KeyRecord`` schema are dropped. Every save rewrites the whole file,
last writer wins.
"""
import logging
from typing import Any, Optional

import orjson
from pydantic import ValidationError

from ..storage import BlobStorage, FileStorage
from .config import VaultConfig
from .exceptions import AliasExistsError, AliasNotFoundError, MalformedStoreError
from .models import GlobalSettings, KeyRecord

logger = logging.getLogger("wallet_vault.vault")

Records = dict[str, KeyRecord]


def is_encrypted(record: KeyRecord) -> bool:
    """True if the record holds a cipher payload and no plaintext key."""
    return record.is_encrypted


def _parse_document(blob: bytes, name: str) -> dict[str, Any]:
    try:
        parsed = orjson.loads(blob)
    except orjson.JSONDecodeError as err:
        raise MalformedStoreError(f"{name}: invalid JSON - {err}") from err
    if not isinstance(parsed, dict):
        raise MalformedStoreError(
            f"{name}: invalid root (expected object, got {type(parsed).__name__})"
        )
    return parsed


def sanitize_records(raw: Any) -> Records:
    """Validate every entry of a ``wallets`` mapping, dropping invalid ones."""
    if not isinstance(raw, dict):
        return {}
    records: Records = {}
    for alias, entry in raw.items():
        try:
            records[alias] = KeyRecord.model_validate(entry)
        except ValidationError as err:
            logger.debug(
                "Dropping wallet %r: %d validation error(s)", alias, err.error_count(),
            )
    return records


class RecordStore:
    """Load and save wallet records and global settings.

    Args:
        records: Storage for the records document.
        settings: Storage for the settings document.
    """

    def __init__(self, records: BlobStorage, settings: BlobStorage):
        self._records = records
        self._settings = settings

    @classmethod
    def from_config(cls, config: VaultConfig) -> "RecordStore":
        config.ensure_home()
        return cls(
            records=FileStorage(config.records_path, private=True),
            settings=FileStorage(config.settings_path),
        )

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    def load(self) -> Records:
        """Return every valid record keyed by alias.

        Raises:
            MalformedStoreError: If the records file is not a JSON object.
        """
        blob = self._records.load()
        if blob is None:
            return {}
        document = _parse_document(blob, "wallets.json")
        return sanitize_records(document.get("wallets"))

    def save(self, records: Records) -> None:
        """Overwrite the records file with ``records``."""
        document = {
            "wallets": {alias: record.to_json() for alias, record in records.items()}
        }
        self._records.save(orjson.dumps(document, option=orjson.OPT_INDENT_2))
        logger.debug("Saved %d wallet(s)", len(records))

    def get(self, alias: str) -> KeyRecord:
        """Return the record for ``alias``.

        Raises:
            AliasNotFoundError: If the alias is not stored.
        """
        record = self.load().get(alias)
        if record is None:
            raise AliasNotFoundError(alias)
        return record

    def aliases(self) -> list[str]:
        return list(self.load().keys())

    def add(self, alias: str, record: KeyRecord, overwrite: bool = False) -> None:
        """Store a new record.

        Raises:
            AliasExistsError: If the alias exists and ``overwrite`` is False.
        """
        records = self.load()
        if alias in records and not overwrite:
            raise AliasExistsError(alias)
        records[alias] = record
        self.save(records)
        logger.info("Stored wallet %r (encrypted=%s)", alias, record.is_encrypted)

    def replace(self, alias: str, record: KeyRecord) -> None:
        """Replace the record of an existing alias.

        Raises:
            AliasNotFoundError: If the alias is not stored.
        """
        records = self.load()
        if alias not in records:
            raise AliasNotFoundError(alias)
        records[alias] = record
        self.save(records)

    def remove(self, alias: str) -> bool:
        """Remove a record, clearing the default if it pointed to it.

        Returns:
            True if the removed alias was the default.

        Raises:
            AliasNotFoundError: If the alias is not stored.
        """
        records = self.load()
        if records.pop(alias, None) is None:
            raise AliasNotFoundError(alias)
        self.save(records)
        settings = self.load_settings()
        was_default = settings.default_alias == alias
        if was_default:
            self.save_settings(settings.model_copy(update={"default_alias": None}))
        logger.info("Removed wallet %r (was_default=%s)", alias, was_default)
        return was_default

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def load_settings(self) -> GlobalSettings:
        """Return global settings; legacy field names are migrated.

        Raises:
            MalformedStoreError: If the settings file is not a JSON object.
        """
        blob = self._settings.load()
        if blob is None:
            return GlobalSettings()
        return GlobalSettings.model_validate(_parse_document(blob, "config.json"))

    def save_settings(self, settings: GlobalSettings) -> None:
        self._settings.save(orjson.dumps(settings.to_json(), option=orjson.OPT_INDENT_2))

    def get_default(self) -> Optional[str]:
        return self.load_settings().default_alias

    def set_default(self, alias: str) -> None:
        """Make ``alias`` the default wallet.

        Raises:
            AliasNotFoundError: If the alias is not stored.
        """
        if alias not in self.load():
            raise AliasNotFoundError(alias)
        settings = self.load_settings()
        self.save_settings(settings.model_copy(update={"default_alias": alias}))
        logger.info("Default wallet set to %r", alias)
