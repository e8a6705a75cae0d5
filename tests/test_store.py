"""
Tests for RecordStore.

Tests cover:
- Missing files load as empty
- Sanitization of individual records (dropped, never raised)
- Whole-file parse failures raise MalformedStoreError
- Save / load of records and settings, legacy settings migration
- Record management helpers (add, replace, remove, default)
"""
import os
import stat

import orjson
import pytest

from wallet_vault.storage import FileStorage, MemoryStorage
from wallet_vault.vault import crypto
from wallet_vault.vault.exceptions import (
    AliasExistsError,
    AliasNotFoundError,
    ErrorKind,
    MalformedStoreError,
)
from wallet_vault.vault.models import GlobalSettings, KeyRecord
from wallet_vault.vault.store import RecordStore, is_encrypted

PRIVATE_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
OTHER_ADDRESS = "0x742d35Cc6634C0532925a3b844Bc454e4438f44e"

VALID_CIPHER = {
    "ct": "ab" * 32,
    "iv": "01" * 12,
    "salt": "02" * 16,
    "tag": "03" * 16,
}


def _store_with(document) -> RecordStore:
    blob = document if isinstance(document, bytes) else orjson.dumps(document)
    return RecordStore(records=MemoryStorage(blob), settings=MemoryStorage())


@pytest.fixture
def plain_record():
    return KeyRecord(address=ADDRESS, private_key=PRIVATE_KEY, created_at="2025-01-01T00:00:00Z")


# --- Test Loading ---

class TestLoad:
    """Tests for loading and sanitizing the records file."""

    def test_missing_file_is_empty(self, record_store):
        """An absent records file is an empty collection, not an error."""
        assert record_store.load() == {}

    def test_sanitizes_entries(self):
        """Invalid entries are dropped; valid ones survive without extra fields."""
        store = _store_with({
            "wallets": {
                "good": {
                    "address": OTHER_ADDRESS,
                    "privateKey": "0xab",
                    "createdAt": "2025-01-01T00:00:00.000Z",
                    "extra": "ignored",
                },
                "badAddress": {"address": "not-an-address", "privateKey": "0xcd"},
                "badEntry": None,
                "noCredential": {"address": OTHER_ADDRESS},
                "both": {"address": OTHER_ADDRESS, "privateKey": "0xab", "cipher": VALID_CIPHER},
                "shortIv": {"address": OTHER_ADDRESS, "cipher": {**VALID_CIPHER, "iv": "01"}},
                "partialCipher": {"address": OTHER_ADDRESS, "cipher": {"ct": "ab"}},
                "encrypted": {"address": ADDRESS, "cipher": VALID_CIPHER},
            }
        })
        records = store.load()
        assert set(records) == {"good", "encrypted"}
        good = records["good"]
        assert good.address == OTHER_ADDRESS
        assert good.private_key == "0xab"
        assert good.created_at == "2025-01-01T00:00:00.000Z"
        assert "extra" not in good.to_json()

    def test_one_bad_one_good(self):
        """A malformed address next to a good record yields only the good one."""
        store = _store_with({
            "wallets": {
                "bad": {"address": "0x1234", "privateKey": PRIVATE_KEY},
                "alice": {"address": ADDRESS, "privateKey": PRIVATE_KEY},
            }
        })
        assert list(store.load()) == ["alice"]

    def test_private_key_normalized(self):
        store = _store_with({
            "wallets": {"alice": {"address": ADDRESS, "privateKey": f"  {PRIVATE_KEY[2:]} "}}
        })
        assert store.load()["alice"].private_key == PRIVATE_KEY

    def test_blank_private_key_is_absent(self):
        store = _store_with({
            "wallets": {"alice": {"address": ADDRESS, "privateKey": "   "}}
        })
        assert store.load() == {}

    @pytest.mark.parametrize("private_key", ["0x", "  0x  ", "0xaa bb", "0xabc", "0xzz"])
    def test_invalid_private_key_dropped(self, private_key):
        """Empty, spaced, odd-length or non-hex key bodies never load."""
        store = _store_with({
            "wallets": {
                "w": {"address": ADDRESS, "privateKey": private_key},
                "alice": {"address": ADDRESS, "privateKey": PRIVATE_KEY},
            }
        })
        assert list(store.load()) == ["alice"]

    def test_spaced_cipher_field_dropped(self):
        spaced = {**VALID_CIPHER, "ct": "ab " * 32}
        store = _store_with({"wallets": {"w": {"address": ADDRESS, "cipher": spaced}}})
        assert store.load() == {}

    def test_non_string_created_at_dropped(self):
        store = _store_with({
            "wallets": {"alice": {"address": ADDRESS, "privateKey": PRIVATE_KEY, "createdAt": 123}}
        })
        record = store.load()["alice"]
        assert record.created_at is None

    def test_wallets_not_object(self):
        assert _store_with({"wallets": ["a", "b"]}).load() == {}
        assert _store_with({}).load() == {}

    def test_invalid_json(self):
        """Syntactically broken files raise MalformedStoreError naming the problem."""
        store = _store_with(b"{ invalid json")
        with pytest.raises(MalformedStoreError) as exc:
            store.load()
        assert exc.value.kind is ErrorKind.MALFORMED_STORE
        assert "invalid JSON" in str(exc.value)
        assert "wallets.json" in str(exc.value)

    def test_invalid_root(self):
        with pytest.raises(MalformedStoreError, match="invalid root"):
            _store_with(b"[1, 2, 3]").load()


# --- Test Saving ---

class TestSave:
    """Tests for writing records."""

    def test_save_and_load(self, record_store, plain_record):
        encrypted = KeyRecord(address=OTHER_ADDRESS, cipher=VALID_CIPHER)
        record_store.save({"alice": plain_record, "bob": encrypted})
        loaded = record_store.load()
        assert loaded["alice"] == plain_record
        assert loaded["bob"] == encrypted

    def test_saved_format(self, plain_record):
        storage = MemoryStorage()
        store = RecordStore(records=storage, settings=MemoryStorage())
        store.save({"alice": plain_record})
        document = orjson.loads(storage.data)
        assert document == {
            "wallets": {
                "alice": {
                    "address": ADDRESS,
                    "createdAt": "2025-01-01T00:00:00Z",
                    "privateKey": PRIVATE_KEY,
                }
            }
        }

    def test_save_overwrites(self, record_store, plain_record):
        record_store.save({"alice": plain_record})
        record_store.save({"bob": plain_record})
        assert list(record_store.load()) == ["bob"]

    def test_file_backed_store(self, tmp_path, plain_record):
        """File-backed records are written owner-only."""
        path = tmp_path / "wallets.json"
        store = RecordStore(records=FileStorage(path, private=True), settings=MemoryStorage())
        store.save({"alice": plain_record})
        assert store.load()["alice"] == plain_record
        if os.name != "nt":
            assert stat.S_IMODE(path.stat().st_mode) == 0o600


# --- Test Encryption Flag ---

class TestIsEncrypted:

    def test_plain_record(self, plain_record):
        assert is_encrypted(plain_record) is False

    def test_encrypted_record(self):
        record = KeyRecord(address=ADDRESS, cipher=crypto.encrypt_private_key("pw", PRIVATE_KEY))
        assert is_encrypted(record) is True

    def test_record_requires_one_credential(self):
        with pytest.raises(ValueError):
            KeyRecord(address=ADDRESS)
        with pytest.raises(ValueError):
            KeyRecord(address=ADDRESS, private_key=PRIVATE_KEY, cipher=VALID_CIPHER)


# --- Test Settings ---

class TestSettings:
    """Tests for global settings."""

    def test_missing_settings(self, record_store):
        assert record_store.load_settings().default_alias is None

    def test_roundtrip(self, record_store):
        record_store.save_settings(GlobalSettings(default_alias="alice"))
        assert record_store.load_settings().default_alias == "alice"

    def test_legacy_default_wallet_migrated(self):
        """A settings file using defaultWallet still resolves the default."""
        settings = MemoryStorage(orjson.dumps({"defaultWallet": "legacy"}))
        store = RecordStore(records=MemoryStorage(), settings=settings)
        assert store.load_settings().default_alias == "legacy"
        store.save_settings(store.load_settings())
        assert orjson.loads(settings.data) == {"default": "legacy"}

    def test_canonical_field_wins(self):
        settings = MemoryStorage(orjson.dumps({"default": "new", "defaultWallet": "old"}))
        store = RecordStore(records=MemoryStorage(), settings=settings)
        assert store.get_default() == "new"

    def test_malformed_settings(self):
        store = RecordStore(records=MemoryStorage(), settings=MemoryStorage(b"{nope"))
        with pytest.raises(MalformedStoreError, match="config.json"):
            store.load_settings()


# --- Test Record Management ---

class TestRecordManagement:
    """Tests for add, replace, remove and default handling."""

    def test_add_and_get(self, record_store, plain_record):
        record_store.add("alice", plain_record)
        assert record_store.get("alice") == plain_record
        assert record_store.aliases() == ["alice"]

    def test_add_existing(self, record_store, plain_record):
        record_store.add("alice", plain_record)
        with pytest.raises(AliasExistsError):
            record_store.add("alice", plain_record)
        record_store.add("alice", plain_record, overwrite=True)

    def test_get_missing(self, record_store):
        with pytest.raises(AliasNotFoundError) as exc:
            record_store.get("ghost")
        assert exc.value.alias == "ghost"
        assert exc.value.kind is ErrorKind.ALIAS_NOT_FOUND

    def test_replace_missing(self, record_store, plain_record):
        with pytest.raises(AliasNotFoundError):
            record_store.replace("ghost", plain_record)

    def test_set_default(self, record_store, plain_record):
        record_store.add("alice", plain_record)
        record_store.set_default("alice")
        assert record_store.get_default() == "alice"

    def test_set_default_missing(self, record_store):
        with pytest.raises(AliasNotFoundError):
            record_store.set_default("ghost")

    def test_remove_default_clears_it(self, record_store, plain_record):
        record_store.add("alice", plain_record)
        record_store.add("bob", plain_record)
        record_store.set_default("alice")
        assert record_store.remove("alice") is True
        assert record_store.get_default() is None
        assert record_store.remove("bob") is False
        assert record_store.load() == {}

    def test_remove_missing(self, record_store):
        with pytest.raises(AliasNotFoundError):
            record_store.remove("ghost")
