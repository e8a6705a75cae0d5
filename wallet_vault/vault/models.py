"""
Vault schemas — validated shapes of every persisted document.

Parsed JSON never reaches the rest of the vault without passing through
one of these models. Field aliases are the on-disk names.
"""
import re
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

IV_SIZE = 12  # 96-bit AES-GCM nonce
SALT_SIZE = 16
TAG_SIZE = 16

_ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")
_HEX_PATTERN = re.compile(r"(?:[0-9a-fA-F]{2})*")
_KEY_BODY_PATTERN = re.compile(r"(?:[0-9a-fA-F]{2})+")


def normalize_key_hex(value: str) -> str:
    """Return a private key as 0x-prefixed hex.

    Raises:
        ValueError: If the key body is empty, not hex or of odd length.
    """
    value = value.strip()
    body = value[2:] if value.startswith("0x") else value
    if not body:
        raise ValueError("Private key cannot be empty")
    if not _KEY_BODY_PATTERN.fullmatch(body):
        raise ValueError("Private key must be hex")
    return f"0x{body}"


def _hex_bytes(value: str, field: str, size: Optional[int] = None) -> bytes:
    """Decode a hex string, checking the decoded length when ``size`` is set."""
    if not _HEX_PATTERN.fullmatch(value):
        raise ValueError(f"{field} is not valid hex")
    raw = bytes.fromhex(value)
    if size is not None and len(raw) != size:
        raise ValueError(f"{field} must be {size} bytes, got {len(raw)}")
    return raw


class CipherPayload(BaseModel):
    """AES-GCM payload of a password-encrypted key. All fields are hex."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    ct: str
    iv: str
    salt: str
    tag: str

    @field_validator("ct")
    @classmethod
    def validate_ct(cls, v: str) -> str:
        if not _hex_bytes(v, "ct"):
            raise ValueError("ct cannot be empty")
        return v

    @field_validator("iv")
    @classmethod
    def validate_iv(cls, v: str) -> str:
        _hex_bytes(v, "iv", IV_SIZE)
        return v

    @field_validator("salt")
    @classmethod
    def validate_salt(cls, v: str) -> str:
        _hex_bytes(v, "salt", SALT_SIZE)
        return v

    @field_validator("tag")
    @classmethod
    def validate_tag(cls, v: str) -> str:
        _hex_bytes(v, "tag", TAG_SIZE)
        return v

    @property
    def ciphertext(self) -> bytes:
        return bytes.fromhex(self.ct)

    @property
    def iv_bytes(self) -> bytes:
        return bytes.fromhex(self.iv)

    @property
    def salt_bytes(self) -> bytes:
        return bytes.fromhex(self.salt)

    @property
    def tag_bytes(self) -> bytes:
        return bytes.fromhex(self.tag)


def is_valid_address(value: Any) -> bool:
    """True for a 0x-prefixed, 20-byte hex address."""
    return isinstance(value, str) and bool(_ADDRESS_PATTERN.match(value))


class KeyRecord(BaseModel):
    """One stored wallet: an address plus exactly one credential."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    address: str
    created_at: Optional[str] = Field(default=None, alias="createdAt")
    private_key: Optional[str] = Field(default=None, alias="privateKey")
    cipher: Optional[CipherPayload] = None

    @field_validator("address")
    @classmethod
    def validate_address(cls, v: str) -> str:
        if not is_valid_address(v):
            raise ValueError("address must be 0x followed by 40 hex characters")
        return v

    @field_validator("created_at", mode="before")
    @classmethod
    def keep_string_timestamp(cls, v: Any) -> Optional[str]:
        return v if isinstance(v, str) else None

    @field_validator("private_key", mode="before")
    @classmethod
    def normalize_private_key(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        if not isinstance(v, str):
            raise ValueError("privateKey must be a string")
        if not v.strip():
            return None
        return normalize_key_hex(v)

    @model_validator(mode="after")
    def exactly_one_credential(self) -> "KeyRecord":
        if (self.private_key is None) == (self.cipher is None):
            raise ValueError("record must carry exactly one of privateKey or cipher")
        return self

    @property
    def is_encrypted(self) -> bool:
        return self.cipher is not None and self.private_key is None

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class GlobalSettings(BaseModel):
    """Global settings; ``defaultWallet`` is the legacy name of ``default``."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    default_alias: Optional[str] = Field(default=None, alias="default")

    @model_validator(mode="before")
    @classmethod
    def migrate_legacy_default(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("default") is None:
            legacy = data.get("defaultWallet")
            if legacy is not None:
                data = {**data, "default": legacy}
        return data

    @field_validator("default_alias", mode="before")
    @classmethod
    def keep_string_alias(cls, v: Any) -> Optional[str]:
        return v if isinstance(v, str) and v else None

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class SessionEntry(BaseModel):
    """A session-key encrypted password with an absolute deadline (epoch ms)."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    ct: str
    iv: str
    tag: str
    expires_at: int = Field(alias="expiresAt", gt=0)

    def expired(self, now_ms: int) -> bool:
        return now_ms >= self.expires_at

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True)
