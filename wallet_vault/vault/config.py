"""
Vault Configuration — Validated settings, file locations and env names.

Reads overrides from environment variables in the format:
    <PREFIX>_HOME = <directory holding every vault file>
    <PREFIX>_SESSION_TTL = <seconds>
    <PREFIX>_CACHE_PROMPT = <1|0|true|false>

Per-alias overrides consumed by the resolver:
    <PREFIX>_KEY_<ALIAS> = <raw private key>
    <PREFIX>_PASSWORD_<ALIAS> = <password of an encrypted alias>

Security Note:
    Never log key material or passwords. Only log aliases and paths.
"""
import os
import re
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .. import conf
from ..storage import restrict_permissions

logger = logging.getLogger("wallet_vault.vault")

_NON_ALNUM = re.compile(r"[^A-Za-z0-9]")
_PREFIX_PATTERN = re.compile(r"^[A-Z][A-Z0-9_]*$")

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


def normalize_alias(alias: str) -> str:
    """Map an alias to its environment variable suffix.

    Upper-cased, every non-alphanumeric character becomes ``_``.
    """
    return _NON_ALNUM.sub("_", alias).upper()


def parse_ttl(raw: Optional[str], default: int = conf.DEFAULT_SESSION_TTL) -> int:
    """Parse a TTL in seconds; empty, non-numeric or negative means ``default``."""
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        logger.debug("Ignoring non-numeric session TTL %r", raw)
        return default
    if value < 0:
        logger.debug("Ignoring negative session TTL %d", value)
        return default
    return value


def parse_flag(raw: Optional[str], default: bool) -> bool:
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    return default


class VaultConfig(BaseModel):
    """Validated vault configuration."""

    home: Path = Field(default=conf.DEFAULT_HOME)
    env_prefix: str = Field(default=conf.ENV_PREFIX)
    session_ttl: int = Field(default=conf.DEFAULT_SESSION_TTL, ge=0)
    cache_prompted_passwords: bool = Field(default=conf.CACHE_PROMPTED_PASSWORDS)

    @field_validator("env_prefix")
    @classmethod
    def validate_prefix(cls, v: str) -> str:
        """Validate the environment prefix is a usable variable name."""
        v = v.strip().upper()
        if not _PREFIX_PATTERN.match(v):
            raise ValueError(f"Invalid environment prefix: {v!r}")
        return v

    @field_validator("home")
    @classmethod
    def expand_home(cls, v: Path) -> Path:
        return Path(v).expanduser()

    # ------------------------------------------------------------------
    # File locations
    # ------------------------------------------------------------------

    @property
    def records_path(self) -> Path:
        return self.home / conf.RECORDS_FILENAME

    @property
    def settings_path(self) -> Path:
        return self.home / conf.SETTINGS_FILENAME

    @property
    def session_path(self) -> Path:
        return self.home / conf.SESSION_FILENAME

    @property
    def session_key_path(self) -> Path:
        return self.home / conf.SESSION_KEY_FILENAME

    def ensure_home(self) -> Path:
        """Create the vault directory, owner-only where supported."""
        if not self.home.exists():
            self.home.mkdir(mode=0o700, parents=True, exist_ok=True)
            restrict_permissions(self.home, 0o700)
            logger.debug("Created vault directory %s", self.home)
        return self.home

    # ------------------------------------------------------------------
    # Environment names
    # ------------------------------------------------------------------

    def env_name(self, suffix: str) -> str:
        return f"{self.env_prefix}_{suffix}"

    def key_env_name(self, alias: str) -> str:
        """Name of the raw key override for ``alias``."""
        return self.env_name(f"KEY_{normalize_alias(alias)}")

    def password_env_name(self, alias: str) -> str:
        """Name of the password override for ``alias``."""
        return self.env_name(f"PASSWORD_{normalize_alias(alias)}")

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        env_prefix: Optional[str] = None,
    ) -> "VaultConfig":
        """Create VaultConfig from environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ``.
            env_prefix: Prefix to use instead of ``conf.ENV_PREFIX``.

        Returns:
            Populated VaultConfig instance.
        """
        env = os.environ if environ is None else environ
        prefix = (conf.ENV_PREFIX if env_prefix is None else env_prefix).strip().upper()
        values: dict = {
            "env_prefix": prefix,
            "session_ttl": parse_ttl(env.get(f"{prefix}_SESSION_TTL")),
            "cache_prompted_passwords": parse_flag(
                env.get(f"{prefix}_CACHE_PROMPT"), conf.CACHE_PROMPTED_PASSWORDS,
            ),
        }
        home = env.get(f"{prefix}_HOME")
        if home:
            values["home"] = Path(home)
        return cls(**values)
