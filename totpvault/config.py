"""
TOTPVault - Configuration

The store never reads flags or the environment. Callers build a VaultConfig
(path, password, salt) and hand it over; resolving those values from
command-line flags, environment variables and defaults happens here.

Priority for each setting: explicit value > environment variable > default.
"""

import os
import logging
from dataclasses import dataclass, field
from typing import Mapping, Optional

from . import crypto
from .store import TOTPStore, load_secure, save_secure

logger = logging.getLogger(__name__)


DEFAULT_DB_PATH = os.path.join("~", ".config", "totp-cli", "entries.db")
DEFAULT_SALT_PHRASE = "totpvault: default database salt v1"

ENV_DB_PATH = "TOTP_DB_PATH"
ENV_SALT = "TOTP_SALT"


@dataclass
class VaultConfig:
    """Everything load/save needs, passed explicitly."""

    path: str
    password: str = field(repr=False)
    salt: bytes = field(repr=False)

    def exists(self) -> bool:
        return os.path.exists(self.path)

    def load(self) -> TOTPStore:
        return load_secure(self.path, self.password, self.salt)

    def save(self, store: TOTPStore) -> None:
        save_secure(self.path, store, self.password, self.salt)


def resolve_db_path(
    flag_value: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
    create_dir: bool = True,
) -> str:
    """
    Pick the database path and make sure its directory exists.

    Args:
        flag_value: Path given on the command line, if any
        environ: Environment to consult (defaults to os.environ)
        create_dir: Create the parent directory (mode 0700) when missing

    Returns:
        Absolute path with ~ expanded
    """
    environ = os.environ if environ is None else environ
    path = flag_value or environ.get(ENV_DB_PATH) or DEFAULT_DB_PATH
    path = os.path.abspath(os.path.expanduser(path))

    directory = os.path.dirname(path)
    if create_dir and not os.path.isdir(directory):
        os.makedirs(directory, mode=0o700, exist_ok=True)
        logger.debug("Created database directory %s", directory)

    return path


def resolve_salt(flag_value: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> bytes:
    """Salt phrase from flag, then TOTP_SALT, then the built-in default, hashed to 32 bytes."""
    environ = os.environ if environ is None else environ
    phrase = flag_value or environ.get(ENV_SALT) or DEFAULT_SALT_PHRASE
    return crypto.salt_from_string(phrase)
