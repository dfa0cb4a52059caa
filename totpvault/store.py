"""
TOTPVault - Record Store Module

This file handles:
- The credential record (Entry) and the in-memory collection (TOTPStore)
- Lookup / insert / remove with exists and not-found semantics
- Serialization of the collection to canonical JSON bytes
- Secure persistence: load = read + decrypt + parse, save = dump + encrypt + write

Payload structure (inside the AES-GCM envelope):
    {"entries": [{"account_name": ..., "algorithm": ..., ...}, ...], "version": 1}

Entries are kept in insertion order. Lookups are a linear scan where the
first match wins; an empty issuer matches any issuer.
"""

import os
import json
import logging
import tempfile
from dataclasses import dataclass, asdict, fields
from typing import List, Optional, Union

from . import crypto
from .errors import EntryExists, EntryNotFound, MalformedData, StorageError

logger = logging.getLogger(__name__)


SCHEMA_VERSION = 1
MAX_PERIOD = 2**64 - 1


# =============================================================================
# DATA MODEL
# =============================================================================

@dataclass
class Entry:
    """One TOTP credential."""

    issuer: str
    account_name: str
    secret: str
    type: str = "totp"
    period: int = 30
    digits: int = 6
    algorithm: str = "SHA1"
    url: str = ""

    def matches(self, account_name: str, issuer: str = "") -> bool:
        """Composite-key rule: account must match, issuer only when given."""
        if self.account_name != account_name:
            return False
        return not issuer or self.issuer == issuer

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "Entry":
        """
        Rebuild an entry from its serialized form.

        Raises:
            MalformedData: On a missing field or a field of the wrong type
        """
        if not isinstance(data, dict):
            raise MalformedData("entry is not an object")

        values = {}
        for field in fields(cls):
            if field.name not in data:
                raise MalformedData(f"entry is missing field '{field.name}'")
            value = data[field.name]
            if field.type is int:
                # bool is an int subclass, but never a valid period/digits
                if not isinstance(value, int) or isinstance(value, bool):
                    raise MalformedData(f"entry field '{field.name}' must be an integer")
            elif not isinstance(value, str):
                raise MalformedData(f"entry field '{field.name}' must be a string")
            values[field.name] = value

        if not values["account_name"]:
            raise MalformedData("entry has an empty account name")
        if not 0 <= values["period"] <= MAX_PERIOD:
            raise MalformedData("entry period is out of range")

        return cls(**values)


# =============================================================================
# COLLECTION
# =============================================================================

class TOTPStore:
    """
    Ordered, in-memory collection of TOTP entries.

    Usage:
        store = TOTPStore()
        store.add(Entry(issuer="GitHub", account_name="alice", secret="JBSWY3DPEHPK3PXP"))
        entry = store.get("alice", "GitHub")
        store.remove("alice", "GitHub")

    Nothing here touches the disk; see load_secure() / save_secure().
    """

    def __init__(self, entries: Optional[List[Entry]] = None):
        self.entries: List[Entry] = list(entries) if entries else []

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(list(self.entries))

    def __eq__(self, other) -> bool:
        if not isinstance(other, TOTPStore):
            return NotImplemented
        return self.entries == other.entries

    def find(self, account_name: str, issuer: str = "") -> int:
        """
        Index of the first entry matching account_name (and issuer, if given).

        Raises:
            EntryNotFound: If nothing matches
        """
        for index, entry in enumerate(self.entries):
            if entry.matches(account_name, issuer):
                return index
        raise EntryNotFound(account_name, issuer)

    def get(self, account_name: str, issuer: str = "") -> Entry:
        """Return the first matching entry (raises EntryNotFound)."""
        return self.entries[self.find(account_name, issuer)]

    def add(self, entry: Entry) -> None:
        """
        Append an entry unless one with the same account/issuer is stored.

        Raises:
            ValueError: If the account name is empty
            EntryExists: If find() already matches; the store is unchanged
        """
        if not entry.account_name:
            raise ValueError("Account name is required")

        try:
            self.find(entry.account_name, entry.issuer)
        except EntryNotFound:
            self.entries.append(entry)
            logger.debug("Added entry for %s (%s)", entry.account_name, entry.issuer)
            return

        raise EntryExists(entry.account_name, entry.issuer)

    def remove(self, account_name: str, issuer: str = "") -> Entry:
        """Remove and return the first matching entry (raises EntryNotFound)."""
        entry = self.entries.pop(self.find(account_name, issuer))
        logger.debug("Removed entry for %s (%s)", entry.account_name, entry.issuer)
        return entry

    def list(self) -> List[Entry]:
        """Entries in insertion order. The returned list is a copy."""
        return list(self.entries)

    # =========================================================================
    # SERIALIZATION
    # =========================================================================

    def to_bytes(self) -> bytes:
        """Canonical JSON: sorted keys, compact, UTF-8."""
        payload = {
            "version": SCHEMA_VERSION,
            "entries": [entry.to_dict() for entry in self.entries],
        }
        json_str = json.dumps(payload, separators=(",", ":"), sort_keys=True, ensure_ascii=False)
        return json_str.encode('utf-8')

    @classmethod
    def from_bytes(cls, data: bytes) -> "TOTPStore":
        """
        Parse bytes produced by to_bytes().

        Raises:
            MalformedData: If the bytes are not a valid collection. Nothing is
                partially accepted.
        """
        try:
            payload = json.loads(data.decode('utf-8'))
        except (UnicodeDecodeError, ValueError, RecursionError) as e:
            raise MalformedData(f"database payload is not valid JSON: {e}") from e

        if not isinstance(payload, dict):
            raise MalformedData("database payload is not an object")
        if payload.get("version") != SCHEMA_VERSION:
            raise MalformedData(f"unsupported database version: {payload.get('version')!r}")

        entries = payload.get("entries")
        if not isinstance(entries, list):
            raise MalformedData("database payload has no entry list")

        store = cls()
        for item in entries:
            entry = Entry.from_dict(item)
            try:
                store.find(entry.account_name, entry.issuer)
            except EntryNotFound:
                store.entries.append(entry)
                continue
            raise MalformedData(f"duplicate entry for {entry.account_name} ({entry.issuer})")
        return store


# =============================================================================
# PERSISTENCE
# =============================================================================

def _password_bytes(password: Union[str, bytes]) -> bytes:
    if isinstance(password, str):
        return password.encode('utf-8')
    return password


def _read_file(path: str) -> bytes:
    """Read the whole file. A missing file propagates as FileNotFoundError."""
    try:
        with open(path, 'rb') as f:
            return f.read()
    except FileNotFoundError:
        raise
    except OSError as e:
        raise StorageError(path, "cannot read database") from e


def _write_atomic(path: str, data: bytes) -> None:
    """
    Write data to path via a temp file in the same directory and os.replace().

    Readers see either the old file or the new one, never a mix.
    """
    directory = os.path.dirname(os.path.abspath(path))
    try:
        fd, tmp_path = tempfile.mkstemp(
            dir=directory, prefix=f".{os.path.basename(path)}.", suffix=".tmp"
        )
    except OSError as e:
        raise StorageError(path, "cannot write database") from e

    try:
        with os.fdopen(fd, 'wb') as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    except OSError as e:
        # Clean up temp file on failure
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise StorageError(path, "cannot write database") from e


def load_secure(path: str, password: Union[str, bytes], salt: bytes) -> TOTPStore:
    """
    Open an encrypted database.

    Args:
        path: Database file
        password: User's password
        salt: Database salt (crypto.salt_from_string of the salt phrase)

    Returns:
        The decrypted collection

    Raises:
        FileNotFoundError: If path does not exist
        StorageError: If the file cannot be read
        DecryptionFailed: Wrong password, wrong salt, or corrupted file
        MalformedData: If the decrypted payload does not parse
    """
    blob = _read_file(path)
    key = crypto.derive_key(_password_bytes(password), salt, crypto.KEY_SIZE)
    store = TOTPStore.from_bytes(crypto.decrypt(blob, key))
    logger.debug("Loaded %d entries from %s", len(store), path)
    return store


def save_secure(path: str, store: TOTPStore, password: Union[str, bytes], salt: bytes) -> None:
    """
    Encrypt the whole collection and replace the database file with it.

    Raises:
        StorageError: If the file cannot be written (the old file is kept)
    """
    key = crypto.derive_key(_password_bytes(password), salt, crypto.KEY_SIZE)
    blob = crypto.encrypt(store.to_bytes(), key)
    _write_atomic(path, blob)
    logger.debug("Saved %d entries to %s", len(store), path)


def read_plain(path: str) -> TOTPStore:
    """Load an unencrypted export written by write_plain()."""
    return TOTPStore.from_bytes(_read_file(path))


def write_plain(path: str, store: TOTPStore) -> None:
    """Write the collection unencrypted. The file holds every secret in clear."""
    _write_atomic(path, store.to_bytes())
    logger.info("Wrote unencrypted export of %d entries to %s", len(store), path)
