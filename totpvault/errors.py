"""Exceptions raised by the credential store."""


class TOTPVaultError(Exception):
    """Base class for every error raised by totpvault."""


class ConfigurationError(TOTPVaultError):
    """Wiring defect, e.g. a derived key of the wrong length."""


class DecryptionFailed(TOTPVaultError):
    """The database did not authenticate.

    Wrong password, wrong salt and a corrupted file are reported the same way.
    """


class MalformedData(TOTPVaultError):
    """Decrypted bytes are not a valid credential collection."""


class StorageError(TOTPVaultError):
    """Reading or writing the database file failed."""

    def __init__(self, path: str, message: str):
        super().__init__(f"{message}: {path}")
        self.path = path


class EntryNotFound(TOTPVaultError, LookupError):
    """No entry matches the requested account/issuer."""

    def __init__(self, account_name: str, issuer: str = ""):
        if issuer:
            super().__init__(f"TOTP entry not found: {account_name} ({issuer})")
        else:
            super().__init__(f"TOTP entry not found: {account_name}")
        self.account_name = account_name
        self.issuer = issuer


class EntryExists(TOTPVaultError):
    """An entry with the same account/issuer is already stored."""

    def __init__(self, account_name: str, issuer: str = ""):
        if issuer:
            super().__init__(f"TOTP entry already exists: {account_name} ({issuer})")
        else:
            super().__init__(f"TOTP entry already exists: {account_name}")
        self.account_name = account_name
        self.issuer = issuer
