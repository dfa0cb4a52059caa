"""
TOTPVault - Encrypted TOTP credential store

A small, local, password-protected database of TOTP secrets.

Key Features:
- Local only: the database is one encrypted file on disk
- Strong crypto: AES-256-GCM + PBKDF2-HMAC-SHA256
- Tamper detection: any modified byte makes the database refuse to open
- Atomic saves: a crash mid-write leaves the previous database intact

Components:
- crypto.py: Key derivation and authenticated encryption
- store.py: Entries, the in-memory collection, load/save
- otp.py: otpauth:// URL parsing and code generation (pyotp)
- config.py: Path / password / salt resolution
- errors.py: Exception types

Usage:
    totp-cli create-db                          # Create database
    totp-cli add-url --url 'otpauth://totp/...' # Add credential
    totp-cli list                               # List credentials
    totp-cli generate --account alice           # Print current code
    totp-cli remove --account alice             # Delete credential
"""

__version__ = "0.1.0"
