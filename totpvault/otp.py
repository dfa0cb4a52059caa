"""
TOTPVault - OTP helpers

Thin wrappers around pyotp and OpenCV for the things the store itself never does:
reading the otpauth:// URL out of a QR image, turning that URL into an Entry,
and computing the current code.
"""

import os
import time
import hashlib
from datetime import datetime
from typing import Optional, Union

import cv2
import pyotp

from .store import Entry


DEFAULT_PERIOD = 30


def _digest_for_algorithm(algorithm: str):
    algo = algorithm.lower()
    if algo not in ("sha1", "sha256", "sha512"):
        raise ValueError(f"unsupported OTP algorithm: {algorithm}")
    return getattr(hashlib, algo)


def entry_from_url(url: str) -> Entry:
    """
    Parse an otpauth:// URL into an Entry.

    The URL is kept verbatim in Entry.url. HOTP entries get the default
    period since the URL carries none.

    Raises:
        ValueError: If the URL is not a valid otpauth URL
    """
    url = url.strip()
    otp = pyotp.parse_uri(url)

    if isinstance(otp, pyotp.TOTP):
        otp_type = "totp"
        period = int(otp.interval)
    else:
        otp_type = "hotp"
        period = DEFAULT_PERIOD

    if not otp.name:
        raise ValueError("otpauth URL has no account name")

    return Entry(
        issuer=otp.issuer or "",
        account_name=otp.name,
        secret=otp.secret,
        type=otp_type,
        period=period,
        digits=int(otp.digits),
        algorithm=otp.digest().name.upper(),
        url=url,
    )


def _totp(entry: Entry) -> pyotp.TOTP:
    if entry.type.lower() != "totp":
        raise ValueError(f"cannot generate a code for a {entry.type} entry without a counter")
    if entry.period <= 0:
        raise ValueError("TOTP period must be positive")
    return pyotp.TOTP(
        entry.secret,
        digits=entry.digits,
        digest=_digest_for_algorithm(entry.algorithm),
        interval=entry.period,
    )


def generate_code(entry: Entry, for_time: Optional[Union[int, datetime]] = None) -> str:
    """Current (or for_time's) code for a TOTP entry."""
    totp = _totp(entry)
    if for_time is None:
        return totp.now()
    return totp.at(for_time)


def seconds_remaining(entry: Entry, for_time: Optional[float] = None) -> int:
    """Seconds until the code for this entry rolls over."""
    if entry.period <= 0:
        raise ValueError("TOTP period must be positive")
    now = time.time() if for_time is None else for_time
    return entry.period - int(now) % entry.period


def url_from_qr_image(image_path: str) -> str:
    """
    Decode the otpauth:// URL held in a QR code image.

    Raises:
        FileNotFoundError: If the image does not exist
        ValueError: If the file is not an image or holds no QR code
    """
    if not os.path.exists(image_path):
        raise FileNotFoundError(f"image not found: {image_path}")

    img = cv2.imread(image_path)
    if img is None:
        raise ValueError(f"could not read image: {image_path}")

    detector = cv2.QRCodeDetector()
    data, _, _ = detector.detectAndDecode(img)
    if not data:
        raise ValueError(f"no QR code found in image: {image_path}")
    return data
