"""
TOTPVault - Attack Demonstration

Run: python attack_demo.py

What it shows (and why attacks fail):
1) Wrong password cannot open the database.
2) Wrong salt phrase cannot open it either, even with the right password.
3) Flipping one byte anywhere in the file is detected by AES-GCM.
4) A truncated file is rejected the same way.
5) A duplicate credential is refused and the database is left unchanged.
"""

import os
import tempfile

from totpvault import crypto, otp
from totpvault.errors import DecryptionFailed, EntryExists
from totpvault.store import TOTPStore, load_secure, save_secure


LINE = "=" * 70


def section(title: str):
    print(f"\n{LINE}\n{title}\n{LINE}")


def main():
    tmp_dir = tempfile.mkdtemp()
    db_path = os.path.join(tmp_dir, "entries.db")
    password = "CorrectHorseBatteryStaple!"
    salt = crypto.salt_from_string("demo salt phrase")

    # Create a database with one credential
    store = TOTPStore()
    store.add(otp.entry_from_url(
        "otpauth://totp/GitHub:alice@example.com?secret=JBSWY3DPEHPK3PXP&issuer=GitHub"
    ))
    save_secure(db_path, store, password, salt)
    with open(db_path, 'rb') as f:
        original = f.read()

    # 1) Wrong password
    section("Attack 1: Wrong password")
    try:
        load_secure(db_path, "wrong_password", salt)
        print("Unexpected: database opened with wrong password")
    except DecryptionFailed as e:
        print(f"Expected failure: {e}")

    # 2) Wrong salt
    section("Attack 2: Right password, wrong salt phrase")
    try:
        load_secure(db_path, password, crypto.salt_from_string("guessed salt"))
        print("Unexpected: database opened with wrong salt")
    except DecryptionFailed as e:
        print(f"Expected failure: {e}")

    # 3) Byte flipping
    section("Attack 3: Flip one byte (nonce, ciphertext and tag)")
    for label, index in (("nonce", 0), ("ciphertext", crypto.NONCE_SIZE), ("tag", len(original) - 1)):
        tampered = bytearray(original)
        tampered[index] ^= 1  # flip one bit
        with open(db_path, 'wb') as f:
            f.write(bytes(tampered))
        try:
            load_secure(db_path, password, salt)
            print(f"Unexpected: tampered {label} still decrypted")
        except DecryptionFailed as e:
            print(f"Expected failure ({label}): {e}")

    # 4) Truncation
    section("Attack 4: Truncated file")
    with open(db_path, 'wb') as f:
        f.write(original[:8])
    try:
        load_secure(db_path, password, salt)
        print("Unexpected: truncated file decrypted")
    except DecryptionFailed as e:
        print(f"Expected failure: {e}")

    # 5) Duplicate insert
    section("Attack 5: Re-adding an existing credential")
    with open(db_path, 'wb') as f:
        f.write(original)
    store = load_secure(db_path, password, salt)
    try:
        store.add(otp.entry_from_url(
            "otpauth://totp/GitHub:alice@example.com?secret=AAAAAAAAAAAAAAAA&issuer=GitHub"
        ))
        print("Unexpected: duplicate accepted")
    except EntryExists as e:
        print(f"Expected failure: {e}")
    print(f"Secret still the original one: {store.get('alice@example.com', 'GitHub').secret}")

    # Cleanup
    os.unlink(db_path)
    os.rmdir(tmp_dir)
    print("\nDemo complete. All showcased attacks failed as expected.")


if __name__ == "__main__":
    main()
