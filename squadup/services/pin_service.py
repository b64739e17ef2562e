"""
Squad PIN hashing.

PINs are short (4-8 characters), so the digest relies on bcrypt's work
factor rather than the size of the code space. Only the digest is ever
stored; the raw PIN is never logged.
"""

import bcrypt
from flask import current_app, has_app_context

DEFAULT_ROUNDS = 10


def _rounds():
    if has_app_context():
        return current_app.config.get('PIN_HASH_ROUNDS', DEFAULT_ROUNDS)
    return DEFAULT_ROUNDS


def hash_pin(pin: str) -> str:
    """Hash a PIN with a fresh random salt. Same PIN, different digest every call."""
    salt = bcrypt.gensalt(rounds=_rounds())
    return bcrypt.hashpw(pin.encode('utf-8'), salt).decode('utf-8')


def verify_pin(pin, pin_hash) -> bool:
    """
    Check a PIN against a stored digest.

    The digest comes from the database and is treated as untrusted: a
    malformed digest simply fails verification, same as a wrong PIN.
    """
    if not isinstance(pin, str) or not isinstance(pin_hash, str) or not pin_hash:
        return False
    try:
        return bcrypt.checkpw(pin.encode('utf-8'), pin_hash.encode('utf-8'))
    except ValueError:
        # Invalid salt / corrupt digest
        return False
