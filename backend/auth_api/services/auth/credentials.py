"""Password hashing and verification (Werkzeug salted hashes)."""

from __future__ import annotations

from werkzeug.security import check_password_hash, generate_password_hash


def hash_password(plaintext: str) -> str:
    """
    Return the salted, adaptive hash stored for ``plaintext``.

    :raises ValueError: If ``plaintext`` is empty or not a string.
    """
    if not isinstance(plaintext, str) or not plaintext:
        raise ValueError("Password must be a non-empty string.")
    return generate_password_hash(plaintext)


def verify_password(plaintext: str, stored_hash: str | None) -> bool:
    """
    Check ``plaintext`` against ``stored_hash`` in constant time.

    Never raises: a missing, empty or malformed hash (unknown method, bad
    parameters) simply does not match.

    :param plaintext: Candidate password.
    :param stored_hash: Value produced by :func:`hash_password`, or ``None``
        for accounts without a password.
    :rtype: bool
    """
    if not stored_hash or not isinstance(plaintext, str):
        return False
    try:
        return bool(check_password_hash(stored_hash, plaintext))
    except (ValueError, TypeError):
        return False
