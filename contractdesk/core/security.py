"""Password hashing (scrypt) and signing of session cookie values."""

import hashlib
import hmac
import secrets

from itsdangerous import BadSignature, Signer

# scrypt cost parameters; fixed so stored hashes never need a cost field.
SCRYPT_N = 16384
SCRYPT_R = 8
SCRYPT_P = 1
KEY_LENGTH = 64
SALT_BYTES = 16

# Min/max lengths for username and password validation.
USERNAME_MIN_LEN = 3
USERNAME_MAX_LEN = 255
PASSWORD_MIN_LEN = 8
PASSWORD_MAX_LEN = 128

# itsdangerous salt for session cookie signatures.
SESSION_SIGNER_SALT = "contractdesk.session-cookie"


class MalformedHashError(ValueError):
    """Raised when a stored password hash is not in <hex key>.<hex salt> form."""


def _derive_key(password: str, salt: str) -> bytes:
    # The hex salt string itself is the KDF salt, matching hashes created by earlier deployments.
    return hashlib.scrypt(
        password.encode("utf-8"),
        salt=salt.encode("utf-8"),
        n=SCRYPT_N,
        r=SCRYPT_R,
        p=SCRYPT_P,
        dklen=KEY_LENGTH,
    )


def hash_password(plain_password: str) -> str:
    """Hash a plain-text password for storage as '<hex key>.<hex salt>'."""
    salt = secrets.token_hex(SALT_BYTES)
    return f"{_derive_key(plain_password, salt).hex()}.{salt}"


def verify_password(plain_password: str, hashed: str) -> bool:
    """
    Verify a plain password against a stored hash in constant time.
    Raises MalformedHashError if the stored value cannot be parsed.
    """
    key_hex, sep, salt = hashed.partition(".")
    if not sep or not key_hex or not salt:
        raise MalformedHashError("Stored password hash is missing the salt separator")
    try:
        stored_key = bytes.fromhex(key_hex)
    except ValueError as e:
        raise MalformedHashError("Stored password hash is not hex-encoded") from e
    candidate_key = _derive_key(plain_password, salt)
    return hmac.compare_digest(stored_key, candidate_key)


def _session_signer(secret: str) -> Signer:
    return Signer(secret, salt=SESSION_SIGNER_SALT, digest_method=hashlib.sha256)


def sign_session_id(session_id: str, secret: str) -> str:
    """Return the cookie value for a session id: <sid>.<HMAC-SHA256 signature>."""
    return _session_signer(secret).sign(session_id).decode("utf-8")


def unsign_session_id(cookie_value: str | None, secret: str) -> str | None:
    """Return the session id from a signed cookie value, or None if missing or tampered."""
    if not cookie_value:
        return None
    try:
        session_id = _session_signer(secret).unsign(cookie_value).decode("utf-8")
    except BadSignature:
        return None
    return session_id or None
