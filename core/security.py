import hashlib
import hmac
import secrets

from core.config import settings

PBKDF2_ITERATIONS = 260_000


def generate_token(length: int = 32) -> str:
    """Generate a secure random token."""
    return secrets.token_urlsafe(length)


def hash_token(token: str) -> str:
    """SHA-256 digest of a bearer token, used as its storage key."""
    return hashlib.sha256(token.encode()).hexdigest()


def hash_password(password: str, salt: str | None = None) -> str:
    """
    Hash a password with salted PBKDF2-SHA256.

    Returns:
        String of the form ``pbkdf2_sha256$<iterations>$<salt>$<hex digest>``
    """
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), PBKDF2_ITERATIONS).hex()
    return f"pbkdf2_sha256${PBKDF2_ITERATIONS}${salt}${digest}"


def verify_password(password: str, hashed: str) -> bool:
    """Verify a password against its stored hash."""
    try:
        algorithm, iterations, salt, expected = hashed.split("$")
    except ValueError:
        return False
    if algorithm != "pbkdf2_sha256":
        return False
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), int(iterations)).hex()
    return hmac.compare_digest(digest, expected)


def generate_offer_token(pair_id: int, user_id: int) -> str:
    """
    Sign a pair offer so that only the offered pair can be revealed.

    Args:
        pair_id: Offered pair ID
        user_id: User the pair was offered to

    Returns:
        Hex-encoded HMAC signature (first 16 chars)
    """
    message = f"offer:{pair_id}:{user_id}"
    signature = hmac.new(settings.secret_key.encode(), message.encode(), hashlib.sha256).hexdigest()
    return signature[:16]


def verify_offer_token(pair_id: int, user_id: int, provided: str) -> bool:
    """Verify an offer token produced by generate_offer_token."""
    expected = generate_offer_token(pair_id, user_id)
    return hmac.compare_digest(expected, provided or "")
