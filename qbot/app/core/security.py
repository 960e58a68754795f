import hashlib
import secrets


def hash_api_key(raw_key: str) -> str:
    """Hash a bearer token using SHA256.

    Bearer tokens are high-entropy random strings, so a fast unsalted digest
    is enough and lets the token be looked up by its hash.

    Args:
        raw_key: The raw token to hash

    Returns:
        The SHA256 hex digest of the token
    """
    return hashlib.sha256(raw_key.encode("utf-8")).hexdigest()


def hash_password(password: str, salt: str | None = None) -> tuple[str, str]:
    """Hash a student password using PBKDF2 with SHA256.

    Args:
        password: The raw password
        salt: Optional salt. If not provided, a random salt will be generated.

    Returns:
        A tuple of (salt, hashed_password)
    """
    if salt is None:
        salt = secrets.token_hex(16)

    hashed = hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), salt.encode("utf-8"), 100000
    ).hex()

    return salt, hashed


def verify_password(password: str, salt: str, hashed_password: str) -> bool:
    """Verify a raw password against its stored salt and hash."""
    _, computed_hash = hash_password(password, salt)
    return secrets.compare_digest(computed_hash, hashed_password)


def generate_api_key(nbytes: int = 32) -> str:
    """Generate a new random bearer token.

    Args:
        nbytes: Number of random bytes to use as input entropy.

    Returns:
        A URL-safe token string.
    """
    return secrets.token_urlsafe(nbytes)


def generate_password(length: int = 8) -> str:
    """Generate a short random password for a newly enrolled student."""
    alphabet = "abcdefghijkmnpqrstuvwxyz23456789"
    return "".join(secrets.choice(alphabet) for _ in range(length))
