import hashlib
import hmac
import secrets

# Stored format: pbkdf2_sha256$<iterations>$<salt hex>$<digest hex>
ALGORITHM = "pbkdf2_sha256"
ITERATIONS = 200_000


def hash_password(pw: str, *, iterations: int = ITERATIONS) -> str:
    salt = secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", pw.encode(), bytes.fromhex(salt), iterations)
    return f"{ALGORITHM}${iterations}${salt}${digest.hex()}"


def verify_password(pw: str, stored: str) -> bool:
    """Check a claimed password against a stored hash in constant time."""
    try:
        algorithm, iterations, salt, expected = stored.split("$")
        rounds = int(iterations)
        salt_bytes = bytes.fromhex(salt)
    except (AttributeError, ValueError):
        return False
    if algorithm != ALGORITHM:
        return False
    digest = hashlib.pbkdf2_hmac("sha256", pw.encode(), salt_bytes, rounds)
    return hmac.compare_digest(digest.hex(), expected)


# Verified against when the email is unknown so both login failures cost the same.
DUMMY_HASH = hash_password(secrets.token_urlsafe(16))
