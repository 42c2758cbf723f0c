# filevault/core/security.py
from werkzeug.security import check_password_hash, generate_password_hash

# Fixed cost for every stored hash
PASSWORD_HASH_METHOD = "pbkdf2:sha256:600000"
PASSWORD_SALT_LENGTH = 16


def hash_password(plaintext: str) -> str:
    """Salted one-way hash, e.g. ``pbkdf2:sha256:600000$<salt>$<hex>``."""
    return generate_password_hash(
        plaintext, method=PASSWORD_HASH_METHOD, salt_length=PASSWORD_SALT_LENGTH
    )


def verify_password(plaintext: str, hashed: str) -> bool:
    """Constant-time check. A malformed or unsupported hash never matches."""
    if not hashed:
        return False
    try:
        return check_password_hash(hashed, plaintext)
    except ValueError:
        return False
