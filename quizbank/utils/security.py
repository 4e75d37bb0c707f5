"""Password hashing helpers (bcrypt via passlib)."""

from passlib.context import CryptContext

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
)

# Stored for users provisioned by a share invitation; never matches a password
UNUSABLE_PASSWORD = "!"


def has_usable_password(hashed_password: str) -> bool:
    return bool(hashed_password) and hashed_password != UNUSABLE_PASSWORD


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Check a plain text password against a stored hash.

    Returns:
        True if the password matches, False otherwise (always False for
        the unusable placeholder hash)
    """
    if not has_usable_password(hashed_password):
        return False
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)
