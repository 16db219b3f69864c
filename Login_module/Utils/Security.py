import hashlib
import secrets
import bcrypt

from config import settings

HASH_VALIDATION_LENGTH = 40


def hash_password(plain: str) -> str:
    """
    Hash a password with bcrypt using the configured number of rounds.
    """
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    hashed = bcrypt.hashpw(plain.encode("utf-8"), salt)
    return hashed.decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """
    Check a plain password against a stored bcrypt hash.
    Empty or malformed hashes never verify.
    """
    if not plain or not hashed:
        return False
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


def generate_hash_validation() -> str:
    """
    Random 40-character token used for account activation links.
    """
    return hashlib.sha1(secrets.token_bytes(32)).hexdigest()


def is_valid_hash_validation(value: str) -> bool:
    return isinstance(value, str) and len(value) == HASH_VALIDATION_LENGTH
