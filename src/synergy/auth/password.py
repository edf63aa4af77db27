"""Password hashing with bcrypt (salted, work factor 12)."""

import bcrypt


def hash_password(password: str) -> str:
    # bcrypt only looks at the first 72 bytes
    pw_bytes = password.encode("utf-8")[:72]
    return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=12)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(
            password.encode("utf-8")[:72], password_hash.encode("utf-8")
        )
    except (ValueError, TypeError):
        return False
