from pwdlib import PasswordHash


password_hash = PasswordHash.recommended()

# Verifying against this keeps unknown-email logins as slow as bad-password ones.
_DUMMY_HASH = password_hash.hash('not-a-real-password')


def hash_password(raw_password: str) -> str:
    return password_hash.hash(raw_password)


def verify_password(raw_password: str, hashed_password: str | None) -> bool:
    if not hashed_password:
        password_hash.verify(raw_password, _DUMMY_HASH)
        return False
    return password_hash.verify(raw_password, hashed_password)
