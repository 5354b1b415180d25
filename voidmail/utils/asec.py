"""Security tools, including password hashing.

A password is hashed with the argon2id key derivation function and a random salt owned by the user.
Both the salt and the derived key are stored encoded in base64, so the result is always ASCII strings.

Related:

- [nacl.pwhash - PyNaCL documentation](https://pynacl.readthedocs.io/en/latest/api/pwhash/)
- [Password hashing - libsodium documentation](https://doc.libsodium.org/password_hashing)
"""
from . import global_executor
from asyncio import Future, ensure_future, get_running_loop
from base64 import standard_b64decode, standard_b64encode
from hmac import compare_digest
from nacl.exceptions import CryptoError
from nacl.pwhash import argon2id
import nacl.utils

from ..errors import PasswordHashingError

SALT_SIZE = argon2id.SALTBYTES
"""The size of salt in bytes (16)."""

KEY_SIZE = 32
"""The size of derived key in bytes (256 bits)."""

OPSLIMIT = argon2id.OPSLIMIT_INTERACTIVE
MEMLIMIT = argon2id.MEMLIMIT_INTERACTIVE


def new_salt() -> str:
    """Return a new random salt in base64. Every user should own a different one."""
    return standard_b64encode(nacl.utils.random(SALT_SIZE)).decode("ascii")


def password_hashing_sync(password: str, salt: str) -> str:
    """Hash `password` with `salt`. The result is deterministic for the same pair.

    ..caution:: This function is synchrounous.
        It may unexecptly block the thread.
    """
    try:
        key = argon2id.kdf(
            KEY_SIZE,
            password.encode("utf-8"),
            standard_b64decode(salt.encode("ascii")),
            opslimit=OPSLIMIT,
            memlimit=MEMLIMIT,
        )
    except (CryptoError, ValueError) as e:
        raise PasswordHashingError("could not hash password") from e
    return standard_b64encode(key).decode("ascii")


def password_check_sync(password: str, salt: str, password_hash: str) -> bool:
    """Check if the `password_hash` matches `password` hashed with `salt`.

    ..caution:: This function is synchrounous.
        It may unexecptly block the thread.
    """
    return compare_digest(
        password_hashing_sync(password, salt).encode("ascii"),
        password_hash.encode("ascii"),
    )


def password_hashing(password: str, salt: str) -> Future[str]:
    """Hash `password` in another thread.

    ..note:: A thread pool executor wrapper for `password_hashing_sync`.
    """
    return ensure_future(
        get_running_loop().run_in_executor(
            global_executor.get(), password_hashing_sync, password, salt
        )
    )


def password_check(password: str, salt: str, password_hash: str) -> Future[bool]:
    """Check if the `password_hash` matches `password`, in another thread.

    ..note:: A thread pool executor wrapper for `password_check_sync`.
    """
    return ensure_future(
        get_running_loop().run_in_executor(
            global_executor.get(), password_check_sync, password, salt, password_hash
        )
    )
