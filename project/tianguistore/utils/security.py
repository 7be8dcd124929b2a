# tianguistore/utils/security.py

"""
Password hashing and JWT handling.
passlib with sha256_crypt for passwords, PyJWT (HS256) for access tokens.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from jwt import encode, decode
from passlib.context import CryptContext

from tianguistore.config import settings

pwd_context = CryptContext(schemes=["sha256_crypt"], deprecated="auto")

ALGORITHM = "HS256"


def hash_password(password: str) -> str:
    """
    Hashes a password.

    :param password: plain password
    :return: salted hash
    """
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Checks a password against its hash.

    :param plain_password: plain password
    :param hashed_password: hash stored in usuarios.contrasena_hash
    :return: True when they match
    """
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Builds a signed JWT from the claims in `data` plus `exp`.
    Defaults to AUTH_TOKEN_EXPIRE_MINUTES when no lifetime is given.
    """
    to_encode = data.copy()
    lifetime = expires_delta or timedelta(minutes=settings.AUTH_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": datetime.now(timezone.utc) + lifetime})
    return encode(to_encode, settings.AUTH_SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Verifies signature and expiry; raises jwt.InvalidTokenError subclasses."""
    return decode(token, settings.AUTH_SECRET_KEY, algorithms=[ALGORITHM])
