"""Password hashing and API token helpers."""

import hashlib
import secrets

from passlib.context import CryptContext

API_TOKEN_PREFIX = "tb_"

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


def generate_api_token() -> str:
    """A new plaintext API token. Shown to the user once; only its hash is stored."""
    return API_TOKEN_PREFIX + secrets.token_urlsafe(32)


def hash_api_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def looks_like_api_token(token: str) -> bool:
    return token.startswith(API_TOKEN_PREFIX)
