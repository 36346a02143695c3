"""
Credential codec: password hashing and signed session tokens

Passwords are hashed with bcrypt through passlib. Session tokens are HS256
JWTs issued with python-jose; the codec treats claims as opaque, only adding
``iat`` and ``exp``.
"""

import asyncio
import secrets
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any, Dict, Optional

from jose import jwt
from jose.exceptions import JOSEError
from passlib.context import CryptContext

from bizsuite.core.config import get_settings
from bizsuite.core.exceptions import HashingTimeout, InvalidToken

settings = get_settings()

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)


def _normalize_password(password: str) -> str:
    """
    bcrypt only looks at the first 72 bytes.
    UTF-8 safe truncate.
    """
    return password.encode("utf-8")[:72].decode("utf-8", errors="ignore")


def hash_password(password: str) -> str:
    """Hash a password; the salt makes every digest unique"""
    return pwd_context.hash(_normalize_password(password))


def verify_password(password: str, hashed: Optional[str]) -> bool:
    """Check a password against a digest. Malformed digests verify as False."""
    if not password or not hashed:
        return False
    try:
        return pwd_context.verify(_normalize_password(password), hashed)
    except (ValueError, TypeError):
        return False


async def _run_bounded(func, *args):
    try:
        return await asyncio.wait_for(
            asyncio.to_thread(func, *args),
            timeout=settings.HASH_TIMEOUT_SECONDS,
        )
    except asyncio.TimeoutError as e:
        raise HashingTimeout(f"{func.__name__} exceeded {settings.HASH_TIMEOUT_SECONDS}s") from e


async def hash_password_async(password: str) -> str:
    """Hash off the event loop"""
    return await _run_bounded(hash_password, password)


async def verify_password_async(password: str, hashed: Optional[str]) -> bool:
    """Verify off the event loop"""
    return await _run_bounded(verify_password, password, hashed)


@lru_cache()
def _placeholder_digest() -> str:
    return hash_password(secrets.token_urlsafe(16))


def _verify_placeholder(password: str) -> bool:
    verify_password(password, _placeholder_digest())
    return False


async def check_credentials(password: str, hashed: Optional[str]) -> bool:
    """
    Verify a login attempt against the stored digest.

    Pass None when no account matched: a throwaway digest is still checked,
    so an unknown email costs the same bcrypt work as a wrong password.
    """
    if hashed is None:
        return await _run_bounded(_verify_placeholder, password)
    return await verify_password_async(password, hashed)


def issue_token(claims: Dict[str, Any], ttl: Optional[timedelta] = None) -> str:
    """Sign a claim set, stamping issued-at and expiry"""
    now = datetime.now(timezone.utc)
    if ttl is None:
        ttl = timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode = dict(claims)
    to_encode.update({"iat": now, "exp": now + ttl})
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def verify_token(token: str) -> Dict[str, Any]:
    """
    Decode and validate a token.

    Raises InvalidToken for every failure: bad signature, malformed input,
    expiry. Callers never learn which check failed.
    """
    if not token or not isinstance(token, str):
        raise InvalidToken("Empty token")
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except (JOSEError, ValueError, TypeError) as e:
        raise InvalidToken(str(e)) from e

    if not isinstance(payload, dict):
        raise InvalidToken("Token payload is not an object")
    return payload


def create_access_token(
    principal_id: int,
    domain: str,
    role: str,
    tenant_id: Optional[int] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Create a session token for a platform or tenant principal"""
    claims: Dict[str, Any] = {
        "sub": str(principal_id),
        "domain": domain,
        "role": role,
    }
    if tenant_id is not None:
        claims["tenant_id"] = tenant_id
    return issue_token(claims, expires_delta)
