"""Admin accounts and sessions.

Sessions are opaque tokens stored in Redis under ``session:{token}`` with a
TTL; the admin REST routes and the admin websocket both resolve them here.
"""
from datetime import datetime, timezone
from typing import Optional
import json
import secrets
import logging

from fastapi import Header, HTTPException
from passlib.context import CryptContext

from .config import settings
from . import cache, models

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

RESET_TTL_SEC = 3600

_accounts: dict = {}


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    return pwd_context.verify(password, hashed)


def reset_accounts():
    """Seed the single platform admin from settings."""
    _accounts.clear()
    _accounts[settings.ADMIN_EMAIL.lower()] = {
        "id": "ADM001",
        "name": settings.ADMIN_NAME,
        "email": settings.ADMIN_EMAIL,
        "phone": None,
        "role": models.ROLE_SUPER_ADMIN,
        "permissions": ["all"],
        "password_hash": hash_password(settings.ADMIN_PASSWORD),
        "created_at": datetime.now(timezone.utc).isoformat(),
    }


def public_user(account: dict) -> dict:
    return {k: v for k, v in account.items() if k != "password_hash"}


def get_account(email: str) -> Optional[dict]:
    return _accounts.get((email or "").lower())


def authenticate(email: str, password: str) -> Optional[dict]:
    account = get_account(email)
    if account is None or not verify_password(password, account["password_hash"]):
        logger.warning("login_failed: email=%s", email)
        return None
    return account


async def create_session(account: dict) -> str:
    token = secrets.token_urlsafe(32)
    await cache.redis_client.set(
        cache.session_key(token),
        json.dumps({"email": account["email"], "issued_at": datetime.now(timezone.utc).isoformat()}),
        ex=settings.SESSION_TTL_SEC,
    )
    logger.info("session_created: email=%s", account["email"])
    return token


async def get_session(token: Optional[str]) -> Optional[dict]:
    """Account for a live session token, or None."""
    if not token:
        return None
    raw = await cache.redis_client.get(cache.session_key(token))
    if not raw:
        return None
    try:
        email = json.loads(raw)["email"]
    except (ValueError, KeyError, TypeError):
        logger.warning("session_corrupt: token=%s...", token[:6])
        return None
    return get_account(email)


async def end_session(token: str):
    await cache.redis_client.delete(cache.session_key(token))


async def refresh_session(token: str) -> Optional[str]:
    account = await get_session(token)
    if account is None:
        return None
    await end_session(token)
    return await create_session(account)


async def change_password(account: dict, current_password: str, new_password: str) -> bool:
    if not verify_password(current_password, account["password_hash"]):
        return False
    account["password_hash"] = hash_password(new_password)
    logger.info("password_changed: email=%s", account["email"])
    return True


async def request_password_reset(email: str) -> Optional[str]:
    """Issue a reset token for a known account. Unknown emails get None."""
    account = get_account(email)
    if account is None:
        return None
    token = secrets.token_urlsafe(24)
    await cache.redis_client.set(f"reset:{token}", account["email"], ex=RESET_TTL_SEC)
    logger.info("password_reset_requested: email=%s", account["email"])
    return token


async def reset_password(token: str, new_password: str) -> bool:
    key = f"reset:{token}"
    email = await cache.redis_client.get(key)
    account = get_account(email) if email else None
    if account is None:
        return False
    account["password_hash"] = hash_password(new_password)
    await cache.redis_client.delete(key)
    logger.info("password_reset: email=%s", account["email"])
    return True


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return token.strip()


async def require_admin(authorization: Optional[str] = Header(None)) -> dict:
    token = bearer_token(authorization)
    account = await get_session(token)
    if account is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return account


async def current_token(authorization: Optional[str] = Header(None)) -> str:
    token = bearer_token(authorization)
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return token


reset_accounts()
